"""Dashboard synchronizer: loads and resets the three collection views."""

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Type

from pydantic import BaseModel

from .digest import DigestState
from .errors import ConfigurationError
from .gateways import RecordQuery, RecordStore
from .models import Assignment, Feedback, Submission
from .render import format_assignment, format_feedback, format_submission
from .session import SessionStore
from .view import ASSIGNMENT_PLACEHOLDER, DashboardView, DigestStatus, LoadStatus

logger = logging.getLogger(__name__)

COLLECTIONS = ("assignments", "submissions", "feedback")

EMPTY_MESSAGES = {
    "assignments": "No assignments yet.",
    "submissions": "No submissions yet.",
    "feedback": "No feedback yet.",
}


class DashboardSynchronizer:
    """
    Keeps the assignments, submissions and feedback views in step with the
    remote store.

    Each loader marks its view loading, queries, then either replaces the
    rendered list (synced) or flags the failure (error) while keeping the last
    good render. ``reset`` bumps a session epoch; a response that arrives for
    an older epoch is discarded rather than rendered into the reset view.
    """

    def __init__(
        self,
        store: Optional[RecordStore],
        session: SessionStore,
        view: DashboardView,
        digest_state: DigestState,
        recent_limit: int = 10,
    ):
        self._store = store
        self._session = session
        self._view = view
        self._digest_state = digest_state
        self.recent_limit = recent_limit
        self._epoch = 0

    @property
    def epoch(self) -> int:
        return self._epoch

    async def load_assignments(self) -> None:
        await self._load_assignments(self._epoch)

    async def load_submissions(self) -> None:
        await self._load_submissions(self._epoch)

    async def load_feedback(self) -> None:
        await self._load_feedback(self._epoch)

    async def refresh(self, *names: str) -> None:
        """Reload the named collections concurrently."""
        loaders: Dict[str, Callable] = {
            "assignments": self._load_assignments,
            "submissions": self._load_submissions,
            "feedback": self._load_feedback,
        }
        epoch = self._epoch
        await asyncio.gather(*(loaders[name](epoch) for name in names))

    async def refresh_all(self) -> None:
        await self.refresh(*COLLECTIONS)

    async def _load_assignments(self, epoch: int) -> None:
        items = await self._load(
            epoch,
            "assignments",
            RecordQuery(order_by="due_date"),
            Assignment,
            format_assignment,
        )
        if items is not None:
            self._view.assignment_options = [ASSIGNMENT_PLACEHOLDER] + [
                (str(a.id), a.title) for a in items
            ]
            # Submissions may have rendered before the titles arrived
            submissions = self._view.submissions
            submissions.entries = [self._render_submission(s) for s in submissions.items]

    async def _load_submissions(self, epoch: int) -> None:
        identity = self._session.identity
        if identity is None:
            logger.debug("Skipping submissions load: no identity")
            return
        await self._load(
            epoch,
            "submissions",
            RecordQuery(
                filters=[("student_id", identity.id)],
                order_by="submitted_at",
                descending=True,
                limit=self.recent_limit,
            ),
            Submission,
            self._render_submission,
        )

    async def _load_feedback(self, epoch: int) -> None:
        identity = self._session.identity
        if identity is None:
            logger.debug("Skipping feedback load: no identity")
            return
        await self._load(
            epoch,
            "feedback",
            RecordQuery(
                filters=[("student_id", identity.id)],
                order_by="created_at",
                descending=True,
                limit=self.recent_limit,
            ),
            Feedback,
            format_feedback,
        )

    def _render_submission(self, submission: Submission) -> str:
        titles = {str(a.id): a.title for a in self._view.assignments.items}
        return format_submission(submission, titles)

    def reset(self) -> None:
        """Return every view to its signed-out state."""
        self._epoch += 1
        for name in COLLECTIONS:
            self._view.collection(name).clear()
        self._view.assignment_options = [ASSIGNMENT_PLACEHOLDER]
        self._view.digest.output = ""
        self._view.digest.copy_enabled = False
        self._view.digest.status = DigestStatus.idle
        self._view.digest.message = ""
        self._digest_state.reset()

    async def _load(
        self,
        epoch: int,
        name: str,
        query: RecordQuery,
        model: Type[BaseModel],
        render: Callable,
    ) -> Optional[List[BaseModel]]:
        view = self._view.collection(name)
        if self._store is None:
            view.status = LoadStatus.error
            view.empty_visible = True
            view.empty_message = ConfigurationError().message
            return None
        if epoch != self._epoch:
            return None

        view.status = LoadStatus.loading
        try:
            rows = await self._store.select(name, query)
            items = [model.model_validate(row) for row in rows]
        except Exception as e:
            logger.error(f"Failed to load {name}: {e}", exc_info=True)
            if epoch != self._epoch:
                return None
            view.status = LoadStatus.error
            view.empty_visible = True
            view.empty_message = f"Could not load {name}."
            return None

        if epoch != self._epoch:
            logger.debug(f"Discarding stale {name} response")
            return None

        view.items = items
        view.entries = [render(item) for item in items]
        view.empty_visible = not items
        view.empty_message = "" if items else EMPTY_MESSAGES[name]
        view.status = LoadStatus.synced
        logger.debug(f"Loaded {len(items)} {name}")
        return items
