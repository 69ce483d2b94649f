"""
Submission orchestration.

Validates the submission form, uploads the draft and the optional transcript
concurrently, and inserts one submission row that references both uploads.
The insert is only attempted once every upload has succeeded, so a failed
upload never leaves a row pointing at a missing file.

Example:
    >>> orchestrator = SubmissionOrchestrator(store, blobs, session, sync, view)
    >>> await orchestrator.submit(form)
"""

import asyncio
import logging
import os
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from .errors import ConfigurationError, MissingFieldsError, remote_message
from .gateways import BlobStore, RecordStore
from .models import Identity, SubmissionForm, UploadedFile
from .session import SessionStore
from .synchronizer import DashboardSynchronizer
from .view import DashboardView, SubmissionStatus

logger = logging.getLogger(__name__)

SUBMISSIONS_TABLE = "submissions"
SUBMITTED_STATUS = "submitted"
SUBMIT_FAILED_MESSAGE = "We could not save your submission. Please try again."


def parse_minutes(value: Optional[str]) -> Optional[int]:
    """Read the time-spent field; blank, non-numeric or negative input counts as absent."""
    if value is None:
        return None
    try:
        minutes = int(str(value).strip())
    except ValueError:
        return None
    return minutes if minutes >= 0 else None


class SubmissionOrchestrator:
    """
    Turns a submission form into uploaded files plus one submission record.

    Args:
        store: Relational store receiving the submission row.
        blobs: Blob store receiving the draft and transcript.
        session: Source of the current identity.
        synchronizer: Refreshed after a successful insert.
        view: Dashboard view whose submission panel this class owns.
    """

    def __init__(
        self,
        store: Optional[RecordStore],
        blobs: Optional[BlobStore],
        session: SessionStore,
        synchronizer: DashboardSynchronizer,
        view: DashboardView,
    ):
        self._store = store
        self._blobs = blobs
        self._session = session
        self._synchronizer = synchronizer
        self._view = view

    @property
    def panel(self):
        return self._view.submission

    def _set_status(self, status: SubmissionStatus, message: str = "") -> None:
        self.panel.status = status
        self.panel.message = message or status.value

    @staticmethod
    def missing_fields(identity: Optional[Identity], form: SubmissionForm) -> List[str]:
        missing = []
        if identity is None:
            missing.append("identity")
        if not (form.assignment_id or "").strip():
            missing.append("assignment")
        if form.draft is None:
            missing.append("draft")
        return missing

    async def submit(self, form: SubmissionForm) -> bool:
        """Run one submission attempt. Returns whether a record was saved."""
        if self._store is None or self._blobs is None:
            self._set_status(SubmissionStatus.error, ConfigurationError().message)
            return False

        identity = self._session.identity
        missing = self.missing_fields(identity, form)
        if missing:
            error = MissingFieldsError(missing)
            logger.info(error.message)
            self._set_status(SubmissionStatus.missing_fields, error.message)
            return False

        self.panel.submit_enabled = False
        self._set_status(SubmissionStatus.uploading)
        try:
            draft_url, transcript_url = await self._upload_pair(identity, form)
            row = self.build_record(identity, form, draft_url, transcript_url)
            await self._store.insert(SUBMISSIONS_TABLE, row)
        except Exception as e:
            logger.error(f"Submission failed: {e}", exc_info=True)
            self._set_status(SubmissionStatus.error, remote_message(e, SUBMIT_FAILED_MESSAGE))
            return False
        else:
            logger.info(f"Saved submission for assignment {row['assignment_id']}")
            self._set_status(SubmissionStatus.saved)
            form.reset()
            await self._synchronizer.refresh("submissions", "feedback")
            return True
        finally:
            self.panel.submit_enabled = True

    async def _upload_pair(self, identity: Identity, form: SubmissionForm):
        """Upload draft and transcript concurrently and wait for both to settle."""
        stamp = int(datetime.now(UTC).timestamp() * 1000)
        results = await asyncio.gather(
            self._upload(identity, "draft", form.draft, stamp),
            self._upload(identity, "transcript", form.transcript, stamp),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return results[0], results[1]

    async def _upload(
        self,
        identity: Identity,
        role: str,
        upload: Optional[UploadedFile],
        stamp: int,
    ) -> Optional[str]:
        if upload is None:
            return None
        path = f"{identity.id}/{role}-{stamp}-{self.safe_filename(upload.filename)}"
        logger.debug(f"Uploading {role} to {path} ({len(upload.content)} bytes)")
        stored = await self._blobs.upload(path, upload.content, upload.content_type, overwrite=True)
        return await self._blobs.public_url(stored)

    @staticmethod
    def build_record(
        identity: Identity,
        form: SubmissionForm,
        draft_url: str,
        transcript_url: Optional[str],
    ) -> Dict[str, Any]:
        reflection = (form.reflection or "").strip()
        return {
            "assignment_id": form.assignment_id.strip(),
            "student_id": identity.id,
            "reflection": reflection or None,
            "time_spent_minutes": parse_minutes(form.time_spent_minutes),
            "draft_url": draft_url,
            "transcript_url": transcript_url,
            "status": SUBMITTED_STATUS,
            "submitted_at": datetime.now(UTC).isoformat(),
        }

    @staticmethod
    def safe_filename(filename: str) -> str:
        """
        Return a storage-safe version of the filename.

        Example:
            >>> SubmissionOrchestrator.safe_filename("My Essay (draft 2).docx")
            'My_Essay__draft_2_.docx'
        """
        if not filename or not isinstance(filename, str):
            return 'unnamed_file'

        keep_chars = ('.', '_', '-')
        safe_chars = []
        for c in os.path.basename(filename.replace('\\', '/')):
            if c.isascii() and (c.isalnum() or c in keep_chars):
                safe_chars.append(c)
            elif c.isspace() or not c.isalnum():
                safe_chars.append('_')
            # Non-ASCII letters are dropped

        safe_name = ''.join(safe_chars).strip('_.- ')
        if not safe_name:
            return 'unnamed_file'

        max_length = 120
        if len(safe_name) > max_length:
            name, ext = os.path.splitext(safe_name)
            name = name[:max_length - len(ext)]
            safe_name = f"{name}{ext}"
        return safe_name
