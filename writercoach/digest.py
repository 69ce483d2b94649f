"""Progress digest requests and the copy-link action."""

import logging
from typing import Optional

from .errors import ConfigurationError, remote_message
from .gateways import Clipboard, FunctionRunner
from .models import DigestResult
from .render import format_digest
from .session import SessionStore
from .view import DashboardView, DigestStatus

logger = logging.getLogger(__name__)

DIGEST_FAILED_MESSAGE = "We could not generate your progress digest. Please try again."


class DigestState:
    """Transient slot holding the last signed download link.

    ``generation`` changes on every session reset; a request that started
    under an older generation must not write into the slot.
    """

    def __init__(self):
        self._last_url: Optional[str] = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def last_url(self) -> Optional[str]:
        return self._last_url

    def retain(self, url: str) -> None:
        self._last_url = url

    def clear(self) -> None:
        self._last_url = None

    def reset(self) -> None:
        self._generation += 1
        self.clear()


class DigestRequester:
    """Requests a progress digest for the signed-in student.

    Requests are not deduplicated; when two overlap, whichever resolves last
    is what the view shows.
    """

    def __init__(
        self,
        functions: Optional[FunctionRunner],
        clipboard: Optional[Clipboard],
        session: SessionStore,
        view: DashboardView,
        state: DigestState,
        function_name: str = "progress_digest",
    ):
        self._functions = functions
        self._clipboard = clipboard
        self._session = session
        self._view = view
        self.state = state
        self.function_name = function_name

    @property
    def panel(self):
        return self._view.digest

    def _set_status(self, status: DigestStatus, message: str = "") -> None:
        self.panel.status = status
        self.panel.message = message or status.value

    async def request(self) -> None:
        if self._functions is None:
            self._set_status(DigestStatus.error, ConfigurationError().message)
            return
        identity = self._session.identity
        if identity is None:
            self._set_status(DigestStatus.not_connected)
            return

        generation = self.state.generation
        self.panel.output = ""
        self._withdraw_link()
        self._set_status(DigestStatus.requesting)

        try:
            response = await self._functions.invoke(self.function_name, {"student_id": identity.id})
            result = DigestResult.model_validate(response)
        except Exception as e:
            logger.error(f"Digest request failed: {e}", exc_info=True)
            if generation != self.state.generation:
                return
            self._withdraw_link()
            self._set_status(DigestStatus.error)
            self.panel.output = remote_message(e, DIGEST_FAILED_MESSAGE)
            return

        if generation != self.state.generation:
            logger.debug("Discarding digest response from a previous session")
            return

        self.panel.output = format_digest(result.digest, result.signed_url)
        if result.signed_url:
            self.state.retain(result.signed_url)
            self.panel.copy_enabled = True
            self._set_status(DigestStatus.signed_url_ready)
        else:
            self._withdraw_link()
            self._set_status(DigestStatus.digest_ready)
        logger.info(f"Digest ready for {identity.id} (signed link: {bool(result.signed_url)})")

    def _withdraw_link(self) -> None:
        self.panel.copy_enabled = False
        self.state.clear()

    async def copy_link(self) -> bool:
        """Copy the retained link to the clipboard. Returns whether anything was copied."""
        url = self.state.last_url
        if not url:
            return False
        if self._clipboard is None:
            logger.warning("No clipboard available to copy the digest link")
            self._set_status(DigestStatus.copy_failed)
            return False
        try:
            await self._clipboard.write_text(url)
        except Exception as e:
            logger.error(f"Failed to copy digest link: {e}")
            self._set_status(DigestStatus.copy_failed)
            return False
        self._set_status(DigestStatus.copied)
        return True

