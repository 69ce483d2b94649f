"""Magic-link sign-in modal and sign-out action."""

import asyncio
import logging
from typing import Optional

from .errors import ConfigurationError, remote_message
from .gateways import AuthGateway
from .view import DashboardView, MessageStatus, ModalState

logger = logging.getLogger(__name__)

EMPTY_EMAIL_MESSAGE = "Please enter your email address."
SENDING_MESSAGE = "Sending magic link..."
SENT_MESSAGE = "Check your email for the sign-in link."
SEND_FAILED_MESSAGE = "We could not send the magic link. Please try again."
SIGNED_OUT_MESSAGE = "You have been signed out."
SIGN_OUT_FAILED_MESSAGE = "Unable to sign out."
SIGN_IN_FAILED_MESSAGE = "We could not complete sign-in. Please request a new link."


class AuthFlowController:
    """
    Drives the sign-in modal through closed, open-idle, submitting and
    open-result.

    A successful request shows the confirmation and closes the modal after
    ``close_delay`` seconds. A failed one shows the provider's message and
    returns to open-idle. The submit button is re-enabled either way.
    """

    def __init__(self, auth: Optional[AuthGateway], view: DashboardView, close_delay: float = 1.6):
        self._auth = auth
        self._view = view
        self.close_delay = close_delay
        self._close_task: Optional[asyncio.Task] = None

    @property
    def panel(self):
        return self._view.auth

    @property
    def pending_close(self) -> Optional[asyncio.Task]:
        """The scheduled auto-close, if one is waiting."""
        return self._close_task

    def _set_message(self, text: str = "", status: Optional[MessageStatus] = None) -> None:
        self.panel.message = text
        self.panel.message_status = status

    def open(self) -> None:
        if self._close_task is not None and not self._close_task.done():
            self._close_task.cancel()
        self.panel.state = ModalState.open_idle
        self._set_message()

    def close(self) -> None:
        self.panel.state = ModalState.closed
        self.panel.email = ""
        self._set_message()

    def handle_key(self, key: str) -> None:
        if key == "Escape" and self.panel.state != ModalState.closed:
            self.close()

    async def submit(self, email: Optional[str]) -> None:
        """Request a magic link for ``email``."""
        email = (email or "").strip()
        self.panel.email = email
        if not email:
            self._set_message(EMPTY_EMAIL_MESSAGE, MessageStatus.error)
            return

        if self._auth is None:
            self._set_message(ConfigurationError().message, MessageStatus.error)
            return

        self.panel.state = ModalState.submitting
        self.panel.submit_enabled = False
        self._set_message(SENDING_MESSAGE)

        try:
            await self._auth.send_magic_link(email)
            self.panel.state = ModalState.open_result
            self._set_message(SENT_MESSAGE, MessageStatus.success)
            self.panel.email = ""
            self._schedule_close()
        except Exception as e:
            logger.error(f"Failed to send magic link: {e}", exc_info=True)
            self.panel.state = ModalState.open_idle
            self._set_message(remote_message(e, SEND_FAILED_MESSAGE), MessageStatus.error)
        finally:
            self.panel.submit_enabled = True

    def _schedule_close(self) -> None:
        async def _close_later():
            await asyncio.sleep(self.close_delay)
            self.close()

        self._close_task = asyncio.get_running_loop().create_task(_close_later())

    async def complete_sign_in(self, code: Optional[str]) -> None:
        """Finish sign-in from the code of a followed magic link.

        The resulting session reaches the session store through the
        provider's change notification.
        """
        if not (code or "").strip():
            self._set_message(SIGN_IN_FAILED_MESSAGE, MessageStatus.error)
            return
        if self._auth is None:
            self._set_message(ConfigurationError().message, MessageStatus.error)
            return

        try:
            await self._auth.complete_sign_in(code.strip())
        except Exception as e:
            logger.error(f"Failed to complete sign-in: {e}", exc_info=True)
            self._set_message(remote_message(e, SIGN_IN_FAILED_MESSAGE), MessageStatus.error)

    async def sign_out(self) -> None:
        if self._auth is None:
            self._set_message(ConfigurationError().message, MessageStatus.error)
            return

        self.panel.sign_out_enabled = False
        try:
            await self._auth.sign_out()
            self._set_message(SIGNED_OUT_MESSAGE, MessageStatus.success)
        except Exception as e:
            logger.error(f"Failed to sign out: {e}", exc_info=True)
            self._set_message(remote_message(e, SIGN_OUT_FAILED_MESSAGE), MessageStatus.error)
        finally:
            self.panel.sign_out_enabled = True
