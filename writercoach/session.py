"""Session store: the single owner of the current Identity."""

import logging
from typing import Awaitable, Callable, List, Optional

from .gateways import AuthGateway
from .models import Identity
from .view import AuthState, DashboardView

logger = logging.getLogger(__name__)

SessionHandler = Callable[[Optional[Identity], Optional[Identity]], Awaitable[None]]


class SessionStore:
    """
    Holds the current Identity and publishes its transitions.

    Handlers are coroutines called as ``handler(previous, current)`` for every
    published identity, in registration order. They are registered once and
    live as long as the store.
    """

    def __init__(self, auth: Optional[AuthGateway], view: DashboardView):
        self._auth = auth
        self._view = view
        self._identity: Optional[Identity] = None
        self._handlers: List[SessionHandler] = []

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def signed_in(self) -> bool:
        return self._identity is not None

    def subscribe(self, handler: SessionHandler) -> None:
        self._handlers.append(handler)

    async def initialise(self) -> None:
        """Recover an existing session and start listening for changes.

        A failure to recover the session leaves the user signed out.
        """
        self._render(None)
        if self._auth is None:
            await self.publish(None)
            return

        try:
            identity = await self._auth.get_current_session()
        except Exception as e:
            logger.error(f"Failed to fetch session: {e}", exc_info=True)
            identity = None
        await self.publish(identity)

        self._auth.on_session_change(self.publish)

    async def publish(self, identity: Optional[Identity]) -> None:
        """Replace the current identity and notify every handler."""
        previous = self._identity
        self._identity = identity
        self._render(identity)
        if identity is None and previous is not None:
            logger.info("Session ended")
        elif identity is not None and (previous is None or previous.id != identity.id):
            logger.info(f"Session established for {identity.email or identity.id}")
        for handler in list(self._handlers):
            await handler(previous, identity)

    def _render(self, identity: Optional[Identity]) -> None:
        self._view.auth_state = AuthState.signed_in if identity else AuthState.signed_out
        self._view.auth_email = (identity.email or "") if identity else ""
