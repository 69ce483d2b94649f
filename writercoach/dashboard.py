"""Composition of the dashboard components."""

import logging
from typing import Optional

from .auth_flow import AuthFlowController
from .config import DashboardConfig
from .digest import DigestRequester, DigestState
from .gateways import AuthGateway, BlobStore, Clipboard, FunctionRunner, RecordStore
from .models import Identity
from .session import SessionStore
from .submissions import SubmissionOrchestrator
from .synchronizer import DashboardSynchronizer
from .view import DashboardView

logger = logging.getLogger(__name__)

CONFIG_WARNING = (
    "Supabase configuration is missing. Set SUPABASE_URL and SUPABASE_ANON_KEY "
    "in the environment or a .env file."
)


class Dashboard:
    """Wires the view, the session store and the user-facing controllers.

    Any gateway may be None, in which case the actions depending on it report
    a configuration error instead of calling out.
    """

    def __init__(
        self,
        config: DashboardConfig,
        auth: Optional[AuthGateway] = None,
        store: Optional[RecordStore] = None,
        blobs: Optional[BlobStore] = None,
        functions: Optional[FunctionRunner] = None,
        clipboard: Optional[Clipboard] = None,
    ):
        self.config = config
        self.clipboard = clipboard
        self.view = DashboardView()
        if auth is None:
            self.view.config_warning = CONFIG_WARNING

        self.session = SessionStore(auth, self.view)
        self.digest_state = DigestState()
        self.auth = AuthFlowController(auth, self.view, close_delay=config.auth_close_delay)
        self.synchronizer = DashboardSynchronizer(
            store, self.session, self.view, self.digest_state, recent_limit=config.recent_limit
        )
        self.submissions = SubmissionOrchestrator(store, blobs, self.session, self.synchronizer, self.view)
        self.digest = DigestRequester(
            functions,
            clipboard,
            self.session,
            self.view,
            self.digest_state,
            function_name=config.digest_function,
        )
        self.session.subscribe(self._on_session_change)

    async def start(self) -> None:
        """Bootstrap the page: recover the session and load data if signed in."""
        await self.session.initialise()

    async def _on_session_change(self, previous: Optional[Identity], current: Optional[Identity]) -> None:
        if current is None:
            self.synchronizer.reset()
            return
        if previous is not None and previous.id == current.id:
            # Token refresh for the same subject
            return
        if previous is not None:
            self.synchronizer.reset()
        await self.synchronizer.refresh_all()


async def build_dashboard(config: DashboardConfig, clipboard: Optional[Clipboard] = None) -> Dashboard:
    """Create a dashboard backed by Supabase, or an unconfigured one."""
    if not config.is_configured:
        logger.warning(CONFIG_WARNING)
        return Dashboard(config, clipboard=clipboard)

    from .gateways.supabase_gateway import create_supabase_gateway

    gateway = await create_supabase_gateway(config)
    return Dashboard(
        config,
        auth=gateway,
        store=gateway,
        blobs=gateway,
        functions=gateway,
        clipboard=clipboard,
    )
