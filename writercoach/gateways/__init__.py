"""
Gateways to the services the dashboard depends on.

This module defines the abstract contracts for the auth provider, the
relational store, the blob store, the remote function runtime and the
clipboard. ``supabase_gateway`` implements the remote ones on top of the
Supabase client; tests substitute fakes.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from ..models import Identity

SessionCallback = Callable[[Optional[Identity]], Awaitable[None]]


class RecordQuery(BaseModel):
    """Parameters of a read against one table."""
    filters: List[Tuple[str, Any]] = Field(default_factory=list)
    order_by: Optional[str] = None
    descending: bool = False
    limit: Optional[int] = None


class AuthGateway(ABC):
    """Passwordless authentication provider."""

    @abstractmethod
    async def get_current_session(self) -> Optional[Identity]:
        """Recover the identity of an existing session, if any."""
        pass

    @abstractmethod
    async def send_magic_link(self, email: str) -> None:
        """Send a one-time sign-in link to ``email``."""
        pass

    @abstractmethod
    async def complete_sign_in(self, code: str) -> Optional[Identity]:
        """Exchange the code carried by a followed magic link for a session."""
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        pass

    @abstractmethod
    def on_session_change(self, callback: SessionCallback) -> None:
        """Register ``callback`` for every later sign-in, sign-out or token refresh."""
        pass


class RecordStore(ABC):
    """Relational store reached through parameterised queries."""

    @abstractmethod
    async def select(self, table: str, query: RecordQuery) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def insert(self, table: str, row: Dict[str, Any]) -> None:
        pass


class BlobStore(ABC):
    """Object storage for uploaded files."""

    @abstractmethod
    async def upload(
        self,
        path: str,
        content: bytes,
        content_type: Optional[str] = None,
        overwrite: bool = True,
    ) -> str:
        """Store ``content`` at ``path`` and return the stored path."""
        pass

    @abstractmethod
    async def public_url(self, path: str) -> str:
        pass


class FunctionRunner(ABC):
    """Remote serverless function runtime."""

    @abstractmethod
    async def invoke(self, name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        pass


class Clipboard(ABC):
    @abstractmethod
    async def write_text(self, text: str) -> None:
        pass


class BufferedClipboard(Clipboard):
    """Clipboard that keeps the copied text for the page to place on the user's clipboard."""

    def __init__(self):
        self.text: Optional[str] = None

    async def write_text(self, text: str) -> None:
        self.text = text

    def take(self) -> Optional[str]:
        """Return the pending text once and forget it."""
        text, self.text = self.text, None
        return text
