"""Supabase implementation of the remote gateways."""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Set

from supabase import AsyncClient, AsyncClientOptions, acreate_client

from ..config import DashboardConfig
from ..errors import ConfigurationError, RemoteServiceError
from ..models import Identity
from . import AuthGateway, BlobStore, FunctionRunner, RecordQuery, RecordStore, SessionCallback

logger = logging.getLogger(__name__)


def identity_from_session(session: Any) -> Optional[Identity]:
    """Map a Supabase session onto an Identity, or None when signed out."""
    user = getattr(session, "user", None) if session is not None else None
    if user is None:
        return None
    return Identity(id=str(user.id), email=getattr(user, "email", None))


def _remote_error(operation: str, error: Exception) -> RemoteServiceError:
    message = getattr(error, "message", None)
    if not isinstance(message, str):
        message = str(error)
    return RemoteServiceError(operation, message)


class SupabaseGateway(AuthGateway, RecordStore, BlobStore, FunctionRunner):
    """Auth, table, storage and function access over one Supabase client.

    Library exceptions are re-raised as :class:`RemoteServiceError` carrying
    the message Supabase supplied.
    """

    def __init__(self, client: AsyncClient, bucket: str, redirect_url: Optional[str] = None):
        self.client = client
        self.bucket = bucket
        self.redirect_url = redirect_url
        self._listener_tasks: Set[asyncio.Task] = set()

    # Auth

    async def get_current_session(self) -> Optional[Identity]:
        try:
            session = await self.client.auth.get_session()
        except Exception as e:
            raise _remote_error("get_session", e) from e
        return identity_from_session(session)

    async def send_magic_link(self, email: str) -> None:
        try:
            credentials: Dict[str, Any] = {"email": email}
            if self.redirect_url:
                credentials["options"] = {"email_redirect_to": self.redirect_url}
            await self.client.auth.sign_in_with_otp(credentials)
        except Exception as e:
            raise _remote_error("sign_in_with_otp", e) from e

    async def complete_sign_in(self, code: str) -> Optional[Identity]:
        try:
            response = await self.client.auth.exchange_code_for_session({"auth_code": code})
        except Exception as e:
            raise _remote_error("exchange_code_for_session", e) from e
        return identity_from_session(getattr(response, "session", None))

    async def sign_out(self) -> None:
        try:
            await self.client.auth.sign_out()
        except Exception as e:
            raise _remote_error("sign_out", e) from e

    def on_session_change(self, callback: SessionCallback) -> None:
        def _listener(event, session):
            logger.debug(f"Auth state change: {event}")
            task = asyncio.get_running_loop().create_task(callback(identity_from_session(session)))
            # Keep a reference until the task finishes
            self._listener_tasks.add(task)
            task.add_done_callback(self._listener_tasks.discard)

        self.client.auth.on_auth_state_change(_listener)

    # Tables

    async def select(self, table: str, query: RecordQuery) -> List[Dict[str, Any]]:
        request = self.client.table(table).select("*")
        for column, value in query.filters:
            request = request.eq(column, value)
        if query.order_by:
            request = request.order(query.order_by, desc=query.descending)
        if query.limit is not None:
            request = request.limit(query.limit)
        try:
            response = await request.execute()
        except Exception as e:
            raise _remote_error(f"select {table}", e) from e
        return list(response.data or [])

    async def insert(self, table: str, row: Dict[str, Any]) -> None:
        try:
            await self.client.table(table).insert(row).execute()
        except Exception as e:
            raise _remote_error(f"insert {table}", e) from e

    # Storage

    async def upload(
        self,
        path: str,
        content: bytes,
        content_type: Optional[str] = None,
        overwrite: bool = True,
    ) -> str:
        file_options = {"upsert": "true" if overwrite else "false"}
        if content_type:
            file_options["content-type"] = content_type
        try:
            response = await self.client.storage.from_(self.bucket).upload(path, content, file_options)
        except Exception as e:
            raise _remote_error("upload", e) from e
        return getattr(response, "path", None) or path

    async def public_url(self, path: str) -> str:
        return await self.client.storage.from_(self.bucket).get_public_url(path)

    # Functions

    async def invoke(self, name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            result = await self.client.functions.invoke(
                name, invoke_options={"body": body, "responseType": "json"}
            )
        except Exception as e:
            raise _remote_error(f"invoke {name}", e) from e
        if isinstance(result, (bytes, bytearray)):
            result = result.decode("utf-8")
        if isinstance(result, str):
            try:
                result = json.loads(result) if result.strip() else {}
            except ValueError as e:
                raise RemoteServiceError(f"invoke {name}", "Malformed function response") from e
        if not isinstance(result, dict):
            raise RemoteServiceError(f"invoke {name}", "Malformed function response")
        return result


async def create_supabase_gateway(config: DashboardConfig) -> SupabaseGateway:
    """Create the Supabase client described by ``config``."""
    if not config.is_configured:
        raise ConfigurationError()
    client = await acreate_client(
        config.supabase_url,
        config.supabase_anon_key,
        options=AsyncClientOptions(persist_session=True, flow_type="pkce"),
    )
    logger.info(f"Supabase client created for {config.supabase_url}")
    return SupabaseGateway(client, bucket=config.storage_bucket, redirect_url=config.redirect_url)
