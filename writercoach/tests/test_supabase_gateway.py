"""Tests for the Supabase gateway against a mocked client."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from writercoach.config import DashboardConfig
from writercoach.errors import ConfigurationError, RemoteServiceError
from writercoach.gateways import RecordQuery
from writercoach.gateways.supabase_gateway import (
    SupabaseGateway,
    create_supabase_gateway,
    identity_from_session,
)


class FakeAuthApiError(Exception):
    def __init__(self, message):
        self.message = message
        super().__init__(message)


def _query_builder(data=None, error=None):
    """Chainable stand-in for a postgrest request builder."""
    builder = MagicMock()
    for method in ("select", "eq", "order", "limit", "insert"):
        getattr(builder, method).return_value = builder
    if error is not None:
        builder.execute = AsyncMock(side_effect=error)
    else:
        builder.execute = AsyncMock(return_value=SimpleNamespace(data=data or []))
    return builder


@pytest.fixture
def client():
    client = MagicMock()
    client.auth = MagicMock()
    client.auth.get_session = AsyncMock(return_value=None)
    client.auth.sign_in_with_otp = AsyncMock()
    client.auth.sign_out = AsyncMock()
    client.auth.exchange_code_for_session = AsyncMock()
    client.functions = MagicMock()
    client.functions.invoke = AsyncMock()
    bucket = MagicMock()
    bucket.upload = AsyncMock(return_value=SimpleNamespace(path="student-1/draft-1-a.txt"))
    bucket.get_public_url = AsyncMock(return_value="https://cdn.test/student-1/draft-1-a.txt")
    client.storage.from_.return_value = bucket
    return client


@pytest.fixture
def gateway(client):
    return SupabaseGateway(client, bucket="writercoach-submissions")


class TestAuth:

    def test_identity_from_session(self):
        session = SimpleNamespace(user=SimpleNamespace(id="uuid-1", email="ada@example.com"))
        identity = identity_from_session(session)
        assert identity.id == "uuid-1"
        assert identity.email == "ada@example.com"
        assert identity_from_session(None) is None

    @pytest.mark.asyncio
    async def test_current_session(self, gateway, client):
        client.auth.get_session.return_value = SimpleNamespace(
            user=SimpleNamespace(id="uuid-1", email="ada@example.com")
        )
        identity = await gateway.get_current_session()
        assert identity.id == "uuid-1"

    @pytest.mark.asyncio
    async def test_send_magic_link_passes_redirect(self, client):
        gateway = SupabaseGateway(client, bucket="b", redirect_url="https://app.test/auth/callback")
        await gateway.send_magic_link("ada@example.com")
        client.auth.sign_in_with_otp.assert_awaited_once_with({
            "email": "ada@example.com",
            "options": {"email_redirect_to": "https://app.test/auth/callback"},
        })

    @pytest.mark.asyncio
    async def test_auth_error_keeps_provider_message(self, gateway, client):
        client.auth.sign_in_with_otp.side_effect = FakeAuthApiError("Email rate limit exceeded")
        with pytest.raises(RemoteServiceError) as exc_info:
            await gateway.send_magic_link("ada@example.com")
        assert exc_info.value.message == "Email rate limit exceeded"

    @pytest.mark.asyncio
    async def test_session_change_listener_schedules_callback(self, gateway, client):
        seen = []

        async def callback(identity):
            seen.append(identity)

        gateway.on_session_change(callback)
        listener = client.auth.on_auth_state_change.call_args[0][0]
        listener("SIGNED_OUT", None)
        for task in list(gateway._listener_tasks):
            await task

        assert seen == [None]


class TestTables:

    @pytest.mark.asyncio
    async def test_select_applies_query(self, gateway, client):
        builder = _query_builder(data=[{"id": 1}])
        client.table.return_value = builder

        rows = await gateway.select("submissions", RecordQuery(
            filters=[("student_id", "student-1")],
            order_by="submitted_at",
            descending=True,
            limit=10,
        ))

        assert rows == [{"id": 1}]
        client.table.assert_called_with("submissions")
        builder.select.assert_called_once_with("*")
        builder.eq.assert_called_once_with("student_id", "student-1")
        builder.order.assert_called_once_with("submitted_at", desc=True)
        builder.limit.assert_called_once_with(10)

    @pytest.mark.asyncio
    async def test_select_without_options(self, gateway, client):
        builder = _query_builder()
        client.table.return_value = builder

        assert await gateway.select("assignments", RecordQuery()) == []
        builder.eq.assert_not_called()
        builder.limit.assert_not_called()

    @pytest.mark.asyncio
    async def test_insert_error_is_wrapped(self, gateway, client):
        client.table.return_value = _query_builder(error=FakeAuthApiError("new row violates policy"))
        with pytest.raises(RemoteServiceError) as exc_info:
            await gateway.insert("submissions", {"draft_url": "x"})
        assert exc_info.value.message == "new row violates policy"


class TestStorageAndFunctions:

    @pytest.mark.asyncio
    async def test_upload_uses_upsert(self, gateway, client):
        stored = await gateway.upload("student-1/draft-1-a.txt", b"abc", "text/plain")

        bucket = client.storage.from_.return_value
        client.storage.from_.assert_called_with("writercoach-submissions")
        bucket.upload.assert_awaited_once_with(
            "student-1/draft-1-a.txt", b"abc", {"upsert": "true", "content-type": "text/plain"}
        )
        assert stored == "student-1/draft-1-a.txt"
        assert await gateway.public_url(stored) == "https://cdn.test/student-1/draft-1-a.txt"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"digest": {"weeks": 2}, "signed_url": "https://signed.test"},
        json.dumps({"digest": {"weeks": 2}, "signed_url": "https://signed.test"}).encode(),
    ])
    async def test_invoke_normalises_response(self, gateway, client, payload):
        client.functions.invoke.return_value = payload

        result = await gateway.invoke("progress_digest", {"student_id": "student-1"})

        assert result == {"digest": {"weeks": 2}, "signed_url": "https://signed.test"}
        client.functions.invoke.assert_awaited_once_with(
            "progress_digest",
            invoke_options={"body": {"student_id": "student-1"}, "responseType": "json"},
        )

    @pytest.mark.asyncio
    async def test_invoke_rejects_malformed_response(self, gateway, client):
        client.functions.invoke.return_value = b"<html>bad gateway</html>"
        with pytest.raises(RemoteServiceError):
            await gateway.invoke("progress_digest", {"student_id": "student-1"})


@pytest.mark.asyncio
async def test_create_requires_configuration():
    with pytest.raises(ConfigurationError):
        await create_supabase_gateway(DashboardConfig())
