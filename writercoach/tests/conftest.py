"""Shared fakes and fixtures for the dashboard tests."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from writercoach.config import DashboardConfig
from writercoach.dashboard import Dashboard
from writercoach.errors import RemoteServiceError
from writercoach.gateways import (
    AuthGateway,
    BlobStore,
    Clipboard,
    FunctionRunner,
    RecordQuery,
    RecordStore,
)
from writercoach.models import Identity, SubmissionForm, UploadedFile

STUDENT = Identity(id="student-1", email="ada@example.com")
OTHER_STUDENT = Identity(id="student-2", email="grace@example.com")


class FakeAuth(AuthGateway):
    def __init__(self, identity: Optional[Identity] = None):
        self.identity = identity
        self.session_error: Optional[Exception] = None
        self.send_error: Optional[Exception] = None
        self.sign_out_error: Optional[Exception] = None
        self.sent: List[str] = []
        self.codes: List[str] = []
        self.sign_outs = 0
        self.callbacks = []

    async def get_current_session(self):
        if self.session_error:
            raise self.session_error
        return self.identity

    async def send_magic_link(self, email):
        self.sent.append(email)
        if self.send_error:
            raise self.send_error

    async def complete_sign_in(self, code):
        self.codes.append(code)
        await self.emit(STUDENT)
        return STUDENT

    async def sign_out(self):
        self.sign_outs += 1
        if self.sign_out_error:
            raise self.sign_out_error
        await self.emit(None)

    def on_session_change(self, callback):
        self.callbacks.append(callback)

    async def emit(self, identity: Optional[Identity]):
        """Simulate the provider announcing a session change."""
        for callback in self.callbacks:
            await callback(identity)


class FakeStore(RecordStore):
    """Table store with per-table failures and optional gates to hold a query open."""

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables = tables or {}
        self.errors: Dict[str, Exception] = {}
        self.insert_error: Optional[Exception] = None
        self.gates: Dict[str, asyncio.Event] = {}
        self.selects: List[tuple] = []
        self.inserts: List[tuple] = []
        self.events: List[str] = []

    async def select(self, table: str, query: RecordQuery):
        self.selects.append((table, query))
        self.events.append(f"select:{table}")
        if table in self.gates:
            await self.gates[table].wait()
        if table in self.errors:
            raise self.errors[table]
        rows = list(self.tables.get(table, []))
        for column, value in query.filters:
            rows = [r for r in rows if r.get(column) == value]
        if query.order_by:
            rows.sort(key=lambda r: r.get(query.order_by) or "", reverse=query.descending)
        if query.limit is not None:
            rows = rows[:query.limit]
        return rows

    async def insert(self, table: str, row: Dict[str, Any]):
        self.events.append(f"insert:{table}")
        if self.insert_error:
            raise self.insert_error
        self.inserts.append((table, row))
        self.tables.setdefault(table, []).append({"id": len(self.inserts), **row})

    def tables_selected(self) -> List[str]:
        return [table for table, _ in self.selects]


class FakeBlobs(BlobStore):
    def __init__(self):
        self.uploads: List[Dict[str, Any]] = []
        self.errors: Dict[str, Exception] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self.events: List[str] = []

    async def upload(self, path, content, content_type=None, overwrite=True):
        role = path.split("/", 1)[1].split("-", 1)[0]
        self.events.append(f"upload-start:{role}")
        if role in self.gates:
            await self.gates[role].wait()
        if role in self.errors:
            self.events.append(f"upload-failed:{role}")
            raise self.errors[role]
        self.uploads.append({"path": path, "content": content, "content_type": content_type, "overwrite": overwrite})
        self.events.append(f"upload-done:{role}")
        return path

    async def public_url(self, path):
        return f"https://storage.test/writercoach-submissions/{path}"


class FakeFunctions(FunctionRunner):
    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.calls: List[tuple] = []

    async def invoke(self, name, body):
        self.calls.append((name, body))
        response = self.responses.pop(0) if self.responses else {"digest": {}}
        if isinstance(response, Exception):
            raise response
        return response


class FakeClipboard(Clipboard):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.writes: List[str] = []

    async def write_text(self, text):
        if self.fail:
            raise RuntimeError("clipboard blocked")
        self.writes.append(text)


ASSIGNMENT_ROWS = [
    {"id": "a2", "title": "Argument essay", "instructions": "Take a side.", "due_date": "2026-11-20"},
    {"id": "a1", "title": "Personal narrative", "instructions": None, "due_date": "2026-11-01"},
]

SUBMISSION_ROWS = [
    {
        "id": 1,
        "assignment_id": "a1",
        "student_id": STUDENT.id,
        "reflection": "Hard intro",
        "time_spent_minutes": 45,
        "draft_url": "https://storage.test/d1",
        "transcript_url": None,
        "status": "submitted",
        "submitted_at": "2026-10-01T10:00:00+00:00",
    },
    {
        "id": 2,
        "assignment_id": "a1",
        "student_id": OTHER_STUDENT.id,
        "draft_url": "https://storage.test/d2",
        "status": "submitted",
        "submitted_at": "2026-10-02T10:00:00+00:00",
    },
]

FEEDBACK_ROWS = [
    {
        "id": 7,
        "submission_id": 1,
        "student_id": STUDENT.id,
        "author_role": "teacher",
        "comment": "Strong voice.",
        "rubric_scores": {"voice": 4, "structure": 3},
        "created_at": "2026-10-03T09:00:00+00:00",
    },
]


@pytest.fixture
def config():
    return DashboardConfig(
        supabase_url="https://project.supabase.test",
        supabase_anon_key="anon-key",
        auth_close_delay=0,
    )


@pytest.fixture
def auth():
    return FakeAuth()


@pytest.fixture
def store():
    return FakeStore({
        "assignments": [dict(r) for r in ASSIGNMENT_ROWS],
        "submissions": [dict(r) for r in SUBMISSION_ROWS],
        "feedback": [dict(r) for r in FEEDBACK_ROWS],
    })


@pytest.fixture
def blobs():
    return FakeBlobs()


@pytest.fixture
def functions():
    return FakeFunctions()


@pytest.fixture
def clipboard():
    return FakeClipboard()


@pytest.fixture
def dashboard(config, auth, store, blobs, functions, clipboard):
    return Dashboard(
        config,
        auth=auth,
        store=store,
        blobs=blobs,
        functions=functions,
        clipboard=clipboard,
    )


@pytest.fixture
def draft_file():
    return UploadedFile(filename="My Draft.docx", content=b"draft body", content_type="application/msword")


@pytest.fixture
def transcript_file():
    return UploadedFile(filename="chat log.txt", content=b"transcript", content_type="text/plain")


@pytest.fixture
def complete_form(draft_file):
    return SubmissionForm(
        assignment_id="a1",
        reflection="  I rewrote the ending.  ",
        time_spent_minutes="30",
        draft=draft_file,
    )


def remote_error(message: str = "boom") -> RemoteServiceError:
    return RemoteServiceError("test", message)
