"""In-memory view state of the dashboard page.

Each component writes only the part of the view it owns; the web surface
serialises the whole model for the page to render.
"""

import enum
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, Field

ASSIGNMENT_PLACEHOLDER: Tuple[str, str] = ("", "Select an assignment")


class AuthState(enum.Enum):
    """Display attribute mirrored onto the page body."""
    signed_in = "signed-in"
    signed_out = "signed-out"


class ModalState(enum.Enum):
    closed = "closed"
    open_idle = "open-idle"
    submitting = "submitting"
    open_result = "open-result"


class MessageStatus(enum.Enum):
    success = "success"
    error = "error"


class LoadStatus(enum.Enum):
    """Per-collection sync indicator."""
    idle = "idle"
    loading = "loading"
    synced = "synced"
    error = "error"


class SubmissionStatus(enum.Enum):
    idle = "idle"
    missing_fields = "missing fields"
    uploading = "uploading"
    saved = "saved"
    error = "error"


class DigestStatus(enum.Enum):
    idle = "idle"
    not_connected = "not connected"
    requesting = "requesting…"
    digest_ready = "digest ready"
    signed_url_ready = "signed URL ready"
    copied = "copied"
    copy_failed = "copy failed"
    error = "error"


class AuthPanel(BaseModel):
    state: ModalState = ModalState.closed
    email: str = ""
    message: str = ""
    message_status: Optional[MessageStatus] = None
    submit_enabled: bool = True
    sign_out_enabled: bool = True


class CollectionView(BaseModel):
    """One rendered list with its status and empty-state marker."""
    status: LoadStatus = LoadStatus.idle
    items: List[Any] = Field(default_factory=list)
    entries: List[str] = Field(default_factory=list)
    empty_visible: bool = False
    empty_message: str = ""

    def clear(self) -> None:
        self.status = LoadStatus.idle
        self.items = []
        self.entries = []
        self.empty_visible = False
        self.empty_message = ""


class SubmissionPanel(BaseModel):
    status: SubmissionStatus = SubmissionStatus.idle
    message: str = ""
    submit_enabled: bool = True


class DigestPanel(BaseModel):
    status: DigestStatus = DigestStatus.idle
    message: str = ""
    output: str = ""
    copy_enabled: bool = False


class DashboardView(BaseModel):
    auth_state: AuthState = AuthState.signed_out
    auth_email: str = ""
    config_warning: str = ""
    auth: AuthPanel = Field(default_factory=AuthPanel)
    assignments: CollectionView = Field(default_factory=CollectionView)
    submissions: CollectionView = Field(default_factory=CollectionView)
    feedback: CollectionView = Field(default_factory=CollectionView)
    assignment_options: List[Tuple[str, str]] = Field(
        default_factory=lambda: [ASSIGNMENT_PLACEHOLDER]
    )
    submission: SubmissionPanel = Field(default_factory=SubmissionPanel)
    digest: DigestPanel = Field(default_factory=DigestPanel)

    def collection(self, name: str) -> CollectionView:
        """Return the collection view called ``name``."""
        if name not in ("assignments", "submissions", "feedback"):
            raise KeyError(name)
        return getattr(self, name)
