"""Records exchanged with the remote service and local form input."""

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

RecordId = Union[int, str]


class Identity(BaseModel):
    """The authenticated subject of the current session."""
    id: str
    email: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class Assignment(BaseModel):
    id: RecordId
    title: str
    instructions: Optional[str] = None
    due_date: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class Submission(BaseModel):
    id: RecordId
    assignment_id: RecordId
    student_id: str
    reflection: Optional[str] = None
    time_spent_minutes: Optional[int] = Field(default=None, ge=0)
    draft_url: str
    transcript_url: Optional[str] = None
    status: str = "submitted"
    submitted_at: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class Feedback(BaseModel):
    id: RecordId
    submission_id: Optional[RecordId] = None
    author_role: str
    comment: Optional[str] = None
    rubric_scores: Optional[Dict[str, Any]] = None
    created_at: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class DigestResult(BaseModel):
    """Response of the progress digest function."""
    digest: Dict[str, Any] = Field(default_factory=dict)
    signed_url: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class UploadedFile(BaseModel):
    filename: str
    content: bytes
    content_type: Optional[str] = None


class SubmissionForm(BaseModel):
    """Values of the submission form as entered by the student."""
    assignment_id: Optional[str] = None
    reflection: Optional[str] = None
    time_spent_minutes: Optional[str] = None
    draft: Optional[UploadedFile] = None
    transcript: Optional[UploadedFile] = None

    def reset(self) -> None:
        """Clear every field, like resetting the HTML form."""
        self.assignment_id = None
        self.reflection = None
        self.time_spent_minutes = None
        self.draft = None
        self.transcript = None
