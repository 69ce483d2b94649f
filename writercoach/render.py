"""Text rendering of dashboard records."""

import json
from typing import Any, Dict, Optional

from .models import Assignment, Feedback, Submission


def format_assignment(assignment: Assignment) -> str:
    line = assignment.title
    if assignment.due_date:
        line += f" (due {assignment.due_date})"
    if assignment.instructions:
        line += f" - {assignment.instructions}"
    return line


def format_submission(submission: Submission, titles: Optional[Dict[str, str]] = None) -> str:
    title = (titles or {}).get(str(submission.assignment_id), f"Assignment {submission.assignment_id}")
    parts = [title, submission.status]
    if submission.submitted_at:
        parts.append(f"submitted {submission.submitted_at}")
    if submission.time_spent_minutes is not None:
        parts.append(f"{submission.time_spent_minutes} min")
    return " · ".join(parts)


def format_feedback(feedback: Feedback) -> str:
    line = f"{feedback.author_role}: {feedback.comment or 'No comment'}"
    if feedback.rubric_scores:
        scores = ", ".join(f"{name} {score}" for name, score in feedback.rubric_scores.items())
        line += f" [{scores}]"
    return line


def format_digest(digest: Dict[str, Any], signed_url: Optional[str] = None) -> str:
    """Pretty-print a digest, followed by its download link when one was issued."""
    text = json.dumps(digest, indent=2, ensure_ascii=False, default=str)
    if signed_url:
        text += f"\n\nDownload link (expires soon):\n{signed_url}"
    return text
