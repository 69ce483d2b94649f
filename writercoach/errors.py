"""Error types raised and rendered by the dashboard core."""

from typing import List, Optional


class DashboardError(Exception):
    """Base exception for dashboard errors."""
    pass


class ConfigurationError(DashboardError):
    """Raised when the Supabase service credentials are missing."""
    def __init__(self, message: str = ""):
        self.message = message or "Supabase is not configured for this environment."
        super().__init__(self.message)


class MissingFieldsError(DashboardError):
    """Raised when required local input is absent."""
    def __init__(self, fields: List[str], message: str = ""):
        self.fields = list(fields)
        self.message = message or f"Missing required fields: {', '.join(self.fields)}"
        super().__init__(self.message)


class RemoteServiceError(DashboardError):
    """Raised when the auth, store, blob or function service reports a failure.

    ``message`` is whatever the remote service supplied and may be empty.
    """
    def __init__(self, operation: str, message: Optional[str] = None):
        self.operation = operation
        self.message = message or ""
        super().__init__(self.message or f"{operation} failed")


def remote_message(error: BaseException, fallback: str) -> str:
    """Return the remote-supplied message of ``error``, or ``fallback`` when it has none."""
    message = getattr(error, "message", None)
    if isinstance(message, str) and message.strip():
        return message
    if not isinstance(error, DashboardError):
        text = str(error)
        if text.strip():
            return text
    return fallback
