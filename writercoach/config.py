"""Dashboard configuration read from the environment."""

import os
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_BUCKET = "writercoach-submissions"
DEFAULT_DIGEST_FUNCTION = "progress_digest"


class DashboardConfig(BaseModel):
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    storage_bucket: str = DEFAULT_BUCKET
    digest_function: str = DEFAULT_DIGEST_FUNCTION
    redirect_url: Optional[str] = None
    auth_close_delay: float = Field(default=1.6, ge=0)
    recent_limit: int = Field(default=10, gt=0)

    @property
    def is_configured(self) -> bool:
        """Both the service endpoint and its public key are present."""
        return bool(self.supabase_url and self.supabase_anon_key)

    @classmethod
    def from_env(cls) -> "DashboardConfig":
        """Build the configuration from environment variables."""
        return cls(
            supabase_url=os.getenv("SUPABASE_URL") or None,
            supabase_anon_key=os.getenv("SUPABASE_ANON_KEY") or None,
            storage_bucket=os.getenv("SUPABASE_BUCKET") or DEFAULT_BUCKET,
            digest_function=os.getenv("WRITERCOACH_DIGEST_FUNCTION") or DEFAULT_DIGEST_FUNCTION,
            redirect_url=os.getenv("WRITERCOACH_REDIRECT_URL") or None,
            auth_close_delay=float(os.getenv("WRITERCOACH_AUTH_CLOSE_DELAY", "1.6")),
            recent_limit=int(os.getenv("WRITERCOACH_RECENT_LIMIT", "10")),
        )
