"""WriterCoach student dashboard package.

Loads environment variables from a local .env file so the Supabase
credentials can be supplied during local development without exporting them.
"""

from pathlib import Path

from dotenv import load_dotenv


def _load_local_env():
    # writercoach/.env first, then the repository root .env
    pkg_dir = Path(__file__).resolve().parent
    candidates = [
        pkg_dir / ".env",
        pkg_dir.parent / ".env",
    ]
    for p in candidates:
        if p.exists():
            load_dotenv(dotenv_path=p, override=False)


_load_local_env()
