"""HTTP surface for the student dashboard.

The process holds a single dashboard with a single signed-in session, shared
by every client that can reach it. It is meant to serve one student on their
own machine, so the runner binds to loopback and refuses any other host
unless --allow-remote is given.
"""

import ipaddress
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Body, Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
import os

from .config import DashboardConfig
from .dashboard import Dashboard, build_dashboard
from .gateways import BufferedClipboard
from .models import SubmissionForm, UploadedFile

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Bootstrap the dashboard once per process."""
    logger.info("Starting WriterCoach dashboard...")
    config = DashboardConfig.from_env()
    dashboard = await build_dashboard(config, clipboard=BufferedClipboard())
    app.state.dashboard = dashboard
    await dashboard.start()
    yield
    logger.info("Shutting down WriterCoach dashboard...")


app = FastAPI(
    title="WriterCoach Student Dashboard",
    description="Student dashboard for WriterCoach submissions and progress digests",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "http://localhost:3000").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


LOOPBACK_NAMES = {"localhost"}


def is_loopback_host(host: str) -> bool:
    """Whether binding to ``host`` keeps the dashboard on this machine."""
    if host.lower() in LOOPBACK_NAMES:
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def get_dashboard(request: Request) -> Dashboard:
    """Dependency returning the dashboard created at startup."""
    return request.app.state.dashboard


async def _read_upload(upload: Optional[UploadFile]) -> Optional[UploadedFile]:
    # Browsers send an empty part for an untouched file input
    if upload is None or not upload.filename:
        return None
    try:
        content = await upload.read()
    finally:
        await upload.close()
    return UploadedFile(filename=upload.filename, content=content, content_type=upload.content_type)


@app.get("/")
async def root():
    return {"service": "WriterCoach Student Dashboard", "version": "0.1.0"}


@app.get("/health")
async def health_check(dashboard: Dashboard = Depends(get_dashboard)):
    return {
        "status": "healthy",
        "configured": dashboard.config.is_configured,
        "auth": dashboard.view.auth_state.value,
    }


@app.get("/dashboard")
async def dashboard_state(dashboard: Dashboard = Depends(get_dashboard)):
    """Current view state for the page to render."""
    return dashboard.view.model_dump(mode="json")


@app.post("/auth/open")
async def open_auth(dashboard: Dashboard = Depends(get_dashboard)):
    dashboard.auth.open()
    return dashboard.view.auth.model_dump(mode="json")


@app.post("/auth/close")
async def close_auth(dashboard: Dashboard = Depends(get_dashboard)):
    dashboard.auth.close()
    return dashboard.view.auth.model_dump(mode="json")


@app.post("/auth/keydown")
async def auth_keydown(key: str = Body(..., embed=True), dashboard: Dashboard = Depends(get_dashboard)):
    dashboard.auth.handle_key(key)
    return dashboard.view.auth.model_dump(mode="json")


@app.post("/auth/magic-link")
async def send_magic_link(email: str = Form(""), dashboard: Dashboard = Depends(get_dashboard)):
    await dashboard.auth.submit(email)
    return dashboard.view.auth.model_dump(mode="json")


@app.get("/auth/callback")
async def auth_callback(code: Optional[str] = None, dashboard: Dashboard = Depends(get_dashboard)):
    """Landing point of a followed magic link."""
    await dashboard.auth.complete_sign_in(code)
    return dashboard.view.model_dump(mode="json")


@app.post("/auth/sign-out")
async def sign_out(dashboard: Dashboard = Depends(get_dashboard)):
    await dashboard.auth.sign_out()
    return dashboard.view.model_dump(mode="json")


@app.post("/submissions")
async def submit_work(
    assignment_id: str = Form(""),
    reflection: str = Form(""),
    time_spent_minutes: str = Form(""),
    draft: Optional[UploadFile] = File(None),
    transcript: Optional[UploadFile] = File(None),
    dashboard: Dashboard = Depends(get_dashboard),
):
    """Upload a draft (and optional transcript) and record the submission."""
    form = SubmissionForm(
        assignment_id=assignment_id or None,
        reflection=reflection or None,
        time_spent_minutes=time_spent_minutes or None,
        draft=await _read_upload(draft),
        transcript=await _read_upload(transcript),
    )
    await dashboard.submissions.submit(form)
    return {
        "submission": dashboard.view.submission.model_dump(mode="json"),
        "submissions": dashboard.view.submissions.model_dump(mode="json"),
        "feedback": dashboard.view.feedback.model_dump(mode="json"),
    }


@app.post("/digest")
async def request_digest(dashboard: Dashboard = Depends(get_dashboard)):
    await dashboard.digest.request()
    return dashboard.view.digest.model_dump(mode="json")


@app.post("/digest/copy")
async def copy_digest_link(dashboard: Dashboard = Depends(get_dashboard)):
    """Copy the signed link; the page writes ``clipboard`` to the user's clipboard."""
    await dashboard.digest.copy_link()
    clipboard = dashboard.clipboard
    text = clipboard.take() if isinstance(clipboard, BufferedClipboard) else None
    return {"digest": dashboard.view.digest.model_dump(mode="json"), "clipboard": text}


if __name__ == "__main__":
    import uvicorn
    import argparse

    parser = argparse.ArgumentParser(description="WriterCoach Student Dashboard")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument(
        "--allow-remote",
        action="store_true",
        help="Allow binding to a non-loopback host (every client shares one session)",
    )

    args = parser.parse_args()

    if not is_loopback_host(args.host) and not args.allow_remote:
        parser.error(
            f"refusing to bind to {args.host}: the dashboard serves a single session; "
            "pass --allow-remote to override"
        )

    uvicorn.run(
        "writercoach.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info"
    )
