"""
FastAPI Backend for the Release Tour Client

Thin HTTP adapter between a browser frontend and the tour session:
- Each endpoint maps to one session action
- Every response is the resulting render snapshot
- One process-wide session, injected through get_tour_session()
"""

from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import os
import sys
import time
import signal

from lib.logger import setup_logging, get_logger

setup_logging(use_colors=True)

logger = get_logger("backend.main")

# Add the release_tour package to Python path
backend_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(backend_dir)

package_src = os.path.join(project_root, 'release_tour', 'src')
if os.path.exists(package_src) and package_src not in sys.path:
    sys.path.insert(0, package_src)

from release_tour.actions import (
    ApplyEnvPreset,
    EditCode,
    ReloadLessons,
    ResetCode,
    ReturnToCatalog,
    RunCode,
    SelectLesson,
    SetTheme,
    StartVersion,
    SwitchVersion,
)
from release_tour.config import TourConfig
from release_tour.tour_session import TourSession

_tour_session = None


def get_tour_session() -> TourSession:
    """Get or create the singleton TourSession."""
    global _tour_session
    if _tour_session is None:
        config = TourConfig.from_env()
        supabase = None
        if config.storage == "supabase":
            from lib.supabase_client import get_supabase_client
            supabase = get_supabase_client(config.supabase_url, config.supabase_key)
        _tour_session = TourSession.from_config(config, supabase_client=supabase)
    return _tour_session


app = FastAPI(
    title="Release Tour API",
    description="Session controller for the versioned release tour",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    logger.request(request.method, request.url.path)
    response = await call_next(request)
    logger.response(response.status_code, request.url.path, duration=time.time() - start_time)
    return response


# ==================== Pydantic Models ====================

class VersionRequest(BaseModel):
    version: str


class SelectLessonRequest(BaseModel):
    version: str
    lesson_id: int


class EditCodeRequest(BaseModel):
    code: str


class EnvPresetRequest(BaseModel):
    value: str = ""


class ThemeRequest(BaseModel):
    theme: str


# ==================== API Endpoints ====================

@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "Release Tour API",
        "version": "1.0.0",
    }


@app.get("/api/state")
async def get_state(session: TourSession = Depends(get_tour_session)):
    """Current render snapshot without changing anything."""
    return session.refresh().to_dict()


async def _dispatch(session: TourSession, action) -> dict:
    snapshot = (await session.handle(action)).to_dict()
    logger.transition(type(action).__name__, snapshot)
    return snapshot


@app.post("/api/start")
async def start_version(body: VersionRequest, session: TourSession = Depends(get_tour_session)):
    """Start learning a version from the welcome screen."""
    return await _dispatch(session, StartVersion(body.version))


@app.post("/api/switch")
async def switch_version(body: VersionRequest, session: TourSession = Depends(get_tour_session)):
    return await _dispatch(session, SwitchVersion(body.version))


@app.post("/api/reload")
async def reload_lessons(body: VersionRequest, session: TourSession = Depends(get_tour_session)):
    """Drop the cached lesson list of a version and fetch it again."""
    return await _dispatch(session, ReloadLessons(body.version))


@app.post("/api/select")
async def select_lesson(body: SelectLessonRequest, session: TourSession = Depends(get_tour_session)):
    return await _dispatch(session, SelectLesson(body.version, body.lesson_id))


@app.post("/api/edit")
async def edit_code(body: EditCodeRequest, session: TourSession = Depends(get_tour_session)):
    return await _dispatch(session, EditCode(body.code))


@app.post("/api/run")
async def run_code(session: TourSession = Depends(get_tour_session)):
    """Run the editor buffer of the current lesson."""
    return await _dispatch(session, RunCode())


@app.post("/api/reset")
async def reset_code(session: TourSession = Depends(get_tour_session)):
    return await _dispatch(session, ResetCode())


@app.post("/api/home")
async def return_to_catalog(session: TourSession = Depends(get_tour_session)):
    return await _dispatch(session, ReturnToCatalog())


@app.post("/api/env")
async def apply_env_preset(body: EnvPresetRequest, session: TourSession = Depends(get_tour_session)):
    return await _dispatch(session, ApplyEnvPreset(body.value))


@app.post("/api/theme")
async def set_theme(body: ThemeRequest, session: TourSession = Depends(get_tour_session)):
    return await _dispatch(session, SetTheme(body.theme))


@app.on_event("startup")
async def startup_event():
    """Startup event - log effective configuration."""
    config = TourConfig.from_env()
    logger.section("RELEASE TOUR API STARTUP", {
        "api_url": config.api_url,
        "default_version": config.default_version,
        "versions": ", ".join(config.versions),
        "storage": config.storage,
    })


@app.on_event("shutdown")
async def shutdown_event():
    """Shutdown event - close the service clients."""
    if _tour_session is not None:
        _tour_session.close()
        logger.info("🛑 Service clients closed")


if __name__ == "__main__":
    import uvicorn

    def handle_exit(*args):
        """Handle graceful shutdown."""
        logger.section("SERVER SHUTDOWN", {"reason": "signal received"})
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_exit)
    signal.signal(signal.SIGTERM, handle_exit)

    try:
        uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
    except KeyboardInterrupt:
        logger.info("🛑 Server stopped.")
        sys.exit(0)
