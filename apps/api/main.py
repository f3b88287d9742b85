# apps/api/main.py
from __future__ import annotations

import logging
from typing import Callable, Iterable

from fastapi import FastAPI, Depends, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from errors import ClipwaveError, StoreQueryError
from models import User
from session import get_current_user
from storage import asset_url, ensure_bucket
from routes_auth import router as auth_router
from routes_videos import router as videos_router
from routes_recommendations import router as recommendations_router
from routes_history import router as history_router
from routes_channels import router as channels_router
from health import collect_health_status


logging.basicConfig(
    level=config.settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = FastAPI(title="Clipwave API")

log = logging.getLogger("api.main")


StartupTask = tuple[str, Callable[[], None], bool]

STARTUP_TASKS: tuple[StartupTask, ...] = (
    ("object_storage", ensure_bucket, True),
)


def _run_startup_tasks(tasks: Iterable[StartupTask]) -> None:
    for name, task, optional in tasks:
        try:
            task()
            log.debug("Startup task '%s' completed", name)
        except Exception as exc:
            if optional:
                log.info("Optional startup task '%s' failed: %s", name, exc)
            else:
                log.warning("Startup task '%s' failed: %s", name, exc)


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.settings.cors_origins or ["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ClipwaveError)
async def _clipwave_error(request: Request, exc: ClipwaveError) -> JSONResponse:
    if isinstance(exc, StoreQueryError):
        log.error(
            "store_query_failed operation=%s path=%s", exc.operation, request.url.path
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(auth_router)
app.include_router(videos_router)
app.include_router(recommendations_router)
app.include_router(history_router)
app.include_router(channels_router)


@app.on_event("startup")
def _startup() -> None:
    _run_startup_tasks(STARTUP_TASKS)


@app.get("/")
def root():
    return {"message": "hello from clipwave"}


@app.get("/healthz")
def healthz(include_optional: bool = Query(True, description="Include optional checks")):
    return collect_health_status(include_optional=include_optional)


@app.get("/me")
def me(user: User = Depends(get_current_user)):
    return {
        "id": str(user.id),
        "username": user.username,
        "email": user.email,
        "channel_name": user.channel_name,
        "avatar_url": asset_url(user.avatar_ref),
    }


# Run: uvicorn main:app --reload --port 8000
