"""Main FastAPI application for the Pink Diary backend."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
import logging
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from pinkdiary.core import db as core_db
from pinkdiary.core.db import init_db, bootstrap_db
from pinkdiary.core.logging import setup_logging
from pinkdiary.services.profile import current_profile
from pinkdiary.services.store import SqlAlchemyDiaryStore


async def load_profile() -> None:
    """Populate the in-memory profile from the settings table."""
    if core_db.SessionLocal is None:
        core_db.get_engine()
    db = core_db.SessionLocal()
    try:
        await current_profile.reload(SqlAlchemyDiaryStore(db))
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    setup_logging()
    logger = logging.getLogger(__name__)
    init_db()
    bootstrap_db()
    await load_profile()
    logger.info("Pink Diary backend started")

    yield

    logger.info("Pink Diary backend shutdown")


app = FastAPI(
    title="Pink Diary API",
    description="Diary entries, settings, and monthly backup/restore",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from pinkdiary.api import health, diaries, settings, backups, restores  # noqa: E402

# Health endpoints stay unversioned for infra probes (/health, /ready)
app.include_router(health.router)

app.include_router(diaries.router, prefix="/api/v1")
app.include_router(settings.router, prefix="/api/v1")
app.include_router(backups.router, prefix="/api/v1")
app.include_router(restores.router, prefix="/api/v1")


@app.get("/")
async def root() -> RedirectResponse:
    """Redirect root to Swagger UI."""
    return RedirectResponse(url="/api/docs")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
