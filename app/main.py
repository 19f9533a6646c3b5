"""
FastAPI application factory.

Uses lifespan context manager (preferred over on_event decorators in FastAPI 0.93+)
to handle startup/shutdown tasks cleanly.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.routers import automation, auth, claims, health, hr, review
from app.settings import settings

# ── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Lecturer Claims API [env=%s]", settings.environment)

    from app.database import check_db_connection

    if not check_db_connection():
        logger.error("Database is not reachable on startup, check DATABASE_URL")
    else:
        logger.info("Database connection verified")

    if settings.storage_backend == "local":
        os.makedirs(settings.local_storage_path, exist_ok=True)
        logger.info("Local storage path: %s", settings.local_storage_path)

    yield

    logger.info("Shutting down Lecturer Claims API")


# ── App factory ───────────────────────────────────────────────────────────────
def create_app() -> FastAPI:
    app = FastAPI(
        title="Contract Lecturer Claims",
        description=(
            "Monthly claim submission, scoring and approval workflow for "
            "contract lecturers: coordinator and manager review, automated "
            "approval, and HR payment processing."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
    )

    # ── CORS ──────────────────────────────────────────────────────────────────
    # Dev: allow all origins. Staging/prod: explicit allowlist from ALLOWED_ORIGINS env var.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(claims.router)
    app.include_router(review.router)
    app.include_router(automation.router)
    app.include_router(hr.router)

    return app


app = create_app()
