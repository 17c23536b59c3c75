"""FastAPI application wiring for the user admin service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool

from .api.routes import install_routes
from .config import get_settings
from .domain.admin import AdminService
from .domain.gate import AccessGate
from .domain.service import AccountService
from .mail import SmtpVerificationMailer
from .repository import AccountRepository
from .security.passwords import PasswordHasher

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise shared resources (Postgres pool, mailer, services) for the app lifecycle."""
    pool = ConnectionPool(settings.database_url, open=False)
    pool.open()
    repository = AccountRepository(pool)
    repository.ensure_schema()
    mailer = SmtpVerificationMailer(settings)

    app.state.pool = pool
    app.state.account_service = AccountService(
        repository, mailer, PasswordHasher(rounds=settings.bcrypt_rounds)
    )
    app.state.admin_service = AdminService(repository)
    app.state.access_gate = AccessGate(repository)
    logger.info("%s %s ready", settings.app_name, settings.version)
    try:
        yield
    finally:
        mailer.close()
        pool.close()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(dict.fromkeys([settings.frontend_url, *settings.cors_origins])),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600,
)


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


@app.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


install_routes(app)


def run() -> None:
    """Serve the application with uvicorn using the configured host and port."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    uvicorn.run(app, host=settings.http_host, port=settings.http_port)
