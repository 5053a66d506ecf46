"""
FastAPI app entry point aggregating per-domain routers under gymdesk/routes.
Keep as `uvicorn gymdesk.api:app`.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .db import ensure_schema
from .logs import ensure_log_schema
from .services.config_svc import apply_query_debug, ensure_default_config, get_config

logger = logging.getLogger(__name__)

app = FastAPI(title="gymdesk-api", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup():
    ensure_schema()
    ensure_log_schema()
    ensure_default_config()
    apply_query_debug(get_config()["query_debug"])
    logger.info("gymdesk-api %s started", __version__)


# Include routers (split by business domain)
from .routes import base as base_routes
from .routes import members as members_routes
from .routes import staff as staff_routes
from .routes import payments as payments_routes
from .routes import logs as logs_routes
from .routes import settings as settings_routes

app.include_router(base_routes.router)
app.include_router(members_routes.router)
app.include_router(staff_routes.router)
app.include_router(payments_routes.router)
app.include_router(logs_routes.router)
app.include_router(settings_routes.router)
