# src/servicedir/api/app.py
"""
FastAPI application wiring.

This file creates the `FastAPI` instance and attaches middleware. Business logic lives
in `servicedir.api.routes`, `servicedir.query` and `servicedir.store`.
"""

from __future__ import annotations

import os

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from servicedir import __version__
from servicedir.config.settings import get_settings
from servicedir.core.logging import configure_logging

from .routes import router

configure_logging()

settings = get_settings()
app = FastAPI(
    title=f"{settings.app.name} API",
    description=f"Local services in {settings.app.town}: search, distance ranking and submissions.",
    version=__version__,
)

# CORS (dev-friendly): allow local frontends to call this API.
# Configure via env:
# - SERVICEDIR_CORS_ORIGINS="http://localhost:3000,http://127.0.0.1:3000"
# - SERVICEDIR_CORS_ALLOW_LOCAL=0 to disable the default localhost allowance
cors_origins = [s.strip() for s in os.getenv("SERVICEDIR_CORS_ORIGINS", "").split(",") if s.strip()]
cors_allow_local = os.getenv("SERVICEDIR_CORS_ALLOW_LOCAL", "1").strip().lower() in {"1", "true", "yes", "y"}
cors_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$" if cors_allow_local and not cors_origins else ""
if cors_origins or cors_origin_regex:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_origin_regex=cors_origin_regex or None,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(router)


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok", "version": __version__}
