"""FastAPI application entry point."""
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from childupdates.api import auth, compliance, sponsors, updates
from childupdates.container import get_rate_limiter
from childupdates.core.config import LOG_LEVEL
from childupdates.core.logging_setup import configure_logging
from childupdates.persistence.db import init_db

# ------------------------------------------------------------------
# App creation
# ------------------------------------------------------------------
app = FastAPI(
    title="Child Update Governance API",
    description="Review workflow and compliance tracking for child progress updates",
    version="1.0.0",
)

# CORS — allow everything for local dev (restrict for production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------------------------------------------------
# Startup / shutdown: logging, DB schema, rate limiter cleanup
# ------------------------------------------------------------------
@app.on_event("startup")
def on_startup():
    configure_logging(LOG_LEVEL)
    init_db()
    get_rate_limiter().start()


@app.on_event("shutdown")
def on_shutdown():
    get_rate_limiter().close()


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


# ------------------------------------------------------------------
# Routers
# ------------------------------------------------------------------
app.include_router(auth.router)
app.include_router(updates.router)
app.include_router(compliance.router)
app.include_router(sponsors.router)
