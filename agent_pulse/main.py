"""Agent Pulse FastAPI app: main application entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agent_pulse import __version__, config
from agent_pulse.observability import initialize as initialize_observability, shutdown as shutdown_observability
from agent_pulse.routers.activity import activity_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("agent_pulse")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("Agent Pulse starting up (storage=%s)", config.STORAGE_ROOT)
    if not config.STORAGE_ROOT.is_dir():
        logger.warning("Storage root %s does not exist yet; views will be empty", config.STORAGE_ROOT)
    if config.ALLOWED_ROOTS:
        logger.info("Path guard enabled for roots: %s", ", ".join(config.ALLOWED_ROOTS))
    initialize_observability(app)

    yield

    logger.info("Agent Pulse shutting down")
    shutdown_observability(app)


app = FastAPI(
    title="Agent Pulse API",
    description="Live tool-call activity views over an agent session store",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        config.FRONTEND_ORIGIN,
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(activity_router)


@app.get("/api/health")
def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "storage": "present" if config.STORAGE_ROOT.is_dir() else "missing",
    }

