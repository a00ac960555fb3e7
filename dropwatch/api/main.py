"""
Dropwatch health API.

A minimal FastAPI app served next to the bot so the hosting platform can
check that the process is alive.
"""

import os
import time
from datetime import datetime, timezone

from fastapi import FastAPI

from dropwatch import __version__

STARTED_AT = time.monotonic()

app = FastAPI(
    title="Dropwatch Health API",
    description="Liveness endpoint for the order tracker bot",
    version=__version__,
)


@app.get("/", tags=["system"])
async def root():
    """Return basic information about the service."""
    return {
        "service": "Dropwatch",
        "version": __version__,
        "status": "operational",
        "description": "Live delivery order tracker",
    }


@app.get("/health", tags=["system"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Health status with process id and uptime
    """
    return {
        "status": "healthy",
        "service": "dropwatch",
        "now": datetime.now(timezone.utc).isoformat(),
        "pid": os.getpid(),
        "uptime_seconds": round(time.monotonic() - STARTED_AT, 3),
    }
