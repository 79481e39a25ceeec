#!/usr/bin/env python3
"""
Tubely FastAPI Server Runner

Starts the Tubely upload API with uvicorn using the host, port, reload and
log level from ``tubely.config.Settings``.

Usage:
    # Run as Python script
    python main.py

    # Or run uvicorn directly
    uvicorn tubely.main:app --host 0.0.0.0 --port 8091 --reload
"""

import uvicorn

from tubely.config import get_settings
from tubely.main import app


__all__ = ["app"]


if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "tubely.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level,
        access_log=settings.debug,
    )
