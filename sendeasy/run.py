#!/usr/bin/env python3
"""Run the SendEasy server"""
import uvicorn

from sendeasy.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "sendeasy.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
