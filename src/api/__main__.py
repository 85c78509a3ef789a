"""Entry point for running the API server."""

import os

import uvicorn

from core.config import get_settings
from core.log_config import configure_logging

if __name__ == "__main__":
    settings = get_settings()
    configure_logging(settings.log_level)

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT") or "3000")

    uvicorn.run(
        "api.main:app",
        host=host,
        port=port,
        log_level=settings.log_level.lower(),
    )
