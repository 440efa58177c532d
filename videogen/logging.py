from __future__ import annotations

import logging
import os
from pythonjsonlogger import jsonlogger

from videogen.config import settings

SERVICE_NAME = os.getenv("SERVICE_NAME", "svc-videogen")


def configure_logging() -> None:
    """
    One JSON line per record on stderr.

    Job and poll events carry job_id / provider_job_id in `extra`, so every
    line for a generation can be grepped by either id.
    """
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    if root.handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level", "asctime": "ts"},
            static_fields={"service": SERVICE_NAME},
        )
    )
    root.addHandler(handler)

    # polling hits the provider every few seconds per job
    logging.getLogger("httpx").setLevel(os.getenv("HTTPX_LOG_LEVEL", "WARNING"))
    logging.getLogger("httpcore").setLevel(os.getenv("HTTPX_LOG_LEVEL", "WARNING"))
    logging.getLogger("uvicorn.access").setLevel(os.getenv("UVICORN_ACCESS_LOG_LEVEL", "WARNING"))
