"""Logging setup shared by the server and the device process."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

_DETAILED_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_PIPELINE_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"

NOISY_LOGGERS = (
    "botocore",
    "boto3",
    "s3transfer",
    "urllib3",
    "httpx",
    "httpcore",
    "multipart",
)


def rotating_handler(path_value: str, fmt: str, max_bytes: int) -> RotatingFileHandler:
    log_path = Path(path_value)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_path,
        maxBytes=max_bytes,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def configure_logging(
    *,
    log_file: str,
    debug: bool = False,
    pipeline_log_file: str | None = None,
) -> None:
    """Stream logs to stdout and a rotating file.

    Request lines from the structured middleware go to stdout only, without
    the usual prefix. When ``pipeline_log_file`` is given the ingestion
    pipeline also writes to its own rotating file.
    """

    logging.getLogger().handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(logging.Formatter(_DETAILED_FORMAT))

    root_logger = logging.getLogger()
    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(rotating_handler(log_file, _DETAILED_FORMAT, 1_000_000))
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)

    middleware_logger = logging.getLogger("speakercast.middleware.structured")
    middleware_logger.handlers.clear()
    middleware_stdout = logging.StreamHandler(sys.stdout)
    middleware_stdout.setFormatter(logging.Formatter("%(message)s"))
    middleware_logger.addHandler(middleware_stdout)
    middleware_logger.setLevel(logging.INFO)
    middleware_logger.propagate = False

    if pipeline_log_file:
        pipeline_logger = logging.getLogger("speakercast.pipelines.ingest")
        pipeline_logger.handlers.clear()
        pipeline_logger.addHandler(
            rotating_handler(pipeline_log_file, _PIPELINE_FORMAT, 500_000)
        )
        pipeline_logger.setLevel(logging.INFO)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["NOISY_LOGGERS", "configure_logging", "rotating_handler"]
