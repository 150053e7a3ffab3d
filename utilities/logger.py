"""
Structured logging setup using structlog.

Request-scoped values (request id, method, path) are kept in context
variables and merged into every event logged while the request runs.
"""

import logging
import sys
import uuid
from pathlib import Path
from typing import Any, Optional

import structlog
from structlog.stdlib import LoggerFactory

# Libraries that log every connection or request at INFO.
NOISY_LOGGERS = ("pymongo", "httpx", "httpcore", "multipart")


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[Path] = None,
    debug: bool = False
) -> None:
    """
    Configure stdlib logging and structlog for the API process.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (json or console)
        log_file: Optional log file path
        debug: Add call-site information to every event
    """
    level = getattr(logging, log_level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger().setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if debug else max(level, logging.WARNING))

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if debug:
        processors.append(structlog.processors.CallsiteParameterAdder(
            {
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            }
        ))
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer(default=str))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    if log_file:
        _attach_file_handler(Path(log_file), level)

    structlog.get_logger(__name__).debug(
        "Logging configured",
        level=log_level,
        format=log_format,
        file=log_file,
    )


def _attach_file_handler(path: Path, level: int) -> None:
    """Add a file handler once per path, even when the app is built repeatedly."""
    root = logging.getLogger()
    resolved = str(path.resolve())
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == resolved:
            return

    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(resolved, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)


def bind_request_context(request_id: Optional[str] = None, **values: Any) -> str:
    """
    Start a fresh logging context for the current request.

    Returns:
        The request id, generated when the client did not send one
    """
    request_id = request_id or uuid.uuid4().hex[:12]
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, **values)
    return request_id


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
