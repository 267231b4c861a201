"""structlog configuration for cryptodash.

Two renderers: "json" emits one JSON object per line for services, "console"
is the coloured dev renderer the CLI uses by default. Everything, including
httpx, goes through the stdlib root logger on stderr.

Each CLI invocation mints a request id with new_request_id(). It is bound
through structlog.contextvars, so a cache miss, its retries and any stale
fallback share one id in the log.
"""

from __future__ import annotations

import logging
import sys
import uuid

import structlog


def new_request_id() -> str:
    """Bind a fresh 12-hex-char request id to the current context."""
    rid = uuid.uuid4().hex[:12]
    structlog.contextvars.bind_contextvars(request_id=rid)
    return rid


def setup_logging(level: str = "INFO", log_format: str = "json") -> None:
    """Route structlog through stdlib logging with the chosen renderer.

    Args:
        level: Root log level name. httpx stays at WARNING unless this is DEBUG.
        log_format: "json" or "console".
    """
    renderer: structlog.types.Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())

    logging.getLogger("httpx").setLevel(
        logging.DEBUG if level.upper() == "DEBUG" else logging.WARNING,
    )
