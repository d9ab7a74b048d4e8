"""Structured logging for the fee engine, built on structlog.

Every event carries two layers of context:

- process-wide fields passed to setup_logging (engine and pool addresses),
  bound once at startup;
- per-operation fields such as operation_id, bound by the coordinator with
  structlog.contextvars so nested settlement callbacks inherit them.

Records from stdlib loggers (uvicorn, asyncio) go through the same
pre-chain and renderer, so a JSON deployment emits only JSON lines.
"""

import logging
from typing import Literal

import structlog

LogFormat = Literal["console", "json"]


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _render_chain(log_format: LogFormat) -> list[structlog.types.Processor]:
    if log_format == "json":
        return [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    # ConsoleRenderer formats exceptions itself
    return [structlog.dev.ConsoleRenderer()]


def setup_logging(
    log_level: str = "INFO", log_format: LogFormat = "console", **context: str
) -> None:
    """Route structlog and stdlib logging through one renderer.

    Args:
        log_level: Root level name, e.g. "INFO" or "DEBUG".
        log_format: "json" for machine-readable lines, "console" otherwise.
        **context: Fields attached to every event for the life of the process.
    """
    structlog.configure(
        processors=[
            *_pre_chain(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_pre_chain(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *_render_chain(log_format),
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # uvicorn installs its own handlers; hand its records to the root instead
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True

    structlog.contextvars.clear_contextvars()
    if context:
        structlog.contextvars.bind_contextvars(**context)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)
