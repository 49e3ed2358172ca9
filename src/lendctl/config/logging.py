"""structlog setup for lendctl.

Everything goes to stderr, rendered by one ProcessorFormatter so that
``logging.getLogger(__name__)`` records from the services and structlog's
own events come out alike: console lines for people, JSON lines with
``--log-json``.

The ``lendctl`` tree logs at DEBUG under ``-v`` and WARNING otherwise.
Individual parts can be turned up or down from ``[logging] levels``,
keyed by short name (``scanner``, ``dispatch``, ...) or full logger name::

    [logging.levels]
    scanner = "INFO"
    sql = "INFO"

Request, item and borrower IDs bound by traced service calls are merged
into every record.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping

import structlog

LOGGER_ALIASES: dict[str, str] = {
    "scanner": "lendctl.services.scanner",
    "dispatch": "lendctl.notifications.dispatcher",
    "handlers": "lendctl.notifications.registry",
    "scheduler": "lendctl.infrastructure.scheduler",
    "store": "lendctl.infrastructure.store",
    "telemetry": "lendctl.telemetry",
    "sql": "sqlalchemy.engine",
}


def resolve_level(name: str) -> int:
    """Map a level name such as ``"info"`` to its ``logging`` constant.

    Raises:
        ValueError: For an unknown level name.
    """
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        msg = f"Unknown log level: {name!r}"
        raise ValueError(msg)
    return level


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    levels: Mapping[str, str] | None = None,
) -> None:
    """Configure structlog processors, stderr routing and logger levels.

    Args:
        verbose: DEBUG for the ``lendctl`` tree; WARNING when False.
        log_json: JSON lines instead of console lines.
        levels: Per-logger overrides, applied after the verbose default.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_json:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("lendctl").setLevel(logging.DEBUG if verbose else logging.WARNING)
    # SQL echo stays off even under -v unless asked for by name.
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    for name, level in (levels or {}).items():
        logging.getLogger(LOGGER_ALIASES.get(name, name)).setLevel(resolve_level(level))
