"""structlog setup for the forumkit CLI.

stdlib ``logging`` calls from services and repositories and structlog
calls (operation spans) go through one formatter on stderr: a console
renderer by default, JSON lines with ``--log-json``. Every line carries
the tenant of the forum being administered.
"""

from __future__ import annotations

import logging
import sys

import structlog

# Libraries that are chatty below WARNING.
_QUIET_LOGGERS = ("sqlalchemy", "pluggy")


def _renderer(log_json: bool) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    tenant: str | None = None,
) -> None:
    """Route all forumkit logging to stderr.

    Args:
        verbose: Show forumkit DEBUG output. Otherwise only WARNING and up.
        log_json: One JSON object per line instead of console text.
        tenant: Bound into every subsequent log line as ``tenant``.
    """
    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_json),
            ],
        )
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("forumkit").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if tenant is not None:
        structlog.contextvars.bind_contextvars(tenant=tenant)
