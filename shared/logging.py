"""
Structured logging for webchat components.

Every module gets its logger through get_logger(component, module) and logs
dotted event names with keyword fields:

    log = get_logger("acquirer", "fetcher")
    log.info("fetcher.fetch.success", url=url[:50], chars=1500)
"""

import logging
import sys

import structlog

_configured = False


def configure_logging(level: str = "INFO", json_output: bool = False, stream=None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Minimum log level name (DEBUG, INFO, WARNING, ...)
        json_output: Render JSON lines instead of the console format
        stream: File object to write to (defaults to stderr)
    """
    global _configured

    stream = stream or sys.stderr
    log_level = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=log_level,
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )
    _configured = True


def get_logger(component: str, module: str):
    """
    Get a logger bound to a component and module.

    Args:
        component: Top-level component name (acquirer, conversation, chat)
        module: Module within the component

    Returns:
        structlog bound logger
    """
    if not _configured:
        configure_logging()
    return structlog.get_logger(f"{component}.{module}").bind(
        component=component, module=module
    )
