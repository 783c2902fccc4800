"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from elasticwrap.config.settings import LogSink, Settings

# Loggers used by the elasticsearch client library.
TRANSPORT_LOGGERS = ("elastic_transport", "elasticsearch")

PACKAGE_LOGGER = "elasticwrap"

_SINK_HANDLER_ATTR = "_elasticwrap_sink"


def _add_endpoint(url: str) -> Any:
    def processor(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("endpoint", url)
        return event_dict

    return processor


def setup_logging(settings: Settings | None = None) -> None:
    """Configure structured logging for elasticwrap.

    Records of the ``elasticwrap`` loggers, whether emitted through structlog
    or plain ``logging``, are rendered as JSON (or console lines) on stdout and
    tagged with the configured endpoint. The client library's loggers are
    routed to the connection's error/info sinks.

    Args:
        settings: Settings to apply. Uses ``get_settings()`` if None.
    """
    if settings is None:
        from elasticwrap.config.settings import get_settings

        settings = get_settings()

    obs = settings.observability
    log_level = getattr(logging, obs.log_level.upper(), logging.INFO)

    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _add_endpoint(settings.connection.url),
    ]

    if obs.log_format == "console":
        renderer: Any = structlog.dev.ConsoleRenderer(colors=False)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                renderer,
            ],
            foreign_pre_chain=shared_processors,
        )
    )
    setattr(handler, _SINK_HANDLER_ATTR, True)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for old in list(package_logger.handlers):
        if getattr(old, _SINK_HANDLER_ATTR, False):
            package_logger.removeHandler(old)
    package_logger.addHandler(handler)
    package_logger.setLevel(log_level)
    package_logger.propagate = False

    configure_transport_logging(settings.connection.error_log, settings.connection.info_log)


class _MaxLevelFilter(logging.Filter):
    def __init__(self, max_level: int) -> None:
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno <= self.max_level


def _sink_handler(sink: LogSink) -> logging.Handler:
    if sink == "stdout":
        return logging.StreamHandler(sys.stdout)
    if sink == "stderr":
        return logging.StreamHandler(sys.stderr)
    return logging.NullHandler()


def configure_transport_logging(error_sink: LogSink = "stderr", info_sink: LogSink = "discard") -> None:
    """Route the client library's loggers to the given sinks.

    Warnings and errors go to ``error_sink``; informational and debug records
    go to ``info_sink``. ``"discard"`` drops the records. Calling this again
    replaces previously installed sink handlers.

    Args:
        error_sink: Destination for WARNING and above.
        info_sink: Destination for records below WARNING.
    """
    error_handler = _sink_handler(error_sink)
    error_handler.setLevel(logging.WARNING)
    error_handler.setFormatter(logging.Formatter("ELASTIC %(asctime)s %(message)s"))

    info_handler = _sink_handler(info_sink)
    info_handler.setLevel(logging.DEBUG)
    info_handler.addFilter(_MaxLevelFilter(logging.INFO))

    for name in TRANSPORT_LOGGERS:
        lib_logger = logging.getLogger(name)
        for handler in list(lib_logger.handlers):
            if getattr(handler, _SINK_HANDLER_ATTR, False):
                lib_logger.removeHandler(handler)
        for handler in (error_handler, info_handler):
            setattr(handler, _SINK_HANDLER_ATTR, True)
            lib_logger.addHandler(handler)
        lib_logger.setLevel(logging.INFO if info_sink != "discard" else logging.WARNING)
        lib_logger.propagate = False
