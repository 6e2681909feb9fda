"""Logging helpers with optional OpenTelemetry support."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import TelemetryConfig

_LOGGER: logging.Logger | None = None
_CONSOLE_HANDLER: logging.Handler | None = None
_OTLP_HANDLER: logging.Handler | None = None

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "otelTraceID", "otelSpanID", "otelTraceSampled", "otelServiceName"}


class _OtelContextFilter(logging.Filter):
    """Ensures trace/span placeholders exist even when no context is active."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        if not hasattr(record, "otelTraceID"):
            record.otelTraceID = "-"
        if not hasattr(record, "otelSpanID"):
            record.otelSpanID = "-"
        return True


class ExtraFieldsFormatter(logging.Formatter):
    """Appends the structured ``extra`` fields of a record as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
        }
        if not extras:
            return base
        fields = " ".join(f"{key}={value}" for key, value in sorted(extras.items()))
        return f"{base} | {fields}"


def get_logger(name: str = "battleship") -> logging.Logger:
    global _LOGGER
    if _LOGGER is None:
        _LOGGER = logging.getLogger(name)
        _LOGGER.setLevel(logging.INFO)
    return _LOGGER


def configure_console_logging(level: str | int = logging.WARNING) -> logging.Handler:
    """Send ``battleship.*`` records to stderr, replacing an earlier console handler."""
    global _CONSOLE_HANDLER
    package_logger = logging.getLogger("battleship")
    if _CONSOLE_HANDLER is not None:
        package_logger.removeHandler(_CONSOLE_HANDLER)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        ExtraFieldsFormatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s "
            "| trace_id=%(otelTraceID)s span_id=%(otelSpanID)s"
        )
    )
    handler.addFilter(_OtelContextFilter())
    # get_logger sets child loggers to INFO, so the level is enforced here too.
    handler.setLevel(level)
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    _CONSOLE_HANDLER = handler
    return handler


def init_logging(config: TelemetryConfig) -> logging.Logger:
    logger = get_logger(config.service_name)
    try:
        from opentelemetry._logs import set_logger_provider
        from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
        from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
        from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
        from opentelemetry.sdk.resources import Resource
    except ImportError:  # pragma: no cover
        return logger

    provider = LoggerProvider(resource=Resource.create(config.resource_attribute_map()))

    if config.otlp_logs_endpoint:
        exporter = OTLPLogExporter(endpoint=config.otlp_logs_endpoint, insecure=True)
        provider.add_log_record_processor(BatchLogRecordProcessor(exporter))

    set_logger_provider(provider)
    _install_otlp_handler(LoggingHandler(level=logging.INFO, logger_provider=provider))
    return logger


def _install_otlp_handler(handler: logging.Handler) -> None:
    """Attach the OTLP logging handler to the package logger once."""
    global _OTLP_HANDLER
    if _OTLP_HANDLER is not None:
        return
    handler.addFilter(_OtelContextFilter())
    logging.getLogger("battleship").addHandler(handler)
    _OTLP_HANDLER = handler
