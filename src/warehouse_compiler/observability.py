"""Structured logging and OpenTelemetry spans for warehouse-compiler.

This module provides:
- Structured logging setup via structlog
- OpenTelemetry span helpers wrapping compilations

With only ``opentelemetry-api`` installed, spans are no-ops and only the
log events are emitted.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

if TYPE_CHECKING:
    from opentelemetry.trace import Span, Tracer
    from structlog.stdlib import BoundLogger

    from warehouse_compiler.models import CompileRequest

TRACER_NAME = "warehouse_compiler"

_tracer: Tracer | None = None


def get_logger() -> BoundLogger:
    """Get the observability logger.

    Example:
        >>> get_logger().info("compile_started", project_dir="/srv/project")
    """
    return structlog.get_logger(TRACER_NAME)  # type: ignore[no-any-return]


def get_tracer() -> Tracer:
    """Get the OpenTelemetry tracer for warehouse-compiler."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(TRACER_NAME)
    return _tracer


def configure_logging(
    *,
    log_level: str = "INFO",
    json_format: bool = False,
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging.

    Log records go through the standard library root handler, which writes
    to stderr. Workers rely on this: their stdout is the reply channel.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, output JSON. If False, output human-readable.
        add_timestamp: If True, add ISO timestamp to log entries.

    Example:
        >>> configure_logging(log_level="DEBUG", json_format=True)
    """
    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if add_timestamp:
        processors.insert(1, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,  # Reconfigurable after first use
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper(), logging.INFO),
        force=True,
    )


@contextmanager
def span(
    name: str,
    *,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span]:
    """Create an OpenTelemetry span with structured start/end logging.

    Args:
        name: Span name (e.g., "compile.project").
        kind: Span kind.
        attributes: Optional span attributes, also bound to the log events.

    Yields:
        OpenTelemetry Span instance.
    """
    tracer = get_tracer()
    logger = get_logger()
    attrs = attributes or {}

    with tracer.start_as_current_span(
        name, kind=kind, attributes=attrs, record_exception=False, set_status_on_exception=False
    ) as s:
        logger.debug(f"{name}_started", **attrs)
        try:
            yield s
            s.set_status(Status(StatusCode.OK))
            logger.info(f"{name}_completed", **attrs)
        except Exception as exc:
            s.set_status(Status(StatusCode.ERROR, str(exc)))
            s.record_exception(exc)
            logger.error(f"{name}_failed", error=str(exc), error_type=type(exc).__name__, **attrs)
            raise


@contextmanager
def compile_span(request: CompileRequest) -> Iterator[Span]:
    """Create a span for one project compilation with standard attributes."""
    attrs: dict[str, Any] = {
        "compile.project_dir": request.project_dir,
        "compile.use_main": request.use_main,
    }
    if request.timeout_millis:
        attrs["compile.timeout_millis"] = request.timeout_millis

    with span("compile.project", attributes=attrs) as s:
        yield s
