"""Structured logging and OpenTelemetry spans for flow-frontend.

Log events emitted while a stage runs carry the tier and stage they belong
to, bound through structlog context variables by stage_span(). Both tiers
build on their own threads, so the binding never leaks between tiers. When
a span is active, configure_logging() also stamps events with its trace and
span ids so log lines can be joined with the exported traces.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

if TYPE_CHECKING:
    from opentelemetry.trace import Span, Tracer
    from structlog.stdlib import BoundLogger
    from structlog.typing import EventDict, WrappedLogger

_tracer: Tracer | None = None

TRACER_NAME = "flow.frontend"


def get_logger() -> BoundLogger:
    """Example:
    >>> get_logger().info("toolchain_installed", node_version="v8.11.1")
    """
    return structlog.get_logger(TRACER_NAME)


def get_tracer() -> Tracer:
    """Get the OpenTelemetry tracer for flow-frontend."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(TRACER_NAME)
    return _tracer


def add_trace_ids(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """structlog processor adding the ids of the current span, if any."""
    context = trace.get_current_span().get_span_context()
    if context.is_valid:
        event_dict.setdefault("trace_id", format(context.trace_id, "032x"))
        event_dict.setdefault("span_id", format(context.span_id, "016x"))
    return event_dict


def configure_logging(
    *,
    log_level: str = "INFO",
    json_format: bool = True,
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for flow-frontend.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, output JSON format. If False, output human-readable.
        add_timestamp: If True, add ISO timestamp to log entries.

    Example:
        >>> configure_logging(log_level="DEBUG", json_format=False)
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_trace_ids,
        structlog.processors.format_exc_info,
    ]
    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))
    processors.append(
        structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", level=getattr(logging, log_level.upper()))


@contextmanager
def span(
    name: str,
    *,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span]:
    """Create an OpenTelemetry span with structured start/end logging.

    The completed event carries duration_ms; a failure records the exception
    on the span and logs {name}_failed before re-raising.

    Args:
        name: Span name (e.g., "toolchain.install", "stage.transpile").
        kind: Span kind.
        attributes: Optional span attributes, also bound to the log events.

    Yields:
        OpenTelemetry Span instance.
    """
    logger = get_logger()
    attrs = attributes or {}
    started = time.monotonic()

    with get_tracer().start_as_current_span(name, kind=kind, attributes=attrs) as s:
        logger.debug(f"{name}_started", **attrs)
        try:
            yield s
        except Exception as exc:
            s.set_status(Status(StatusCode.ERROR, str(exc)))
            s.record_exception(exc)
            logger.error(f"{name}_failed", error=str(exc), **attrs)
            raise
        s.set_status(Status(StatusCode.OK))
        logger.info(
            f"{name}_completed",
            duration_ms=round((time.monotonic() - started) * 1000, 1),
            **attrs,
        )


@contextmanager
def stage_span(stage: str, *, tier: str, enabled: bool = True) -> Iterator[Span]:
    """Span one build stage of one tier.

    Every event logged inside the block, including those of the process
    runner and toolchain, carries tier= and stage= fields.

    Args:
        stage: Stage name ("transpile", "bundle", "minify", "hash").
        tier: Tier being built ("es5", "es6").
        enabled: Whether the stage runs or passes its input through.
    """
    attrs: dict[str, Any] = {
        "frontend.stage": stage,
        "frontend.tier": tier,
        "frontend.stage.enabled": enabled,
    }
    with structlog.contextvars.bound_contextvars(tier=tier, stage=stage), span(
        f"stage.{stage}", attributes=attrs
    ) as s:
        yield s
