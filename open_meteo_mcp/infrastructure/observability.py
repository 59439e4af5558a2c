"""
Observability configuration for the Open-Meteo MCP server.

OpenTelemetry tracing for:
- a span around every MCP tool invocation
- the SSE session id, carried in baggage for the lifetime of the stream
- span events recording each tool step and its duration

Tracing is off unless AGENT_OBSERVABILITY_ENABLED is true; every method is
a no-op then. Only the OpenTelemetry API is required here: without an SDK
and exporter the tracer is a no-op as well.

Usage:
    Run with automatic instrumentation and an exporter of your choice:
        opentelemetry-instrument open-meteo-mcp sse
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Optional

from loguru import logger
from opentelemetry import baggage, trace
from opentelemetry.context import attach, detach
from opentelemetry.trace import SpanKind, Status, StatusCode

SESSION_BAGGAGE_KEY = "session.id"


class ObservabilityManager:
    """
    Tracing facade used by the tool decorator and the SSE transport.

    - ``session_context`` puts the SSE session id into baggage
    - ``create_span`` opens a span for one tool call
    - ``record_workflow_step`` adds a step event to the current span
    """

    def __init__(
        self,
        service_name: str = "open-meteo-mcp",
        enabled: bool = True,
    ) -> None:
        self.service_name = service_name
        self.enabled = enabled
        self._tracer = None

        if self.enabled:
            self._tracer = trace.get_tracer(service_name)
            logger.info(f"Observability initialized for service: {service_name}")
        else:
            logger.debug("Observability disabled")

    # ------------------------------------------------------------------
    # Session context
    # ------------------------------------------------------------------

    @contextmanager
    def session_context(self, session_id: str):
        """Attach ``session.id`` baggage for the duration of the block."""
        if not self.enabled:
            yield
            return

        token = attach(baggage.set_baggage(SESSION_BAGGAGE_KEY, session_id))
        try:
            yield
        finally:
            detach(token)

    @staticmethod
    def current_session_id() -> Optional[str]:
        value = baggage.get_baggage(SESSION_BAGGAGE_KEY)
        return str(value) if value is not None else None

    # ------------------------------------------------------------------
    # Spans
    # ------------------------------------------------------------------

    @contextmanager
    def create_span(
        self,
        name: str,
        kind: Optional[SpanKind] = None,
        attributes: Optional[dict] = None,
    ):
        """
        Open a span named ``name`` (e.g. "mcp.tool.get_current_weather").

        The active SSE session id, if any, is added as the ``session.id``
        attribute. Yields None when tracing is disabled.
        """
        if not self.enabled or self._tracer is None:
            yield None
            return

        span_attributes = dict(attributes or {})
        session_id = self.current_session_id()
        if session_id:
            span_attributes[SESSION_BAGGAGE_KEY] = session_id

        with self._tracer.start_as_current_span(
            name=name,
            kind=kind or SpanKind.INTERNAL,
            attributes=span_attributes,
        ) as span:
            try:
                yield span
            except Exception as e:
                span.set_status(Status(StatusCode.ERROR, str(e)))
                span.record_exception(e)
                raise

    def record_workflow_step(
        self,
        step_name: str,
        step_type: str,
        duration_ms: Optional[float] = None,
        success: bool = True,
        metadata: Optional[dict] = None,
    ) -> None:
        """Record one step as an event on the current span."""
        if not self.enabled:
            return

        attributes: dict = {
            "workflow.step.name": step_name,
            "workflow.step.type": step_type,
            "workflow.step.success": success,
        }
        if duration_ms is not None:
            attributes["workflow.step.duration_ms"] = duration_ms
        for key, value in (metadata or {}).items():
            attributes[f"workflow.step.{key}"] = str(value)

        trace.get_current_span().add_event(f"workflow.{step_name}", attributes=attributes)


# ------------------------------------------------------------------
# Singleton
# ------------------------------------------------------------------

_observability_manager: ObservabilityManager | None = None


def get_observability_manager() -> ObservabilityManager:
    """Return the global ObservabilityManager singleton (lazy-init)."""
    global _observability_manager

    if _observability_manager is None:
        from open_meteo_mcp.config import settings

        _observability_manager = ObservabilityManager(
            service_name=settings.OTEL_SERVICE_NAME,
            enabled=settings.AGENT_OBSERVABILITY_ENABLED,
        )

    return _observability_manager


def initialize_observability(
    service_name: str = "open-meteo-mcp",
    enabled: bool = True,
) -> ObservabilityManager:
    """Replace the global observability manager at startup."""
    global _observability_manager

    _observability_manager = ObservabilityManager(
        service_name=service_name,
        enabled=enabled,
    )

    return _observability_manager
