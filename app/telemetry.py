import logging
import os

from opentelemetry import trace

logger = logging.getLogger(__name__)

_TRACER_NAME = "estate_crm"


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Return an OTel tracer.

    Without a configured TracerProvider the API hands out no-op spans, so
    callers can open spans unconditionally.
    """
    return trace.get_tracer(name or _TRACER_NAME)


def setup_otel(app) -> None:
    """Configure OpenTelemetry tracing when ``OTEL_ENABLED`` is set.

    Instruments FastAPI and the SQLAlchemy engine. A missing instrumentor is
    logged and skipped.
    """
    enabled = os.getenv("OTEL_ENABLED", "false").lower() in {"1", "true", "yes", "on"}
    if not enabled:
        return

    try:
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
            OTLPSpanExporter,
        )
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except Exception:
        logger.exception("OpenTelemetry SDK not available, skipping setup.")
        return

    service_name = os.getenv("OTEL_SERVICE_NAME", "estate_crm")
    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")

    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(provider)

    exporter = OTLPSpanExporter(endpoint=f"{endpoint}/v1/traces") if endpoint else OTLPSpanExporter()
    provider.add_span_processor(BatchSpanProcessor(exporter))

    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        FastAPIInstrumentor.instrument_app(app)
        logger.info("OTel: FastAPI instrumented")
    except Exception:
        logger.warning("OTel: FastAPI instrumentation unavailable", exc_info=True)

    try:
        from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

        from app.db import get_engine

        SQLAlchemyInstrumentor().instrument(engine=get_engine())
        logger.info("OTel: SQLAlchemy instrumented")
    except Exception:
        logger.warning("OTel: SQLAlchemy instrumentation unavailable", exc_info=True)

    logger.info("OpenTelemetry tracing enabled (service=%s)", service_name)
