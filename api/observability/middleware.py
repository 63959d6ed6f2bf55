"""
Observability Middleware

Flask instrumentation plus one structured log line per request, tagged
with the company and case the request addresses.
"""

import logging
import time

from flask import Flask, g, request
from opentelemetry import trace
from opentelemetry.instrumentation.flask import FlaskInstrumentor

logger = logging.getLogger(__name__)


def add_observability_middleware(app: Flask):
    """Add OpenTelemetry instrumentation and request logging to Flask app."""
    FlaskInstrumentor().instrument_app(app)

    @app.before_request
    def before_request():
        g.start_time = time.time()
        g.trace_id = None

        span = trace.get_current_span()
        if span.is_recording():
            g.trace_id = format(span.get_span_context().trace_id, "032x")
            view_args = request.view_args or {}
            span.set_attributes({
                "http.target": request.path,
                "karin.company_id": view_args.get("company_id", ""),
                "karin.case_id": view_args.get("case_id", "")
            })

    @app.after_request
    def after_request(response):
        duration_ms = round((time.time() - g.get('start_time', time.time())) * 1000, 2)
        view_args = request.view_args or {}

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attribute("http.duration_ms", duration_ms)

        logger.info(
            "HTTP request completed",
            extra={
                "method": request.method,
                "path": request.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "company_id": view_args.get("company_id"),
                "case_id": view_args.get("case_id"),
                "user_id": request.headers.get("X-User-Id"),
                "trace_id": g.get('trace_id')
            }
        )

        if g.get('trace_id'):
            response.headers['X-Trace-Id'] = g.trace_id
        return response
