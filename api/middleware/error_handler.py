# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured HAL responses.
Maps engine errors and HTTP errors to RFC 7807 problem documents.
"""

import logging
import traceback
from typing import Any, Dict, Tuple

from flask import Flask, request
from opentelemetry import trace
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from domain.errors import (
    ComplianceError,
    ConcurrentModificationError,
    CounterUnavailableError,
    DuplicateRecordError,
    InvalidTransitionError,
    KarinProcessError,
    NotFoundError,
    NotKarinCaseError,
    ValidationFailedError,
)
from services.hal import HalFormatter

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

# Most specific first: subclasses of KarinProcessError before the base.
DOMAIN_ERROR_MAP = (
    (ComplianceError, 422, "compliance-error", "Stage Requirements Not Met"),
    (InvalidTransitionError, 422, "invalid-transition", "Invalid Transition"),
    (NotKarinCaseError, 422, "not-karin-case", "Not a Ley Karin Case"),
    (NotFoundError, 404, "resource-not-found", "Resource Not Found"),
    (DuplicateRecordError, 409, "duplicate-record", "Duplicate Record"),
    (ConcurrentModificationError, 409, "concurrent-modification", "Concurrent Modification"),
    (ValidationFailedError, 400, "validation-error", "Validation Error"),
    (CounterUnavailableError, 503, "service-unavailable", "Service Unavailable"),
)

HTTP_ERROR_TITLES = {
    400: ("bad-request", "Bad Request"),
    404: ("resource-not-found", "Resource Not Found"),
    405: ("method-not-allowed", "Method Not Allowed"),
    409: ("resource-conflict", "Resource Conflict"),
    422: ("validation-error", "Validation Error"),
    503: ("service-unavailable", "Service Unavailable"),
}


def classify_domain_error(error: KarinProcessError) -> Tuple[int, str, str]:
    """HTTP status, problem type and title for an engine error."""
    for error_class, status, error_type, title in DOMAIN_ERROR_MAP:
        if isinstance(error, error_class):
            return status, error_type, title
    return 500, "internal-server-error", "Internal Server Error"


class ErrorHandlerMiddleware:
    """Centralized error handling middleware with HAL response formatting."""

    def __init__(self, app: Flask, hal_formatter: HalFormatter):
        self.app = app
        self.hal_formatter = hal_formatter
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""

        @self.app.errorhandler(KarinProcessError)
        def handle_domain_error(error: KarinProcessError):
            return self.handle_domain_error(error)

        @self.app.errorhandler(ValidationError)
        def handle_validation_error(error: ValidationError):
            return self.handle_validation_error(error)

        @self.app.errorhandler(HTTPException)
        def handle_http_error(error: HTTPException):
            return self.handle_http_error(error)

        @self.app.errorhandler(Exception)
        def handle_generic_exception(error: Exception):
            return self.handle_unexpected_error(error)

    def handle_domain_error(self, error: KarinProcessError) -> Tuple[Dict[str, Any], int]:
        status, error_type, title = classify_domain_error(error)

        with tracer.start_as_current_span("error_handler.domain_error") as span:
            span.set_attributes({
                "error.type": error_type,
                "error.status": status,
                "http.method": request.method,
                "http.path": request.path
            })

            log = logger.error if status >= 500 else logger.warning
            log(
                f"Process error: {title}",
                extra={
                    "error_type": error_type,
                    "status_code": status,
                    "detail": error.message,
                    "path": request.path,
                    "method": request.method
                }
            )

            errors = error.requirements if isinstance(error, ComplianceError) else None
            body = self.hal_formatter.format_error(status, error_type, title, error.message, request.path, errors)
            return body, status

    def handle_validation_error(self, error: ValidationError) -> Tuple[Dict[str, Any], int]:
        """Pydantic errors raised while building models inside a view."""
        errors = [
            {"loc": [str(part) for part in item["loc"]], "msg": item["msg"], "type": item["type"]}
            for item in error.errors()
        ]
        logger.warning(
            "Request validation failed",
            extra={"path": request.path, "method": request.method, "error_count": len(errors)}
        )
        body = self.hal_formatter.format_error(
            400, "validation-error", "Validation Error", "Request data is invalid", request.path, errors
        )
        return body, 400

    def handle_http_error(self, error: HTTPException) -> Tuple[Dict[str, Any], int]:
        """
        Handle werkzeug HTTP errors raised by routing or request parsing.

        Args:
            error: HTTP exception

        Returns:
            Tuple of (error response dict, status code)
        """
        status = error.code or 500
        error_type, title = HTTP_ERROR_TITLES.get(status, ("http-error", error.name))
        detail = str(error.description) if error.description else title

        logger.warning(
            f"HTTP error: {title}",
            extra={
                "error_type": error_type,
                "status_code": status,
                "path": request.path,
                "method": request.method,
                "user_agent": request.headers.get('User-Agent'),
                "ip_address": request.remote_addr
            }
        )
        return self.hal_formatter.format_error(status, error_type, title, detail, request.path), status

    def handle_unexpected_error(self, error: Exception) -> Tuple[Dict[str, Any], int]:
        """
        Handle unexpected exceptions not caught by specific handlers.

        Args:
            error: Unexpected exception

        Returns:
            Tuple of (error response dict, status code)
        """
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "error_type": "unexpected-error",
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method,
                    "traceback": traceback.format_exc()
                },
                exc_info=True
            )

            detail = "An unexpected error occurred"
            if self.app.config.get('ENV') != 'production':
                detail = f"{error.__class__.__name__}: {str(error)}"

            body = self.hal_formatter.format_error(
                500, "internal-server-error", "Internal Server Error", detail, request.path
            )
            return body, 500
