# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request context extraction utilities.

The engine trusts the caller identity forwarded by the surrounding
application in the X-User-Id header; authentication happens upstream.
"""

import logging

from flask import g, request
from opentelemetry import trace

from domain.errors import ValidationFailedError
from models.entities import UserContext

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"
USER_NAME_HEADER = "X-User-Name"


def get_user_context(company_id: str) -> UserContext:
    """
    Build the caller context for a company-scoped request.

    Args:
        company_id: Company from the request path

    Returns:
        UserContext, also stored on flask.g

    Raises:
        ValidationFailedError: If the X-User-Id header is missing
    """
    user_id = (request.headers.get(USER_ID_HEADER) or "").strip()
    if not user_id:
        logger.warning(
            "Request without acting user",
            extra={"path": request.path, "method": request.method}
        )
        raise ValidationFailedError(f"El encabezado {USER_ID_HEADER} es obligatorio")

    context = UserContext(
        user_id=user_id,
        company_id=company_id,
        name=request.headers.get(USER_NAME_HEADER),
        ip_address=request.headers.get('X-Forwarded-For', request.remote_addr),
        user_agent=request.headers.get('User-Agent')
    )

    span = trace.get_current_span()
    span.set_attributes({"user.id": user_id, "karin.company_id": company_id})
    g.user_context = context
    return context
