# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Audit service for process actions with OpenTelemetry correlation.
"""

import logging
from typing import Dict, List, Optional, Any
from opentelemetry import trace
from pymongo import DESCENDING

from .mongodb import MongoDBService
from models.entities import AuditLog, UserContext

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class AuditService:
    """Service for audit logging with MongoDB persistence and company scoping."""

    def __init__(self, mongo_service: MongoDBService):
        """Initialize audit service with MongoDB dependency."""
        self.mongo_service = mongo_service
        self.collection_name = "audit_logs"
        logger.info("Audit service initialized")

    def log_action(
        self,
        user_id: str,
        company_id: str,
        entity: str,
        entity_id: str,
        action: str,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        user_context: Optional[UserContext] = None
    ) -> str:
        """
        Log an audit trail entry with trace correlation and structured logging.

        Args:
            user_id: ID of user performing the action
            company_id: Company ID for multi-tenant scoping
            entity: Type of entity being acted upon
            entity_id: ID of the specific entity
            action: Action being performed
            before: State before the action (optional)
            after: State after the action (optional)
            user_context: Request details (optional)

        Returns:
            str: ID of the created audit log entry
        """
        with tracer.start_as_current_span("audit.log_action") as span:
            span_context = span.get_span_context()

            entry = AuditLog(
                user_id=user_id,
                company_id=company_id,
                entity=entity,
                entity_id=entity_id,
                action=action,
                before=before,
                after=after,
                ip_address=user_context.ip_address if user_context else None,
                user_agent=user_context.user_agent if user_context else None,
                trace_id=format(span_context.trace_id, "032x") if span_context.is_valid else None,
                span_id=format(span_context.span_id, "016x") if span_context.is_valid else None,
            )

            document = {
                "id": entry.id,
                "timestamp": entry.timestamp,
                "userId": entry.user_id,
                "companyId": entry.company_id,
                "entity": entry.entity,
                "entityId": entry.entity_id,
                "action": entry.action,
                "before": entry.before,
                "after": entry.after,
                "ipAddress": entry.ip_address,
                "userAgent": entry.user_agent,
                "traceId": entry.trace_id,
                "spanId": entry.span_id,
                "schemaVersion": entry.schema_version
            }

            span.set_attributes({
                "audit.entity": entity,
                "audit.action": action,
                "audit.user_id": user_id,
                "audit.company_id": company_id,
                "audit.entity_id": entity_id
            })

            audit_id = self.mongo_service.create(self.collection_name, document, user_id)

            logger.info(
                "Audit trail entry created",
                extra={
                    "audit_id": audit_id,
                    "entity": entity,
                    "entity_id": entity_id,
                    "action": action,
                    "user_id": user_id,
                    "company_id": company_id,
                    "trace_id": entry.trace_id,
                    "audit_category": "karin_process"
                }
            )
            return audit_id

    def get_entity_history(self, company_id: str, entity_id: str, limit: int = 100) -> List[Dict[str, Any]]:
        """Most recent audit entries of one entity, newest first."""
        with tracer.start_as_current_span("audit.entity_history") as span:
            span.set_attributes({"audit.company_id": company_id, "audit.entity_id": entity_id})
            cursor = (
                self.mongo_service.get_collection(self.collection_name)
                .find({"companyId": company_id, "entityId": entity_id})
                .sort("timestamp", DESCENDING)
                .limit(limit)
            )
            entries = []
            for document in cursor:
                document.pop("_id", None)
                entries.append(document)
            return entries
