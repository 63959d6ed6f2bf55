# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the Ley Karin process engine.
"""

from enum import Enum


class Stage(str, Enum):
    """Statutory stages of a Ley Karin investigation, in process order."""
    COMPLAINT_FILED = "complaint_filed"
    RECEPTION = "reception"
    SUBSANATION = "subsanation"
    PRECAUTIONARY_MEASURES = "precautionary_measures"
    DECISION_TO_INVESTIGATE = "decision_to_investigate"
    INVESTIGATION = "investigation"
    REPORT_CREATION = "report_creation"
    REPORT_APPROVAL = "report_approval"
    DT_NOTIFICATION = "dt_notification"
    SUSESO_NOTIFICATION = "suseso_notification"
    INVESTIGATION_COMPLETE = "investigation_complete"
    FINAL_REPORT = "final_report"
    DT_SUBMISSION = "dt_submission"
    DT_RESOLUTION = "dt_resolution"
    MEASURES_ADOPTION = "measures_adoption"
    CLOSED = "closed"


class DayCountMode(str, Enum):
    """How a statutory term counts days."""
    ADMINISTRATIVE = "administrative"
    CALENDAR = "calendar"


class AuthorityType(str, Enum):
    """External authorities that receive formal notifications."""
    DT = "dt"
    SUSESO = "suseso"
    INSPECTION = "inspection"


class NotificationMethod(str, Enum):
    """Delivery channel of an authority notification."""
    EMAIL = "email"
    PRESENCIAL = "presencial"
    CARTA_CERTIFICADA = "carta_certificada"
    SISTEMA = "sistema"


class NotificationRecordStatus(str, Enum):
    """Authority notification status, forward-only in declaration order."""
    PENDIENTE = "pendiente"
    ENVIADA = "enviada"
    RECIBIDA = "recibida"
    RESPONDIDA = "respondida"


class TestimonyStatus(str, Enum):
    """Signature workflow of a formal testimony."""
    DRAFT = "draft"
    PENDING_SIGNATURE = "pending_signature"
    SIGNED = "signed"
    VERIFIED = "verified"


class MeasureStatus(str, Enum):
    """Implementation status of an adopted measure."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    IMPLEMENTED = "implemented"
    VERIFIED = "verified"


class RevisionStatus(str, Enum):
    """Outcome of an internal report review."""
    APPROVED = "approved"
    REJECTED = "rejected"
    NEEDS_CHANGES = "needs_changes"


class DeadlineStatus(str, Enum):
    """Derived status of a statutory milestone."""
    COMPLETED = "completed"
    ACTIVE = "active"
    PENDING = "pending"
    OVERDUE = "overdue"


class Priority(str, Enum):
    """Priority of a compliance checklist item."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EngineEvent(str, Enum):
    """Semantic events emitted by the engine."""
    STAGE_ADVANCED = "stage_advanced"
    DEADLINE_URGENT = "deadline_urgent"
    REPORT_REVIEW_REQUIRED = "report_review_required"
    REPORT_REQUIRED = "report_required"
    INVESTIGATION_STARTED = "investigation_started"
    NOTIFICATION_RECORDED = "notification_recorded"
    PROCESS_STARTED = "process_started"
