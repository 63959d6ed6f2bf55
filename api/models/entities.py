# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entities of the Ley Karin process: the case view, the process
sub-aggregate and the records it owns.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .base import BaseEntity, KarinModel, generate_object_id
from .enums import (
    AuthorityType,
    MeasureStatus,
    NotificationMethod,
    NotificationRecordStatus,
    RevisionStatus,
    Stage,
    TestimonyStatus,
)


def generate_record_id() -> str:
    """Generate an identifier for records embedded in the process document."""
    return uuid.uuid4().hex


class StageHistoryEntry(KarinModel):
    """One stage change. Entries record the stage that was left."""

    stage: Stage = Field(..., description="Stage that was left")
    date: datetime = Field(..., description="Transition timestamp")
    actor_id: str = Field(..., description="User who performed the transition")
    actor_name: Optional[str] = Field(None, description="Display name at transition time")
    notes: Optional[str] = Field(None, max_length=2000, description="Free-text notes")


class NotificationRecord(KarinModel):
    """Formal notification sent to an external authority."""

    id: str = Field(default_factory=generate_record_id, description="Record identifier")
    date: datetime = Field(..., description="Notification date")
    method: NotificationMethod = Field(..., description="Delivery channel")
    contact_person: Optional[str] = Field(None, description="Authority contact")
    tracking_number: Optional[str] = Field(None, description="Postal or system tracking number")
    document_id: Optional[str] = Field(None, description="Notified document")
    proof_of_delivery_id: Optional[str] = Field(None, description="Proof of delivery document")
    status: NotificationRecordStatus = Field(default=NotificationRecordStatus.ENVIADA)
    notified_by: str = Field(..., description="User who sent the notification")
    notified_by_name: Optional[str] = Field(None, description="Display name of the sender")
    response_date: Optional[datetime] = Field(None, description="Authority response date")
    response_document_id: Optional[str] = Field(None, description="Authority response document")


class Testimony(KarinModel):
    """Formal interview record with its own signature workflow."""

    id: str = Field(default_factory=generate_record_id)
    person_name: str = Field(..., min_length=1)
    person_type: str = Field(default="witness", description="complainant, accused or witness")
    interview_date: datetime
    interviewer: str
    summary: Optional[str] = None
    folio_number: Optional[str] = None
    status: TestimonyStatus = Field(default=TestimonyStatus.DRAFT)
    signed_at: Optional[datetime] = None
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None

    @property
    def has_signed(self) -> bool:
        return self.status in (TestimonyStatus.SIGNED, TestimonyStatus.VERIFIED)


class Measure(KarinModel):
    """Corrective measure adopted after the investigation."""

    id: str = Field(default_factory=generate_record_id)
    description: str = Field(..., min_length=1)
    adopted_at: datetime
    responsible: Optional[str] = None
    ordered_by_dt: bool = Field(default=False, description="Measure imposed by the DT resolution")
    status: MeasureStatus = Field(default=MeasureStatus.PENDING)
    implemented_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None


class ReportRevision(KarinModel):
    """Internal review of the preliminary report."""

    date: datetime
    reviewer: str
    comments: Optional[str] = None
    status: RevisionStatus


class KarinDocument(KarinModel):
    """Registered document with its folio."""

    id: str = Field(default_factory=generate_record_id)
    document_type: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    stage: Stage
    folio_number: str
    author_id: str
    created_at: datetime


class KarinProcess(KarinModel):
    """Statutory workflow state owned by the engine."""

    stage: Stage = Field(default=Stage.COMPLAINT_FILED)
    stage_history: List[StageHistoryEntry] = Field(default_factory=list)
    stage_dates: Dict[Stage, datetime] = Field(default_factory=dict, description="Date each stage was entered")
    stage_deadlines: Dict[Stage, datetime] = Field(default_factory=dict, description="Deadline of each entered stage")
    status_label: Optional[str] = None

    # reception
    informed_rights: bool = False
    rights_informed_date: Optional[datetime] = None
    rights_informed_by: Optional[str] = None

    # subsanation
    requires_subsanation: bool = False
    subsanation_items: List[str] = Field(default_factory=list)
    subsanation_requested_date: Optional[datetime] = None
    subsanation_received_date: Optional[datetime] = None

    # precautionary measures
    precautionary_measures: List[str] = Field(default_factory=list)
    precautionary_measures_justification: Optional[str] = None
    precautionary_measures_date: Optional[datetime] = None
    precautionary_measures_evaluated: bool = False

    testimonies: List[Testimony] = Field(default_factory=list)

    # authority ledger
    dt_notifications: List[NotificationRecord] = Field(default_factory=list)
    suseso_notifications: List[NotificationRecord] = Field(default_factory=list)
    inspection_notifications: List[NotificationRecord] = Field(default_factory=list)
    dt_initial_notification_date: Optional[datetime] = None
    dt_initial_notification_id: Optional[str] = None
    suseso_initial_notification_date: Optional[datetime] = None
    suseso_initial_notification_id: Optional[str] = None
    inspection_initial_notification_date: Optional[datetime] = None
    inspection_initial_notification_id: Optional[str] = None

    # report
    report_approved: bool = False
    report_approval_date: Optional[datetime] = None
    report_revisions: List[ReportRevision] = Field(default_factory=list)

    # investigation term
    investigation_extended: bool = False
    investigation_extension_date: Optional[datetime] = None
    investigation_extension_reason: Optional[str] = None
    investigation_completed: bool = False
    investigation_completed_date: Optional[datetime] = None

    # closing
    dt_submission_date: Optional[datetime] = None
    dt_resolution_date: Optional[datetime] = None
    measures_adopted: List[Measure] = Field(default_factory=list)
    documents: List[KarinDocument] = Field(default_factory=list)

    @field_validator('precautionary_measures')
    @classmethod
    def deduplicate_measures(cls, v):
        """Keep measure ids unique, first occurrence wins."""
        return list(dict.fromkeys(v))

    @property
    def measures_implemented(self) -> bool:
        return bool(self.measures_adopted) and all(
            m.status in (MeasureStatus.IMPLEMENTED, MeasureStatus.VERIFIED)
            for m in self.measures_adopted
        )

    def notifications_for(self, authority: AuthorityType) -> List[NotificationRecord]:
        """Ledger list of one authority."""
        return getattr(self, f"{AuthorityType(authority).value}_notifications")

    def initial_notification_date(self, authority: AuthorityType) -> Optional[datetime]:
        return getattr(self, f"{AuthorityType(authority).value}_initial_notification_date")


class Case(BaseEntity):
    """View of the surrounding application's case that the engine reads."""

    code: Optional[str] = Field(None, description="External case reference")
    is_karin_case: bool = Field(default=False, description="Whether the Ley Karin workflow applies")
    karin_process: Optional[KarinProcess] = None
    investigation_plan: Optional[Dict[str, Any]] = None
    interviews: List[Dict[str, Any]] = Field(default_factory=list)
    preliminary_report: Optional[Dict[str, Any]] = None
    final_report: Optional[Dict[str, Any]] = None
    evidences: List[Dict[str, Any]] = Field(default_factory=list)


class AuditLog(BaseModel):
    """Audit log entry for compliance and accountability."""

    id: str = Field(default_factory=generate_object_id, description="Unique identifier")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Action timestamp")
    user_id: str = Field(..., description="User who performed the action")
    company_id: str = Field(..., description="Company scope")
    entity: str = Field(..., description="Entity type")
    entity_id: str = Field(..., description="Entity identifier")
    action: str = Field(..., description="Action performed")
    before: Optional[Dict[str, Any]] = Field(None, description="State before action")
    after: Optional[Dict[str, Any]] = Field(None, description="State after action")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")
    trace_id: Optional[str] = Field(None, description="OpenTelemetry trace ID")
    span_id: Optional[str] = Field(None, description="OpenTelemetry span ID")
    schema_version: int = Field(default=1, description="Schema version")

    model_config = ConfigDict(
        use_enum_values=True
    )

    @field_validator('entity')
    @classmethod
    def validate_entity(cls, v):
        """Validate entity type."""
        valid_entities = ['karin_process', 'karin_document']
        if v not in valid_entities:
            raise ValueError(f'Invalid entity type: {v}')
        return v


class UserContext(BaseModel):
    """Caller identity for request processing."""

    user_id: str = Field(..., description="Acting user ID")
    company_id: str = Field(..., description="Company the request is scoped to")
    name: Optional[str] = Field(None, description="User display name")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")
