# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import (
    AuthorityType,
    MeasureStatus,
    NotificationMethod,
    NotificationRecordStatus,
    RevisionStatus,
    TestimonyStatus,
)


class CasePath(BaseModel):
    """Path parameters addressing one case."""

    company_id: str = Field(..., description="Company identifier")
    case_id: str = Field(..., description="Case identifier")


class AuthorityPath(CasePath):
    authority: AuthorityType = Field(..., description="dt, suseso or inspection")


class NotificationRecordPath(AuthorityPath):
    record_id: str = Field(..., description="Notification record identifier")


class TestimonyPath(CasePath):
    testimony_id: str


class MeasurePath(CasePath):
    measure_id: str


class DeadlinesQuery(BaseModel):
    now: Optional[datetime] = Field(None, description="Evaluation instant, defaults to the server clock")


class AdvanceStageRequest(BaseModel):
    """Request model for advancing the process to its next stage."""

    model_config = ConfigDict(extra='forbid')

    notes: Optional[str] = Field(None, max_length=2000, description="Transition notes")
    additional_data: Dict[str, Any] = Field(default_factory=dict, description="Stage-specific process fields")


class RecordNotificationRequest(BaseModel):
    """Request model for appending an authority notification."""

    id: Optional[str] = Field(None, description="Client-supplied record id")
    date: datetime = Field(..., description="Notification date")
    method: NotificationMethod
    contact_person: Optional[str] = None
    tracking_number: Optional[str] = None
    document_id: Optional[str] = None
    proof_of_delivery_id: Optional[str] = None
    status: NotificationRecordStatus = NotificationRecordStatus.ENVIADA


class UpdateNotificationStatusRequest(BaseModel):
    status: NotificationRecordStatus
    response_date: Optional[datetime] = None
    response_document_id: Optional[str] = None


class AllocateFolioRequest(BaseModel):
    document_type: str = Field(..., min_length=1, max_length=50, description="Document type, e.g. DECLARATION")


class PrecautionaryMeasuresRequest(BaseModel):
    measure_ids: List[str] = Field(default_factory=list)
    justification: Optional[str] = Field(None, max_length=4000)


class SubsanationRequest(BaseModel):
    items: List[str] = Field(default_factory=list, description="Information requested from the complainant")
    notes: Optional[str] = None


class TestimonyRequest(BaseModel):
    person_name: str = Field(..., min_length=1)
    person_type: str = Field(default="witness")
    interview_date: datetime
    interviewer: str = Field(..., min_length=1)
    summary: Optional[str] = None

    @field_validator('person_type')
    @classmethod
    def validate_person_type(cls, v):
        """Validate interviewed person type."""
        if v not in ('complainant', 'accused', 'witness'):
            raise ValueError('person_type must be complainant, accused or witness')
        return v


class TestimonyStatusRequest(BaseModel):
    status: TestimonyStatus


class MeasureRequest(BaseModel):
    description: str = Field(..., min_length=1)
    responsible: Optional[str] = None
    ordered_by_dt: bool = False


class MeasureStatusRequest(BaseModel):
    status: MeasureStatus


class ReportRevisionRequest(BaseModel):
    status: RevisionStatus
    comments: Optional[str] = Field(None, max_length=4000)


class InvestigationExtensionRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class AuthorityDateRequest(BaseModel):
    date: Optional[datetime] = Field(None, description="Event date, defaults to now")


class RegisterDocumentRequest(BaseModel):
    document_type: str = Field(..., min_length=1, max_length=50)
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = Field(None, max_length=2000)
