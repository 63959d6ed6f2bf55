# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Read-model views and response models with HAL support.

The views are derived from the process on every read and never persisted.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from .enums import DeadlineStatus, Priority, Stage


class HalLink(BaseModel):
    """HAL link representation."""

    href: str = Field(..., description="Link URL")
    method: Optional[str] = Field(None, description="HTTP method")
    type: Optional[str] = Field(None, description="Content type")
    title: Optional[str] = Field(None, description="Link title")
    templated: Optional[bool] = Field(None, description="Whether URL is templated")


class Deadline(BaseModel):
    """Statutory milestone with its elapsed and remaining days."""

    key: str = Field(..., description="Milestone identifier")
    title: str = Field(..., description="Display title")
    stage: Stage = Field(..., description="Stage the milestone belongs to")
    start_date: datetime
    end_date: datetime
    days_total: int
    days_elapsed: int
    days_remaining: int
    status: DeadlineStatus
    is_urgent: bool = False
    progress_percent: int = Field(0, ge=0, le=100)


class ComplianceItem(BaseModel):
    """One checklist entry evaluated against the current case."""

    id: str
    title: str
    description: str
    required: bool
    completed: bool
    stage: Stage
    deadline_description: str
    priority: Priority
    category: str


class ComplianceStats(BaseModel):
    """Completion statistics over the active checklist items."""

    total: int = 0
    completed: int = 0
    required: int = 0
    completed_required: int = 0
    percentage: int = 0
    required_percentage: int = 100
    blocking_items: List[str] = Field(default_factory=list, description="Required active items still open")


class ComplianceStatus(BaseModel):
    """Checklist items plus their aggregate statistics."""

    items: List[ComplianceItem] = Field(default_factory=list)
    stats: ComplianceStats = Field(default_factory=ComplianceStats)


class StageInfo(BaseModel):
    """Current stage with its display data."""

    stage: Stage
    label: str
    description: str
    status_label: str
    progress_percent: int
    next_stage: Optional[Stage] = None
    can_advance: bool = False
    unmet_requirements: List[str] = Field(default_factory=list)
    deadline: Optional[datetime] = None


class ErrorResponse(BaseModel):
    """RFC 7807 problem document."""

    type: str = Field(..., description="Problem type URI")
    title: str = Field(..., description="Short summary")
    status: int = Field(..., description="HTTP status code")
    detail: str = Field(..., description="Explanation specific to this occurrence")
    instance: str = Field(..., description="Request path")
