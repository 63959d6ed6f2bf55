# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the Ley Karin process engine.
"""

# Base models
from .base import BaseEntity, KarinModel, generate_object_id

# Enumerations
from .enums import (
    Stage,
    DayCountMode,
    AuthorityType,
    NotificationMethod,
    NotificationRecordStatus,
    TestimonyStatus,
    MeasureStatus,
    RevisionStatus,
    DeadlineStatus,
    Priority,
    EngineEvent
)

# Core entities
from .entities import (
    Case,
    KarinProcess,
    StageHistoryEntry,
    NotificationRecord,
    Testimony,
    Measure,
    ReportRevision,
    KarinDocument,
    AuditLog,
    UserContext
)

# Read-model views
from .responses import (
    HalLink,
    Deadline,
    ComplianceItem,
    ComplianceStats,
    ComplianceStatus,
    StageInfo,
    ErrorResponse
)

__all__ = [
    "BaseEntity", "KarinModel", "generate_object_id",
    "Stage", "DayCountMode", "AuthorityType", "NotificationMethod",
    "NotificationRecordStatus", "TestimonyStatus", "MeasureStatus",
    "RevisionStatus", "DeadlineStatus", "Priority", "EngineEvent",
    "Case", "KarinProcess", "StageHistoryEntry", "NotificationRecord",
    "Testimony", "Measure", "ReportRevision", "KarinDocument",
    "AuditLog", "UserContext",
    "HalLink", "Deadline", "ComplianceItem", "ComplianceStats",
    "ComplianceStatus", "StageInfo", "ErrorResponse",
]
