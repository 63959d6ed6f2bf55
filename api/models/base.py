# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base models with common configuration and identifier helpers.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict
from bson import ObjectId


def generate_object_id() -> str:
    """Generate a new MongoDB ObjectId as string."""
    return str(ObjectId())


class KarinModel(BaseModel):
    """Base for process sub-documents; enums stay typed so mapping tables can key on them."""

    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=True,
    )


class BaseEntity(KarinModel):
    """Base entity with common fields for company-scoped aggregates."""

    id: str = Field(default_factory=generate_object_id, description="Unique identifier")
    company_id: str = Field(..., description="Company scope identifier")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")
    updated_by: Optional[str] = Field(None, description="User ID who last updated this entity")
    version: int = Field(default=0, ge=0, description="Optimistic concurrency version")

    def update_timestamp(self, updated_by: str) -> None:
        """Update the timestamp and updated_by fields."""
        self.updated_at = datetime.utcnow()
        self.updated_by = updated_by
