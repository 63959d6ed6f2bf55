# SPDX-License-Identifier: Apache-2.0

"""
Statutory terms and deadline computation.
"""

import logging
import os
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Optional, TypeVar, Union
from pydantic import BaseModel, Field

from models.enums import DayCountMode, Stage
from .business_calendar import BusinessCalendar, CHILEAN_HOLIDAYS

logger = logging.getLogger(__name__)

DateLike = TypeVar('DateLike', date, datetime)


@dataclass(frozen=True)
class StatutoryTerm:
    """Day count and counting mode of one statutory term."""
    days: int
    mode: DayCountMode = DayCountMode.ADMINISTRATIVE


DEFAULT_TERM = StatutoryTerm(3)

# Keys are stage values plus a few statutory terms that are not stages.
STATUTORY_TERMS: Dict[str, StatutoryTerm] = {
    Stage.COMPLAINT_FILED.value: StatutoryTerm(1),
    Stage.RECEPTION.value: StatutoryTerm(3),
    Stage.SUBSANATION.value: StatutoryTerm(5),
    Stage.DECISION_TO_INVESTIGATE.value: StatutoryTerm(3),
    Stage.INVESTIGATION.value: StatutoryTerm(30),
    Stage.REPORT_CREATION.value: StatutoryTerm(5),
    Stage.REPORT_APPROVAL.value: StatutoryTerm(3),
    Stage.DT_NOTIFICATION.value: StatutoryTerm(10),
    Stage.SUSESO_NOTIFICATION.value: StatutoryTerm(10),
    Stage.DT_SUBMISSION.value: StatutoryTerm(2),
    Stage.DT_RESOLUTION.value: StatutoryTerm(30),
    Stage.MEASURES_ADOPTION.value: StatutoryTerm(15, DayCountMode.CALENDAR),
    Stage.CLOSED.value: StatutoryTerm(0),
    'labor_department': StatutoryTerm(15),
    'sanctions': StatutoryTerm(10),
    'false_claim': StatutoryTerm(10),
    'retaliation_review': StatutoryTerm(5),
}


class StatuteConfig(BaseModel):
    """Configurable statute parameters."""

    precautionary_measures_days: int = Field(3, ge=0, description="Business days to adopt precautionary measures")
    investigation_extension_days: int = Field(60, ge=30, description="Investigation term once extended")
    holidays: List[date] = Field(default_factory=list, description="Dates excluded from business days")

    @classmethod
    def from_env(cls) -> "StatuteConfig":
        """Build the statute parameters from KARIN_* environment variables."""
        holidays: List[date] = []
        raw = os.getenv('KARIN_HOLIDAYS', '')
        for item in raw.split(','):
            item = item.strip()
            if item:
                holidays.append(date.fromisoformat(item))
        if os.getenv('KARIN_USE_CHILEAN_HOLIDAYS', 'false').lower() == 'true':
            holidays.extend(CHILEAN_HOLIDAYS)

        return cls(
            precautionary_measures_days=int(os.getenv('KARIN_PRECAUTIONARY_MEASURES_DAYS', '3')),
            investigation_extension_days=int(os.getenv('KARIN_INVESTIGATION_EXTENSION_DAYS', '60')),
            holidays=holidays,
        )

    def build_calendar(self) -> BusinessCalendar:
        return BusinessCalendar(self.holidays)


class DeadlineCalculator:
    """Maps a stage and its start date to the statutory deadline."""

    def __init__(self, calendar: Optional[BusinessCalendar] = None, statute: Optional[StatuteConfig] = None):
        self.statute = statute or StatuteConfig()
        self.calendar = calendar or self.statute.build_calendar()

    def term_for(self, stage: Union[Stage, str], extended: bool = False) -> StatutoryTerm:
        """
        Statutory term of a stage or statutory key.

        Unknown keys fall back to three business days.
        """
        key = stage.value if isinstance(stage, Stage) else str(stage)

        if key == Stage.PRECAUTIONARY_MEASURES.value:
            return StatutoryTerm(self.statute.precautionary_measures_days)
        if key == Stage.INVESTIGATION.value and extended:
            return StatutoryTerm(self.statute.investigation_extension_days)

        term = STATUTORY_TERMS.get(key)
        if term is None:
            logger.warning(
                "No statutory term for stage, using default",
                extra={"stage": key, "default_days": DEFAULT_TERM.days}
            )
            return DEFAULT_TERM
        return term

    def deadline_for(self, stage: Union[Stage, str], start: DateLike, extended: bool = False) -> DateLike:
        """Deadline of a stage entered on start."""
        term = self.term_for(stage, extended)
        return self.calendar.add_business_days(start, term.days, term.mode)
