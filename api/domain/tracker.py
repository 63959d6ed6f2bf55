# SPDX-License-Identifier: Apache-2.0

"""
Deadline tracker: statutory milestones with elapsed and remaining days.

Breaches are detected when the tracker is read; nothing here runs on a
schedule.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import FrozenSet, List

from models.entities import Case
from models.enums import DeadlineStatus, Stage
from models.responses import Deadline
from . import stages
from .deadlines import DeadlineCalculator, StatutoryTerm
from .transitions import require_process, stage_start_date


@dataclass(frozen=True)
class Milestone:
    """Definition of one statutory milestone."""
    key: str
    title: str
    stage: Stage
    active_stages: FrozenSet[Stage]
    urgency_threshold: int


MILESTONES = (
    Milestone("reception", "Recepción de denuncia", Stage.RECEPTION,
              frozenset({Stage.RECEPTION, Stage.SUBSANATION}), 1),
    Milestone("dt_notification", "Notificación inicial a la DT", Stage.DT_NOTIFICATION,
              frozenset({Stage.DT_NOTIFICATION}), 1),
    Milestone("precautionary_measures", "Medidas precautorias", Stage.PRECAUTIONARY_MEASURES,
              frozenset({Stage.PRECAUTIONARY_MEASURES}), 1),
    Milestone("investigation", "Investigación", Stage.INVESTIGATION,
              frozenset({Stage.INVESTIGATION, Stage.REPORT_CREATION, Stage.REPORT_APPROVAL}), 5),
    Milestone("dt_submission", "Envío del expediente a la DT", Stage.DT_SUBMISSION,
              frozenset({Stage.DT_SUBMISSION}), 1),
    Milestone("measures_adoption", "Adopción de medidas", Stage.MEASURES_ADOPTION,
              frozenset({Stage.MEASURES_ADOPTION}), 3),
)

# Term of the initial DT notification, counted from reception.
DT_NOTIFICATION_TERM = StatutoryTerm(3)


class DeadlineTracker:
    """Derives milestone deadlines from the case and the current instant."""

    def __init__(self, calculator: DeadlineCalculator):
        self.calculator = calculator
        self.calendar = calculator.calendar

    def track(self, case: Case, now: datetime) -> List[Deadline]:
        """All statutory milestones of the case, in process order."""
        process = require_process(case)
        current = stages.to_stage(process.stage)
        dates = process.stage_dates

        created = stage_start_date(case, Stage.COMPLAINT_FILED)
        reception_term = self.calculator.term_for(Stage.RECEPTION)
        reception_deadline = self.calendar.add_business_days(created, reception_term.days, reception_term.mode)
        received = dates.get(Stage.RECEPTION, reception_deadline)

        investigation_start = dates.get(Stage.INVESTIGATION, received)
        investigation_term = self.calculator.term_for(Stage.INVESTIGATION, process.investigation_extended)
        investigation_deadline = self.calendar.add_business_days(
            investigation_start, investigation_term.days, investigation_term.mode
        )

        submission_start = process.report_approval_date or investigation_deadline
        submission_term = self.calculator.term_for(Stage.DT_SUBMISSION)
        submission_deadline = self.calendar.add_business_days(
            submission_start, submission_term.days, submission_term.mode
        )

        measures_start = process.dt_resolution_date or dates.get(Stage.DT_RESOLUTION, submission_deadline)

        starts = {
            "reception": (created, reception_term),
            "dt_notification": (received, DT_NOTIFICATION_TERM),
            "precautionary_measures": (received, self.calculator.term_for(Stage.PRECAUTIONARY_MEASURES)),
            "investigation": (investigation_start, investigation_term),
            "dt_submission": (submission_start, submission_term),
            "measures_adoption": (measures_start, self.calculator.term_for(Stage.MEASURES_ADOPTION)),
        }

        return [
            self._build(milestone, starts[milestone.key][0], starts[milestone.key][1], current, now)
            for milestone in MILESTONES
        ]

    def active_deadlines(self, case: Case, now: datetime) -> List[Deadline]:
        """Milestones relevant to the current stage: active or overdue ones."""
        return [
            d for d in self.track(case, now)
            if d.status in (DeadlineStatus.ACTIVE, DeadlineStatus.OVERDUE)
        ]

    def has_overdue(self, case: Case, now: datetime) -> bool:
        return any(d.status == DeadlineStatus.OVERDUE for d in self.track(case, now))

    def _build(
        self,
        milestone: Milestone,
        start: datetime,
        term: StatutoryTerm,
        current: Stage,
        now: datetime
    ) -> Deadline:
        end = self.calendar.add_business_days(start, term.days, term.mode)
        elapsed = self.calendar.count_business_days(start, now, term.mode)
        remaining = self.calendar.count_business_days(now, end, term.mode)

        if current in milestone.active_stages:
            status = DeadlineStatus.OVERDUE if remaining < 0 else DeadlineStatus.ACTIVE
        elif stages.order(current) > stages.order(milestone.stage):
            status = DeadlineStatus.COMPLETED
        else:
            status = DeadlineStatus.PENDING

        is_urgent = (
            status in (DeadlineStatus.ACTIVE, DeadlineStatus.OVERDUE)
            and remaining <= milestone.urgency_threshold
        )

        return Deadline(
            key=milestone.key,
            title=milestone.title,
            stage=milestone.stage,
            start_date=start,
            end_date=end,
            days_total=term.days,
            days_elapsed=elapsed,
            days_remaining=remaining,
            status=status,
            is_urgent=is_urgent,
            progress_percent=_progress(elapsed, term.days),
        )


def _progress(elapsed: int, total: int) -> int:
    if total <= 0:
        return 100
    return max(0, min(100, round(elapsed / total * 100)))
