# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for the deadline tracker.
"""

from datetime import datetime

from domain.tracker import DeadlineTracker
from models.enums import DeadlineStatus, Stage

from conftest import MONDAY


def _by_key(deadlines):
    return {deadline.key: deadline for deadline in deadlines}


class TestDeadlineTracker:
    """Test milestone status, urgency and progress."""

    def test_reception_active(self, case_factory, calculator):
        tracker = DeadlineTracker(calculator)
        case = case_factory(Stage.RECEPTION)

        reception = _by_key(tracker.track(case, datetime(2024, 3, 5, 9, 0)))["reception"]

        assert reception.status == DeadlineStatus.ACTIVE
        assert reception.end_date == datetime(2024, 3, 7, 9, 0)
        assert reception.days_total == 3
        assert reception.days_elapsed == 1
        assert reception.days_remaining == 2
        assert reception.progress_percent == 33
        assert not reception.is_urgent

    def test_reception_urgent_on_last_day(self, case_factory, calculator):
        tracker = DeadlineTracker(calculator)

        reception = _by_key(tracker.track(case_factory(Stage.RECEPTION), datetime(2024, 3, 6, 9, 0)))["reception"]

        assert reception.days_remaining == 1
        assert reception.is_urgent

    def test_reception_overdue(self, case_factory, calculator):
        tracker = DeadlineTracker(calculator)
        case = case_factory(Stage.RECEPTION)
        now = datetime(2024, 3, 11, 9, 0)

        reception = _by_key(tracker.track(case, now))["reception"]

        assert reception.status == DeadlineStatus.OVERDUE
        assert reception.days_remaining == -2
        assert reception.progress_percent == 100
        assert reception.is_urgent
        assert tracker.has_overdue(case, now)

    def test_active_deadlines_only_current_stage(self, case_factory, calculator):
        tracker = DeadlineTracker(calculator)

        active = tracker.active_deadlines(case_factory(Stage.RECEPTION), datetime(2024, 3, 5, 9, 0))

        assert [deadline.key for deadline in active] == ["reception"]

    def test_subsanation_keeps_reception_active(self, case_factory, calculator):
        tracker = DeadlineTracker(calculator)

        active = tracker.active_deadlines(case_factory(Stage.SUBSANATION), datetime(2024, 3, 5, 9, 0))

        assert [deadline.key for deadline in active] == ["reception"]

    def test_past_and_future_milestones(self, case_factory, calculator):
        tracker = DeadlineTracker(calculator)

        deadlines = _by_key(tracker.track(case_factory(Stage.INVESTIGATION), datetime(2024, 3, 12, 9, 0)))

        assert deadlines["reception"].status == DeadlineStatus.COMPLETED
        assert deadlines["precautionary_measures"].status == DeadlineStatus.COMPLETED
        assert deadlines["investigation"].status == DeadlineStatus.ACTIVE
        assert deadlines["dt_notification"].status == DeadlineStatus.PENDING
        assert deadlines["measures_adoption"].status == DeadlineStatus.PENDING
        assert not deadlines["reception"].is_urgent

    def test_investigation_urgency_threshold(self, case_factory, calculator):
        tracker = DeadlineTracker(calculator)

        investigation = _by_key(
            tracker.track(case_factory(Stage.INVESTIGATION), datetime(2024, 4, 9, 9, 0))
        )["investigation"]

        assert investigation.end_date == datetime(2024, 4, 15, 9, 0)
        assert investigation.days_remaining == 4
        assert investigation.days_elapsed == 26
        assert investigation.progress_percent == 87
        assert investigation.is_urgent

    def test_extended_investigation(self, case_factory, calculator):
        tracker = DeadlineTracker(calculator)
        case = case_factory(Stage.INVESTIGATION, investigation_extended=True)

        investigation = _by_key(tracker.track(case, datetime(2024, 4, 9, 9, 0)))["investigation"]

        assert investigation.days_total == 60
        assert investigation.end_date == datetime(2024, 5, 27, 9, 0)
        assert not investigation.is_urgent

    def test_investigation_active_during_report_stages(self, case_factory, calculator):
        tracker = DeadlineTracker(calculator)

        active = tracker.active_deadlines(case_factory(Stage.REPORT_APPROVAL), datetime(2024, 3, 12, 9, 0))

        assert [deadline.key for deadline in active] == ["investigation"]

    def test_measures_adoption_calendar_days(self, case_factory, calculator):
        tracker = DeadlineTracker(calculator)
        case = case_factory(Stage.MEASURES_ADOPTION, dt_resolution_date=MONDAY)

        measures = _by_key(tracker.track(case, datetime(2024, 3, 18, 9, 0)))["measures_adoption"]

        assert measures.end_date == datetime(2024, 3, 19, 9, 0)
        assert measures.days_remaining == 1
        assert measures.days_elapsed == 14
        assert measures.progress_percent == 93
        assert measures.is_urgent

    def test_track_is_read_only(self, case_factory, calculator):
        tracker = DeadlineTracker(calculator)
        case = case_factory(Stage.RECEPTION)
        before = case.model_dump()

        tracker.track(case, datetime(2024, 3, 11, 9, 0))

        assert case.model_dump() == before

    def test_reception_starts_at_case_creation_without_complaint_date(self, case_factory, calculator):
        tracker = DeadlineTracker(calculator)
        created = datetime(2024, 3, 1, 9, 0)
        case = case_factory(
            Stage.INVESTIGATION,
            case_fields={"created_at": created},
            stage_dates={Stage.INVESTIGATION: MONDAY},
        )

        reception = _by_key(tracker.track(case, datetime(2024, 3, 5, 9, 0)))["reception"]

        assert reception.start_date == created
        assert reception.status == DeadlineStatus.COMPLETED
