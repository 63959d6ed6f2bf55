# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for stage transitions.
"""

import pytest
from datetime import datetime

from domain.errors import ComplianceError, InvalidTransitionError, NotKarinCaseError, ValidationFailedError
from domain.transitions import advance_stage, enter_stage, stage_start_date, start_process
from models.enums import Stage

from conftest import MONDAY

TUESDAY = datetime(2024, 3, 5, 10, 0)


class TestStartProcess:
    """Test creating the process of a case."""

    def test_initial_process(self, case_factory, calculator):
        process = start_process(case_factory(), TUESDAY, calculator)

        assert process.stage == Stage.COMPLAINT_FILED
        assert process.stage_dates[Stage.COMPLAINT_FILED] == MONDAY
        assert process.stage_deadlines[Stage.COMPLAINT_FILED] == datetime(2024, 3, 5, 9, 0)
        assert process.status_label == "Ley Karin - Denuncia Interpuesta"
        assert process.stage_history == []

    def test_already_started(self, case_factory, calculator):
        with pytest.raises(InvalidTransitionError):
            start_process(case_factory(Stage.RECEPTION), TUESDAY, calculator)

    def test_not_a_karin_case(self, case_factory, calculator):
        with pytest.raises(NotKarinCaseError):
            start_process(case_factory(case_fields={"is_karin_case": False}), TUESDAY, calculator)


class TestAdvanceStage:
    """Test advancing along the main line."""

    def test_advance_from_complaint(self, case_factory, calculator):
        case = case_factory(Stage.COMPLAINT_FILED)

        result = advance_stage(case, "user-1", TUESDAY, calculator, notes="Recibida", actor_name="Ana")

        assert result.previous_stage == Stage.COMPLAINT_FILED
        assert result.new_stage == Stage.RECEPTION
        assert result.process.stage_dates[Stage.RECEPTION] == TUESDAY
        assert result.deadline == datetime(2024, 3, 8, 10, 0)
        assert result.status_label == "Ley Karin - Denuncia Recibida"

        entry = result.process.stage_history[-1]
        assert entry.stage == Stage.COMPLAINT_FILED
        assert entry.actor_id == "user-1"
        assert entry.actor_name == "Ana"
        assert entry.notes == "Recibida"

    def test_input_is_not_mutated(self, case_factory, calculator):
        case = case_factory(Stage.COMPLAINT_FILED)

        advance_stage(case, "user-1", TUESDAY, calculator)

        assert case.karin_process.stage == Stage.COMPLAINT_FILED
        assert case.karin_process.stage_history == []
        assert Stage.RECEPTION not in case.karin_process.stage_dates

    def test_blocked_by_compliance(self, case_factory, calculator):
        case = case_factory(Stage.RECEPTION)

        with pytest.raises(ComplianceError) as exc_info:
            advance_stage(case, "user-1", TUESDAY, calculator)

        assert exc_info.value.stage == "reception"
        assert exc_info.value.requirements == [
            "Marcar que se informó al trabajador sobre sus derechos legales"
        ]
        assert "No se puede avanzar desde 'reception'" in exc_info.value.message

    def test_reception_goes_to_precautionary_measures(self, case_factory, calculator):
        case = case_factory(Stage.RECEPTION, informed_rights=True)
        assert advance_stage(case, "user-1", TUESDAY, calculator).new_stage == Stage.PRECAUTIONARY_MEASURES

    def test_closed_rejected(self, case_factory, calculator):
        with pytest.raises(InvalidTransitionError):
            advance_stage(case_factory(Stage.CLOSED), "user-1", TUESDAY, calculator)

    def test_requires_started_process(self, case_factory, calculator):
        with pytest.raises(NotKarinCaseError):
            advance_stage(case_factory(), "user-1", TUESDAY, calculator)

    def test_additional_data_merged(self, case_factory, calculator):
        case = case_factory(Stage.COMPLAINT_FILED)

        result = advance_stage(
            case, "user-1", TUESDAY, calculator,
            additional_data={"informed_rights": True, "rights_informed_by": "user-1"}
        )

        assert result.process.informed_rights is True
        assert result.process.rights_informed_by == "user-1"
        assert result.process.stage == Stage.RECEPTION

    @pytest.mark.parametrize("data", [
        {"stage": "closed"},
        {"stage_history": []},
        {"not_a_field": 1},
        {"informed_rights": "quizás"},
    ])
    def test_additional_data_rejected(self, case_factory, calculator, data):
        with pytest.raises(ValidationFailedError):
            advance_stage(case_factory(Stage.COMPLAINT_FILED), "user-1", TUESDAY, calculator, additional_data=data)


class TestEnterStage:
    """Test the stage-entry bookkeeping."""

    def test_keeps_existing_stage_date_and_deadline(self, case_factory, calculator):
        process = case_factory(Stage.SUBSANATION, stage_dates={
            Stage.COMPLAINT_FILED: MONDAY,
            Stage.RECEPTION: MONDAY,
            Stage.SUBSANATION: TUESDAY,
        }, stage_deadlines={Stage.RECEPTION: datetime(2024, 3, 7, 9, 0)}).karin_process

        updated = enter_stage(process, Stage.RECEPTION, "user-1", datetime(2024, 3, 6, 9, 0), calculator)

        assert updated.stage_dates[Stage.RECEPTION] == MONDAY
        assert updated.stage_deadlines[Stage.RECEPTION] == datetime(2024, 3, 7, 9, 0)
        assert updated.stage_history[-1].stage == Stage.SUBSANATION

    def test_stage_start_date_fallbacks(self, case_factory):
        case = case_factory(Stage.INVESTIGATION)
        assert stage_start_date(case) == MONDAY
        assert stage_start_date(case, Stage.REPORT_CREATION) == case.created_at
