# SPDX-License-Identifier: Apache-2.0

"""
Stage transitions of the Ley Karin process.

Functions here never mutate their inputs: they return an updated copy of
the process that the caller persists as one atomic write.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import ValidationError

from models.entities import Case, KarinProcess, StageHistoryEntry
from models.enums import Stage
from . import stages
from .compliance import ComplianceGate
from .deadlines import DeadlineCalculator
from .errors import ComplianceError, InvalidTransitionError, NotKarinCaseError, ValidationFailedError

# Fields owned by the transition itself; callers cannot overwrite them.
PROTECTED_FIELDS = frozenset({
    'stage', 'stage_history', 'stage_dates', 'stage_deadlines', 'status_label',
})


@dataclass
class TransitionResult:
    """Outcome of a successful stage advance."""
    process: KarinProcess
    previous_stage: Stage
    new_stage: Stage
    status_label: str
    deadline: Optional[datetime] = None


def require_process(case: Case) -> KarinProcess:
    """Process of a Karin case, or NotKarinCaseError."""
    if not case.is_karin_case:
        raise NotKarinCaseError(case.id)
    if case.karin_process is None:
        raise NotKarinCaseError(case.id, "El proceso Ley Karin no ha sido iniciado")
    return case.karin_process


def stage_start_date(case: Case, stage: Optional[Stage] = None) -> datetime:
    """
    Date the given stage (default: the current one) was entered.

    Falls back to the last history entry for the current stage and to the
    case creation date for the first stage.
    """
    process = require_process(case)
    stage = stages.to_stage(stage or process.stage)
    if stage in process.stage_dates:
        return process.stage_dates[stage]
    if stage == process.stage and process.stage_history:
        return process.stage_history[-1].date
    return case.created_at


def start_process(case: Case, now: datetime, calculator: DeadlineCalculator) -> KarinProcess:
    """Initial process of a case flagged for the Ley Karin workflow."""
    if not case.is_karin_case:
        raise NotKarinCaseError(case.id)
    if case.karin_process is not None:
        raise InvalidTransitionError(
            f"El proceso Ley Karin ya fue iniciado en etapa '{case.karin_process.stage.value}'",
            current=case.karin_process.stage.value
        )

    filed_at = case.created_at or now
    return KarinProcess(
        stage=Stage.COMPLAINT_FILED,
        stage_dates={Stage.COMPLAINT_FILED: filed_at},
        stage_deadlines={Stage.COMPLAINT_FILED: calculator.deadline_for(Stage.COMPLAINT_FILED, filed_at)},
        status_label=stages.status_label(Stage.COMPLAINT_FILED),
    )


def merge_additional_data(process: KarinProcess, additional_data: Dict[str, Any]) -> KarinProcess:
    """Apply caller-supplied process fields, validating them against the model."""
    if not additional_data:
        return process

    protected = sorted(PROTECTED_FIELDS.intersection(additional_data))
    if protected:
        raise ValidationFailedError(f"Fields cannot be set directly: {', '.join(protected)}")

    unknown = sorted(set(additional_data) - set(KarinProcess.model_fields))
    if unknown:
        raise ValidationFailedError(f"Unknown process fields: {', '.join(unknown)}")

    try:
        return KarinProcess.model_validate({**process.model_dump(), **additional_data})
    except ValidationError as e:
        raise ValidationFailedError(f"Invalid process data: {e}")


def enter_stage(
    process: KarinProcess,
    target: Stage,
    actor_id: str,
    now: datetime,
    calculator: DeadlineCalculator,
    actor_name: Optional[str] = None,
    notes: Optional[str] = None
) -> KarinProcess:
    """
    Record leaving the current stage and entering target.

    The stage date and deadline of target are written only when unset.
    """
    updated = process.model_copy(deep=True)
    previous = updated.stage

    updated.stage_history = updated.stage_history + [
        StageHistoryEntry(stage=previous, date=now, actor_id=actor_id, actor_name=actor_name, notes=notes)
    ]
    updated.stage = target

    stage_dates = dict(updated.stage_dates)
    stage_dates.setdefault(target, now)
    updated.stage_dates = stage_dates

    if target not in updated.stage_deadlines:
        deadlines = dict(updated.stage_deadlines)
        deadlines[target] = calculator.deadline_for(
            target, stage_dates[target], extended=updated.investigation_extended
        )
        updated.stage_deadlines = deadlines

    updated.status_label = stages.status_label(target)
    return updated


def advance_stage(
    case: Case,
    actor_id: str,
    now: datetime,
    calculator: DeadlineCalculator,
    gate: Optional[ComplianceGate] = None,
    notes: Optional[str] = None,
    actor_name: Optional[str] = None,
    additional_data: Optional[Dict[str, Any]] = None
) -> TransitionResult:
    """
    Advance the case to the successor of its current stage.

    Args:
        case: Case view carrying the process
        actor_id: User performing the advance
        now: Transition timestamp
        calculator: Deadline calculator for the entered stage
        gate: Compliance gate, defaults to the statutory requirements
        notes: Free-text notes stored in the history entry
        actor_name: Display name stored in the history entry
        additional_data: Stage-specific process fields merged after the move

    Returns:
        TransitionResult with the updated process copy

    Raises:
        InvalidTransitionError: If the process is closed
        ComplianceError: If the current stage requirements are unmet
    """
    process = require_process(case)
    current = stages.to_stage(process.stage)

    if stages.is_terminal(current):
        raise InvalidTransitionError(
            "El caso está cerrado; no se permiten más cambios de etapa",
            current=current.value
        )

    unmet = (gate or ComplianceGate()).unmet_requirements(current, case)
    if unmet:
        raise ComplianceError(current.value, unmet)

    target = stages.next_stage(current)
    updated = enter_stage(process, target, actor_id, now, calculator, actor_name=actor_name, notes=notes)
    updated = merge_additional_data(updated, additional_data or {})

    return TransitionResult(
        process=updated,
        previous_stage=current,
        new_stage=target,
        status_label=updated.status_label,
        deadline=updated.stage_deadlines.get(target),
    )
