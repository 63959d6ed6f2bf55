# SPDX-License-Identifier: Apache-2.0

"""
Sub-operations of the Ley Karin process besides stage advancement.

Like the transitions, each function returns an updated copy of the process
and leaves the input untouched. A closed process is read-only.
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional, TypeVar

from models.entities import KarinDocument, KarinProcess, Measure, ReportRevision, Testimony
from models.enums import MeasureStatus, RevisionStatus, Stage, TestimonyStatus
from . import stages
from .deadlines import DeadlineCalculator
from .errors import DuplicateRecordError, InvalidTransitionError, NotFoundError, ValidationFailedError
from .ledger import check_forward, ensure_open
from .transitions import enter_stage

T = TypeVar('T')

PRECAUTIONARY_MEASURE_CATALOG: Dict[str, str] = {
    "separation": "Separación de espacios físicos",
    "schedule_redistribution": "Redistribución del tiempo de jornada",
    "reassignment": "Reasignación de tareas",
    "paid_leave": "Permiso con goce de remuneraciones",
    "accused_transfer": "Traslado de la persona denunciada",
    "psychological_support": "Atención psicológica temprana",
    "communication_restriction": "Restricción de comunicación entre las partes",
    "supervisor_assignment": "Asignación de supervisor alternativo",
    "reporting_line_change": "Cambio de línea de reporte",
}

TESTIMONY_STATUS_FLOW = (
    TestimonyStatus.DRAFT,
    TestimonyStatus.PENDING_SIGNATURE,
    TestimonyStatus.SIGNED,
    TestimonyStatus.VERIFIED,
)

MEASURE_STATUS_FLOW = (
    MeasureStatus.PENDING,
    MeasureStatus.IN_PROGRESS,
    MeasureStatus.IMPLEMENTED,
    MeasureStatus.VERIFIED,
)


def _ensure_stage(process: KarinProcess, expected: Stage, action: str) -> None:
    if process.stage != expected:
        raise InvalidTransitionError(
            f"{action} solo es posible en la etapa '{expected.value}' (etapa actual: '{process.stage.value}')",
            current=process.stage.value,
            target=expected.value
        )


def _replace_by_id(items: List[T], item_id: str, kind: str, change: Callable[[T], T]) -> List[T]:
    found = False
    result = []
    for item in items:
        if item.id == item_id:
            found = True
            item = change(item)
        result.append(item)
    if not found:
        raise NotFoundError(kind, item_id)
    return result


def inform_rights(process: KarinProcess, actor_id: str, now: datetime) -> KarinProcess:
    ensure_open(process)
    updated = process.model_copy(deep=True)
    updated.informed_rights = True
    updated.rights_informed_date = now
    updated.rights_informed_by = actor_id
    return updated


def request_subsanation(
    process: KarinProcess,
    items: List[str],
    actor_id: str,
    now: datetime,
    calculator: DeadlineCalculator,
    actor_name: Optional[str] = None,
    notes: Optional[str] = None
) -> KarinProcess:
    """Enter the subsanation branch from reception."""
    ensure_open(process)
    if not stages.can_enter_branch(Stage.SUBSANATION, process.stage):
        raise InvalidTransitionError(
            f"La subsanación solo puede solicitarse desde la recepción (etapa actual: '{process.stage.value}')",
            current=process.stage.value,
            target=Stage.SUBSANATION.value
        )
    items = [item.strip() for item in items if item and item.strip()]
    if not items:
        raise ValidationFailedError("Debe indicar al menos un antecedente a subsanar")

    updated = enter_stage(process, Stage.SUBSANATION, actor_id, now, calculator, actor_name=actor_name, notes=notes)
    updated.requires_subsanation = True
    updated.subsanation_items = items
    updated.subsanation_requested_date = now
    return updated


def receive_subsanation(process: KarinProcess, now: datetime) -> KarinProcess:
    ensure_open(process)
    _ensure_stage(process, Stage.SUBSANATION, "Registrar la subsanación")
    updated = process.model_copy(deep=True)
    updated.subsanation_received_date = now
    return updated


def apply_precautionary_measures(
    process: KarinProcess,
    measure_ids: List[str],
    justification: Optional[str],
    now: datetime
) -> KarinProcess:
    """Record the selected precautionary measures from the catalogue."""
    ensure_open(process)
    if not measure_ids:
        raise ValidationFailedError("Debe seleccionar al menos una medida precautoria")

    unknown = sorted(set(measure_ids) - set(PRECAUTIONARY_MEASURE_CATALOG))
    if unknown:
        raise ValidationFailedError(f"Medidas precautorias desconocidas: {', '.join(unknown)}")

    updated = process.model_copy(deep=True)
    updated.precautionary_measures = list(measure_ids)
    updated.precautionary_measures_justification = justification
    updated.precautionary_measures_date = now
    updated.precautionary_measures_evaluated = True
    return updated


def add_testimony(process: KarinProcess, testimony: Testimony) -> KarinProcess:
    ensure_open(process)
    if any(t.id == testimony.id for t in process.testimonies):
        raise DuplicateRecordError("Testimony", testimony.id)
    updated = process.model_copy(deep=True)
    updated.testimonies = updated.testimonies + [testimony]
    return updated


def update_testimony_status(
    process: KarinProcess,
    testimony_id: str,
    status: TestimonyStatus,
    actor_id: str,
    now: datetime
) -> KarinProcess:
    """Move a testimony forward through its signature workflow."""
    ensure_open(process)
    status = TestimonyStatus(status)

    def change(testimony: Testimony) -> Testimony:
        check_forward("Testimony", TESTIMONY_STATUS_FLOW, testimony.status, status)
        changes = {"status": status}
        if status in (TestimonyStatus.SIGNED, TestimonyStatus.VERIFIED) and testimony.signed_at is None:
            changes["signed_at"] = now
        if status == TestimonyStatus.VERIFIED:
            changes["verified_by"] = actor_id
            changes["verified_at"] = now
        return testimony.model_copy(update=changes)

    updated = process.model_copy(deep=True)
    updated.testimonies = _replace_by_id(updated.testimonies, testimony_id, "Testimony", change)
    return updated


def add_measure(process: KarinProcess, measure: Measure) -> KarinProcess:
    ensure_open(process)
    if any(m.id == measure.id for m in process.measures_adopted):
        raise DuplicateRecordError("Measure", measure.id)
    updated = process.model_copy(deep=True)
    updated.measures_adopted = updated.measures_adopted + [measure]
    return updated


def update_measure_status(
    process: KarinProcess,
    measure_id: str,
    status: MeasureStatus,
    now: datetime
) -> KarinProcess:
    ensure_open(process)
    status = MeasureStatus(status)

    def change(measure: Measure) -> Measure:
        check_forward("Measure", MEASURE_STATUS_FLOW, measure.status, status)
        changes = {"status": status}
        if status in (MeasureStatus.IMPLEMENTED, MeasureStatus.VERIFIED) and measure.implemented_at is None:
            changes["implemented_at"] = now
        if status == MeasureStatus.VERIFIED:
            changes["verified_at"] = now
        return measure.model_copy(update=changes)

    updated = process.model_copy(deep=True)
    updated.measures_adopted = _replace_by_id(updated.measures_adopted, measure_id, "Measure", change)
    return updated


def record_report_revision(process: KarinProcess, revision: ReportRevision) -> KarinProcess:
    """Append an internal review; only an approval marks the report approved."""
    ensure_open(process)
    updated = process.model_copy(deep=True)
    updated.report_revisions = updated.report_revisions + [revision]
    if revision.status == RevisionStatus.APPROVED:
        updated.report_approved = True
        updated.report_approval_date = revision.date
    else:
        updated.report_approved = False
        updated.report_approval_date = None
    return updated


def extend_investigation(
    process: KarinProcess,
    reason: str,
    now: datetime,
    calculator: DeadlineCalculator
) -> KarinProcess:
    """
    Extend the investigation term and recompute its deadline from the
    original investigation start date.
    """
    ensure_open(process)
    _ensure_stage(process, Stage.INVESTIGATION, "La prórroga de la investigación")
    if process.investigation_extended:
        raise InvalidTransitionError(
            "La investigación ya fue prorrogada",
            current=process.stage.value
        )

    updated = process.model_copy(deep=True)
    updated.investigation_extended = True
    updated.investigation_extension_date = now
    updated.investigation_extension_reason = reason

    start = updated.stage_dates.get(Stage.INVESTIGATION, now)
    deadlines = dict(updated.stage_deadlines)
    deadlines[Stage.INVESTIGATION] = calculator.deadline_for(Stage.INVESTIGATION, start, extended=True)
    updated.stage_deadlines = deadlines
    return updated


def complete_investigation(process: KarinProcess, now: datetime) -> KarinProcess:
    ensure_open(process)
    updated = process.model_copy(deep=True)
    updated.investigation_completed = True
    updated.investigation_completed_date = now
    return updated


def record_dt_submission(process: KarinProcess, date: datetime) -> KarinProcess:
    ensure_open(process)
    updated = process.model_copy(deep=True)
    updated.dt_submission_date = date
    return updated


def record_dt_resolution(process: KarinProcess, date: datetime) -> KarinProcess:
    ensure_open(process)
    updated = process.model_copy(deep=True)
    updated.dt_resolution_date = date
    return updated


def register_document(process: KarinProcess, document: KarinDocument) -> KarinProcess:
    ensure_open(process)
    updated = process.model_copy(deep=True)
    updated.documents = updated.documents + [document]
    return updated
