# SPDX-License-Identifier: Apache-2.0

"""
Ley Karin process engine facade.

Exposes the read model and the commands of the process. Every command is a
single read-modify-write of the case: load, apply a pure domain function,
save with the loaded version. A concurrent-modification conflict is retried
once from a fresh load and surfaced if it happens again.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from pymongo.errors import PyMongoError

from domain import ledger
from domain import process as process_ops
from domain import stages
from domain.checklist import ComplianceChecklist
from domain.compliance import ComplianceGate
from domain.deadlines import DeadlineCalculator
from domain.errors import ConcurrentModificationError, KarinProcessError
from domain.tracker import DeadlineTracker
from domain.transitions import advance_stage as advance_case, require_process, start_process
from models.entities import (
    Case,
    KarinDocument,
    KarinProcess,
    Measure,
    NotificationRecord,
    ReportRevision,
    Testimony,
)
from models.enums import (
    AuthorityType,
    EngineEvent,
    MeasureStatus,
    NotificationRecordStatus,
    RevisionStatus,
    Stage,
    TestimonyStatus,
)
from models.responses import ComplianceStatus, Deadline, StageInfo

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Events emitted on entering a stage, in addition to stage_advanced.
STAGE_ENTRY_EVENTS: Dict[Stage, EngineEvent] = {
    Stage.INVESTIGATION: EngineEvent.INVESTIGATION_STARTED,
    Stage.REPORT_CREATION: EngineEvent.REPORT_REQUIRED,
    Stage.REPORT_APPROVAL: EngineEvent.REPORT_REVIEW_REQUIRED,
}

Mutation = Callable[[Case, datetime], KarinProcess]


class KarinProcessEngine:
    """Read model and commands of the Ley Karin process."""

    def __init__(
        self,
        case_store,
        folio_allocator,
        dispatcher,
        actor_directory=None,
        audit_service=None,
        calculator: Optional[DeadlineCalculator] = None,
        gate: Optional[ComplianceGate] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.case_store = case_store
        self.folio_allocator = folio_allocator
        self.dispatcher = dispatcher
        self.actor_directory = actor_directory
        self.audit_service = audit_service
        self.calculator = calculator or DeadlineCalculator()
        self.gate = gate or ComplianceGate()
        self.tracker = DeadlineTracker(self.calculator)
        self.checklist = ComplianceChecklist(self.tracker)
        self.clock = clock or datetime.utcnow

    # Read model

    def get_case(self, company_id: str, case_id: str) -> Case:
        return self.case_store.load_case(company_id, case_id)

    def get_active_deadlines(self, company_id: str, case_id: str, now: Optional[datetime] = None) -> List[Deadline]:
        """Deadlines of the current stage; urgent ones also emit deadline_urgent."""
        now = now or self.clock()
        with tracer.start_as_current_span("engine.get_active_deadlines") as span:
            span.set_attributes({"karin.company_id": company_id, "karin.case_id": case_id})
            case = self.case_store.load_case(company_id, case_id)
            deadlines = self.tracker.active_deadlines(case, now)

            for deadline in deadlines:
                if deadline.is_urgent:
                    self.dispatcher.notify(EngineEvent.DEADLINE_URGENT, {
                        "company_id": company_id,
                        "case_id": case_id,
                        "case_code": case.code,
                        "milestone": deadline.key,
                        "status": deadline.status.value,
                        "days_remaining": deadline.days_remaining,
                        "end_date": deadline.end_date.isoformat(),
                    })

            span.set_attribute("karin.urgent_count", sum(1 for d in deadlines if d.is_urgent))
            return deadlines

    def get_deadline_timeline(self, company_id: str, case_id: str, now: Optional[datetime] = None) -> List[Deadline]:
        """All statutory milestones, including completed and pending ones."""
        case = self.case_store.load_case(company_id, case_id)
        return self.tracker.track(case, now or self.clock())

    def get_compliance_status(self, company_id: str, case_id: str, now: Optional[datetime] = None) -> ComplianceStatus:
        case = self.case_store.load_case(company_id, case_id)
        return self.checklist.evaluate(case, now or self.clock())

    def get_stage_info(self, company_id: str, case_id: str) -> StageInfo:
        case = self.case_store.load_case(company_id, case_id)
        return self.stage_info(case)

    def stage_info(self, case: Case) -> StageInfo:
        process = require_process(case)
        stage = process.stage
        terminal = stages.is_terminal(stage)
        unmet = [] if terminal else self.gate.unmet_requirements(stage, case)
        return StageInfo(
            stage=stage,
            label=stages.label(stage),
            description=stages.description(stage),
            status_label=stages.status_label(stage),
            progress_percent=stages.progress_percent(stage),
            next_stage=None if terminal else stages.next_stage(stage),
            can_advance=not terminal and not unmet,
            unmet_requirements=unmet,
            deadline=process.stage_deadlines.get(stage),
        )

    def get_audit_history(self, company_id: str, case_id: str) -> List[Dict[str, Any]]:
        if self.audit_service is None:
            return []
        return self.audit_service.get_entity_history(company_id, case_id)

    # Commands

    def start_process(self, company_id: str, case_id: str, actor_id: str) -> KarinProcess:
        """Create the process of a case flagged as a Ley Karin case."""
        _, process = self._apply(
            company_id, case_id, actor_id, "start",
            lambda case, now: start_process(case, now, self.calculator)
        )
        self.dispatcher.notify(EngineEvent.PROCESS_STARTED, {
            "company_id": company_id,
            "case_id": case_id,
            "stage": process.stage.value,
            "actor_id": actor_id,
        })
        return process

    def advance_stage(
        self,
        company_id: str,
        case_id: str,
        actor_id: str,
        notes: Optional[str] = None,
        additional_data: Optional[Dict[str, Any]] = None
    ) -> Stage:
        """
        Advance the case to its next stage.

        Raises:
            ComplianceError: If the current stage requirements are unmet
            InvalidTransitionError: If the process is closed
            ConcurrentModificationError: If the conflict persists after one retry
        """
        actor_name = self._display_name(company_id, actor_id)

        def mutate(case: Case, now: datetime) -> KarinProcess:
            result = advance_case(
                case, actor_id, now, self.calculator,
                gate=self.gate, notes=notes, actor_name=actor_name,
                additional_data=additional_data
            )
            return result.process

        before, process = self._apply(company_id, case_id, actor_id, "advance", mutate)
        previous = before.karin_process.stage
        new_stage = process.stage
        deadline = process.stage_deadlines.get(new_stage)

        payload = {
            "company_id": company_id,
            "case_id": case_id,
            "case_code": before.code,
            "previous_stage": previous.value,
            "new_stage": new_stage.value,
            "deadline": deadline.isoformat() if deadline else None,
            "actor_id": actor_id,
            "actor_name": actor_name,
        }
        self.dispatcher.notify(EngineEvent.STAGE_ADVANCED, payload)
        if new_stage in STAGE_ENTRY_EVENTS:
            self.dispatcher.notify(STAGE_ENTRY_EVENTS[new_stage], payload)

        logger.info(
            "Ley Karin stage advanced",
            extra={
                "case_id": case_id,
                "company_id": company_id,
                "previous_stage": previous.value,
                "new_stage": new_stage.value,
                "actor_id": actor_id
            }
        )
        return new_stage

    def record_notification(
        self,
        company_id: str,
        case_id: str,
        authority: AuthorityType,
        record: NotificationRecord
    ) -> KarinProcess:
        authority = AuthorityType(authority)
        if not record.notified_by_name:
            record = record.model_copy(
                update={"notified_by_name": self._display_name(company_id, record.notified_by)}
            )

        _, process = self._apply(
            company_id, case_id, record.notified_by, f"notify_{authority.value}",
            lambda case, now: ledger.append_notification(require_process(case), authority, record)
        )
        self.dispatcher.notify(EngineEvent.NOTIFICATION_RECORDED, {
            "company_id": company_id,
            "case_id": case_id,
            "authority": authority.value,
            "record_id": record.id,
            "method": record.method.value,
        })
        return process

    def update_notification_status(
        self,
        company_id: str,
        case_id: str,
        authority: AuthorityType,
        record_id: str,
        status: NotificationRecordStatus,
        actor_id: str,
        response_date: Optional[datetime] = None,
        response_document_id: Optional[str] = None
    ) -> KarinProcess:
        """
        Raises:
            NotFoundError: If record_id is not in the authority list
            InvalidTransitionError: If the status would move backward
        """
        _, process = self._apply(
            company_id, case_id, actor_id, "update_notification_status",
            lambda case, now: ledger.update_notification_status(
                require_process(case), authority, record_id, status,
                response_date=response_date, response_document_id=response_document_id
            )
        )
        return process

    def allocate_folio(self, company_id: str, case_id: str, document_type: str) -> str:
        case = self.case_store.load_case(company_id, case_id)
        return self.folio_allocator.allocate(company_id, case.code, document_type, now=self.clock())

    def inform_rights(self, company_id: str, case_id: str, actor_id: str) -> KarinProcess:
        return self._command(
            company_id, case_id, actor_id, "inform_rights",
            lambda case, now: process_ops.inform_rights(require_process(case), actor_id, now)
        )

    def request_subsanation(
        self,
        company_id: str,
        case_id: str,
        actor_id: str,
        items: List[str],
        notes: Optional[str] = None
    ) -> KarinProcess:
        actor_name = self._display_name(company_id, actor_id)
        return self._command(
            company_id, case_id, actor_id, "request_subsanation",
            lambda case, now: process_ops.request_subsanation(
                require_process(case), items, actor_id, now, self.calculator,
                actor_name=actor_name, notes=notes
            )
        )

    def receive_subsanation(self, company_id: str, case_id: str, actor_id: str) -> KarinProcess:
        return self._command(
            company_id, case_id, actor_id, "receive_subsanation",
            lambda case, now: process_ops.receive_subsanation(require_process(case), now)
        )

    def apply_precautionary_measures(
        self,
        company_id: str,
        case_id: str,
        actor_id: str,
        measure_ids: List[str],
        justification: Optional[str] = None
    ) -> KarinProcess:
        return self._command(
            company_id, case_id, actor_id, "apply_precautionary_measures",
            lambda case, now: process_ops.apply_precautionary_measures(
                require_process(case), measure_ids, justification, now
            )
        )

    def add_testimony(
        self,
        company_id: str,
        case_id: str,
        actor_id: str,
        person_name: str,
        interview_date: datetime,
        interviewer: str,
        person_type: str = "witness",
        summary: Optional[str] = None
    ) -> Testimony:
        """Register a draft testimony with its own folio."""
        folio = self.allocate_folio(company_id, case_id, "TESTIMONY")
        testimony = Testimony(
            person_name=person_name,
            person_type=person_type,
            interview_date=interview_date,
            interviewer=interviewer,
            summary=summary,
            folio_number=folio,
        )
        self._command(
            company_id, case_id, actor_id, "add_testimony",
            lambda case, now: process_ops.add_testimony(require_process(case), testimony)
        )
        return testimony

    def update_testimony_status(
        self,
        company_id: str,
        case_id: str,
        actor_id: str,
        testimony_id: str,
        status: TestimonyStatus
    ) -> KarinProcess:
        return self._command(
            company_id, case_id, actor_id, "update_testimony_status",
            lambda case, now: process_ops.update_testimony_status(
                require_process(case), testimony_id, status, actor_id, now
            )
        )

    def add_measure(
        self,
        company_id: str,
        case_id: str,
        actor_id: str,
        description: str,
        responsible: Optional[str] = None,
        ordered_by_dt: bool = False
    ) -> Measure:
        measure = Measure(
            description=description,
            adopted_at=self.clock(),
            responsible=responsible,
            ordered_by_dt=ordered_by_dt,
        )
        self._command(
            company_id, case_id, actor_id, "add_measure",
            lambda case, now: process_ops.add_measure(require_process(case), measure)
        )
        return measure

    def update_measure_status(
        self,
        company_id: str,
        case_id: str,
        actor_id: str,
        measure_id: str,
        status: MeasureStatus
    ) -> KarinProcess:
        return self._command(
            company_id, case_id, actor_id, "update_measure_status",
            lambda case, now: process_ops.update_measure_status(require_process(case), measure_id, status, now)
        )

    def record_report_revision(
        self,
        company_id: str,
        case_id: str,
        actor_id: str,
        status: RevisionStatus,
        comments: Optional[str] = None
    ) -> KarinProcess:
        reviewer = self._display_name(company_id, actor_id)
        return self._command(
            company_id, case_id, actor_id, "record_report_revision",
            lambda case, now: process_ops.record_report_revision(
                require_process(case),
                ReportRevision(date=now, reviewer=reviewer, comments=comments, status=status)
            )
        )

    def extend_investigation(self, company_id: str, case_id: str, actor_id: str, reason: str) -> KarinProcess:
        return self._command(
            company_id, case_id, actor_id, "extend_investigation",
            lambda case, now: process_ops.extend_investigation(require_process(case), reason, now, self.calculator)
        )

    def complete_investigation(self, company_id: str, case_id: str, actor_id: str) -> KarinProcess:
        return self._command(
            company_id, case_id, actor_id, "complete_investigation",
            lambda case, now: process_ops.complete_investigation(require_process(case), now)
        )

    def record_dt_submission(
        self, company_id: str, case_id: str, actor_id: str, date: Optional[datetime] = None
    ) -> KarinProcess:
        return self._command(
            company_id, case_id, actor_id, "record_dt_submission",
            lambda case, now: process_ops.record_dt_submission(require_process(case), date or now)
        )

    def record_dt_resolution(
        self, company_id: str, case_id: str, actor_id: str, date: Optional[datetime] = None
    ) -> KarinProcess:
        return self._command(
            company_id, case_id, actor_id, "record_dt_resolution",
            lambda case, now: process_ops.record_dt_resolution(require_process(case), date or now)
        )

    def register_document(
        self,
        company_id: str,
        case_id: str,
        actor_id: str,
        document_type: str,
        title: str,
        description: Optional[str] = None
    ) -> KarinDocument:
        """Allocate a folio and register the document in the current stage."""
        case = self.case_store.load_case(company_id, case_id)
        stage = require_process(case).stage
        folio = self.folio_allocator.allocate(company_id, case.code, document_type, now=self.clock())
        document = KarinDocument(
            document_type=document_type,
            title=title,
            description=description,
            stage=stage,
            folio_number=folio,
            author_id=actor_id,
            created_at=self.clock(),
        )
        self._command(
            company_id, case_id, actor_id, "register_document",
            lambda case, now: process_ops.register_document(require_process(case), document)
        )
        return document

    # Internals

    def _command(self, company_id: str, case_id: str, actor_id: str, action: str, mutate: Mutation) -> KarinProcess:
        _, process = self._apply(company_id, case_id, actor_id, action, mutate)
        return process

    def _apply(
        self,
        company_id: str,
        case_id: str,
        actor_id: str,
        action: str,
        mutate: Mutation
    ) -> Tuple[Case, KarinProcess]:
        """
        Load, mutate and save the process with one retry on version conflict.

        Returns:
            The case as loaded before the mutation and the saved process
        """
        with tracer.start_as_current_span(f"engine.{action}") as span:
            span.set_attributes({
                "karin.company_id": company_id,
                "karin.case_id": case_id,
                "karin.actor_id": actor_id
            })

            try:
                try:
                    case, process = self._apply_once(company_id, case_id, actor_id, mutate)
                except ConcurrentModificationError as e:
                    logger.warning(
                        "Concurrent modification, retrying",
                        extra={"case_id": case_id, "action": action, "version": e.expected_version}
                    )
                    case, process = self._apply_once(company_id, case_id, actor_id, mutate)
            except KarinProcessError as e:
                span.set_status(Status(StatusCode.ERROR, e.message))
                raise

            span.set_attribute("karin.stage", process.stage.value)
            self._audit(company_id, case_id, actor_id, action, case.karin_process, process)
            return case, process

    def _apply_once(
        self,
        company_id: str,
        case_id: str,
        actor_id: str,
        mutate: Mutation
    ) -> Tuple[Case, KarinProcess]:
        case = self.case_store.load_case(company_id, case_id)
        process = mutate(case, self.clock())
        self.case_store.save_karin_process(company_id, case_id, process, case.version, actor_id)
        return case, process

    def _audit(
        self,
        company_id: str,
        case_id: str,
        actor_id: str,
        action: str,
        before: Optional[KarinProcess],
        after: KarinProcess
    ) -> None:
        if self.audit_service is None:
            return
        try:
            self.audit_service.log_action(
                user_id=actor_id,
                company_id=company_id,
                entity="karin_process",
                entity_id=case_id,
                action=action,
                before={"stage": before.stage.value} if before else None,
                after={"stage": after.stage.value, "status": after.status_label},
            )
        except PyMongoError as e:
            logger.error(
                "Audit entry could not be written after a committed change",
                extra={"case_id": case_id, "action": action, "error": str(e)}
            )

    def _display_name(self, company_id: str, actor_id: str) -> str:
        if self.actor_directory is None:
            return actor_id
        return self.actor_directory.resolve_display_name(company_id, actor_id)
