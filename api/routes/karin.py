# SPDX-License-Identifier: Apache-2.0

"""
Ley Karin process endpoints.

Thin HTTP layer over the process engine: every view resolves the acting
user, calls one engine operation and renders the HAL process resource.
Engine errors propagate to the error handler middleware.
"""

import logging

from flask import current_app, jsonify
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace

from models.entities import NotificationRecord, generate_record_id
from models.requests import (
    AdvanceStageRequest,
    AllocateFolioRequest,
    AuthorityDateRequest,
    AuthorityPath,
    CasePath,
    DeadlinesQuery,
    InvestigationExtensionRequest,
    MeasurePath,
    MeasureRequest,
    MeasureStatusRequest,
    NotificationRecordPath,
    PrecautionaryMeasuresRequest,
    RecordNotificationRequest,
    RegisterDocumentRequest,
    ReportRevisionRequest,
    SubsanationRequest,
    TestimonyPath,
    TestimonyRequest,
    TestimonyStatusRequest,
    UpdateNotificationStatusRequest,
)
from utils.context import get_user_context

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

karin_tag = Tag(name="Ley Karin", description="Ley Karin investigation process")
karin_bp = APIBlueprint(
    'karin',
    __name__,
    url_prefix='/api/companies/<company_id>/cases/<case_id>/karin',
    abp_tags=[karin_tag]
)


def _engine():
    return current_app.karin_engine


def _hal():
    return current_app.hal_formatter


def _process_response(company_id: str, case_id: str, status: int = 200):
    """Render the process resource with its state-dependent links."""
    engine = _engine()
    case = engine.get_case(company_id, case_id)
    stage_info = engine.stage_info(case) if case.karin_process else None
    return jsonify(_hal().format_process(case, stage_info)), status


@karin_bp.get('')
def get_process(path: CasePath):
    """Get the Ley Karin process of a case with its available actions."""
    get_user_context(path.company_id)
    return _process_response(path.company_id, path.case_id)


@karin_bp.post('/start')
def start_process(path: CasePath):
    """Start the Ley Karin process of a case flagged as a Ley Karin case."""
    user = get_user_context(path.company_id)
    _engine().start_process(path.company_id, path.case_id, user.user_id)
    return _process_response(path.company_id, path.case_id, 201)


@karin_bp.get('/stage')
def get_stage(path: CasePath):
    """Current stage with its label, progress and unmet requirements."""
    get_user_context(path.company_id)
    stage_info = _engine().get_stage_info(path.company_id, path.case_id)
    return jsonify(_hal().format_stage(path.company_id, path.case_id, stage_info))


@karin_bp.post('/advance')
def advance_stage(path: CasePath, body: AdvanceStageRequest):
    """
    Advance the process to its next stage.

    Returns 422 with the unmet requirements when the compliance gate blocks
    the transition.
    """
    user = get_user_context(path.company_id)
    with tracer.start_as_current_span("karin.advance") as span:
        span.set_attributes({"karin.case_id": path.case_id, "user.id": user.user_id})
        _engine().advance_stage(
            path.company_id,
            path.case_id,
            user.user_id,
            notes=body.notes,
            additional_data=body.additional_data or None
        )
    return _process_response(path.company_id, path.case_id)


@karin_bp.get('/deadlines')
def get_deadlines(path: CasePath, query: DeadlinesQuery):
    """Deadlines of the current stage."""
    get_user_context(path.company_id)
    deadlines = _engine().get_active_deadlines(path.company_id, path.case_id, now=query.now)
    return jsonify(_hal().format_deadlines(path.company_id, path.case_id, deadlines))


@karin_bp.get('/timeline')
def get_timeline(path: CasePath, query: DeadlinesQuery):
    """Every statutory milestone of the case, completed ones included."""
    get_user_context(path.company_id)
    deadlines = _engine().get_deadline_timeline(path.company_id, path.case_id, now=query.now)
    return jsonify(_hal().format_deadlines(path.company_id, path.case_id, deadlines, resource="timeline"))


@karin_bp.get('/compliance')
def get_compliance(path: CasePath, query: DeadlinesQuery):
    """Compliance checklist with completion statistics."""
    get_user_context(path.company_id)
    status = _engine().get_compliance_status(path.company_id, path.case_id, now=query.now)
    return jsonify(_hal().format_compliance(path.company_id, path.case_id, status))


@karin_bp.post('/notifications/<authority>')
def record_notification(path: AuthorityPath, body: RecordNotificationRequest):
    """Append a formal notification to the authority ledger."""
    user = get_user_context(path.company_id)
    record = NotificationRecord(
        id=body.id or generate_record_id(),
        date=body.date,
        method=body.method,
        contact_person=body.contact_person,
        tracking_number=body.tracking_number,
        document_id=body.document_id,
        proof_of_delivery_id=body.proof_of_delivery_id,
        status=body.status,
        notified_by=user.user_id,
        notified_by_name=user.name,
    )
    _engine().record_notification(path.company_id, path.case_id, path.authority, record)
    return _process_response(path.company_id, path.case_id, 201)


@karin_bp.post('/notifications/<authority>/<record_id>/status')
def update_notification_status(path: NotificationRecordPath, body: UpdateNotificationStatusRequest):
    """Move an authority notification forward in its status flow."""
    user = get_user_context(path.company_id)
    _engine().update_notification_status(
        path.company_id,
        path.case_id,
        path.authority,
        path.record_id,
        body.status,
        user.user_id,
        response_date=body.response_date,
        response_document_id=body.response_document_id
    )
    return _process_response(path.company_id, path.case_id)


@karin_bp.post('/folios')
def allocate_folio(path: CasePath, body: AllocateFolioRequest):
    """Allocate the next folio for a document type."""
    get_user_context(path.company_id)
    folio = _engine().allocate_folio(path.company_id, path.case_id, body.document_type)
    record = {"document_type": body.document_type, "folio_number": folio}
    return jsonify(_hal().format_record(path.company_id, path.case_id, record, "folios")), 201


@karin_bp.post('/rights')
def inform_rights(path: CasePath):
    """Record that the complainant was informed of their rights."""
    user = get_user_context(path.company_id)
    _engine().inform_rights(path.company_id, path.case_id, user.user_id)
    return _process_response(path.company_id, path.case_id)


@karin_bp.post('/subsanation')
def request_subsanation(path: CasePath, body: SubsanationRequest):
    """Ask the complainant to complete the complaint."""
    user = get_user_context(path.company_id)
    _engine().request_subsanation(path.company_id, path.case_id, user.user_id, body.items, notes=body.notes)
    return _process_response(path.company_id, path.case_id)


@karin_bp.post('/subsanation/received')
def receive_subsanation(path: CasePath):
    user = get_user_context(path.company_id)
    _engine().receive_subsanation(path.company_id, path.case_id, user.user_id)
    return _process_response(path.company_id, path.case_id)


@karin_bp.post('/precautionary-measures')
def apply_precautionary_measures(path: CasePath, body: PrecautionaryMeasuresRequest):
    """Record the precautionary measures selected from the catalogue."""
    user = get_user_context(path.company_id)
    _engine().apply_precautionary_measures(
        path.company_id, path.case_id, user.user_id, body.measure_ids, justification=body.justification
    )
    return _process_response(path.company_id, path.case_id)


@karin_bp.post('/testimonies')
def add_testimony(path: CasePath, body: TestimonyRequest):
    """Register a testimony; it receives its own folio."""
    user = get_user_context(path.company_id)
    testimony = _engine().add_testimony(
        path.company_id,
        path.case_id,
        user.user_id,
        person_name=body.person_name,
        interview_date=body.interview_date,
        interviewer=body.interviewer,
        person_type=body.person_type,
        summary=body.summary
    )
    return jsonify(_hal().format_record(
        path.company_id, path.case_id, testimony.model_dump(mode="json"), f"testimonies/{testimony.id}"
    )), 201


@karin_bp.post('/testimonies/<testimony_id>/status')
def update_testimony_status(path: TestimonyPath, body: TestimonyStatusRequest):
    user = get_user_context(path.company_id)
    _engine().update_testimony_status(path.company_id, path.case_id, user.user_id, path.testimony_id, body.status)
    return _process_response(path.company_id, path.case_id)


@karin_bp.post('/measures')
def add_measure(path: CasePath, body: MeasureRequest):
    """Adopt a corrective measure."""
    user = get_user_context(path.company_id)
    measure = _engine().add_measure(
        path.company_id,
        path.case_id,
        user.user_id,
        body.description,
        responsible=body.responsible,
        ordered_by_dt=body.ordered_by_dt
    )
    return jsonify(_hal().format_record(
        path.company_id, path.case_id, measure.model_dump(mode="json"), f"measures/{measure.id}"
    )), 201


@karin_bp.post('/measures/<measure_id>/status')
def update_measure_status(path: MeasurePath, body: MeasureStatusRequest):
    user = get_user_context(path.company_id)
    _engine().update_measure_status(path.company_id, path.case_id, user.user_id, path.measure_id, body.status)
    return _process_response(path.company_id, path.case_id)


@karin_bp.post('/report-revisions')
def record_report_revision(path: CasePath, body: ReportRevisionRequest):
    """Record an internal review of the report; approval unlocks the approval stage."""
    user = get_user_context(path.company_id)
    _engine().record_report_revision(path.company_id, path.case_id, user.user_id, body.status, comments=body.comments)
    return _process_response(path.company_id, path.case_id, 201)


@karin_bp.post('/investigation/extension')
def extend_investigation(path: CasePath, body: InvestigationExtensionRequest):
    user = get_user_context(path.company_id)
    _engine().extend_investigation(path.company_id, path.case_id, user.user_id, body.reason)
    return _process_response(path.company_id, path.case_id)


@karin_bp.post('/investigation/complete')
def complete_investigation(path: CasePath):
    user = get_user_context(path.company_id)
    _engine().complete_investigation(path.company_id, path.case_id, user.user_id)
    return _process_response(path.company_id, path.case_id)


@karin_bp.post('/dt-submission')
def record_dt_submission(path: CasePath, body: AuthorityDateRequest):
    """Record the submission of the final report to the DT."""
    user = get_user_context(path.company_id)
    _engine().record_dt_submission(path.company_id, path.case_id, user.user_id, date=body.date)
    return _process_response(path.company_id, path.case_id)


@karin_bp.post('/dt-resolution')
def record_dt_resolution(path: CasePath, body: AuthorityDateRequest):
    """Record the DT resolution date."""
    user = get_user_context(path.company_id)
    _engine().record_dt_resolution(path.company_id, path.case_id, user.user_id, date=body.date)
    return _process_response(path.company_id, path.case_id)


@karin_bp.post('/documents')
def register_document(path: CasePath, body: RegisterDocumentRequest):
    """Register a document of the current stage with a fresh folio."""
    user = get_user_context(path.company_id)
    document = _engine().register_document(
        path.company_id,
        path.case_id,
        user.user_id,
        body.document_type,
        body.title,
        description=body.description
    )
    return jsonify(_hal().format_record(
        path.company_id, path.case_id, document.model_dump(mode="json"), f"documents/{document.id}"
    )), 201


@karin_bp.get('/history')
def get_history(path: CasePath):
    """Audit trail of the process, newest first."""
    get_user_context(path.company_id)
    entries = _engine().get_audit_history(path.company_id, path.case_id)
    return jsonify(_hal().builder.build_collection_response(
        entries,
        f"/api/companies/{path.company_id}/cases/{path.case_id}/karin/history",
        rel="history"
    ))
