# SPDX-License-Identifier: Apache-2.0

"""
Ley Karin compliance checklist.

Items are recomputed from the case on every read. Statistics only count
items whose stage has been reached, so future obligations never lower the
completion percentage.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from models.entities import Case, KarinProcess
from models.enums import Priority, Stage
from models.responses import ComplianceItem, ComplianceStats, ComplianceStatus
from . import stages
from .tracker import DeadlineTracker
from .transitions import require_process


@dataclass(frozen=True)
class ChecklistEntry:
    id: str
    title: str
    description: str
    stage: Stage
    deadline_description: str
    category: str
    check: Callable[[Case, KarinProcess], bool]
    required: bool = True
    priority: Priority = Priority.HIGH


CHECKLIST: List[ChecklistEntry] = [
    ChecklistEntry(
        "inform_rights", "Informar derechos al denunciante",
        "Informar al trabajador sobre sus derechos legales y el procedimiento",
        Stage.RECEPTION, "Al momento de la recepción", "Procesamiento",
        lambda case, p: p.informed_rights,
    ),
    ChecklistEntry(
        "dt_initial_notification", "Notificación inicial a la DT",
        "Notificar a la Dirección del Trabajo la recepción de la denuncia",
        Stage.RECEPTION, "3 días hábiles desde la recepción", "Notificaciones",
        lambda case, p: p.dt_initial_notification_date is not None,
    ),
    ChecklistEntry(
        "precautionary_evaluation", "Evaluación de medidas precautorias",
        "Evaluar y aplicar medidas de resguardo para el denunciante",
        Stage.PRECAUTIONARY_MEASURES, "3 días hábiles desde la recepción", "Protección",
        lambda case, p: p.precautionary_measures_evaluated or bool(p.precautionary_measures),
    ),
    ChecklistEntry(
        "investigation_plan", "Plan de investigación",
        "Definir el plan de investigación con diligencias y plazos",
        Stage.DECISION_TO_INVESTIGATE, "Antes de iniciar la investigación", "Investigación",
        lambda case, p: case.investigation_plan is not None,
    ),
    ChecklistEntry(
        "interviews_completion", "Entrevistas y testimonios",
        "Realizar entrevistas y obtener la firma de todos los testimonios",
        Stage.INVESTIGATION, "Dentro del plazo de investigación", "Investigación",
        lambda case, p: bool(case.interviews) and all(t.has_signed for t in p.testimonies),
    ),
    ChecklistEntry(
        "preliminary_report", "Informe preliminar",
        "Redactar el informe preliminar con los hallazgos",
        Stage.REPORT_CREATION, "5 días hábiles", "Documentación",
        lambda case, p: case.preliminary_report is not None,
    ),
    ChecklistEntry(
        "report_approval", "Aprobación del informe",
        "Revisión interna y aprobación del informe preliminar",
        Stage.REPORT_APPROVAL, "3 días hábiles", "Documentación",
        lambda case, p: p.report_approved,
        priority=Priority.MEDIUM,
    ),
    ChecklistEntry(
        "suseso_notification", "Notificación a SUSESO",
        "Notificar a SUSESO o a la mutualidad cuando corresponda",
        Stage.SUSESO_NOTIFICATION, "Según corresponda", "Notificaciones",
        lambda case, p: p.suseso_initial_notification_date is not None,
        required=False, priority=Priority.MEDIUM,
    ),
    ChecklistEntry(
        "final_report", "Informe final",
        "Redactar el informe final con conclusiones y recomendaciones",
        Stage.FINAL_REPORT, "Al término de la investigación", "Documentación",
        lambda case, p: case.final_report is not None,
    ),
    ChecklistEntry(
        "dt_submission", "Envío del expediente a la DT",
        "Remitir el expediente completo a la Dirección del Trabajo",
        Stage.DT_SUBMISSION, "2 días hábiles desde la aprobación", "Notificaciones",
        lambda case, p: p.dt_submission_date is not None,
    ),
    ChecklistEntry(
        "measures_implementation", "Implementación de medidas",
        "Implementar las medidas y sanciones resueltas",
        Stage.MEASURES_ADOPTION, "15 días corridos desde la resolución de la DT", "Implementación",
        lambda case, p: p.measures_implemented,
    ),
    ChecklistEntry(
        "evidence_preservation", "Resguardo de evidencias",
        "Registrar y resguardar las evidencias del caso",
        Stage.INVESTIGATION, "Durante la investigación", "Evidencias",
        lambda case, p: bool(case.evidences),
        priority=Priority.MEDIUM,
    ),
    ChecklistEntry(
        "confidentiality", "Confidencialidad",
        "Mantener la reserva de la identidad de las partes durante todo el proceso",
        Stage.COMPLAINT_FILED, "Permanente", "Protección",
        lambda case, p: True,
    ),
]


class ComplianceChecklist:
    """Evaluates the checklist against a case."""

    def __init__(self, tracker: DeadlineTracker, entries: Optional[List[ChecklistEntry]] = None):
        self.tracker = tracker
        self.entries = entries if entries is not None else CHECKLIST

    def items(self, case: Case, now: datetime) -> List[ComplianceItem]:
        process = require_process(case)
        current = stages.to_stage(process.stage)

        items = [
            ComplianceItem(
                id=entry.id,
                title=entry.title,
                description=entry.description,
                required=entry.required,
                completed=bool(entry.check(case, process)),
                stage=entry.stage,
                deadline_description=entry.deadline_description,
                priority=entry.priority,
                category=entry.category,
            )
            for entry in self.entries
        ]
        items.append(ComplianceItem(
            id="deadline_compliance",
            title="Cumplimiento de plazos",
            description="Ningún plazo legal activo se encuentra vencido",
            required=True,
            completed=not self.tracker.has_overdue(case, now),
            stage=current,
            deadline_description="Evaluado en cada consulta",
            priority=Priority.HIGH,
            category="Cumplimiento",
        ))
        return items

    def evaluate(self, case: Case, now: datetime) -> ComplianceStatus:
        items = self.items(case, now)
        current_order = stages.order(case.karin_process.stage)
        return ComplianceStatus(items=items, stats=compute_stats(items, current_order))


def compute_stats(items: List[ComplianceItem], current_order: float) -> ComplianceStats:
    """
    Aggregate completion over active items.

    Args:
        items: Evaluated checklist items
        current_order: Stage order of the case

    Returns:
        ComplianceStats; percentage is 0 and required_percentage is 100 when
        their denominators are empty
    """
    active = [item for item in items if stages.order(item.stage) <= current_order]
    completed = [item for item in active if item.completed]
    required = [item for item in active if item.required]
    completed_required = [item for item in required if item.completed]

    return ComplianceStats(
        total=len(active),
        completed=len(completed),
        required=len(required),
        completed_required=len(completed_required),
        percentage=round(len(completed) / len(active) * 100) if active else 0,
        required_percentage=(
            round(len(completed_required) / len(required) * 100) if required else 100
        ),
        blocking_items=[item.id for item in required if not item.completed],
    )
