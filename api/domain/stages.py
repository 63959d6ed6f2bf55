# SPDX-License-Identifier: Apache-2.0

"""
Stage graph of the Ley Karin process.

Single source of truth for stage ordering, successors and display text.
Every other module asks this one instead of keeping its own order table.
"""

from typing import Dict, List, Union

from models.enums import Stage
from .errors import InvalidTransitionError

STAGE_ORDER: Dict[Stage, float] = {
    Stage.COMPLAINT_FILED: 0,
    Stage.RECEPTION: 1,
    Stage.SUBSANATION: 1.5,
    Stage.PRECAUTIONARY_MEASURES: 2,
    Stage.DECISION_TO_INVESTIGATE: 3,
    Stage.INVESTIGATION: 4,
    Stage.REPORT_CREATION: 5,
    Stage.REPORT_APPROVAL: 6,
    Stage.DT_NOTIFICATION: 7,
    Stage.SUSESO_NOTIFICATION: 8,
    Stage.INVESTIGATION_COMPLETE: 9,
    Stage.FINAL_REPORT: 10,
    Stage.DT_SUBMISSION: 11,
    Stage.DT_RESOLUTION: 12,
    Stage.MEASURES_ADOPTION: 13,
    Stage.CLOSED: 14,
}

SUCCESSORS: Dict[Stage, Stage] = {
    Stage.COMPLAINT_FILED: Stage.RECEPTION,
    Stage.RECEPTION: Stage.PRECAUTIONARY_MEASURES,
    Stage.SUBSANATION: Stage.PRECAUTIONARY_MEASURES,
    Stage.PRECAUTIONARY_MEASURES: Stage.DECISION_TO_INVESTIGATE,
    Stage.DECISION_TO_INVESTIGATE: Stage.INVESTIGATION,
    Stage.INVESTIGATION: Stage.REPORT_CREATION,
    Stage.REPORT_CREATION: Stage.REPORT_APPROVAL,
    Stage.REPORT_APPROVAL: Stage.DT_NOTIFICATION,
    Stage.DT_NOTIFICATION: Stage.SUSESO_NOTIFICATION,
    Stage.SUSESO_NOTIFICATION: Stage.INVESTIGATION_COMPLETE,
    Stage.INVESTIGATION_COMPLETE: Stage.FINAL_REPORT,
    Stage.FINAL_REPORT: Stage.DT_SUBMISSION,
    Stage.DT_SUBMISSION: Stage.DT_RESOLUTION,
    Stage.DT_RESOLUTION: Stage.MEASURES_ADOPTION,
    Stage.MEASURES_ADOPTION: Stage.CLOSED,
    Stage.CLOSED: Stage.CLOSED,
}

# Side branches: stage -> the only stage it may be entered from.
BRANCH_ENTRIES: Dict[Stage, Stage] = {
    Stage.SUBSANATION: Stage.RECEPTION,
}

STAGE_LABELS: Dict[Stage, str] = {
    Stage.COMPLAINT_FILED: "Denuncia Interpuesta",
    Stage.RECEPTION: "Recepción de Denuncia",
    Stage.SUBSANATION: "Subsanación",
    Stage.PRECAUTIONARY_MEASURES: "Medidas Precautorias",
    Stage.DECISION_TO_INVESTIGATE: "Decisión de Investigar",
    Stage.INVESTIGATION: "Investigación",
    Stage.REPORT_CREATION: "Informe Preliminar",
    Stage.REPORT_APPROVAL: "Revisión Interna",
    Stage.DT_NOTIFICATION: "Notificación a DT",
    Stage.SUSESO_NOTIFICATION: "Notificación SUSESO",
    Stage.INVESTIGATION_COMPLETE: "Investigación Completa",
    Stage.FINAL_REPORT: "Informe Final",
    Stage.DT_SUBMISSION: "Envío a DT",
    Stage.DT_RESOLUTION: "Resolución DT",
    Stage.MEASURES_ADOPTION: "Adopción de Medidas",
    Stage.CLOSED: "Caso Cerrado",
}

STAGE_DESCRIPTIONS: Dict[Stage, str] = {
    Stage.COMPLAINT_FILED: "Denuncia ha sido interpuesta y registrada en el sistema.",
    Stage.RECEPTION: "Verificar completitud de la denuncia y decidir si requiere subsanación.",
    Stage.SUBSANATION: "Solicitar información adicional o correcciones al denunciante.",
    Stage.PRECAUTIONARY_MEASURES: "Evaluar y aplicar medidas de protección inmediatas si es necesario.",
    Stage.DECISION_TO_INVESTIGATE: "Decidir si procede la investigación y crear plan.",
    Stage.INVESTIGATION: "Ejecutar el plan de investigación: entrevistas, análisis de evidencias.",
    Stage.REPORT_CREATION: "Crear informe preliminar con hallazgos iniciales.",
    Stage.REPORT_APPROVAL: "Revisión interna del informe preliminar.",
    Stage.DT_NOTIFICATION: "Notificar formalmente a la Dirección del Trabajo.",
    Stage.SUSESO_NOTIFICATION: "Notificar a SUSESO o Mutualidad según corresponda.",
    Stage.INVESTIGATION_COMPLETE: "Investigación completada, preparar informe final.",
    Stage.FINAL_REPORT: "Crear informe final con conclusiones y recomendaciones.",
    Stage.DT_SUBMISSION: "Envío formal del expediente a la Dirección del Trabajo.",
    Stage.DT_RESOLUTION: "Esperar resolución de la Dirección del Trabajo.",
    Stage.MEASURES_ADOPTION: "Implementar medidas ordenadas por la DT.",
    Stage.CLOSED: "Caso cerrado y archivado.",
}

# Searchable case status shown outside the engine. Cosmetic only.
STATUS_LABELS: Dict[Stage, str] = {
    Stage.COMPLAINT_FILED: "Ley Karin - Denuncia Interpuesta",
    Stage.RECEPTION: "Ley Karin - Denuncia Recibida",
    Stage.SUBSANATION: "Ley Karin - Subsanación",
    Stage.PRECAUTIONARY_MEASURES: "Ley Karin - Medidas Precautorias",
    Stage.DECISION_TO_INVESTIGATE: "Ley Karin - Decisión de Investigar",
    Stage.INVESTIGATION: "Ley Karin - En Investigación",
    Stage.REPORT_CREATION: "Ley Karin - Creación de Informe",
    Stage.REPORT_APPROVAL: "Ley Karin - Aprobación de Informe",
    Stage.DT_NOTIFICATION: "Ley Karin - Notificación a DT",
    Stage.SUSESO_NOTIFICATION: "Ley Karin - Notificación a SUSESO",
    Stage.INVESTIGATION_COMPLETE: "Ley Karin - Investigación Completa",
    Stage.FINAL_REPORT: "Ley Karin - Informe Final",
    Stage.DT_SUBMISSION: "Ley Karin - Enviado a DT",
    Stage.DT_RESOLUTION: "Ley Karin - En Resolución DT",
    Stage.MEASURES_ADOPTION: "Ley Karin - Adopción de Medidas",
    Stage.CLOSED: "Ley Karin - Cerrado",
}


def to_stage(value: Union[Stage, str]) -> Stage:
    """Coerce a stage value, rejecting anything outside the enumeration."""
    try:
        return Stage(value)
    except ValueError:
        raise InvalidTransitionError(f"Unknown stage: {value}", current=str(value))


def order(stage: Union[Stage, str]) -> float:
    return STAGE_ORDER[to_stage(stage)]


def next_stage(stage: Union[Stage, str]) -> Stage:
    """Successor on the main line; closed maps to itself."""
    return SUCCESSORS[to_stage(stage)]


def label(stage: Union[Stage, str]) -> str:
    return STAGE_LABELS[to_stage(stage)]


def description(stage: Union[Stage, str]) -> str:
    return STAGE_DESCRIPTIONS[to_stage(stage)]


def status_label(stage: Union[Stage, str]) -> str:
    return STATUS_LABELS[to_stage(stage)]


def is_terminal(stage: Union[Stage, str]) -> bool:
    return to_stage(stage) == Stage.CLOSED


def progress_percent(stage: Union[Stage, str]) -> int:
    """Position of stage along the main line as a 0-100 percentage."""
    return round(order(stage) / STAGE_ORDER[Stage.CLOSED] * 100)


def canonical_path() -> List[Stage]:
    """Main-line stages from complaint_filed to closed, without branches."""
    path = [Stage.COMPLAINT_FILED]
    while path[-1] != Stage.CLOSED:
        path.append(SUCCESSORS[path[-1]])
    return path


def can_enter_branch(branch: Stage, current: Stage) -> bool:
    """Whether the side branch may be entered from the current stage."""
    return BRANCH_ENTRIES.get(to_stage(branch)) == to_stage(current)
