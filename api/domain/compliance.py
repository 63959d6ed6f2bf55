# SPDX-License-Identifier: Apache-2.0

"""
Compliance gate: per-stage requirements that must hold before a case may
leave the stage.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple, Union

from models.entities import Case, KarinProcess
from models.enums import Stage
from . import stages


@dataclass(frozen=True)
class Requirement:
    """A named predicate over the case and its process."""
    description: str
    check: Callable[[Case, KarinProcess], bool]


def _all_testimonies_signed(case: Case, process: KarinProcess) -> bool:
    return all(t.has_signed for t in process.testimonies)


STAGE_REQUIREMENTS: Dict[Stage, Tuple[Requirement, ...]] = {
    Stage.RECEPTION: (
        Requirement(
            "Marcar que se informó al trabajador sobre sus derechos legales",
            lambda case, p: p.informed_rights
        ),
    ),
    Stage.SUBSANATION: (
        Requirement(
            "Registrar la recepción de la subsanación del denunciante",
            lambda case, p: p.subsanation_received_date is not None
        ),
    ),
    Stage.PRECAUTIONARY_MEASURES: (
        Requirement(
            "Definir e implementar medidas precautorias",
            lambda case, p: len(p.precautionary_measures) > 0
        ),
    ),
    Stage.DECISION_TO_INVESTIGATE: (
        Requirement(
            "Crear un plan de investigación detallado",
            lambda case, p: case.investigation_plan is not None
        ),
    ),
    Stage.INVESTIGATION: (
        Requirement(
            "Registrar al menos una entrevista",
            lambda case, p: len(case.interviews) > 0
        ),
        Requirement("Firmar todos los testimonios pendientes", _all_testimonies_signed),
    ),
    Stage.REPORT_CREATION: (
        Requirement(
            "Crear informe preliminar con hallazgos",
            lambda case, p: case.preliminary_report is not None
        ),
    ),
    Stage.REPORT_APPROVAL: (
        Requirement(
            "Aprobar el informe preliminar en revisión interna",
            lambda case, p: p.report_approved
        ),
    ),
    Stage.DT_NOTIFICATION: (
        Requirement(
            "Notificar formalmente a la Dirección del Trabajo",
            lambda case, p: p.dt_initial_notification_date is not None
        ),
    ),
    Stage.SUSESO_NOTIFICATION: (
        Requirement(
            "Notificar a SUSESO o Mutualidad",
            lambda case, p: p.suseso_initial_notification_date is not None
        ),
    ),
    Stage.INVESTIGATION_COMPLETE: (
        Requirement(
            "Marcar la investigación como completada",
            lambda case, p: p.investigation_completed
        ),
    ),
    Stage.FINAL_REPORT: (
        Requirement(
            "Crear informe final con conclusiones",
            lambda case, p: case.final_report is not None
        ),
    ),
    Stage.CLOSED: (
        Requirement("El caso está cerrado y no admite más avances", lambda case, p: False),
    ),
}


class ComplianceGate:
    """Decides whether a case may advance out of a stage."""

    def __init__(self, requirements: Dict[Stage, Tuple[Requirement, ...]] = None):
        self.requirements = requirements if requirements is not None else STAGE_REQUIREMENTS

    def unmet_requirements(self, stage: Union[Stage, str], case: Case) -> List[str]:
        """Descriptions of the requirements of stage that the case does not meet."""
        stage = stages.to_stage(stage)
        process = case.karin_process or KarinProcess()
        return [
            requirement.description
            for requirement in self.requirements.get(stage, ())
            if not requirement.check(case, process)
        ]

    def can_advance(self, stage: Union[Stage, str], case: Case) -> bool:
        """Stages without requirements always allow advancement."""
        return not self.unmet_requirements(stage, case)
