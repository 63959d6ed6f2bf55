# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Case store backed by MongoDB.

The process sub-document is written with a compare-and-set on the case
version, so two concurrent writers can never silently overwrite each other.
"""

import logging
from typing import Any, Dict

from opentelemetry import trace

from domain.errors import ConcurrentModificationError, NotFoundError
from domain.transitions import require_process
from models.entities import Case, KarinProcess
from .mongodb import MongoDBService

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class MongoCaseStore:
    """Loads case views and saves the Ley Karin process with optimistic concurrency."""

    collection_name = "cases"

    def __init__(self, mongo_service: MongoDBService):
        self.mongo_service = mongo_service

    def load_case(self, company_id: str, case_id: str) -> Case:
        """
        Load the case view the engine works on.

        Raises:
            NotFoundError: If the case does not exist for the company
        """
        with tracer.start_as_current_span("case_store.load") as span:
            span.set_attributes({"karin.company_id": company_id, "karin.case_id": case_id})
            document = self.mongo_service.find_one_by_company(self.collection_name, company_id, case_id)
            if document is None:
                raise NotFoundError("Case", case_id)
            return self._to_case(document)

    def load_karin_process(self, company_id: str, case_id: str) -> KarinProcess:
        return require_process(self.load_case(company_id, case_id))

    def save_karin_process(
        self,
        company_id: str,
        case_id: str,
        process: KarinProcess,
        expected_version: int,
        user_id: str
    ) -> int:
        """
        Persist the process if the stored case is still at expected_version.

        Returns:
            The new case version

        Raises:
            ConcurrentModificationError: If the case changed since it was loaded
            NotFoundError: If the case no longer exists
        """
        with tracer.start_as_current_span("case_store.save_karin_process") as span:
            span.set_attributes({
                "karin.case_id": case_id,
                "karin.stage": process.stage.value,
                "karin.expected_version": expected_version
            })

            updates = {
                "karinProcess": process.model_dump(mode="json"),
                "status": process.status_label,
            }
            try:
                new_version = self.mongo_service.update_if_version(
                    self.collection_name, company_id, case_id, expected_version, updates, user_id
                )
            except ValueError:
                raise NotFoundError("Case", case_id)

            if new_version is None:
                if self.mongo_service.find_one_by_company(self.collection_name, company_id, case_id) is None:
                    raise NotFoundError("Case", case_id)
                span.set_attribute("karin.conflict", True)
                raise ConcurrentModificationError(case_id, expected_version)

            return new_version

    def _to_case(self, document: Dict[str, Any]) -> Case:
        process = document.get("karinProcess")
        return Case(
            id=document["id"],
            company_id=document["companyId"],
            code=document.get("code"),
            is_karin_case=bool(document.get("isKarinCase", False)),
            karin_process=KarinProcess.model_validate(process) if process else None,
            investigation_plan=document.get("investigationPlan"),
            interviews=document.get("interviews") or [],
            preliminary_report=document.get("preliminaryReport"),
            final_report=document.get("finalReport"),
            evidences=document.get("evidences") or [],
            created_at=document["createdAt"],
            updated_at=document.get("updatedAt"),
            updated_by=document.get("updatedBy"),
            version=int(document.get("version") or 0),
        )
