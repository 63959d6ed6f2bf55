# SPDX-License-Identifier: Apache-2.0

"""
Folio allocation for registered documents.

Folios look like DECL-ABC12345-001: the first four letters of the document
type, the case code and a per-company, per-type counter. If the counter
store fails the allocator degrades to a timestamp folio instead of failing
the document registration.
"""

import logging
from datetime import datetime
from typing import Optional

from opentelemetry import trace

from domain.errors import CounterUnavailableError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

MISSING_CASE_CODE = "NOCOD"


def type_code(document_type: str) -> str:
    return document_type.strip()[:4].upper()


def format_folio(document_type: str, case_code: Optional[str], counter: int) -> str:
    return f"{type_code(document_type)}-{case_code or MISSING_CASE_CODE}-{counter:03d}"


def fallback_folio(document_type: str, now: datetime) -> str:
    return f"{type_code(document_type)}-{int(now.timestamp() * 1000)}"


class FolioAllocator:
    """Allocates folios from an atomic counter store."""

    def __init__(self, counter_store):
        self.counter_store = counter_store

    def allocate(
        self,
        company_id: str,
        case_code: Optional[str],
        document_type: str,
        now: Optional[datetime] = None
    ) -> str:
        """
        Allocate the next folio for a document type.

        Args:
            company_id: Company owning the counter
            case_code: External case code, NOCOD when missing
            document_type: Document type, e.g. DECLARATION
            now: Clock value for the degraded folio

        Returns:
            Folio string
        """
        if not document_type or not document_type.strip():
            raise ValueError("Document type is required")

        counter_key = document_type.strip().upper()
        with tracer.start_as_current_span("folio.allocate") as span:
            span.set_attributes({"karin.company_id": company_id, "karin.document_type": counter_key})
            try:
                counter = self.counter_store.increment_and_get(company_id, counter_key)
            except CounterUnavailableError as e:
                folio = fallback_folio(document_type, now or datetime.utcnow())
                span.set_attribute("karin.folio_degraded", True)
                logger.warning(
                    "Counter store unavailable, issued timestamp folio",
                    extra={
                        "company_id": company_id,
                        "document_type": counter_key,
                        "folio": folio,
                        "error": str(e)
                    }
                )
                return folio

            folio = format_folio(document_type, case_code, counter)
            span.set_attribute("karin.folio", folio)
            return folio
