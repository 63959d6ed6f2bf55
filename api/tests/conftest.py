# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.

The engine is exercised against in-memory stand-ins for its ports; service
adapters are tested against MagicMock clients.
"""

import os
import threading
from datetime import datetime
from typing import Dict, List, Tuple

import pytest

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'
os.environ['MONGODB_DATABASE'] = 'ley_karin_test'

from domain import stages  # noqa: E402
from domain.deadlines import DeadlineCalculator  # noqa: E402
from domain.errors import ConcurrentModificationError, CounterUnavailableError, NotFoundError  # noqa: E402
from domain.transitions import require_process  # noqa: E402
from models.entities import Case, KarinProcess  # noqa: E402
from models.enums import Stage  # noqa: E402
from services.engine import KarinProcessEngine  # noqa: E402
from services.folio import FolioAllocator  # noqa: E402

COMPANY_ID = "company-1"
CASE_ID = "case-1"
CASE_CODE = "KAR-2024-001"

# Monday; no holidays are configured in tests unless a test adds them.
MONDAY = datetime(2024, 3, 4, 9, 0)


class InMemoryCaseStore:
    """Case store with the same compare-and-set semantics as the Mongo one."""

    def __init__(self):
        self.cases: Dict[Tuple[str, str], Case] = {}
        self.saves = 0
        self._lock = threading.Lock()

    def add(self, case: Case) -> Case:
        self.cases[(case.company_id, case.id)] = case.model_copy(deep=True)
        return case

    def get(self, company_id: str = COMPANY_ID, case_id: str = CASE_ID) -> Case:
        return self.cases[(company_id, case_id)]

    def update_case(self, company_id: str = COMPANY_ID, case_id: str = CASE_ID, **fields) -> None:
        """Change case-level fields as the surrounding application would."""
        stored = self.get(company_id, case_id)
        self.cases[(company_id, case_id)] = stored.model_copy(
            update={**fields, "version": stored.version + 1}
        )

    def load_case(self, company_id: str, case_id: str) -> Case:
        case = self.cases.get((company_id, case_id))
        if case is None:
            raise NotFoundError("Case", case_id)
        return case.model_copy(deep=True)

    def load_karin_process(self, company_id: str, case_id: str) -> KarinProcess:
        return require_process(self.load_case(company_id, case_id))

    def save_karin_process(self, company_id, case_id, process, expected_version, user_id) -> int:
        with self._lock:
            stored = self.cases.get((company_id, case_id))
            if stored is None:
                raise NotFoundError("Case", case_id)
            if stored.version != expected_version:
                raise ConcurrentModificationError(case_id, expected_version)
            self.cases[(company_id, case_id)] = stored.model_copy(update={
                "karin_process": process.model_copy(deep=True),
                "version": stored.version + 1,
                "updated_by": user_id,
            })
            self.saves += 1
            return stored.version + 1


class ConflictingCaseStore(InMemoryCaseStore):
    """Reports a concurrent modification for the first `conflicts` saves."""

    def __init__(self, conflicts: int):
        super().__init__()
        self.conflicts = conflicts
        self.attempts = 0

    def save_karin_process(self, company_id, case_id, process, expected_version, user_id) -> int:
        self.attempts += 1
        if self.attempts <= self.conflicts:
            raise ConcurrentModificationError(case_id, expected_version)
        return super().save_karin_process(company_id, case_id, process, expected_version, user_id)


class InMemoryCounterStore:
    """Atomic per-company counters."""

    def __init__(self, available: bool = True):
        self.available = available
        self.values: Dict[Tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def increment_and_get(self, company_id: str, counter_key: str) -> int:
        if not self.available:
            raise CounterUnavailableError("counter store offline")
        with self._lock:
            key = (company_id, counter_key)
            self.values[key] = self.values.get(key, 0) + 1
            return self.values[key]


class RecordingDispatcher:
    """Collects emitted events instead of publishing them."""

    def __init__(self):
        self.events: List[Tuple[str, dict]] = []

    def notify(self, event, payload):
        self.events.append((getattr(event, "value", event), payload))
        return None

    def names(self) -> List[str]:
        return [name for name, _ in self.events]


class StaticActorDirectory:
    def __init__(self, names: Dict[str, str] = None):
        self.names = names or {}

    def resolve_display_name(self, company_id: str, actor_id: str) -> str:
        return self.names.get(actor_id, actor_id)


class FixedClock:
    """Callable clock that tests move explicitly."""

    def __init__(self, now: datetime = MONDAY):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_case(stage: Stage = None, case_fields: dict = None, **process_fields) -> Case:
    """
    Build a Ley Karin case, optionally with a process already at stage.

    Stage dates default to MONDAY for the complaint and the given stage.
    """
    process = None
    if stage is not None:
        values = {
            "stage": stage,
            "stage_dates": {Stage.COMPLAINT_FILED: MONDAY, stage: MONDAY},
            "status_label": stages.status_label(stage),
        }
        values.update(process_fields)
        process = KarinProcess(**values)

    fields = {
        "id": CASE_ID,
        "company_id": COMPANY_ID,
        "code": CASE_CODE,
        "is_karin_case": True,
        "karin_process": process,
        "created_at": MONDAY,
    }
    fields.update(case_fields or {})
    return Case(**fields)


@pytest.fixture
def case_factory():
    """Factory for Ley Karin cases at a given stage."""
    return make_case


@pytest.fixture
def calculator():
    """Deadline calculator counting weekends only."""
    return DeadlineCalculator()


@pytest.fixture
def case_store():
    return InMemoryCaseStore()


@pytest.fixture
def counter_store():
    return InMemoryCounterStore()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def actors():
    return StaticActorDirectory({"user-1": "Ana Investigadora", "user-2": "Luis Revisor"})


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def engine(case_store, counter_store, dispatcher, actors, clock, calculator):
    """Process engine wired to in-memory adapters and a fixed clock."""
    return KarinProcessEngine(
        case_store=case_store,
        folio_allocator=FolioAllocator(counter_store),
        dispatcher=dispatcher,
        actor_directory=actors,
        calculator=calculator,
        clock=clock,
    )
