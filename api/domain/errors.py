# SPDX-License-Identifier: Apache-2.0

"""
Error taxonomy of the Ley Karin process engine.

Every message names the unmet requirement or the offending state so the
caller can show it to the user as-is.
"""

from typing import List, Optional


class KarinProcessError(Exception):
    """Base class for engine errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ComplianceError(KarinProcessError):
    """Advancement blocked by unmet stage requirements."""

    def __init__(self, stage: str, requirements: List[str]):
        self.stage = stage
        self.requirements = list(requirements)
        super().__init__(
            f"No se puede avanzar desde '{stage}': " + "; ".join(self.requirements)
        )


class InvalidTransitionError(KarinProcessError):
    """Transition out of a terminal stage, unknown stage, or backward status move."""

    def __init__(self, message: str, current: Optional[str] = None, target: Optional[str] = None):
        super().__init__(message)
        self.current = current
        self.target = target


class NotKarinCaseError(KarinProcessError):
    """The case is not flagged for the Ley Karin workflow or has no process yet."""

    def __init__(self, case_id: str, reason: str = "Este caso no es un caso Ley Karin"):
        super().__init__(f"{reason}: {case_id}")
        self.case_id = case_id


class NotFoundError(KarinProcessError):
    """A referenced case or record does not exist."""

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier


class DuplicateRecordError(KarinProcessError):
    """A record with the same id already exists in the target list."""

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} already exists: {identifier}")
        self.kind = kind
        self.identifier = identifier


class ValidationFailedError(KarinProcessError):
    """Command input rejected before touching the process."""


class CounterUnavailableError(KarinProcessError):
    """The counter store could not produce the next value."""


class ConcurrentModificationError(KarinProcessError):
    """The stored process changed since it was loaded."""

    def __init__(self, case_id: str, expected_version: int):
        super().__init__(
            f"Case {case_id} was modified concurrently (expected version {expected_version})"
        )
        self.case_id = case_id
        self.expected_version = expected_version
