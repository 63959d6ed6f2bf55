# SPDX-License-Identifier: Apache-2.0

"""
Authority notification ledger.

One append-only list per authority (DT, SUSESO, Labor Inspection). The
first record of an authority stamps its initial notification date once.
"""

from datetime import datetime
from typing import List, Optional, Sequence, TypeVar

from models.entities import KarinProcess, NotificationRecord
from models.enums import AuthorityType, NotificationRecordStatus, Stage
from . import stages
from .errors import DuplicateRecordError, InvalidTransitionError, NotFoundError

S = TypeVar('S')

NOTIFICATION_STATUS_FLOW = (
    NotificationRecordStatus.PENDIENTE,
    NotificationRecordStatus.ENVIADA,
    NotificationRecordStatus.RECIBIDA,
    NotificationRecordStatus.RESPONDIDA,
)


def ensure_open(process: KarinProcess) -> None:
    if stages.is_terminal(process.stage):
        raise InvalidTransitionError(
            "El caso está cerrado y es de solo lectura",
            current=Stage.CLOSED.value
        )


def check_forward(kind: str, flow: Sequence[S], current: S, target: S) -> None:
    """Reject status moves that do not go strictly forward along flow."""
    if flow.index(target) <= flow.index(current):
        raise InvalidTransitionError(
            f"{kind} cannot move from '{current.value}' to '{target.value}'",
            current=current.value,
            target=target.value
        )


def append_notification(
    process: KarinProcess,
    authority: AuthorityType,
    record: NotificationRecord
) -> KarinProcess:
    """
    Append a record to the authority list.

    Args:
        process: Current process
        authority: Authority the notification was sent to
        record: Notification record

    Returns:
        Updated process copy

    Raises:
        InvalidTransitionError: If the process is closed
        DuplicateRecordError: If the record id is already in the list
    """
    ensure_open(process)
    authority = AuthorityType(authority)
    updated = process.model_copy(deep=True)
    records: List[NotificationRecord] = updated.notifications_for(authority)

    if any(existing.id == record.id for existing in records):
        raise DuplicateRecordError("Notification record", record.id)

    setattr(updated, f"{authority.value}_notifications", records + [record])

    if updated.initial_notification_date(authority) is None:
        setattr(updated, f"{authority.value}_initial_notification_date", record.date)
        setattr(updated, f"{authority.value}_initial_notification_id", record.id)

    return updated


def update_notification_status(
    process: KarinProcess,
    authority: AuthorityType,
    record_id: str,
    status: NotificationRecordStatus,
    response_date: Optional[datetime] = None,
    response_document_id: Optional[str] = None
) -> KarinProcess:
    """
    Move a notification record forward in its status flow.

    Raises:
        NotFoundError: If no record of the authority has record_id
        InvalidTransitionError: If the process is closed or the move is not forward
    """
    ensure_open(process)
    authority = AuthorityType(authority)
    status = NotificationRecordStatus(status)
    updated = process.model_copy(deep=True)
    records = updated.notifications_for(authority)

    matched = False
    new_records = []
    for record in records:
        if record.id == record_id:
            matched = True
            check_forward("Notification", NOTIFICATION_STATUS_FLOW, record.status, status)
            changes = {"status": status}
            if response_date is not None:
                changes["response_date"] = response_date
            if response_document_id is not None:
                changes["response_document_id"] = response_document_id
            record = record.model_copy(update=changes)
        new_records.append(record)

    if not matched:
        raise NotFoundError(f"{authority.value} notification", record_id)

    setattr(updated, f"{authority.value}_notifications", new_records)
    return updated
