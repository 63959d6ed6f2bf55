# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for the authority notification ledger.
"""

import pytest
from datetime import datetime

from domain.errors import DuplicateRecordError, InvalidTransitionError, NotFoundError
from domain.ledger import append_notification, update_notification_status
from models.entities import KarinProcess, NotificationRecord
from models.enums import AuthorityType, NotificationMethod, NotificationRecordStatus, Stage

from conftest import MONDAY


def _record(record_id="rec-1", date=MONDAY, status=NotificationRecordStatus.ENVIADA):
    return NotificationRecord(
        id=record_id,
        date=date,
        method=NotificationMethod.EMAIL,
        notified_by="user-1",
        status=status,
    )


class TestAppendNotification:
    """Test appending records per authority."""

    def setup_method(self):
        self.process = KarinProcess(stage=Stage.DT_NOTIFICATION)

    def test_first_record_stamps_initial_date(self):
        updated = append_notification(self.process, AuthorityType.DT, _record())

        assert len(updated.dt_notifications) == 1
        assert updated.dt_initial_notification_date == MONDAY
        assert updated.dt_initial_notification_id == "rec-1"
        assert updated.suseso_initial_notification_date is None

    def test_initial_date_is_stamped_once(self):
        later = datetime(2024, 3, 8, 9, 0)
        updated = append_notification(self.process, AuthorityType.DT, _record())
        updated = append_notification(updated, AuthorityType.DT, _record("rec-2", later))

        assert len(updated.dt_notifications) == 2
        assert updated.dt_initial_notification_date == MONDAY
        assert updated.dt_initial_notification_id == "rec-1"

    def test_authorities_are_independent(self):
        updated = append_notification(self.process, "suseso", _record())
        updated = append_notification(updated, AuthorityType.INSPECTION, _record())

        assert updated.dt_notifications == []
        assert updated.suseso_initial_notification_date == MONDAY
        assert updated.inspection_initial_notification_date == MONDAY

    def test_duplicate_id_rejected(self):
        updated = append_notification(self.process, AuthorityType.DT, _record())

        with pytest.raises(DuplicateRecordError):
            append_notification(updated, AuthorityType.DT, _record())

    def test_input_untouched(self):
        append_notification(self.process, AuthorityType.DT, _record())

        assert self.process.dt_notifications == []
        assert self.process.dt_initial_notification_date is None


class TestUpdateNotificationStatus:
    """Test the forward-only status flow."""

    def setup_method(self):
        self.process = append_notification(KarinProcess(stage=Stage.DT_NOTIFICATION), AuthorityType.DT, _record())

    def test_moves_forward(self):
        response_date = datetime(2024, 3, 12, 9, 0)

        updated = update_notification_status(
            self.process, AuthorityType.DT, "rec-1", NotificationRecordStatus.RESPONDIDA,
            response_date=response_date, response_document_id="doc-9"
        )

        record = updated.dt_notifications[0]
        assert record.status == NotificationRecordStatus.RESPONDIDA
        assert record.response_date == response_date
        assert record.response_document_id == "doc-9"
        assert self.process.dt_notifications[0].status == NotificationRecordStatus.ENVIADA

    @pytest.mark.parametrize("status", [NotificationRecordStatus.ENVIADA, NotificationRecordStatus.PENDIENTE])
    def test_backward_or_same_rejected(self, status):
        with pytest.raises(InvalidTransitionError):
            update_notification_status(self.process, AuthorityType.DT, "rec-1", status)

    def test_unknown_record(self):
        with pytest.raises(NotFoundError):
            update_notification_status(self.process, AuthorityType.DT, "missing", NotificationRecordStatus.RECIBIDA)

    def test_record_of_other_authority_not_found(self):
        with pytest.raises(NotFoundError):
            update_notification_status(self.process, AuthorityType.SUSESO, "rec-1", NotificationRecordStatus.RECIBIDA)


class TestClosedProcessLedger:
    """A closed process keeps its notification history frozen."""

    def setup_method(self):
        open_process = append_notification(KarinProcess(stage=Stage.DT_NOTIFICATION), AuthorityType.DT, _record())
        self.process = open_process.model_copy(update={"stage": Stage.CLOSED})

    def test_append_rejected(self):
        with pytest.raises(InvalidTransitionError):
            append_notification(self.process, AuthorityType.SUSESO, _record("rec-2"))

        assert self.process.suseso_notifications == []
        assert self.process.suseso_initial_notification_date is None

    def test_status_update_rejected(self):
        with pytest.raises(InvalidTransitionError):
            update_notification_status(self.process, AuthorityType.DT, "rec-1", NotificationRecordStatus.RECIBIDA)

        assert self.process.dt_notifications[0].status == NotificationRecordStatus.ENVIADA
