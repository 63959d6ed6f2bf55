# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for the MongoDB case store.
"""

import pytest
from unittest.mock import MagicMock, patch
from bson import ObjectId

from domain.errors import ConcurrentModificationError, NotFoundError, NotKarinCaseError
from models.entities import KarinProcess
from models.enums import Stage
from services.case_store import MongoCaseStore
from services.mongodb import MongoDBService

from conftest import MONDAY

CASE_ID = "65f0c0ffee0000000000abcd"


def _document(**overrides):
    process = KarinProcess(
        stage=Stage.RECEPTION,
        stage_dates={Stage.COMPLAINT_FILED: MONDAY, Stage.RECEPTION: MONDAY},
        informed_rights=True,
    )
    document = {
        "id": CASE_ID,
        "companyId": "company-1",
        "code": "KAR-2024-001",
        "isKarinCase": True,
        "karinProcess": process.model_dump(mode="json"),
        "investigationPlan": {"steps": ["entrevistas"]},
        "interviews": [{"person": "Testigo"}],
        "createdAt": MONDAY,
        "version": 3,
    }
    document.update(overrides)
    return document


class TestMongoCaseStore:
    """Test loading and versioned saving."""

    def setup_method(self):
        self.mongo = MagicMock()
        self.store = MongoCaseStore(self.mongo)

    def test_load_case(self):
        self.mongo.find_one_by_company.return_value = _document()

        case = self.store.load_case("company-1", CASE_ID)

        self.mongo.find_one_by_company.assert_called_once_with("cases", "company-1", CASE_ID)
        assert case.id == CASE_ID
        assert case.code == "KAR-2024-001"
        assert case.version == 3
        assert case.karin_process.stage == Stage.RECEPTION
        assert case.karin_process.stage_dates[Stage.RECEPTION] == MONDAY
        assert case.karin_process.informed_rights
        assert case.investigation_plan == {"steps": ["entrevistas"]}
        assert case.interviews == [{"person": "Testigo"}]

    def test_load_case_without_process(self):
        self.mongo.find_one_by_company.return_value = _document(karinProcess=None)

        case = self.store.load_case("company-1", CASE_ID)

        assert case.karin_process is None
        with pytest.raises(NotKarinCaseError):
            self.store.load_karin_process("company-1", CASE_ID)

    def test_load_missing_case(self):
        self.mongo.find_one_by_company.return_value = None

        with pytest.raises(NotFoundError):
            self.store.load_case("company-1", CASE_ID)

    def test_save_with_expected_version(self):
        self.mongo.update_if_version.return_value = 4
        process = KarinProcess(stage=Stage.PRECAUTIONARY_MEASURES, status_label="Ley Karin - Medidas Precautorias")

        assert self.store.save_karin_process("company-1", CASE_ID, process, 3, "user-1") == 4

        args = self.mongo.update_if_version.call_args[0]
        assert args[:4] == ("cases", "company-1", CASE_ID, 3)
        assert args[4]["karinProcess"]["stage"] == "precautionary_measures"
        assert args[4]["status"] == "Ley Karin - Medidas Precautorias"
        assert args[5] == "user-1"

    def test_save_conflict(self):
        self.mongo.update_if_version.return_value = None
        self.mongo.find_one_by_company.return_value = _document(version=5)

        with pytest.raises(ConcurrentModificationError) as exc_info:
            self.store.save_karin_process("company-1", CASE_ID, KarinProcess(), 3, "user-1")

        assert exc_info.value.expected_version == 3

    def test_save_deleted_case(self):
        self.mongo.update_if_version.return_value = None
        self.mongo.find_one_by_company.return_value = None

        with pytest.raises(NotFoundError):
            self.store.save_karin_process("company-1", CASE_ID, KarinProcess(), 3, "user-1")

    def test_save_invalid_id(self):
        self.mongo.update_if_version.side_effect = ValueError("Invalid ObjectId format: x")

        with pytest.raises(NotFoundError):
            self.store.save_karin_process("company-1", "x", KarinProcess(), 0, "user-1")


class TestUnversionedCaseDocument:
    """Cases created by the surrounding application may carry no version field."""

    def setup_method(self):
        stored = _document()
        stored.pop("id")
        stored.pop("version")
        stored["_id"] = ObjectId(CASE_ID)
        self.collection = MagicMock()
        self.collection.find_one.return_value = stored
        self.collection.update_one.return_value = MagicMock(matched_count=1)

        self.patcher = patch.object(MongoDBService, 'get_collection', return_value=self.collection)
        self.patcher.start()
        self.store = MongoCaseStore(MongoDBService("mongodb://localhost:27017/ley_karin_test", "ley_karin_test"))

    def teardown_method(self):
        self.patcher.stop()

    def test_load_then_save(self):
        case = self.store.load_case("company-1", CASE_ID)

        assert case.version == 0
        assert self.store.save_karin_process("company-1", CASE_ID, case.karin_process, case.version, "user-1") == 1

        query, update = self.collection.update_one.call_args[0]
        assert query["version"] == {"$in": [0, None]}
        assert update["$inc"] == {"version": 1}
