# SPDX-License-Identifier: Apache-2.0

"""
Tests for the Ley Karin process endpoints.

The application is built with the real engine wired to in-memory
adapters, so these tests cover routing, validation, HAL rendering and the
error mapping together.
"""

import json
import pytest
from unittest.mock import MagicMock

from app import create_app
from models.enums import Stage

from conftest import make_case

BASE = "/api/companies/company-1/cases/case-1/karin"
HEADERS = {"X-User-Id": "user-1", "X-User-Name": "Ana Investigadora"}


@pytest.fixture
def health_service():
    service = MagicMock()
    service.get_comprehensive_health.return_value = {"status": "healthy", "service": "ley-karin-engine"}
    return service


@pytest.fixture
def app(engine, health_service):
    """Application wired to the in-memory engine."""
    application = create_app(engine=engine, health_service=health_service)
    application.config['TESTING'] = True
    return application


@pytest.fixture
def client(app):
    return app.test_client()


class TestProcessResource:
    """Test reading the process resource."""

    def test_requires_acting_user(self, client, case_store):
        case_store.add(make_case(Stage.RECEPTION))

        response = client.get(BASE)

        assert response.status_code == 400
        data = json.loads(response.data)
        assert data['type'].endswith('/problems/validation-error')
        assert 'X-User-Id' in data['detail']

    def test_not_started_offers_start(self, client, case_store):
        case_store.add(make_case())

        response = client.get(BASE, headers=HEADERS)

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['process'] is None
        assert 'start' in data['_links']
        assert 'advance' not in data['_links']

    def test_unknown_case(self, client):
        response = client.get("/api/companies/company-1/cases/missing/karin", headers=HEADERS)

        assert response.status_code == 404
        assert json.loads(response.data)['type'].endswith('/problems/resource-not-found')

    def test_stage_of_non_karin_case(self, client, case_store):
        case_store.add(make_case(case_fields={"is_karin_case": False}))

        response = client.get(f"{BASE}/stage", headers=HEADERS)

        assert response.status_code == 422
        assert json.loads(response.data)['type'].endswith('/problems/not-karin-case')


class TestStageCommands:
    """Test starting and advancing the process over HTTP."""

    def test_start_and_advance(self, client, case_store):
        case_store.add(make_case())

        response = client.post(f"{BASE}/start", headers=HEADERS)
        assert response.status_code == 201
        data = json.loads(response.data)
        assert data['process']['stage'] == 'complaint_filed'
        assert 'advance' in data['_links']

        response = client.post(f"{BASE}/advance", headers=HEADERS, json={"notes": "Denuncia completa"})
        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['stage_info']['stage'] == 'reception'
        assert data['version'] == 2
        assert 'advance' not in data['_links']
        assert 'rights' in data['_links']

    def test_blocked_advance_lists_requirements(self, client, case_store):
        case_store.add(make_case(Stage.RECEPTION))

        response = client.post(f"{BASE}/advance", headers=HEADERS, json={})

        assert response.status_code == 422
        data = json.loads(response.data)
        assert data['type'].endswith('/problems/compliance-error')
        assert data['errors'] == ["Marcar que se informó al trabajador sobre sus derechos legales"]

    def test_rights_unlock_advance(self, client, case_store):
        case_store.add(make_case(Stage.RECEPTION))

        response = client.post(f"{BASE}/rights", headers=HEADERS)
        assert response.status_code == 200
        assert 'advance' in json.loads(response.data)['_links']

        response = client.post(f"{BASE}/advance", headers=HEADERS, json={})
        assert json.loads(response.data)['stage_info']['stage'] == 'precautionary_measures'

    def test_advance_closed_case(self, client, case_store):
        case_store.add(make_case(Stage.CLOSED))

        response = client.post(f"{BASE}/advance", headers=HEADERS, json={})

        assert response.status_code == 422
        assert json.loads(response.data)['type'].endswith('/problems/invalid-transition')

    def test_unknown_body_field_rejected(self, client, case_store):
        case_store.add(make_case(Stage.COMPLAINT_FILED))

        response = client.post(f"{BASE}/advance", headers=HEADERS, json={"stage": "closed"})

        assert response.status_code == 400
        assert case_store.saves == 0

    def test_protected_additional_data_rejected(self, client, case_store):
        case_store.add(make_case(Stage.COMPLAINT_FILED))

        response = client.post(
            f"{BASE}/advance", headers=HEADERS, json={"additional_data": {"stage_history": []}}
        )

        assert response.status_code == 400
        assert json.loads(response.data)['type'].endswith('/problems/validation-error')


class TestReadViews:
    """Test deadline and compliance views."""

    def test_deadlines_at_given_instant(self, client, case_store):
        case_store.add(make_case(Stage.RECEPTION))

        response = client.get(f"{BASE}/deadlines?now=2024-03-06T09:00:00", headers=HEADERS)

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['total'] == 1
        deadline = data['_embedded']['deadlines'][0]
        assert deadline['key'] == 'reception'
        assert deadline['days_remaining'] == 1
        assert deadline['is_urgent'] is True

    def test_timeline(self, client, case_store):
        case_store.add(make_case(Stage.RECEPTION))

        data = json.loads(client.get(f"{BASE}/timeline", headers=HEADERS).data)

        assert data['total'] == 6
        assert data['_links']['self']['href'].endswith('/karin/timeline')

    def test_compliance(self, client, case_store):
        case_store.add(make_case(Stage.RECEPTION))

        response = client.get(f"{BASE}/compliance?now=2024-03-05T09:00:00", headers=HEADERS)

        assert response.status_code == 200
        stats = json.loads(response.data)['stats']
        assert stats['percentage'] == 50
        assert stats['blocking_items'] == ['inform_rights', 'dt_initial_notification']


class TestRecords:
    """Test ledger, folio and record endpoints."""

    def test_record_dt_notification(self, client, case_store):
        case_store.add(make_case(Stage.DT_NOTIFICATION))

        response = client.post(
            f"{BASE}/notifications/dt",
            headers=HEADERS,
            json={"date": "2024-03-04T09:00:00", "method": "carta_certificada", "tracking_number": "CC-123"}
        )

        assert response.status_code == 201
        process = json.loads(response.data)['process']
        assert process['dt_initial_notification_date'] == '2024-03-04T09:00:00'
        assert process['dt_notifications'][0]['notified_by_name'] == 'Ana Investigadora'

    def test_unknown_authority(self, client, case_store):
        case_store.add(make_case(Stage.DT_NOTIFICATION))

        response = client.post(
            f"{BASE}/notifications/police",
            headers=HEADERS,
            json={"date": "2024-03-04T09:00:00", "method": "email"}
        )

        assert response.status_code == 400

    def test_allocate_folio(self, client, case_store):
        case_store.add(make_case(Stage.INVESTIGATION))

        response = client.post(f"{BASE}/folios", headers=HEADERS, json={"document_type": "DECLARATION"})

        assert response.status_code == 201
        data = json.loads(response.data)
        assert data['folio_number'] == 'DECL-KAR-2024-001-001'
        assert 'process' in data['_links']

    def test_add_testimony(self, client, case_store):
        case_store.add(make_case(Stage.INVESTIGATION))

        response = client.post(
            f"{BASE}/testimonies",
            headers=HEADERS,
            json={
                "person_name": "Testigo Uno",
                "person_type": "witness",
                "interview_date": "2024-03-05T10:00:00",
                "interviewer": "Ana Investigadora"
            }
        )

        assert response.status_code == 201
        data = json.loads(response.data)
        assert data['folio_number'] == 'TEST-KAR-2024-001-001'
        assert data['status'] == 'draft'
        assert len(case_store.get().karin_process.testimonies) == 1

    def test_invalid_person_type(self, client, case_store):
        case_store.add(make_case(Stage.INVESTIGATION))

        response = client.post(
            f"{BASE}/testimonies",
            headers=HEADERS,
            json={"person_name": "X", "person_type": "lawyer", "interview_date": "2024-03-05T10:00:00",
                  "interviewer": "Ana"}
        )

        assert response.status_code == 400

    def test_unknown_precautionary_measure(self, client, case_store):
        case_store.add(make_case(Stage.PRECAUTIONARY_MEASURES))

        response = client.post(f"{BASE}/precautionary-measures", headers=HEADERS, json={"measure_ids": ["dismissal"]})

        assert response.status_code == 400


class TestHealthEndpoint:
    """Test the /api/healthz endpoint."""

    def test_healthy(self, client):
        response = client.get('/api/healthz')

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['status'] == 'healthy'
        assert data['_links']['self']['href'].endswith('/api/healthz')

    def test_docs_link_follows_flag(self, engine, health_service, monkeypatch):
        monkeypatch.setenv('DOCS_ENABLED', 'false')
        application = create_app(engine=engine, health_service=health_service)

        data = json.loads(application.test_client().get('/api/healthz').data)

        assert 'docs' not in data['_links']

    def test_unhealthy(self, client, health_service):
        health_service.get_comprehensive_health.return_value = {"status": "unhealthy"}

        assert client.get('/api/healthz').status_code == 503
