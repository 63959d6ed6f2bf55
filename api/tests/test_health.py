"""
Tests for the dependency health service.
"""

from unittest.mock import MagicMock

from services.health import HealthCheckService


def _service(status):
    service = MagicMock()
    service.health_check.return_value = {"status": status}
    return service


class TestHealthCheckService:
    """Test overall status aggregation."""

    def test_all_healthy(self):
        health = HealthCheckService(_service("healthy"), _service("healthy"), _service("healthy"))

        result = health.get_comprehensive_health()

        assert result["status"] == "healthy"
        assert result["service"] == "ley-karin-engine"
        assert set(result["dependencies"]) == {"mongodb", "redis", "amqp"}
        assert "response_time_ms" in result["dependencies"]["mongodb"]

    def test_optional_dependencies_disabled(self):
        result = HealthCheckService(_service("healthy")).get_comprehensive_health()

        assert result["status"] == "healthy"
        assert result["dependencies"]["redis"] == {"status": "disabled"}
        assert result["dependencies"]["amqp"] == {"status": "disabled"}

    def test_optional_dependency_down_degrades(self):
        result = HealthCheckService(_service("healthy"), _service("unavailable"), _service("healthy")).get_comprehensive_health()
        assert result["status"] == "degraded"

        result = HealthCheckService(_service("healthy"), None, _service("unhealthy")).get_comprehensive_health()
        assert result["status"] == "degraded"

    def test_mongodb_down_is_unhealthy(self):
        result = HealthCheckService(_service("unhealthy"), _service("healthy")).get_comprehensive_health()
        assert result["status"] == "unhealthy"

    def test_configuration_flags(self, monkeypatch):
        monkeypatch.setenv('KARIN_COUNTER_BACKEND', 'redis')
        monkeypatch.delenv('AMQP_URL', raising=False)

        configuration = HealthCheckService(_service("healthy")).get_comprehensive_health()["configuration"]

        assert configuration["counter_backend"] == "redis"
        assert configuration["amqp_configured"] is False
