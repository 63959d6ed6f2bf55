"""
Health Check Service

Reports the status of the engine dependencies: MongoDB (required),
Redis and AMQP (optional).
"""

import os
import time
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from opentelemetry import trace

from services.amqp import AMQPService
from services.mongodb import MongoDBService
from services.redis import RedisService

tracer = trace.get_tracer(__name__)


class HealthCheckService:
    """Service for dependency health monitoring."""

    def __init__(
        self,
        mongodb_service: MongoDBService,
        redis_service: Optional[RedisService] = None,
        amqp_service: Optional[AMQPService] = None
    ):
        self.mongodb_service = mongodb_service
        self.redis_service = redis_service
        self.amqp_service = amqp_service
        self.service_version = os.getenv('SERVICE_VERSION', '1.0.0')

    def get_comprehensive_health(self) -> Dict[str, Any]:
        """Health of every dependency plus configuration flags."""
        with tracer.start_as_current_span("health.comprehensive_check") as span:
            start_time = time.time()

            mongodb_health = self._check("mongodb", self.mongodb_service.health_check)
            redis_health = self._check_optional("redis", self.redis_service)
            amqp_health = self._check_optional("amqp", self.amqp_service)

            overall_status = self._determine_overall_status(
                mongodb_health["status"],
                [redis_health["status"], amqp_health["status"]]
            )
            response_time_ms = round((time.time() - start_time) * 1000, 2)

            span.set_attributes({
                "health.overall_status": overall_status,
                "health.response_time_ms": response_time_ms,
                "health.mongodb_status": mongodb_health["status"],
                "health.redis_status": redis_health["status"],
                "health.amqp_status": amqp_health["status"]
            })

            return {
                "status": overall_status,
                "service": "ley-karin-engine",
                "version": self.service_version,
                "environment": os.getenv('ENVIRONMENT', 'development'),
                "timestamp": datetime.utcnow().isoformat() + "Z",
                "response_time_ms": response_time_ms,
                "dependencies": {
                    "mongodb": mongodb_health,
                    "redis": redis_health,
                    "amqp": amqp_health
                },
                "configuration": self._get_configuration_status()
            }

    def _check_optional(self, name: str, service) -> Dict[str, Any]:
        if service is None:
            return {"status": "disabled"}
        return self._check(name, service.health_check)

    def _check(self, name: str, probe: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
        with tracer.start_as_current_span(f"health.{name}_check") as span:
            start_time = time.time()
            result = dict(probe())
            result["response_time_ms"] = round((time.time() - start_time) * 1000, 2)
            result["last_check"] = datetime.utcnow().isoformat() + "Z"
            span.set_attribute(f"{name}.status", result.get("status", "unknown"))
            return result

    def _get_configuration_status(self) -> Dict[str, Any]:
        return {
            "mongodb_uri_configured": bool(os.getenv('MONGODB_URI')),
            "redis_configured": bool(os.getenv('REDIS_URL')),
            "amqp_configured": bool(os.getenv('AMQP_URL')),
            "counter_backend": os.getenv('KARIN_COUNTER_BACKEND', 'mongo'),
            "otel_enabled": os.getenv('OTEL_ENABLED', 'true').lower() == 'true',
            "environment": os.getenv('ENVIRONMENT', 'development')
        }

    def _determine_overall_status(self, required_status: str, optional_statuses: list) -> str:
        """The engine is down without MongoDB and degraded without Redis or AMQP."""
        if required_status != "healthy":
            return "unhealthy"
        if any(status in ("unhealthy", "unavailable") for status in optional_statuses):
            return "degraded"
        return "healthy"
