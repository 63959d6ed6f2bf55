"""
Ley Karin Process Engine - Flask Application Entry Point

Builds the Flask application with OpenAPI 3.0 support, wires the process
engine to MongoDB, Redis and AMQP, and registers the HTTP surface.
"""

import logging
import os
from typing import Optional

from flask import jsonify
from flask_openapi3 import Info, OpenAPI, Tag

from domain.deadlines import DeadlineCalculator, StatuteConfig
from middleware.error_handler import ErrorHandlerMiddleware
from observability.config import setup_observability
from observability.middleware import add_observability_middleware
from routes.karin import karin_bp
from services.actors import ActorDirectory
from services.amqp import create_amqp_service
from services.audit import AuditService
from services.case_store import MongoCaseStore
from services.counters import create_counter_store
from services.engine import KarinProcessEngine
from services.events import EventDispatcher
from services.folio import FolioAllocator
from services.hal import create_hal_formatter
from services.health import HealthCheckService
from services.mongodb import MongoDBService
from services.redis import create_redis_service

logger = logging.getLogger(__name__)

info = Info(
    title="Ley Karin Process Engine",
    version=os.getenv('SERVICE_VERSION', '1.0.0'),
    description="Statutory workflow of Ley Karin workplace harassment investigations with HATEOAS Level-3 support"
)

tags = [
    Tag(name="Ley Karin", description="Ley Karin investigation process"),
    Tag(name="Health", description="System health and status")
]


def build_engine(mongodb_service: MongoDBService, redis_service=None, amqp_service=None) -> KarinProcessEngine:
    """Wire the process engine to its adapters from environment configuration."""
    statute = StatuteConfig.from_env()
    calculator = DeadlineCalculator(statute=statute)
    counter_store = create_counter_store(mongodb_service, redis_service)

    return KarinProcessEngine(
        case_store=MongoCaseStore(mongodb_service),
        folio_allocator=FolioAllocator(counter_store),
        dispatcher=EventDispatcher(amqp_service),
        actor_directory=ActorDirectory(mongodb_service, redis_service),
        audit_service=AuditService(mongodb_service),
        calculator=calculator
    )


def create_app(
    engine: Optional[KarinProcessEngine] = None,
    health_service: Optional[HealthCheckService] = None
) -> OpenAPI:
    """
    Application factory.

    Args:
        engine: Pre-built engine, mainly for tests; built from the environment when missing
        health_service: Pre-built health service

    Returns:
        Configured Flask OpenAPI application
    """
    setup_observability()

    app = OpenAPI(__name__, info=info, validation_error_status=400)
    add_observability_middleware(app)

    app.config['ENVIRONMENT'] = os.getenv('ENVIRONMENT', 'development')
    app.config['ENV'] = app.config['ENVIRONMENT']
    app.config['DEBUG'] = app.config['ENVIRONMENT'] == 'development'
    app.config['BASE_URL'] = os.getenv('BASE_URL', 'http://localhost:5000')
    app.config['DOCS_ENABLED'] = os.getenv('DOCS_ENABLED', 'true').lower() == 'true'

    if engine is None or health_service is None:
        mongodb_service = MongoDBService(os.getenv('MONGODB_URI'))
        redis_service = create_redis_service() if os.getenv('REDIS_URL') else None
        amqp_service = create_amqp_service() if os.getenv('AMQP_URL') else None

        if engine is None:
            engine = build_engine(mongodb_service, redis_service, amqp_service)
        if health_service is None:
            health_service = HealthCheckService(mongodb_service, redis_service, amqp_service)

    hal_formatter = create_hal_formatter(app.config['BASE_URL'])
    ErrorHandlerMiddleware(app, hal_formatter)

    app.karin_engine = engine
    app.hal_formatter = hal_formatter
    app.health_service = health_service

    app.register_api(karin_bp)

    @app.get('/api/healthz', tags=[tags[1]])
    def health_check():
        """Dependency health; 503 when MongoDB is down."""
        health_data = app.health_service.get_comprehensive_health()
        status_code = 503 if health_data["status"] == "unhealthy" else 200
        links = {'self': hal_formatter.builder.link_builder.build_self_link('/api/healthz')}
        if app.config['DOCS_ENABLED']:
            links['docs'] = hal_formatter.builder.link_builder.build_link('/openapi/swagger', title="API documentation")
        return jsonify(hal_formatter.builder.build_resource_response(health_data, links)), status_code

    logger.info(
        "Ley Karin process engine ready",
        extra={"environment": app.config['ENVIRONMENT'], "base_url": app.config['BASE_URL']}
    )
    return app


if __name__ == '__main__':
    application = create_app()
    application.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=application.config['DEBUG']
    )
