# SPDX-License-Identifier: Apache-2.0

"""
Per-company atomic counters used for document folios.

Both stores rely on a server-side atomic increment; neither reads the value
before writing it.
"""

import logging
import os
from typing import Optional

from opentelemetry import trace
from pymongo.errors import PyMongoError

from domain.errors import CounterUnavailableError
from .mongodb import MongoDBService
from .redis import RedisService

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

COUNTER_NAMESPACE = "karin_documents"


class MongoCounterStore:
    """Counters kept in one document per company, incremented with $inc."""

    collection_name = "counters"

    def __init__(self, mongo_service: MongoDBService):
        self.mongo_service = mongo_service

    def increment_and_get(self, company_id: str, counter_key: str) -> int:
        with tracer.start_as_current_span("counters.mongo.increment") as span:
            span.set_attributes({"karin.company_id": company_id, "karin.counter": counter_key})
            try:
                return self.mongo_service.increment(
                    self.collection_name,
                    f"{company_id}:{COUNTER_NAMESPACE}",
                    counter_key
                )
            except PyMongoError as e:
                span.record_exception(e)
                raise CounterUnavailableError(f"Mongo counter {counter_key} unavailable: {e}")


class RedisCounterStore:
    """Counters kept as Redis integers, incremented with INCR."""

    def __init__(self, redis_service: RedisService):
        self.redis_service = redis_service

    def increment_and_get(self, company_id: str, counter_key: str) -> int:
        with tracer.start_as_current_span("counters.redis.increment") as span:
            span.set_attributes({"karin.company_id": company_id, "karin.counter": counter_key})
            value = self.redis_service.incr(f"karin:counters:{company_id}:{COUNTER_NAMESPACE}:{counter_key}")
            if value is None:
                raise CounterUnavailableError(f"Redis counter {counter_key} unavailable")
            return value


def create_counter_store(
    mongo_service: MongoDBService,
    redis_service: Optional[RedisService] = None,
    backend: Optional[str] = None
):
    """Counter store selected by KARIN_COUNTER_BACKEND (mongo or redis)."""
    backend = (backend or os.getenv('KARIN_COUNTER_BACKEND', 'mongo')).lower()
    if backend == 'redis':
        if redis_service is None:
            raise ValueError("Redis counter backend requires a Redis service")
        return RedisCounterStore(redis_service)
    if backend != 'mongo':
        raise ValueError(f"Unknown counter backend: {backend}")
    return MongoCounterStore(mongo_service)
