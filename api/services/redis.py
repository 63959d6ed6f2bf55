# SPDX-License-Identifier: Apache-2.0

"""
Redis service for counters and short-lived caches.

Uses the standard redis-py client. When Redis cannot be reached the
service disables itself and callers fall back to their own behaviour.
"""

import os
import json
from typing import Optional, Any, Union, Dict, List
import redis
from opentelemetry import trace
import logging

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class RedisConnectionError(Exception):
    """Raised when Redis connection fails."""
    pass


class RedisService:
    """
    Redis service with the standard redis-py client.

    Provides atomic counters and display-name caching scoped by company.
    """

    def __init__(self, redis_url: Optional[str] = None, client: Optional[redis.Redis] = None):
        """
        Initialize the Redis service.

        Args:
            redis_url: Redis connection URL (redis://host:port)
            client: Pre-built client, mainly for tests
        """
        self.redis_url = redis_url or os.getenv("REDIS_URL", "redis://localhost:6379")

        if client is not None:
            self.client = client
            return

        try:
            self.client = redis.from_url(self.redis_url, decode_responses=True)
            self._test_connection()
            logger.info(f"Redis service initialized successfully at {self.redis_url}")

        except Exception as e:
            logger.error(f"Failed to initialize Redis service: {str(e)}")
            self.client = None

    def _test_connection(self) -> None:
        """Test Redis connection."""
        if not self.client:
            return

        try:
            if not self.client.ping():
                raise RedisConnectionError("Redis ping failed")
        except redis.RedisError as e:
            logger.error(f"Redis connection test failed: {str(e)}")
            raise RedisConnectionError(f"Redis connection failed: {str(e)}")

    def is_available(self) -> bool:
        """Check if Redis service is available."""
        return self.client is not None

    def incr(self, key: str) -> Optional[int]:
        """
        Atomically increment an integer key.

        Args:
            key: Redis key

        Returns:
            The incremented value, or None if Redis is unavailable or failed
        """
        if not self.client:
            logger.warning("Redis client not available, skipping incr operation")
            return None

        with tracer.start_as_current_span("redis.incr") as span:
            span.set_attribute("redis.key", key)
            try:
                value = self.client.incr(key)
                span.set_attribute("redis.result", "success")
                return int(value)
            except redis.RedisError as e:
                span.set_attribute("redis.result", "error")
                logger.error(f"Redis incr failed for key {key}: {str(e)}")
                return None

    def set(self, key: str, value: Union[str, Dict, List], ttl: Optional[int] = None) -> bool:
        """
        Set a key-value pair in Redis.

        Args:
            key: Redis key
            value: Value to store (will be JSON serialized if not string)
            ttl: Time to live in seconds

        Returns:
            True if successful, False otherwise
        """
        if not self.client:
            return False

        with tracer.start_as_current_span("redis.set") as span:
            span.set_attributes({"redis.key": key, "redis.ttl": ttl or 0})
            try:
                if isinstance(value, (dict, list)):
                    value = json.dumps(value)
                if ttl:
                    result = self.client.setex(key, ttl, value)
                else:
                    result = self.client.set(key, value)
                return bool(result)
            except redis.RedisError as e:
                span.set_attribute("redis.result", "error")
                logger.error(f"Redis set failed for key {key}: {str(e)}")
                return False

    def get(self, key: str) -> Optional[Any]:
        """Get a value from Redis, or None when absent or unavailable."""
        if not self.client:
            return None

        with tracer.start_as_current_span("redis.get") as span:
            span.set_attribute("redis.key", key)
            try:
                return self.client.get(key)
            except redis.RedisError as e:
                span.set_attribute("redis.result", "error")
                logger.error(f"Redis get failed for key {key}: {str(e)}")
                return None

    def health_check(self) -> Dict[str, Any]:
        if not self.client:
            return {"status": "unavailable"}
        try:
            self.client.ping()
            return {"status": "healthy"}
        except redis.RedisError as e:
            return {"status": "unhealthy", "error": str(e)}


def create_redis_service() -> RedisService:
    """Create Redis service from REDIS_URL."""
    return RedisService(os.getenv("REDIS_URL"))
