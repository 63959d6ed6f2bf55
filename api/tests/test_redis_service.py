# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for the Redis service.
"""

from unittest.mock import MagicMock, patch

import redis

from services.redis import RedisService


class TestRedisService:
    """Test Redis operations with a mocked client."""

    def setup_method(self):
        self.client = MagicMock()
        self.service = RedisService("redis://localhost:6379", client=self.client)

    def test_incr(self):
        self.client.incr.return_value = 4

        assert self.service.incr("karin:counters:c:karin_documents:ACTA") == 4
        self.client.incr.assert_called_once_with("karin:counters:c:karin_documents:ACTA")

    def test_incr_failure_returns_none(self):
        self.client.incr.side_effect = redis.ConnectionError("down")
        assert self.service.incr("key") is None

    def test_set_with_ttl(self):
        self.client.setex.return_value = True

        assert self.service.set("karin:actors:c:u", "Ana", ttl=60)
        self.client.setex.assert_called_once_with("karin:actors:c:u", 60, "Ana")

    def test_set_serializes_dicts(self):
        self.service.set("key", {"a": 1})
        self.client.set.assert_called_once_with("key", '{"a": 1}')

    def test_get(self):
        self.client.get.return_value = "Ana"
        assert self.service.get("karin:actors:c:u") == "Ana"

    def test_health_check(self):
        self.client.ping.side_effect = redis.ConnectionError("down")
        assert self.service.health_check()["status"] == "unhealthy"

    def test_unreachable_server_disables_service(self):
        with patch('services.redis.redis.from_url') as from_url:
            from_url.return_value.ping.side_effect = redis.ConnectionError("refused")
            service = RedisService("redis://localhost:1")

        assert not service.is_available()
        assert service.incr("key") is None
        assert service.get("key") is None
        assert service.health_check() == {"status": "unavailable"}
