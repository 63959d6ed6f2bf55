# SPDX-License-Identifier: Apache-2.0

"""
Actor directory: display names for history entries.
"""

import logging
from typing import Optional

from pymongo.errors import PyMongoError

from .mongodb import MongoDBService
from .redis import RedisService

logger = logging.getLogger(__name__)


class ActorDirectory:
    """Resolves user ids to display names, caching them in Redis when available."""

    collection_name = "users"
    cache_ttl = 3600

    def __init__(self, mongo_service: MongoDBService, redis_service: Optional[RedisService] = None):
        self.mongo_service = mongo_service
        self.redis_service = redis_service

    def resolve_display_name(self, company_id: str, actor_id: str) -> str:
        """Display name of the actor, or the actor id itself when unknown."""
        cache_key = f"karin:actors:{company_id}:{actor_id}"
        if self.redis_service and self.redis_service.is_available():
            cached = self.redis_service.get(cache_key)
            if cached:
                return cached

        try:
            user = self.mongo_service.find_one_by_company(self.collection_name, company_id, actor_id)
        except PyMongoError as e:
            logger.warning(
                "Actor lookup failed, using id as display name",
                extra={"actor_id": actor_id, "error": str(e)}
            )
            return actor_id

        if not user:
            return actor_id

        name = user.get("displayName") or user.get("name") or user.get("email") or actor_id
        if self.redis_service and self.redis_service.is_available():
            self.redis_service.set(cache_key, name, ttl=self.cache_ttl)
        return name
