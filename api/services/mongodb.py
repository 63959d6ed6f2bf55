# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with company-scoped operations and connection pooling.
"""

import os
import logging
from datetime import datetime
from typing import Dict, Optional, Any
from pymongo import MongoClient, ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    ServerSelectionTimeoutError,
    DuplicateKeyError
)
from bson import ObjectId
from bson.errors import InvalidId

logger = logging.getLogger(__name__)


class MongoDBService:
    """MongoDB service with company-scoped operations and connection pooling."""

    def __init__(self, connection_string: str = None, database_name: str = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/ley_karin_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'ley_karin_dev')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    maxIdleTimeMS=self.max_idle_time_ms,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True
                )
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                raise

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        """Get MongoDB collection."""
        return self.database[collection_name]

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            server_info = self.client.server_info()

            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'version': server_info.get('version'),
                'database': self.database_name,
                'connection_pool_size': self.max_pool_size
            }
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    def _validate_object_id(self, doc_id: str) -> ObjectId:
        """Validate and convert string ID to ObjectId."""
        try:
            return ObjectId(doc_id)
        except (InvalidId, TypeError):
            raise ValueError(f"Invalid ObjectId format: {doc_id}")

    def _company_query(self, company_id: str, doc_id: str, extra: Dict = None) -> Dict:
        query = {"_id": self._validate_object_id(doc_id), "companyId": company_id}
        if extra:
            query.update(extra)
        return query

    def create(self, collection: str, document: Dict, user_id: str) -> str:
        """Insert a company-scoped document with creation metadata."""
        try:
            document = dict(document)
            document.setdefault("_id", ObjectId())
            document.setdefault("createdAt", datetime.utcnow())
            document["createdBy"] = user_id
            document.setdefault("version", 0)

            result = self.get_collection(collection).insert_one(document)
            logger.info(f"Created document in {collection}: {result.inserted_id}")
            return str(result.inserted_id)

        except DuplicateKeyError as e:
            logger.error(f"Duplicate key error in {collection}: {e}")
            raise ValueError("Document with this identifier already exists")

    def find_one_by_company(self, collection: str, company_id: str, doc_id: str) -> Optional[Dict]:
        """Find a single document by company and ID; None when absent or the ID is malformed."""
        try:
            query = self._company_query(company_id, doc_id)
        except ValueError as e:
            logger.warning(f"Invalid document ID {doc_id}: {e}")
            return None

        document = self.get_collection(collection).find_one(query)
        if document:
            document["id"] = str(document.pop("_id"))
        else:
            logger.debug(f"Document {doc_id} not found in {collection} for company {company_id}")
        return document

    def update_if_version(
        self,
        collection: str,
        company_id: str,
        doc_id: str,
        expected_version: int,
        updates: Dict,
        user_id: str
    ) -> Optional[int]:
        """
        Compare-and-set update guarded by the document version.

        Args:
            collection: Collection name
            company_id: Company scope
            doc_id: Document ID
            expected_version: Version the caller loaded
            updates: Fields to $set
            user_id: User performing the update

        Documents written without a version field count as version 0.

        Returns:
            The new version, or None if no document matched the expected version
        """
        version_match = expected_version if expected_version else {"$in": [0, None]}
        query = self._company_query(company_id, doc_id, {"version": version_match})
        updates = dict(updates)
        updates["updatedAt"] = datetime.utcnow()
        updates["updatedBy"] = user_id

        result = self.get_collection(collection).update_one(
            query,
            {"$set": updates, "$inc": {"version": 1}}
        )
        if result.matched_count == 0:
            logger.warning(
                f"Versioned update missed for {doc_id} in {collection}",
                extra={"expected_version": expected_version}
            )
            return None

        logger.info(f"Updated document {doc_id} in {collection} to version {expected_version + 1}")
        return expected_version + 1

    def increment(self, collection: str, key: str, field: str, amount: int = 1) -> int:
        """Atomically increment a numeric field, creating the document on first use."""
        document = self.get_collection(collection).find_one_and_update(
            {"_id": key},
            {"$inc": {field: amount}, "$set": {"updatedAt": datetime.utcnow()}},
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
        return int(document[field])

    def create_indexes(self) -> None:
        """Create performance indexes for the engine collections."""
        try:
            logger.info("Creating MongoDB indexes...")

            cases = self.get_collection("cases")
            cases.create_index([("companyId", ASCENDING), ("isKarinCase", ASCENDING)])
            cases.create_index([("companyId", ASCENDING), ("karinProcess.stage", ASCENDING)])
            cases.create_index([("companyId", ASCENDING), ("code", ASCENDING)])

            users = self.get_collection("users")
            users.create_index([("companyId", ASCENDING), ("_id", ASCENDING)])

            audit_logs = self.get_collection("audit_logs")
            audit_logs.create_index([("companyId", ASCENDING), ("timestamp", DESCENDING)])
            audit_logs.create_index([("companyId", ASCENDING), ("entityId", ASCENDING), ("timestamp", DESCENDING)])
            audit_logs.create_index("traceId")

            logger.info("MongoDB indexes created successfully")

        except Exception as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise


# Singleton instance for application use
_mongodb_service: Optional[MongoDBService] = None


def get_mongodb_service() -> MongoDBService:
    """Get singleton MongoDB service instance."""
    global _mongodb_service
    if _mongodb_service is None:
        _mongodb_service = MongoDBService()
    return _mongodb_service


def close_mongodb_connection() -> None:
    """Close MongoDB connection (for cleanup)."""
    global _mongodb_service
    if _mongodb_service:
        _mongodb_service.close_connection()
        _mongodb_service = None
