#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Create the MongoDB indexes used by the Ley Karin process engine.

Run once per environment, before the first deployment that serves traffic:

    MONGODB_URI=mongodb://... python api/scripts/create_indexes.py
"""

import sys
import os
import logging

# Imports resolve from the api directory
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pymongo.errors import PyMongoError

from services.mongodb import close_mongodb_connection, get_mongodb_service

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main() -> int:
    mongodb_service = get_mongodb_service()
    try:
        health = mongodb_service.health_check()
        if health['status'] != 'healthy':
            logger.error(f"MongoDB is not reachable: {health.get('error')}")
            return 1

        logger.info(f"Connected to MongoDB {health['version']}, database {health['database']}")
        mongodb_service.create_indexes()
        logger.info("Indexes ready for cases, users and audit_logs")
        return 0

    except PyMongoError as e:
        logger.error(f"Failed to create indexes: {e}")
        return 1
    finally:
        close_mongodb_connection()


if __name__ == "__main__":
    sys.exit(main())
