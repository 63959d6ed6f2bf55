# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - persistence, messaging and the process engine facade.
"""

from .mongodb import MongoDBService, get_mongodb_service, close_mongodb_connection
from .amqp import AMQPService, AMQPConfig, PublishResult, create_amqp_service
from .engine import KarinProcessEngine

__all__ = [
    "MongoDBService",
    "get_mongodb_service",
    "close_mongodb_connection",
    "AMQPService",
    "AMQPConfig",
    "PublishResult",
    "create_amqp_service",
    "KarinProcessEngine"
]
