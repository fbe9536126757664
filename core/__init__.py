#!/usr/bin/env python3
"""
Core Module for the fundraising platform

Shared infrastructure used by the microservices in this repository.

COMPONENTS:
    - config/: Environment-driven configuration dataclasses
    - config_manager.py: Per-service configuration facade
    - logger.py: Service logger setup
    - jwt_manager.py: Bearer token verification
    - auth_dependencies.py: FastAPI authentication dependencies
    - mongo_client.py: Process-scoped MongoDB store

USAGE:
    from core.config_manager import ConfigManager
    from core.mongo_client import MongoStore

    config = ConfigManager("campaign_service")
    store = MongoStore(config.infra)
    await store.connect()
"""

from .config_manager import ConfigManager, ServiceConfig

__all__ = [
    "ConfigManager",
    "ServiceConfig",
]

__version__ = "1.0.0"
