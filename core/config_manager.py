#!/usr/bin/env python3
"""
Centralized Configuration Manager

Per-service facade over the environment-driven config dataclasses in
``core.config``.

Usage:
    from core.config_manager import ConfigManager

    config_manager = ConfigManager("campaign_service")
    config = config_manager.get_service_config()
    logger = setup_service_logger("campaign_service", level=config.log_level.upper())
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from .config import PlatformConfig, get_settings

logger = logging.getLogger(__name__)


@dataclass
class ServiceConfig:
    """Runtime settings of a single service process"""
    service_name: str
    service_port: int
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"


class ConfigManager:
    """Configuration access for one microservice"""

    DEFAULT_PORTS = {
        "campaign_service": 8240,
    }

    def __init__(self, service_name: str, settings: Optional[PlatformConfig] = None):
        self.service_name = service_name
        self.settings = settings or get_settings()

    def get_service_config(self) -> ServiceConfig:
        """Build the service runtime config from env"""
        default_port = self.DEFAULT_PORTS.get(self.service_name, 8000)
        try:
            port = int(os.getenv("SERVICE_PORT", str(default_port)))
        except ValueError:
            port = default_port

        return ServiceConfig(
            service_name=self.service_name,
            service_port=port,
            environment=self.settings.logging.environment,
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=self.settings.logging.log_level,
        )

    @property
    def infra(self):
        return self.settings.infra

    def print_config_summary(self, show_secrets: bool = False) -> None:
        """Log the effective configuration (development aid)"""
        infra = self.settings.infra
        auth = self.settings.auth

        def _mask(value: Optional[str]) -> str:
            if not value:
                return "<not set>"
            return value if show_secrets else "***"

        logger.info(f"Configuration for {self.service_name}:")
        logger.info(f"  environment:        {self.settings.logging.environment}")
        logger.info(f"  mongo_uri:          {_mask(infra.mongo_uri)}")
        logger.info(f"  mongo_db_name:      {infra.mongo_db_name}")
        logger.info(f"  mongo_transactions: {infra.mongo_transactions}")
        logger.info(f"  jwt_secret:         {_mask(auth.jwt_secret)}")
        logger.info(f"  outcome_sweep:      {self.settings.outcome_sweep_enabled}")


__all__ = ["ConfigManager", "ServiceConfig"]
