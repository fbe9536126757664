#!/usr/bin/env python3
"""Modular configuration system for the fundraising platform

Configuration hierarchy:
- infra_config: Document store (MongoDB) connection settings
- logging_config: Log output settings
- platform_config: Auth, HTTP and campaign policy settings (combines the above)

Values come from the process environment. A ``.env.<ENV>`` file, then a
plain ``.env`` file, fill in whatever the environment leaves unset.
"""
import os
from dotenv import load_dotenv
from .logging_config import LoggingConfig
from .infra_config import InfraConfig
from .platform_config import AuthConfig, PlatformConfig

env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
load_dotenv(f".env.{env}", override=False)
load_dotenv(".env", override=False)

# Process-wide settings
settings = PlatformConfig.from_env()


def get_settings() -> PlatformConfig:
    """Get global settings instance"""
    return settings


__all__ = [
    'PlatformConfig',
    'get_settings',
    'settings',
    'AuthConfig',
    'LoggingConfig',
    'InfraConfig',
]
