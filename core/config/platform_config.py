#!/usr/bin/env python3
"""Platform configuration

Main configuration for the fundraising platform.
Combines all sub-configs and includes auth and campaign policy settings.
"""
import os
from dataclasses import dataclass, field
from typing import List

from .infra_config import InfraConfig
from .logging_config import LoggingConfig


def _bool(val: str) -> bool:
    return val.lower() == "true"

def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


@dataclass
class AuthConfig:
    """Bearer token settings"""
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_expire_seconds: int = 604800  # 7 days

    @classmethod
    def from_env(cls) -> 'AuthConfig':
        return cls(
            jwt_secret=os.getenv("JWT_SECRET", ""),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            jwt_expire_seconds=_int(os.getenv("JWT_EXPIRE_SECONDS", "604800"), 604800),
        )


@dataclass
class PlatformConfig:
    """Fundraising platform configuration"""

    # Sub-configs
    infra: InfraConfig = field(default_factory=InfraConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)

    # HTTP
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"])
    request_timeout_seconds: int = 30

    # Campaign outcome sweep (active -> completed / failed)
    outcome_sweep_enabled: bool = False
    outcome_sweep_interval_seconds: int = 300

    default_currency: str = "INR"

    @classmethod
    def from_env(cls) -> 'PlatformConfig':
        """Load platform config from environment"""
        origins = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")
        return cls(
            infra=InfraConfig.from_env(),
            logging=LoggingConfig.from_env(),
            auth=AuthConfig.from_env(),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            request_timeout_seconds=_int(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"), 30),
            outcome_sweep_enabled=_bool(os.getenv("OUTCOME_SWEEP_ENABLED", "false")),
            outcome_sweep_interval_seconds=_int(os.getenv("OUTCOME_SWEEP_INTERVAL_SECONDS", "300"), 300),
            default_currency=os.getenv("DEFAULT_CURRENCY", "INR"),
        )
