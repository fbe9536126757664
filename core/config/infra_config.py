#!/usr/bin/env python3
"""Infrastructure configuration

Document store endpoint and driver settings.
"""
import os
from dataclasses import dataclass
from typing import Optional

def _bool(val: str) -> bool:
    return val.lower() == "true"

def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


@dataclass
class InfraConfig:
    """Infrastructure service endpoints"""

    # ===========================================
    # MongoDB (native async driver - port 27017)
    # ===========================================
    mongo_uri: Optional[str] = None
    mongo_db_name: str = "fundraising"
    mongo_timeout_ms: int = 5000

    # Multi-document transactions need a replica set
    mongo_transactions: bool = False

    @classmethod
    def from_env(cls) -> 'InfraConfig':
        """Load infrastructure config from environment"""
        uri = os.getenv("MONGO_URI")
        return cls(
            mongo_uri=uri.strip() if uri else None,
            mongo_db_name=os.getenv("MONGO_DB_NAME", "fundraising"),
            mongo_timeout_ms=_int(os.getenv("MONGO_TIMEOUT_MS", "5000"), 5000),
            mongo_transactions=_bool(os.getenv("MONGO_TRANSACTIONS", "false")),
        )
