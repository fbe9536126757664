"""
Campaign Service Factory

Factory for creating campaign service instances with proper dependency injection.
"""

import logging
from typing import Optional

from core.config_manager import ConfigManager
from core.mongo_client import MongoStore

from .admin_service import AdminService
from .campaign_repository import CampaignRepository
from .campaign_service import CampaignService
from .donation_repository import DonationRepository
from .donation_service import DonationService
from .outcome_evaluator import CampaignOutcomeEvaluator
from .user_directory import UserDirectory

logger = logging.getLogger(__name__)


class CampaignServiceFactory:
    """Factory for creating campaign service components"""

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        store: Optional[MongoStore] = None,
    ):
        self.config = config or ConfigManager("campaign_service")
        self._store: Optional[MongoStore] = store
        self._repository: Optional[CampaignRepository] = None
        self._donation_repository: Optional[DonationRepository] = None
        self._user_directory: Optional[UserDirectory] = None
        self._service: Optional[CampaignService] = None
        self._donation_service: Optional[DonationService] = None
        self._admin_service: Optional[AdminService] = None
        self._outcome_evaluator: Optional[CampaignOutcomeEvaluator] = None

    async def initialize(self) -> None:
        """
        Initialize all components.

        Store connection failures propagate so the process does not start
        without a database.
        """
        logger.info("Initializing Campaign Service components...")

        if self._store is None:
            self._store = MongoStore(self.config.infra)
        await self._store.connect()

        # Repositories
        self._repository = CampaignRepository(self._store)
        self._donation_repository = DonationRepository(self._store)
        self._user_directory = UserDirectory(self._store)
        await self._repository.initialize()
        await self._donation_repository.initialize()

        # Services
        self._service = CampaignService(
            repository=self._repository,
            user_directory=self._user_directory,
            default_currency=self.config.settings.default_currency,
        )
        self._donation_service = DonationService(
            campaign_repository=self._repository,
            donation_repository=self._donation_repository,
            user_directory=self._user_directory,
            transactions=self._store,
        )
        self._admin_service = AdminService(self._user_directory)
        self._outcome_evaluator = CampaignOutcomeEvaluator(self._repository)

        logger.info(
            f"Campaign Service components initialized "
            f"(transactions={'on' if self._store.transactions_enabled else 'off'})"
        )

    async def close(self) -> None:
        """Close all components"""
        logger.info("Closing Campaign Service components...")

        if self._repository:
            await self._repository.close()

        if self._store:
            await self._store.close()

        logger.info("Campaign Service components closed")

    @property
    def store(self) -> MongoStore:
        if not self._store:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._store

    @property
    def service(self) -> CampaignService:
        """Get campaign service"""
        if not self._service:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._service

    @property
    def donation_service(self) -> DonationService:
        """Get donation service"""
        if not self._donation_service:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._donation_service

    @property
    def admin_service(self) -> AdminService:
        if not self._admin_service:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._admin_service

    @property
    def outcome_evaluator(self) -> CampaignOutcomeEvaluator:
        """Get outcome evaluator"""
        if not self._outcome_evaluator:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._outcome_evaluator


__all__ = [
    "CampaignServiceFactory",
]
