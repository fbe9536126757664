"""
Admin user listing
"""

import logging
from typing import Optional

from .campaign_service import require_admin
from .models import Principal, UserRecord, UserRole
from .protocols import CampaignValidationError, UserDirectoryProtocol
from .query_builder import DEFAULT_PAGE, MAX_LIMIT, PageResult, UserQuery

logger = logging.getLogger(__name__)


class AdminService:
    """Read-only user administration"""

    DEFAULT_LIMIT = 20

    def __init__(self, user_directory: UserDirectoryProtocol):
        self.user_directory = user_directory

    async def list_users(
        self,
        principal: Principal,
        role: Optional[str] = None,
        search: Optional[str] = None,
        page: int = DEFAULT_PAGE,
        limit: Optional[int] = None,
    ) -> PageResult[UserRecord]:
        """Users newest first; an unknown role filter is ignored"""
        require_admin(principal, "list users")

        if page < 1:
            raise CampaignValidationError("Page must be at least 1", "page")
        limit = min(max(limit or self.DEFAULT_LIMIT, 1), MAX_LIMIT)

        role_filter = None
        if role:
            try:
                role_filter = UserRole(role)
            except ValueError:
                logger.debug(f"Ignoring unknown role filter: {role}")

        return await self.user_directory.list_users(
            UserQuery(role=role_filter, search=search, page=page, limit=limit)
        )


__all__ = ["AdminService"]
