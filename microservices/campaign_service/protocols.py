"""
Campaign Service Protocols

Defines interfaces for dependency injection and testing.
Following the protocol-based architecture pattern.
"""

from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence

from .models import (
    Campaign,
    CampaignStatus,
    Donation,
    UserRecord,
    UserSummary,
)
from .query_builder import CampaignQuery, PageResult, UserQuery


# ====================
# Repository Protocols
# ====================


class CampaignRepositoryProtocol(Protocol):
    """Protocol for campaign data repository"""

    async def initialize(self) -> None:
        """Create indexes"""
        ...

    async def close(self) -> None:
        ...

    async def health_check(self) -> bool:
        ...

    async def insert_campaign(self, campaign: Campaign) -> Campaign:
        """Insert a new campaign; raises DuplicateSlugError on slug clash"""
        ...

    async def get_campaign(self, campaign_id: str) -> Optional[Campaign]:
        ...

    async def get_campaign_by_slug(self, slug: str) -> Optional[Campaign]:
        ...

    async def slug_exists(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        """Whether another campaign already holds the slug"""
        ...

    async def update_campaign(
        self,
        campaign_id: str,
        updates: Dict[str, Any],
        expected_status: Optional[CampaignStatus] = None,
    ) -> Optional[Campaign]:
        """
        Partial update. With ``expected_status`` the write only happens while the
        campaign is still in that status. Returns None when nothing matched.
        """
        ...

    async def delete_campaign(self, campaign_id: str) -> bool:
        """Delete an unfunded campaign. Returns False when nothing was deleted."""
        ...

    async def list_campaigns(self, query: CampaignQuery) -> PageResult[Campaign]:
        ...

    async def increment_view_count(self, campaign_id: str) -> Optional[Campaign]:
        """Atomic +1 on view_count"""
        ...

    async def apply_donation(
        self, campaign_id: str, amount: float, session: Any = None
    ) -> Optional[Campaign]:
        """Atomically add a donation to an active campaign's totals"""
        ...

    async def revert_donation(self, campaign_id: str, amount: float) -> None:
        """Compensate a previously applied donation"""
        ...

    async def set_totals(
        self, campaign_id: str, current_amount: float, donor_count: int
    ) -> Optional[Campaign]:
        ...

    async def find_outcome_candidates(self, now: datetime) -> List[Campaign]:
        """Active campaigns past their deadline or at their goal"""
        ...


class DonationRepositoryProtocol(Protocol):
    """Protocol for donation ledger repository"""

    async def initialize(self) -> None:
        ...

    async def insert_donation(self, donation: Donation, session: Any = None) -> Donation:
        ...

    async def list_by_campaign(
        self, campaign_id: str, skip: int = 0, limit: int = 10
    ) -> PageResult[Donation]:
        ...

    async def list_by_donor(self, donor_id: str) -> List[Donation]:
        ...

    async def ledger_totals(self, campaign_id: str) -> Dict[str, Any]:
        """Sum and count of completed donations: {"amount": float, "count": int}"""
        ...


class UserDirectoryProtocol(Protocol):
    """Read-only view of platform users"""

    async def get_user_summaries(self, user_ids: Sequence[str]) -> Dict[str, UserSummary]:
        ...

    async def list_users(self, query: UserQuery) -> PageResult[UserRecord]:
        ...


class TransactionProviderProtocol(Protocol):
    """Runs a unit of work, in a multi-document transaction when available"""

    async def run_in_transaction(self, callback: Callable[[Any], Awaitable[Any]]) -> Any:
        """Awaits callback(session); session is None when transactions are unavailable"""
        ...


# ====================
# Custom Exceptions
# ====================


class FundraisingServiceError(Exception):
    """Base exception for fundraising service errors"""
    pass


class CampaignNotFoundError(FundraisingServiceError):
    """Raised when campaign is not found"""
    pass


class ForbiddenError(FundraisingServiceError):
    """Raised when the principal may not perform the operation"""
    pass


class UnauthorizedError(FundraisingServiceError):
    """Raised when no valid principal is present"""
    pass


class InvalidCampaignStateError(FundraisingServiceError):
    """Raised when campaign is in invalid state for operation"""

    def __init__(self, message: str, current_status: Optional[CampaignStatus] = None):
        super().__init__(message)
        self.current_status = current_status


class CampaignValidationError(FundraisingServiceError):
    """Raised when campaign or donation validation fails"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class DuplicateSlugError(FundraisingServiceError):
    """Raised by the store when a slug is already taken"""

    def __init__(self, slug: str):
        super().__init__(f"Slug already in use: {slug}")
        self.slug = slug


__all__ = [
    "CampaignRepositoryProtocol",
    "DonationRepositoryProtocol",
    "UserDirectoryProtocol",
    "TransactionProviderProtocol",
    "FundraisingServiceError",
    "CampaignNotFoundError",
    "ForbiddenError",
    "UnauthorizedError",
    "InvalidCampaignStateError",
    "CampaignValidationError",
    "DuplicateSlugError",
]
