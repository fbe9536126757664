"""
Campaign Service Business Logic

Implements the campaign lifecycle: creation, moderation, owner edits,
deletion, slug assignment, view counting and campaign listings.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .models import (
    Campaign,
    CampaignCategory,
    CampaignCreateRequest,
    CampaignStatus,
    CampaignUpdateRequest,
    CampaignView,
    Principal,
    ensure_utc,
)
from .protocols import (
    CampaignNotFoundError,
    CampaignRepositoryProtocol,
    CampaignValidationError,
    DuplicateSlugError,
    ForbiddenError,
    InvalidCampaignStateError,
    UserDirectoryProtocol,
)
from .query_builder import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    MAX_LIMIT,
    CampaignQuery,
    PageResult,
    parse_sort,
)
from .slugs import resolve_unique_slug

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def require_admin(principal: Principal, action: str = "perform this action") -> None:
    if not principal.is_admin:
        logger.warning(f"User {principal.user_id} ({principal.role.value}) denied: {action}")
        raise ForbiddenError(f"Only admins can {action}")


class CampaignService:
    """Campaign service business logic layer"""

    MIN_GOAL_AMOUNT = 1000
    MAX_TITLE_LENGTH = 100
    MAX_SLUG_ATTEMPTS = 3
    PENDING_DEFAULT_LIMIT = 50
    DEFAULT_REJECTION_REASON = "Campaign did not meet platform guidelines"

    # Valid state transitions
    VALID_TRANSITIONS = {
        CampaignStatus.DRAFT: [CampaignStatus.PENDING],  # Reserved
        CampaignStatus.PENDING: [CampaignStatus.ACTIVE, CampaignStatus.REJECTED],
        CampaignStatus.REJECTED: [CampaignStatus.PENDING],
        CampaignStatus.ACTIVE: [CampaignStatus.COMPLETED, CampaignStatus.FAILED],
        CampaignStatus.COMPLETED: [],  # Terminal state
        CampaignStatus.FAILED: [],  # Terminal state
    }

    def __init__(
        self,
        repository: CampaignRepositoryProtocol,
        user_directory: UserDirectoryProtocol,
        default_currency: str = "INR",
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self.user_directory = user_directory
        self.default_currency = default_currency
        self.clock = clock

    # ====================
    # Campaign CRUD
    # ====================

    async def create_campaign(
        self,
        request: CampaignCreateRequest,
        principal: Principal,
    ) -> CampaignView:
        """
        Create a new campaign in pending status.

        The creator is always the calling principal. The slug is derived from
        the title and made unique against existing campaigns.
        """
        if not principal.can_create_campaigns:
            logger.warning(f"User {principal.user_id} ({principal.role.value}) denied: create campaign")
            raise ForbiddenError("Only creators can create campaigns")

        self._validate_campaign_create_request(request)

        campaign = Campaign(
            creator_id=principal.user_id,
            title=request.title.strip(),
            description=request.description.strip(),
            category=request.category,
            goal_amount=request.goal_amount,
            currency=request.currency or self.default_currency,
            images=request.images or [],
            video_url=request.video_url,
            tags=request.tags or [],
            deadline=request.deadline,
            verification_documents=request.verification_documents or [],
            status=CampaignStatus.PENDING,
        )

        for _ in range(self.MAX_SLUG_ATTEMPTS):
            campaign.slug = await resolve_unique_slug(campaign.title, self.repository.slug_exists)
            try:
                campaign = await self.repository.insert_campaign(campaign)
                break
            except DuplicateSlugError:
                logger.info(f"Slug {campaign.slug} taken concurrently, retrying")
        else:
            raise CampaignValidationError("Could not assign a unique slug", "title")

        logger.info(
            f"Campaign {campaign.campaign_id} created by {principal.user_id} "
            f"(slug={campaign.slug}, goal={campaign.goal_amount})"
        )
        return await self._view(campaign)

    async def get_campaign(self, campaign_id: str) -> Campaign:
        """Get campaign by ID"""
        campaign = await self.repository.get_campaign(campaign_id)
        if not campaign:
            raise CampaignNotFoundError(f"Campaign not found: {campaign_id}")
        return campaign

    async def get_campaign_by_slug(self, slug: str) -> CampaignView:
        """Public campaign page, joined with the creator summary"""
        campaign = await self.repository.get_campaign_by_slug(slug)
        if not campaign:
            raise CampaignNotFoundError(f"Campaign not found: {slug}")
        return await self._view(campaign)

    async def update_campaign(
        self,
        campaign_id: str,
        request: CampaignUpdateRequest,
        principal: Principal,
    ) -> CampaignView:
        """
        Owner edit of the supplied fields.

        Completed campaigns are frozen. Editing a rejected campaign resubmits
        it for moderation. Moderation fields are never touched here.
        """
        campaign = await self.get_campaign(campaign_id)
        self._require_owner(campaign, principal, "update")

        if campaign.status == CampaignStatus.COMPLETED:
            raise InvalidCampaignStateError("Cannot edit completed campaign", campaign.status)

        updates = self._build_updates(request)

        if "title" in updates and updates["title"] != campaign.title:
            updates["slug"] = await resolve_unique_slug(
                updates["title"],
                lambda s: self.repository.slug_exists(s, exclude_id=campaign_id),
            )

        if campaign.status == CampaignStatus.REJECTED:
            updates["status"] = CampaignStatus.PENDING

        if not updates:
            return await self._view(campaign)

        try:
            updated = await self.repository.update_campaign(
                campaign_id, updates, expected_status=campaign.status
            )
        except DuplicateSlugError:
            updates["slug"] = await resolve_unique_slug(
                updates["title"],
                lambda s: self.repository.slug_exists(s, exclude_id=campaign_id),
            )
            updated = await self.repository.update_campaign(
                campaign_id, updates, expected_status=campaign.status
            )

        if updated is None:
            current = await self.get_campaign(campaign_id)
            raise InvalidCampaignStateError(
                "Campaign changed status during update, retry", current.status
            )

        if updates.get("status") == CampaignStatus.PENDING:
            logger.info(f"Campaign {campaign_id} resubmitted for review (rejected -> pending)")
        logger.info(f"Campaign {campaign_id} updated: {sorted(updates)}")
        return await self._view(updated)

    async def delete_campaign(self, campaign_id: str, principal: Principal) -> None:
        """Owner delete; campaigns that have raised money cannot be deleted"""
        campaign = await self.get_campaign(campaign_id)
        self._require_owner(campaign, principal, "delete")

        if campaign.current_amount > 0:
            raise InvalidCampaignStateError(
                "Cannot delete campaign with donations", campaign.status
            )

        deleted = await self.repository.delete_campaign(campaign_id)
        if not deleted:
            # Donation landed between the check and the delete, or already gone
            current = await self.get_campaign(campaign_id)
            raise InvalidCampaignStateError(
                "Cannot delete campaign with donations", current.status
            )

        logger.info(f"Campaign {campaign_id} deleted by {principal.user_id}")

    async def record_view(self, campaign_id: str) -> int:
        """Atomic view counter, returns the new count"""
        campaign = await self.repository.increment_view_count(campaign_id)
        if not campaign:
            raise CampaignNotFoundError(f"Campaign not found: {campaign_id}")
        return campaign.view_count

    # ====================
    # Moderation
    # ====================

    async def approve_campaign(
        self,
        campaign_id: str,
        principal: Principal,
        admin_notes: Optional[str] = None,
    ) -> CampaignView:
        """pending -> active, marks the campaign verified"""
        require_admin(principal, "approve campaigns")
        campaign = await self.get_campaign(campaign_id)

        if campaign.status == CampaignStatus.ACTIVE:
            raise InvalidCampaignStateError("Campaign is already approved", campaign.status)

        if not self._validate_state_transition(campaign.status, CampaignStatus.ACTIVE):
            raise InvalidCampaignStateError(
                f"Cannot approve campaign in {campaign.status.value} status", campaign.status
            )

        updates: Dict[str, Any] = {
            "status": CampaignStatus.ACTIVE,
            "is_verified": True,
            "approved_by": principal.user_id,
            "approved_at": self.clock(),
        }
        if admin_notes:
            updates["admin_notes"] = admin_notes

        updated = await self.repository.update_campaign(
            campaign_id, updates, expected_status=campaign.status
        )
        if updated is None:
            current = await self.get_campaign(campaign_id)
            raise InvalidCampaignStateError(
                f"Cannot approve campaign in {current.status.value} status", current.status
            )

        logger.info(f"Campaign {campaign_id} approved by {principal.user_id} ({campaign.status.value} -> active)")
        return await self._view(updated)

    async def reject_campaign(
        self,
        campaign_id: str,
        principal: Principal,
        reason: Optional[str] = None,
    ) -> CampaignView:
        """Sets status rejected with a reason; a repeated rejection overwrites it"""
        require_admin(principal, "reject campaigns")
        campaign = await self.get_campaign(campaign_id)

        updated = await self.repository.update_campaign(
            campaign_id,
            {
                "status": CampaignStatus.REJECTED,
                "rejection_reason": reason or self.DEFAULT_REJECTION_REASON,
            },
        )
        if updated is None:
            raise CampaignNotFoundError(f"Campaign not found: {campaign_id}")

        logger.info(f"Campaign {campaign_id} rejected by {principal.user_id} ({campaign.status.value} -> rejected)")
        return await self._view(updated)

    # ====================
    # Listings
    # ====================

    async def list_public_campaigns(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        sort: Optional[str] = None,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
    ) -> PageResult[CampaignView]:
        """Active campaigns only, whoever is asking"""
        if page < 1:
            raise CampaignValidationError("Page must be at least 1", "page")
        if limit < 1 or limit > MAX_LIMIT:
            raise CampaignValidationError(f"Limit must be between 1 and {MAX_LIMIT}", "limit")

        query = CampaignQuery(
            statuses=[CampaignStatus.ACTIVE],
            category=self._parse_category(category) if category else None,
            search=search,
            sort=parse_sort(sort),
            page=page,
            limit=limit,
        )
        return await self._list(query)

    async def list_pending_campaigns(
        self,
        principal: Principal,
        page: int = DEFAULT_PAGE,
        limit: Optional[int] = None,
    ) -> PageResult[CampaignView]:
        """Moderation queue, newest first"""
        require_admin(principal, "view pending campaigns")
        limit = min(max(limit or self.PENDING_DEFAULT_LIMIT, 1), MAX_LIMIT)
        query = CampaignQuery(
            statuses=[CampaignStatus.PENDING],
            page=max(page, 1),
            limit=limit,
        )
        return await self._list(query)

    async def list_my_campaigns(self, principal: Principal) -> List[CampaignView]:
        """All of the caller's campaigns in any status, newest first"""
        query = CampaignQuery(creator_id=principal.user_id, limit=None)
        result = await self._list(query)
        return result.items

    async def _list(self, query: CampaignQuery) -> PageResult[CampaignView]:
        page = await self.repository.list_campaigns(query)
        return PageResult(
            items=await self._views(page.items),
            total=page.total,
            total_pages=page.total_pages,
            current_page=page.current_page,
        )

    # ====================
    # Views
    # ====================

    async def _view(self, campaign: Campaign) -> CampaignView:
        views = await self._views([campaign])
        return views[0]

    async def _views(self, campaigns: List[Campaign]) -> List[CampaignView]:
        creators = await self.user_directory.get_user_summaries(
            [c.creator_id for c in campaigns]
        )
        now = self.clock()
        return [
            CampaignView.from_campaign(c, creator=creators.get(c.creator_id), now=now)
            for c in campaigns
        ]

    # ====================
    # Validation Helpers
    # ====================

    def _require_owner(self, campaign: Campaign, principal: Principal, action: str) -> None:
        if campaign.creator_id != principal.user_id:
            logger.warning(
                f"User {principal.user_id} denied: {action} campaign {campaign.campaign_id} "
                f"owned by {campaign.creator_id}"
            )
            raise ForbiddenError(f"Not authorized to {action} this campaign")

    def _validate_campaign_create_request(self, request: CampaignCreateRequest) -> None:
        """Validate campaign create request"""
        self._validate_title(request.title)
        if not request.description or not request.description.strip():
            raise CampaignValidationError("Description is required", "description")
        if request.category is None:
            raise CampaignValidationError("Category is required", "category")
        self._validate_goal_amount(request.goal_amount)
        if request.deadline is None:
            raise CampaignValidationError("Campaign deadline is required", "deadline")

    def _build_updates(self, request: CampaignUpdateRequest) -> Dict[str, Any]:
        """Supplied fields only, validated with the create rules"""
        supplied = request.model_dump(exclude_unset=True)
        updates: Dict[str, Any] = {}

        for field, value in supplied.items():
            if field == "title":
                self._validate_title(value)
                value = value.strip()
            elif field == "description":
                if not value or not value.strip():
                    raise CampaignValidationError("Description is required", "description")
                value = value.strip()
            elif field == "category":
                if value is None:
                    raise CampaignValidationError("Category is required", "category")
            elif field == "goal_amount":
                self._validate_goal_amount(value)
            elif field == "deadline":
                if value is None:
                    raise CampaignValidationError("Campaign deadline is required", "deadline")
                value = ensure_utc(value)
            elif field in ("images", "tags", "verification_documents"):
                value = value or []
            updates[field] = value

        return updates

    def _validate_title(self, title: Optional[str]) -> None:
        """Validate campaign title"""
        if not title or not title.strip():
            raise CampaignValidationError("Campaign title is required", "title")
        if len(title.strip()) > self.MAX_TITLE_LENGTH:
            raise CampaignValidationError(
                f"Title cannot be more than {self.MAX_TITLE_LENGTH} characters", "title"
            )

    def _validate_goal_amount(self, goal_amount: Optional[float]) -> None:
        if goal_amount is None:
            raise CampaignValidationError("Goal amount is required", "goal_amount")
        if not math.isfinite(goal_amount):
            raise CampaignValidationError("Goal amount must be a finite number", "goal_amount")
        if goal_amount < self.MIN_GOAL_AMOUNT:
            raise CampaignValidationError(
                f"Goal amount must be at least {self.MIN_GOAL_AMOUNT}", "goal_amount"
            )

    def _parse_category(self, value: str) -> CampaignCategory:
        try:
            return CampaignCategory(value)
        except ValueError:
            raise CampaignValidationError(f"Invalid category: {value}", "category") from None

    def _validate_state_transition(
        self,
        current: CampaignStatus,
        target: CampaignStatus,
    ) -> bool:
        """Validate state transition is allowed"""
        valid_targets = self.VALID_TRANSITIONS.get(current, [])
        return target in valid_targets


__all__ = ["CampaignService", "require_admin"]
