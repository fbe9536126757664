"""
Donation Ledger Business Logic

Records donations against active campaigns and keeps campaign totals equal
to the sum of completed donations.

Write order for a donation:
1. Atomic ``$inc`` of the campaign totals, gated on ``status=active``
2. Insert of the donation record

With store transactions enabled both writes run in one transaction, retried
by the driver on transient conflicts. Without them an insert that does not
complete, including one cancelled mid-request, is compensated by reverting
the increment before the error propagates.
"""

import asyncio
import logging
import math
import secrets
import time
from typing import List, Optional

from .campaign_service import require_admin
from .models import (
    CampaignStatus,
    CampaignSummary,
    Donation,
    DonationCreateRequest,
    DonationView,
    PaymentMethod,
    PaymentStatus,
    Principal,
    ReconciliationReport,
    UserSummary,
)
from .protocols import (
    CampaignNotFoundError,
    CampaignRepositoryProtocol,
    CampaignValidationError,
    DonationRepositoryProtocol,
    InvalidCampaignStateError,
    TransactionProviderProtocol,
    UserDirectoryProtocol,
)
from .query_builder import DEFAULT_PAGE, MAX_LIMIT, PageResult, page_to_skip

logger = logging.getLogger(__name__)

ANONYMOUS_DONOR_ID = "anonymous"


def generate_transaction_id() -> str:
    """TXN + epoch milliseconds + 6 random hex digits"""
    return f"TXN{int(time.time() * 1000)}{secrets.token_hex(3)}"


class DonationService:
    """Donation ledger business logic layer"""

    MIN_AMOUNT = 1
    MAX_MESSAGE_LENGTH = 300
    CAMPAIGN_DONATIONS_DEFAULT_LIMIT = 10

    def __init__(
        self,
        campaign_repository: CampaignRepositoryProtocol,
        donation_repository: DonationRepositoryProtocol,
        user_directory: UserDirectoryProtocol,
        transactions: TransactionProviderProtocol,
    ):
        self.campaign_repository = campaign_repository
        self.donation_repository = donation_repository
        self.user_directory = user_directory
        self.transactions = transactions

    async def create_donation(
        self,
        request: DonationCreateRequest,
        principal: Principal,
    ) -> DonationView:
        """Record a completed (simulated) donation and update campaign totals"""
        self._validate_donation_request(request)

        campaign = await self.campaign_repository.get_campaign(request.campaign_id)
        if not campaign:
            raise CampaignNotFoundError(f"Campaign not found: {request.campaign_id}")
        if campaign.status != CampaignStatus.ACTIVE:
            raise InvalidCampaignStateError(
                "This campaign is not accepting donations", campaign.status
            )

        donation = Donation(
            campaign_id=campaign.campaign_id,
            donor_id=principal.user_id,
            amount=request.amount,
            message=request.message or "",
            is_anonymous=request.is_anonymous,
            payment_method=request.payment_method or PaymentMethod.SIMULATED,
            payment_status=PaymentStatus.COMPLETED,
            transaction_id=generate_transaction_id(),
        )

        async def record(session):
            applied = await self.campaign_repository.apply_donation(
                campaign.campaign_id, donation.amount, session=session
            )
            if applied is None:
                # Campaign left active after the status check
                raise InvalidCampaignStateError("This campaign is not accepting donations")

            if session is not None:
                await self.donation_repository.insert_donation(donation, session=session)
                return applied

            inserted = False
            try:
                await self.donation_repository.insert_donation(donation)
                inserted = True
            finally:
                if not inserted:
                    logger.error(
                        f"Donation {donation.donation_id} not recorded for campaign "
                        f"{campaign.campaign_id}, reverting totals"
                    )
                    await asyncio.shield(
                        self.campaign_repository.revert_donation(campaign.campaign_id, donation.amount)
                    )
            return applied

        applied = await self.transactions.run_in_transaction(record)

        logger.info(
            f"Donation {donation.donation_id} of {donation.amount} to campaign "
            f"{campaign.campaign_id} by {principal.user_id} ({donation.transaction_id}); "
            f"raised {applied.current_amount}/{applied.goal_amount}"
        )

        donors = await self.user_directory.get_user_summaries([principal.user_id])
        donor = donors.get(principal.user_id)
        return DonationView(
            **donation.model_dump(),
            donor=self._donor_projection(donor, include_email=True),
        )

    async def list_campaign_donations(
        self,
        campaign_id: str,
        page: int = DEFAULT_PAGE,
        limit: Optional[int] = None,
    ) -> PageResult[DonationView]:
        """Public donation feed for a campaign, newest first"""
        limit = min(max(limit or self.CAMPAIGN_DONATIONS_DEFAULT_LIMIT, 1), MAX_LIMIT)
        page = max(page, 1)
        result = await self.donation_repository.list_by_campaign(
            campaign_id, skip=page_to_skip(page, limit), limit=limit
        )

        donors = await self.user_directory.get_user_summaries(
            [d.donor_id for d in result.items if not d.is_anonymous]
        )
        views = []
        for donation in result.items:
            if donation.is_anonymous:
                views.append(
                    DonationView(**donation.model_dump(exclude={"donor_id"}), donor_id=ANONYMOUS_DONOR_ID)
                )
            else:
                views.append(
                    DonationView(
                        **donation.model_dump(),
                        donor=self._donor_projection(donors.get(donation.donor_id)),
                    )
                )

        return PageResult(
            items=views,
            total=result.total,
            total_pages=result.total_pages,
            current_page=page,
        )

    async def list_my_donations(self, principal: Principal) -> List[DonationView]:
        """Caller's donation history joined with campaign summaries"""
        donations = await self.donation_repository.list_by_donor(principal.user_id)

        campaigns = {}
        for campaign_id in {d.campaign_id for d in donations}:
            campaign = await self.campaign_repository.get_campaign(campaign_id)
            if campaign:
                campaigns[campaign_id] = CampaignSummary(
                    campaign_id=campaign.campaign_id,
                    title=campaign.title,
                    slug=campaign.slug,
                    images=campaign.images,
                )

        return [
            DonationView(**d.model_dump(), campaign=campaigns.get(d.campaign_id))
            for d in donations
        ]

    async def reconcile_campaign(
        self,
        campaign_id: str,
        principal: Principal,
        repair: bool = False,
    ) -> ReconciliationReport:
        """Compare recorded campaign totals with the donation ledger"""
        require_admin(principal, "reconcile campaigns")

        campaign = await self.campaign_repository.get_campaign(campaign_id)
        if not campaign:
            raise CampaignNotFoundError(f"Campaign not found: {campaign_id}")

        totals = await self.donation_repository.ledger_totals(campaign_id)
        ledger_amount = float(totals["amount"])
        ledger_count = int(totals["count"])
        consistent = (
            abs(campaign.current_amount - ledger_amount) < 1e-6
            and campaign.donor_count == ledger_count
        )

        report = ReconciliationReport(
            campaign_id=campaign_id,
            recorded_amount=campaign.current_amount,
            ledger_amount=ledger_amount,
            recorded_donor_count=campaign.donor_count,
            ledger_donor_count=ledger_count,
            consistent=consistent,
        )

        if not consistent:
            logger.warning(
                f"Ledger drift on campaign {campaign_id}: recorded "
                f"{campaign.current_amount}/{campaign.donor_count}, "
                f"ledger {ledger_amount}/{ledger_count}"
            )
            if repair:
                await self.campaign_repository.set_totals(campaign_id, ledger_amount, ledger_count)
                report.repaired = True
                logger.info(f"Campaign {campaign_id} totals repaired by {principal.user_id}")

        return report

    # ====================
    # Helpers
    # ====================

    def _validate_donation_request(self, request: DonationCreateRequest) -> None:
        if (
            request.amount is None
            or not math.isfinite(request.amount)
            or request.amount < self.MIN_AMOUNT
        ):
            raise CampaignValidationError(
                f"Donation amount must be at least {self.MIN_AMOUNT}", "amount"
            )
        if request.message and len(request.message) > self.MAX_MESSAGE_LENGTH:
            raise CampaignValidationError(
                f"Message cannot be more than {self.MAX_MESSAGE_LENGTH} characters", "message"
            )

    def _donor_projection(
        self, summary: Optional[UserSummary], include_email: bool = False
    ) -> Optional[UserSummary]:
        if summary is None:
            return None
        return UserSummary(
            user_id=summary.user_id,
            name=summary.name,
            email=summary.email if include_email else None,
            avatar=summary.avatar,
        )


__all__ = ["DonationService", "generate_transaction_id"]
