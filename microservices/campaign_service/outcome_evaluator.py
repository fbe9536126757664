"""
Campaign Outcome Evaluator

Moves active campaigns to their final status once the outcome is known:
goal reached -> completed, deadline passed with goal unmet -> failed.

Evaluation is explicit. It runs from a periodic background sweep (enabled
by configuration) or from the admin trigger, never implicitly on reads.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .models import Campaign, CampaignStatus, OutcomeTransition, ensure_utc
from .protocols import CampaignRepositoryProtocol

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CampaignOutcomeEvaluator:
    """Deadline/goal policy plus the sweep that applies it"""

    def __init__(
        self,
        repository: CampaignRepositoryProtocol,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self.clock = clock

    def evaluate(self, campaign: Campaign, now: datetime) -> Optional[CampaignStatus]:
        """Target status for a campaign, or None if it stays as it is"""
        if campaign.status != CampaignStatus.ACTIVE:
            return None
        if campaign.current_amount >= campaign.goal_amount:
            return CampaignStatus.COMPLETED
        if ensure_utc(campaign.deadline) <= ensure_utc(now):
            return CampaignStatus.FAILED
        return None

    async def sweep(self, now: Optional[datetime] = None) -> List[OutcomeTransition]:
        """Evaluate every candidate once and apply the resulting transitions"""
        now = now or self.clock()
        candidates = await self.repository.find_outcome_candidates(now)
        transitions: List[OutcomeTransition] = []

        for campaign in candidates:
            target = self.evaluate(campaign, now)
            if target is None:
                continue

            # Guarded on active so a concurrent transition wins cleanly
            updated = await self.repository.update_campaign(
                campaign.campaign_id,
                {"status": target},
                expected_status=CampaignStatus.ACTIVE,
            )
            if updated is None:
                logger.debug(f"Campaign {campaign.campaign_id} left active before sweep update")
                continue

            logger.info(
                f"Campaign {campaign.campaign_id} {campaign.status.value} -> {target.value} "
                f"(raised {campaign.current_amount}/{campaign.goal_amount})"
            )
            transitions.append(
                OutcomeTransition(
                    campaign_id=campaign.campaign_id,
                    from_status=campaign.status,
                    to_status=target,
                    evaluated_at=now,
                )
            )

        logger.info(f"Outcome sweep evaluated {len(candidates)} campaigns, {len(transitions)} transitioned")
        return transitions

    async def run_periodic(self, interval_seconds: float) -> None:
        """Background loop; runs until cancelled"""
        logger.info(f"Outcome sweep running every {interval_seconds}s")
        while True:
            try:
                await self.sweep()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Outcome sweep failed: {e}", exc_info=True)
            await asyncio.sleep(interval_seconds)


__all__ = ["CampaignOutcomeEvaluator"]
