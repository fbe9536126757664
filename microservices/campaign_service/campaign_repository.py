"""
Campaign Service Data Repository

Data access layer - MongoDB (Async)
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from core.mongo_client import MongoStore
from .models import Campaign, CampaignStatus
from .protocols import DuplicateSlugError
from .query_builder import (
    CampaignQuery,
    PageResult,
    build_campaign_filter,
    build_campaign_sort,
    count_pages,
)

logger = logging.getLogger(__name__)

CAMPAIGNS_COLLECTION = "campaigns"


def to_storable(value: Any) -> Any:
    """Enums to their values, recursively through lists and dicts"""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return [to_storable(v) for v in value]
    if isinstance(value, dict):
        return {k: to_storable(v) for k, v in value.items()}
    return value


def is_duplicate_slug(error: DuplicateKeyError) -> bool:
    details = error.details or {}
    if "slug" in (details.get("keyPattern") or {}):
        return True
    return "slug" in str(error)


class CampaignRepository:
    """Campaign service data repository - MongoDB (Async)"""

    def __init__(self, store: MongoStore):
        self.store = store
        self.collection_name = CAMPAIGNS_COLLECTION

    @property
    def collection(self):
        return self.store.collection(self.collection_name)

    async def initialize(self):
        """Create indexes"""
        await self.collection.create_index([("slug", ASCENDING)], unique=True, name="slug_unique")
        await self.collection.create_index([("creator_id", ASCENDING)], name="creator_id")
        await self.collection.create_index([("status", ASCENDING)], name="status")
        await self.collection.create_index([("created_at", DESCENDING)], name="created_at")
        logger.info("Campaign repository initialized with MongoDB")

    async def close(self):
        logger.info("Campaign repository closed")

    async def health_check(self) -> bool:
        return await self.store.health_check()

    # ====================
    # Campaign CRUD
    # ====================

    async def insert_campaign(self, campaign: Campaign) -> Campaign:
        """Insert a new campaign"""
        doc = self._campaign_to_doc(campaign)
        try:
            await self.collection.insert_one(doc)
        except DuplicateKeyError as e:
            if is_duplicate_slug(e):
                raise DuplicateSlugError(campaign.slug) from e
            raise
        except PyMongoError as e:
            logger.error(f"Error inserting campaign {campaign.campaign_id}: {e}", exc_info=True)
            raise
        return campaign

    async def get_campaign(self, campaign_id: str) -> Optional[Campaign]:
        """Get campaign by ID"""
        doc = await self.collection.find_one({"_id": campaign_id})
        return self._doc_to_campaign(doc) if doc else None

    async def get_campaign_by_slug(self, slug: str) -> Optional[Campaign]:
        doc = await self.collection.find_one({"slug": slug})
        return self._doc_to_campaign(doc) if doc else None

    async def slug_exists(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        filt: Dict[str, Any] = {"slug": slug}
        if exclude_id:
            filt["_id"] = {"$ne": exclude_id}
        return await self.collection.count_documents(filt, limit=1) > 0

    async def update_campaign(
        self,
        campaign_id: str,
        updates: Dict[str, Any],
        expected_status: Optional[CampaignStatus] = None,
    ) -> Optional[Campaign]:
        """Partial update, optionally guarded on the current status"""
        filt: Dict[str, Any] = {"_id": campaign_id}
        if expected_status is not None:
            filt["status"] = expected_status.value

        fields = to_storable(dict(updates))
        fields["updated_at"] = datetime.now(timezone.utc)

        try:
            doc = await self.collection.find_one_and_update(
                filt,
                {"$set": fields},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as e:
            if is_duplicate_slug(e):
                raise DuplicateSlugError(fields.get("slug", "")) from e
            raise
        return self._doc_to_campaign(doc) if doc else None

    async def delete_campaign(self, campaign_id: str) -> bool:
        """Delete only while no money has been raised"""
        result = await self.collection.delete_one(
            {"_id": campaign_id, "current_amount": {"$lte": 0}}
        )
        return result.deleted_count == 1

    async def list_campaigns(self, query: CampaignQuery) -> PageResult[Campaign]:
        """List campaigns with filters, sort and pagination"""
        filt = build_campaign_filter(query)
        total = await self.collection.count_documents(filt)

        cursor = self.collection.find(filt).sort(build_campaign_sort(query.sort))
        if query.limit is not None:
            cursor = cursor.skip(query.skip).limit(query.limit)
        docs = await cursor.to_list(None)

        return PageResult(
            items=[self._doc_to_campaign(d) for d in docs],
            total=total,
            total_pages=count_pages(total, query.limit),
            current_page=query.page if query.limit is not None else 1,
        )

    # ====================
    # Atomic counters
    # ====================

    async def increment_view_count(self, campaign_id: str) -> Optional[Campaign]:
        doc = await self.collection.find_one_and_update(
            {"_id": campaign_id},
            {"$inc": {"view_count": 1}},
            return_document=ReturnDocument.AFTER,
        )
        return self._doc_to_campaign(doc) if doc else None

    async def apply_donation(
        self, campaign_id: str, amount: float, session: Any = None
    ) -> Optional[Campaign]:
        """Add a donation to the totals, only while the campaign is active"""
        doc = await self.collection.find_one_and_update(
            {"_id": campaign_id, "status": CampaignStatus.ACTIVE.value},
            {
                "$inc": {"current_amount": amount, "donor_count": 1},
                "$set": {"updated_at": datetime.now(timezone.utc)},
            },
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        return self._doc_to_campaign(doc) if doc else None

    async def revert_donation(self, campaign_id: str, amount: float) -> None:
        await self.collection.update_one(
            {"_id": campaign_id},
            {"$inc": {"current_amount": -amount, "donor_count": -1}},
        )
        logger.warning(f"Reverted donation of {amount} on campaign {campaign_id}")

    async def set_totals(
        self, campaign_id: str, current_amount: float, donor_count: int
    ) -> Optional[Campaign]:
        return await self.update_campaign(
            campaign_id,
            {"current_amount": current_amount, "donor_count": donor_count},
        )

    async def find_outcome_candidates(self, now: datetime) -> List[Campaign]:
        """Active campaigns whose deadline passed or whose goal is reached"""
        cursor = self.collection.find(
            {
                "status": CampaignStatus.ACTIVE.value,
                "$or": [
                    {"deadline": {"$lte": now}},
                    {"$expr": {"$gte": ["$current_amount", "$goal_amount"]}},
                ],
            }
        )
        docs = await cursor.to_list(None)
        return [self._doc_to_campaign(d) for d in docs]

    # ====================
    # Mapping
    # ====================

    def _campaign_to_doc(self, campaign: Campaign) -> Dict[str, Any]:
        data = to_storable(campaign.model_dump())
        data["_id"] = data.pop("campaign_id")
        return data

    def _doc_to_campaign(self, doc: Dict[str, Any]) -> Campaign:
        data = dict(doc)
        data["campaign_id"] = str(data.pop("_id"))
        return Campaign.model_validate(data)
