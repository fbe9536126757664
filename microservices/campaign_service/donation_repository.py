"""
Donation Ledger Repository

Append-only donation records - MongoDB (Async)
"""

import logging
from typing import Any, Dict, List

from pymongo import ASCENDING, DESCENDING

from core.mongo_client import MongoStore
from .campaign_repository import to_storable
from .models import Donation, PaymentStatus
from .query_builder import PageResult, count_pages

logger = logging.getLogger(__name__)

DONATIONS_COLLECTION = "donations"

NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]


class DonationRepository:
    """Donation ledger repository - MongoDB (Async)"""

    def __init__(self, store: MongoStore):
        self.store = store
        self.collection_name = DONATIONS_COLLECTION

    @property
    def collection(self):
        return self.store.collection(self.collection_name)

    async def initialize(self):
        await self.collection.create_index(
            [("campaign_id", ASCENDING), ("created_at", DESCENDING)], name="campaign_created"
        )
        await self.collection.create_index([("donor_id", ASCENDING)], name="donor_id")
        await self.collection.create_index(
            [("transaction_id", ASCENDING)], unique=True, name="transaction_id_unique"
        )
        logger.info("Donation repository initialized with MongoDB")

    async def insert_donation(self, donation: Donation, session: Any = None) -> Donation:
        doc = to_storable(donation.model_dump())
        doc["_id"] = doc.pop("donation_id")
        await self.collection.insert_one(doc, session=session)
        return donation

    async def list_by_campaign(
        self, campaign_id: str, skip: int = 0, limit: int = 10
    ) -> PageResult[Donation]:
        """Newest donations first"""
        filt = {"campaign_id": campaign_id}
        total = await self.collection.count_documents(filt)
        cursor = self.collection.find(filt).sort(NEWEST_FIRST).skip(skip).limit(limit)
        docs = await cursor.to_list(None)
        return PageResult(
            items=[self._doc_to_donation(d) for d in docs],
            total=total,
            total_pages=count_pages(total, limit),
            current_page=skip // limit + 1 if limit else 1,
        )

    async def list_by_donor(self, donor_id: str) -> List[Donation]:
        cursor = self.collection.find({"donor_id": donor_id}).sort(NEWEST_FIRST)
        docs = await cursor.to_list(None)
        return [self._doc_to_donation(d) for d in docs]

    async def ledger_totals(self, campaign_id: str) -> Dict[str, Any]:
        """Sum and count of completed donations for a campaign"""
        pipeline = [
            {
                "$match": {
                    "campaign_id": campaign_id,
                    "payment_status": PaymentStatus.COMPLETED.value,
                }
            },
            {"$group": {"_id": None, "amount": {"$sum": "$amount"}, "count": {"$sum": 1}}},
        ]
        cursor = await self.collection.aggregate(pipeline)
        rows = await cursor.to_list(None)
        if not rows:
            return {"amount": 0.0, "count": 0}
        return {"amount": float(rows[0]["amount"]), "count": int(rows[0]["count"])}

    def _doc_to_donation(self, doc: Dict[str, Any]) -> Donation:
        data = dict(doc)
        data["donation_id"] = str(data.pop("_id"))
        return Donation.model_validate(data)
