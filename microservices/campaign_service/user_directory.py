"""
User Directory

Read-only projection of the platform users collection. Credentials are never
projected.
"""

import logging
from typing import Any, Dict, List, Sequence

from bson import ObjectId
from pymongo import DESCENDING

from core.mongo_client import MongoStore
from .models import UserRecord, UserSummary
from .query_builder import PageResult, UserQuery, build_user_filter, count_pages

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"

SUMMARY_PROJECTION = {"name": 1, "email": 1, "avatar": 1, "location": 1}
RECORD_PROJECTION = {**SUMMARY_PROJECTION, "role": 1, "created_at": 1}


def _id_variants(user_ids: Sequence[str]) -> List[Any]:
    """Users may be keyed by string ids or ObjectIds"""
    variants: List[Any] = []
    for uid in user_ids:
        variants.append(uid)
        if ObjectId.is_valid(uid):
            variants.append(ObjectId(uid))
    return variants


class UserDirectory:
    """Users collection reader"""

    def __init__(self, store: MongoStore):
        self.store = store

    @property
    def collection(self):
        return self.store.collection(USERS_COLLECTION)

    async def get_user_summaries(self, user_ids: Sequence[str]) -> Dict[str, UserSummary]:
        """Summaries keyed by user id; unknown ids are absent"""
        ids = sorted({uid for uid in user_ids if uid})
        if not ids:
            return {}
        cursor = self.collection.find({"_id": {"$in": _id_variants(ids)}}, SUMMARY_PROJECTION)
        docs = await cursor.to_list(None)
        summaries = {}
        for doc in docs:
            user_id = str(doc.pop("_id"))
            summaries[user_id] = UserSummary(user_id=user_id, **doc)
        return summaries

    async def list_users(self, query: UserQuery) -> PageResult[UserRecord]:
        filt = build_user_filter(query)
        total = await self.collection.count_documents(filt)
        cursor = (
            self.collection.find(filt, RECORD_PROJECTION)
            .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
            .skip(query.skip)
            .limit(query.limit)
        )
        docs = await cursor.to_list(None)

        users = []
        for doc in docs:
            user_id = str(doc.pop("_id"))
            users.append(UserRecord(user_id=user_id, **doc))

        return PageResult(
            items=users,
            total=total,
            total_pages=count_pages(total, query.limit),
            current_page=query.page,
        )
