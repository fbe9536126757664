"""
Campaign Service Query Builder

Translates listing parameters into MongoDB filters, sort specs and
pagination windows. Pure functions, no I/O.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

from .models import CampaignCategory, CampaignSort, CampaignStatus, UserRole

T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 12
MAX_LIMIT = 100

SortSpec = List[Tuple[str, int]]

ASCENDING = 1
DESCENDING = -1


@dataclass
class CampaignQuery:
    """Campaign listing parameters"""
    statuses: Optional[List[CampaignStatus]] = None
    category: Optional[CampaignCategory] = None
    search: Optional[str] = None
    creator_id: Optional[str] = None
    sort: CampaignSort = CampaignSort.NEWEST
    page: int = DEFAULT_PAGE
    limit: Optional[int] = DEFAULT_LIMIT  # None = unpaginated

    @property
    def skip(self) -> int:
        if self.limit is None:
            return 0
        return page_to_skip(self.page, self.limit)


@dataclass
class UserQuery:
    """Admin user listing parameters"""
    role: Optional[UserRole] = None
    search: Optional[str] = None
    page: int = DEFAULT_PAGE
    limit: int = 20

    @property
    def skip(self) -> int:
        return page_to_skip(self.page, self.limit)


@dataclass
class PageResult(Generic[T]):
    """One page of a listing"""
    items: List[T] = field(default_factory=list)
    total: int = 0
    total_pages: int = 0
    current_page: int = DEFAULT_PAGE


def page_to_skip(page: int, limit: int) -> int:
    """1-based page number to document offset"""
    return (max(page, 1) - 1) * limit


def count_pages(total: int, limit: Optional[int]) -> int:
    if not limit:
        return 1 if total else 0
    return math.ceil(total / limit)


def parse_sort(value: Optional[str]) -> CampaignSort:
    """Unknown or missing sort keys fall back to newest"""
    if not value:
        return CampaignSort.NEWEST
    try:
        return CampaignSort(value)
    except ValueError:
        return CampaignSort.NEWEST


def _substring_regex(text: str) -> Dict[str, str]:
    return {"$regex": re.escape(text), "$options": "i"}


def build_campaign_filter(query: CampaignQuery) -> Dict[str, Any]:
    """Mongo filter for a campaign listing"""
    filt: Dict[str, Any] = {}

    if query.statuses:
        values = [s.value for s in query.statuses]
        filt["status"] = values[0] if len(values) == 1 else {"$in": values}

    if query.category:
        filt["category"] = query.category.value

    if query.creator_id:
        filt["creator_id"] = query.creator_id

    search = (query.search or "").strip()
    if search:
        filt["$or"] = [
            {"title": _substring_regex(search)},
            {"description": _substring_regex(search)},
        ]

    return filt


def build_campaign_sort(sort: CampaignSort) -> SortSpec:
    """Sort spec for a listing; ``_id`` keeps paging stable on ties"""
    if sort == CampaignSort.TRENDING:
        spec = [("view_count", DESCENDING), ("share_count", DESCENDING)]
    elif sort == CampaignSort.ENDING_SOON:
        spec = [("deadline", ASCENDING)]
    else:
        spec = [("created_at", DESCENDING)]
    return spec + [("_id", DESCENDING)]


def build_user_filter(query: UserQuery) -> Dict[str, Any]:
    """Mongo filter for the admin user listing"""
    filt: Dict[str, Any] = {}
    if query.role:
        filt["role"] = query.role.value
    search = (query.search or "").strip()
    if search:
        filt["$or"] = [
            {"name": _substring_regex(search)},
            {"email": _substring_regex(search)},
        ]
    return filt


__all__ = [
    "CampaignQuery",
    "UserQuery",
    "PageResult",
    "DEFAULT_PAGE",
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "page_to_skip",
    "count_pages",
    "parse_sort",
    "build_campaign_filter",
    "build_campaign_sort",
    "build_user_filter",
]
