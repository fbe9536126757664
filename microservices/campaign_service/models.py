"""
Campaign Service Data Models

Canonical data structures for campaigns, donations and the principals acting
on them. Virtual campaign fields (days left, funding percentage) are pure
functions of stored fields and only appear on the view models.
"""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================

class UserRole(str, Enum):
    """Platform roles carried by the bearer token"""
    DONOR = "donor"
    CREATOR = "creator"
    ADMIN = "admin"


class CampaignCategory(str, Enum):
    """Fixed campaign categories"""
    MEDICAL = "medical"
    EDUCATION = "education"
    EMERGENCY = "emergency"
    CREATIVE = "creative"
    CHARITY = "charity"


class CampaignStatus(str, Enum):
    """Campaign lifecycle status"""
    DRAFT = "draft"  # Reserved, no flow creates it
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    REJECTED = "rejected"


class PaymentMethod(str, Enum):
    UPI = "upi"
    CARD = "card"
    NETBANKING = "netbanking"
    WALLET = "wallet"
    SIMULATED = "simulated"


class PaymentStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class CampaignSort(str, Enum):
    """Public listing sort orders"""
    NEWEST = "newest"
    TRENDING = "trending"
    ENDING_SOON = "ending-soon"


# =============================================================================
# HELPERS
# =============================================================================

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def compute_days_left(deadline: Optional[datetime], now: Optional[datetime] = None) -> int:
    """Whole days until the deadline, rounded up, never negative"""
    if deadline is None:
        return 0
    now = ensure_utc(now) or _utcnow()
    remaining = (ensure_utc(deadline) - now).total_seconds()
    days = math.ceil(remaining / 86400)
    return days if days > 0 else 0


def compute_funding_percentage(current_amount: Optional[float], goal_amount: Optional[float]) -> int:
    """Percentage of the goal raised; halves round up"""
    if not goal_amount:
        return 0
    return int(math.floor((current_amount or 0) / goal_amount * 100 + 0.5))


# =============================================================================
# BASE MODELS
# =============================================================================

class BaseContract(BaseModel):
    """Base model for all contracts"""

    model_config = {
        "from_attributes": True,
    }


class Principal(BaseContract):
    """Authenticated actor of a request"""
    user_id: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def can_create_campaigns(self) -> bool:
        return self.role in (UserRole.CREATOR, UserRole.ADMIN)


class UserSummary(BaseContract):
    """Reduced user projection used for joins, never carries credentials"""
    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None
    location: Optional[str] = None


class UserRecord(UserSummary):
    """User as listed to admins"""
    role: Optional[UserRole] = None
    created_at: Optional[datetime] = None


# =============================================================================
# CAMPAIGN MODELS
# =============================================================================

class Campaign(BaseContract):
    """Stored campaign document"""
    campaign_id: str = Field(default_factory=lambda: f"cmp_{uuid4().hex[:16]}")
    creator_id: str

    # Content
    title: str = Field(..., min_length=1, max_length=100)
    slug: Optional[str] = None
    description: str
    category: CampaignCategory

    # Funding
    goal_amount: float = Field(..., ge=1000, allow_inf_nan=False)
    current_amount: float = Field(default=0, ge=0, allow_inf_nan=False)
    currency: str = Field(default="INR")

    # Media (URLs only)
    images: List[str] = Field(default_factory=list)
    video_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    deadline: datetime
    status: CampaignStatus = Field(default=CampaignStatus.PENDING)

    # Moderation
    is_verified: bool = False
    verification_documents: List[str] = Field(default_factory=list)
    admin_notes: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    # Analytics
    view_count: int = Field(default=0, ge=0)
    share_count: int = Field(default=0, ge=0)
    donor_count: int = Field(default=0, ge=0)

    # Withdrawal
    withdrawal_requested: bool = False
    withdrawal_amount: Optional[float] = None

    # Timestamps
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("deadline", "approved_at", "created_at", "updated_at")
    @classmethod
    def _as_utc(cls, v):
        return ensure_utc(v)


class CampaignView(Campaign):
    """Campaign as returned by the API, with virtual fields and creator join"""
    days_left: int = 0
    funding_percentage: int = 0
    creator: Optional[UserSummary] = None

    @classmethod
    def from_campaign(
        cls,
        campaign: Campaign,
        creator: Optional[UserSummary] = None,
        now: Optional[datetime] = None,
    ) -> "CampaignView":
        data = campaign.model_dump(exclude={"days_left", "funding_percentage", "creator"})
        return cls(
            **data,
            days_left=compute_days_left(campaign.deadline, now),
            funding_percentage=compute_funding_percentage(campaign.current_amount, campaign.goal_amount),
            creator=creator,
        )


class CampaignSummary(BaseContract):
    """Campaign projection joined onto donation history"""
    campaign_id: str
    title: str
    slug: Optional[str] = None
    images: List[str] = Field(default_factory=list)


# =============================================================================
# DONATION MODELS
# =============================================================================

class Donation(BaseContract):
    """Immutable ledger entry"""
    donation_id: str = Field(default_factory=lambda: f"don_{uuid4().hex[:16]}")
    campaign_id: str
    donor_id: str
    amount: float = Field(..., ge=1, allow_inf_nan=False)
    message: str = Field(default="", max_length=300)
    is_anonymous: bool = False
    payment_method: PaymentMethod = PaymentMethod.SIMULATED
    payment_status: PaymentStatus = PaymentStatus.COMPLETED
    transaction_id: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _as_utc(cls, v):
        return ensure_utc(v)


class DonationView(Donation):
    """Donation as returned by the API"""
    donor: Optional[UserSummary] = None
    campaign: Optional[CampaignSummary] = None


# =============================================================================
# REQUEST MODELS
# =============================================================================

class CampaignCreateRequest(BaseContract):
    """Campaign creation request; required fields are checked by the service"""
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[CampaignCategory] = None
    goal_amount: Optional[float] = None
    deadline: Optional[datetime] = None
    currency: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    video_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    verification_documents: List[str] = Field(default_factory=list)


class CampaignUpdateRequest(BaseContract):
    """Partial campaign update, only supplied fields change"""
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[CampaignCategory] = None
    goal_amount: Optional[float] = None
    deadline: Optional[datetime] = None
    images: Optional[List[str]] = None
    video_url: Optional[str] = None
    tags: Optional[List[str]] = None
    verification_documents: Optional[List[str]] = None


class ApproveRequest(BaseContract):
    admin_notes: Optional[str] = Field(None, max_length=2000)


class RejectRequest(BaseContract):
    reason: Optional[str] = Field(None, max_length=2000)


class DonationCreateRequest(BaseContract):
    """Donation request; amount and message limits are checked by the service"""
    campaign_id: str
    amount: Optional[float] = None
    message: Optional[str] = None
    is_anonymous: bool = False
    payment_method: PaymentMethod = PaymentMethod.SIMULATED


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class Envelope(BaseContract):
    success: bool = True
    message: Optional[str] = None


class CampaignResponse(Envelope):
    campaign: CampaignView


class CampaignListResponse(Envelope):
    count: int
    total: int
    total_pages: int
    current_page: int
    campaigns: List[CampaignView]


class CampaignCollectionResponse(Envelope):
    """Unpaginated campaign list"""
    count: int
    campaigns: List[CampaignView]


class ViewCountResponse(Envelope):
    view_count: int


class DonationResponse(Envelope):
    donation: DonationView


class DonationListResponse(Envelope):
    count: int
    total: Optional[int] = None
    donations: List[DonationView]


class UserListResponse(Envelope):
    count: int
    total: int
    total_pages: int
    current_page: int
    users: List[UserRecord]


class ReconciliationReport(BaseContract):
    """Comparison of a campaign's recorded totals with its ledger"""
    campaign_id: str
    recorded_amount: float
    ledger_amount: float
    recorded_donor_count: int
    ledger_donor_count: int
    consistent: bool
    repaired: bool = False


class ReconciliationResponse(Envelope):
    report: ReconciliationReport


class OutcomeTransition(BaseContract):
    campaign_id: str
    from_status: CampaignStatus
    to_status: CampaignStatus
    evaluated_at: datetime


class OutcomeSweepResponse(Envelope):
    count: int
    transitions: List[OutcomeTransition]


# ====================
# Health Models
# ====================

class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    port: int
    version: str
    dependencies: Dict[str, str] = Field(default_factory=dict)


class ReadinessResponse(BaseModel):
    """Readiness check response"""
    ready: bool
    checks: Dict[str, bool] = Field(default_factory=dict)
    details: Dict[str, str] = Field(default_factory=dict)


class LivenessResponse(BaseModel):
    """Liveness check response"""
    alive: bool
    uptime_seconds: float


class ErrorResponse(BaseModel):
    """Standard error envelope"""
    success: bool = False
    message: str
    error_code: Optional[str] = None
    field: Optional[str] = None
    errors: Optional[List[Dict[str, Any]]] = None


__all__ = [
    # Enums
    "UserRole",
    "CampaignCategory",
    "CampaignStatus",
    "PaymentMethod",
    "PaymentStatus",
    "CampaignSort",
    # Helpers
    "ensure_utc",
    "compute_days_left",
    "compute_funding_percentage",
    # Core Models
    "Principal",
    "UserSummary",
    "UserRecord",
    "Campaign",
    "CampaignView",
    "CampaignSummary",
    "Donation",
    "DonationView",
    # Requests
    "CampaignCreateRequest",
    "CampaignUpdateRequest",
    "ApproveRequest",
    "RejectRequest",
    "DonationCreateRequest",
    # Responses
    "Envelope",
    "CampaignResponse",
    "CampaignListResponse",
    "CampaignCollectionResponse",
    "ViewCountResponse",
    "DonationResponse",
    "DonationListResponse",
    "UserListResponse",
    "ReconciliationReport",
    "ReconciliationResponse",
    "OutcomeTransition",
    "OutcomeSweepResponse",
    # Service Models
    "HealthResponse",
    "ReadinessResponse",
    "LivenessResponse",
    "ErrorResponse",
]
