"""
Component Test Fixtures for Campaign Service

Provides in-memory repositories implementing the service protocols, wired
service instances, and a FastAPI TestClient with the factory patched in.
"""

import pytest
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Sequence
from unittest.mock import AsyncMock, MagicMock, patch

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../../.."))

from microservices.campaign_service.admin_service import AdminService
from microservices.campaign_service.campaign_service import CampaignService
from microservices.campaign_service.donation_service import DonationService
from microservices.campaign_service.outcome_evaluator import CampaignOutcomeEvaluator
from microservices.campaign_service.protocols import DuplicateSlugError
from microservices.campaign_service.query_builder import (
    CampaignQuery,
    PageResult,
    UserQuery,
    build_campaign_sort,
    count_pages,
)
from tests.contracts.campaign.data_contract import (
    Campaign,
    CampaignStatus,
    Donation,
    FundraisingTestDataFactory,
    PaymentStatus,
    UserRecord,
    UserRole,
    UserSummary,
)


def _sort_docs(items: List[Any], spec) -> List[Any]:
    """Apply a Mongo-style sort spec with stable multi-key sorting"""
    def key_for(field):
        attr = "campaign_id" if field == "_id" else field
        return lambda item: getattr(item, attr)

    result = list(items)
    for field, direction in reversed(spec):
        result.sort(key=key_for(field), reverse=direction < 0)
    return result


# ====================
# Mock Repositories
# ====================


class MockCampaignRepository:
    """In-memory campaign repository for component testing"""

    def __init__(self):
        self.campaigns: Dict[str, Campaign] = {}
        self.reverted: List[Dict[str, Any]] = []
        self.sessions: List[Any] = []

    async def initialize(self):
        pass

    async def close(self):
        pass

    async def health_check(self) -> bool:
        return True

    def _copy(self, campaign: Optional[Campaign]) -> Optional[Campaign]:
        return campaign.model_copy(deep=True) if campaign else None

    async def insert_campaign(self, campaign: Campaign) -> Campaign:
        if any(c.slug == campaign.slug for c in self.campaigns.values()):
            raise DuplicateSlugError(campaign.slug)
        self.campaigns[campaign.campaign_id] = campaign.model_copy(deep=True)
        return campaign

    async def get_campaign(self, campaign_id: str) -> Optional[Campaign]:
        return self._copy(self.campaigns.get(campaign_id))

    async def get_campaign_by_slug(self, slug: str) -> Optional[Campaign]:
        for campaign in self.campaigns.values():
            if campaign.slug == slug:
                return self._copy(campaign)
        return None

    async def slug_exists(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        return any(
            c.slug == slug and c.campaign_id != exclude_id for c in self.campaigns.values()
        )

    async def update_campaign(
        self,
        campaign_id: str,
        updates: Dict[str, Any],
        expected_status: Optional[CampaignStatus] = None,
    ) -> Optional[Campaign]:
        campaign = self.campaigns.get(campaign_id)
        if not campaign:
            return None
        if expected_status is not None and campaign.status != expected_status:
            return None
        if "slug" in updates and await self.slug_exists(updates["slug"], exclude_id=campaign_id):
            raise DuplicateSlugError(updates["slug"])
        for key, value in updates.items():
            setattr(campaign, key, value)
        campaign.updated_at = datetime.now(timezone.utc)
        return self._copy(campaign)

    async def delete_campaign(self, campaign_id: str) -> bool:
        campaign = self.campaigns.get(campaign_id)
        if not campaign or campaign.current_amount > 0:
            return False
        del self.campaigns[campaign_id]
        return True

    async def list_campaigns(self, query: CampaignQuery) -> PageResult[Campaign]:
        results = list(self.campaigns.values())
        if query.statuses:
            results = [c for c in results if c.status in query.statuses]
        if query.category:
            results = [c for c in results if c.category == query.category]
        if query.creator_id:
            results = [c for c in results if c.creator_id == query.creator_id]
        search = (query.search or "").strip().lower()
        if search:
            results = [
                c for c in results
                if search in c.title.lower() or search in c.description.lower()
            ]

        results = _sort_docs(results, build_campaign_sort(query.sort))
        total = len(results)
        if query.limit is not None:
            results = results[query.skip: query.skip + query.limit]

        return PageResult(
            items=[self._copy(c) for c in results],
            total=total,
            total_pages=count_pages(total, query.limit),
            current_page=query.page if query.limit is not None else 1,
        )

    async def increment_view_count(self, campaign_id: str) -> Optional[Campaign]:
        campaign = self.campaigns.get(campaign_id)
        if not campaign:
            return None
        campaign.view_count += 1
        return self._copy(campaign)

    async def apply_donation(
        self, campaign_id: str, amount: float, session: Any = None
    ) -> Optional[Campaign]:
        # No await between check and write: atomic on the event loop
        self.sessions.append(session)
        campaign = self.campaigns.get(campaign_id)
        if not campaign or campaign.status != CampaignStatus.ACTIVE:
            return None
        campaign.current_amount += amount
        campaign.donor_count += 1
        return self._copy(campaign)

    async def revert_donation(self, campaign_id: str, amount: float) -> None:
        campaign = self.campaigns.get(campaign_id)
        if campaign:
            campaign.current_amount -= amount
            campaign.donor_count -= 1
        self.reverted.append({"campaign_id": campaign_id, "amount": amount})

    async def set_totals(
        self, campaign_id: str, current_amount: float, donor_count: int
    ) -> Optional[Campaign]:
        return await self.update_campaign(
            campaign_id, {"current_amount": current_amount, "donor_count": donor_count}
        )

    async def find_outcome_candidates(self, now: datetime) -> List[Campaign]:
        return [
            self._copy(c)
            for c in self.campaigns.values()
            if c.status == CampaignStatus.ACTIVE
            and (c.deadline <= now or c.current_amount >= c.goal_amount)
        ]

    # Test helpers
    def seed(self, *campaigns: Campaign) -> None:
        for campaign in campaigns:
            self.campaigns[campaign.campaign_id] = campaign.model_copy(deep=True)


class MockDonationRepository:
    """In-memory donation ledger"""

    def __init__(self):
        self.donations: List[Donation] = []
        self.fail_inserts = False
        self.sessions: List[Any] = []

    async def initialize(self):
        pass

    async def insert_donation(self, donation: Donation, session: Any = None) -> Donation:
        self.sessions.append(session)
        if self.fail_inserts:
            raise RuntimeError("simulated insert failure")
        if any(d.transaction_id == donation.transaction_id for d in self.donations):
            raise RuntimeError("duplicate transaction id")
        self.donations.append(donation.model_copy(deep=True))
        return donation

    def _newest_first(self, donations: List[Donation]) -> List[Donation]:
        return sorted(donations, key=lambda d: (d.created_at, d.donation_id), reverse=True)

    async def list_by_campaign(
        self, campaign_id: str, skip: int = 0, limit: int = 10
    ) -> PageResult[Donation]:
        matching = self._newest_first([d for d in self.donations if d.campaign_id == campaign_id])
        return PageResult(
            items=matching[skip: skip + limit],
            total=len(matching),
            total_pages=count_pages(len(matching), limit),
            current_page=skip // limit + 1,
        )

    async def list_by_donor(self, donor_id: str) -> List[Donation]:
        return self._newest_first([d for d in self.donations if d.donor_id == donor_id])

    async def ledger_totals(self, campaign_id: str) -> Dict[str, Any]:
        completed = [
            d for d in self.donations
            if d.campaign_id == campaign_id and d.payment_status == PaymentStatus.COMPLETED
        ]
        return {"amount": float(sum(d.amount for d in completed)), "count": len(completed)}

    def seed(self, *donations: Donation) -> None:
        self.donations.extend(d.model_copy(deep=True) for d in donations)


class MockUserDirectory:
    """In-memory users collection"""

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}

    async def get_user_summaries(self, user_ids: Sequence[str]) -> Dict[str, UserSummary]:
        return {
            uid: UserSummary(**self.users[uid].model_dump(include={"user_id", "name", "email", "avatar", "location"}))
            for uid in set(user_ids)
            if uid in self.users
        }

    async def list_users(self, query: UserQuery) -> PageResult[UserRecord]:
        users = list(self.users.values())
        if query.role:
            users = [u for u in users if u.role == query.role]
        search = (query.search or "").strip().lower()
        if search:
            users = [
                u for u in users
                if search in (u.name or "").lower() or search in (u.email or "").lower()
            ]
        users.sort(key=lambda u: (u.created_at, u.user_id), reverse=True)
        total = len(users)
        return PageResult(
            items=users[query.skip: query.skip + query.limit],
            total=total,
            total_pages=count_pages(total, query.limit),
            current_page=query.page,
        )

    def add(self, user: UserRecord) -> UserRecord:
        self.users[user.user_id] = user
        return user


class MockTransactionProvider:
    """
    Runs the unit of work with a fixed session.

    ``None`` stands for a store without transactions. With a session, a
    failing callback is rolled back by restoring the campaign snapshot taken
    before the run.
    """

    def __init__(self, repository: Optional["MockCampaignRepository"] = None, session: Any = None):
        self.repository = repository
        self.session = session
        self.runs = 0
        self.aborted = 0

    async def run_in_transaction(self, callback):
        self.runs += 1
        if self.session is None:
            return await callback(None)

        snapshot = {k: v.model_copy(deep=True) for k, v in self.repository.campaigns.items()}
        try:
            return await callback(self.session)
        except Exception:
            self.aborted += 1
            self.repository.campaigns = snapshot
            raise


# ====================
# Fixtures
# ====================


@pytest.fixture
def mock_repository():
    return MockCampaignRepository()


@pytest.fixture
def mock_donation_repository():
    return MockDonationRepository()


@pytest.fixture
def mock_user_directory():
    return MockUserDirectory()


@pytest.fixture
def mock_transactions():
    return MockTransactionProvider()


@pytest.fixture
def campaign_service(mock_repository, mock_user_directory):
    return CampaignService(repository=mock_repository, user_directory=mock_user_directory)


@pytest.fixture
def donation_service(mock_repository, mock_donation_repository, mock_user_directory, mock_transactions):
    return DonationService(
        campaign_repository=mock_repository,
        donation_repository=mock_donation_repository,
        user_directory=mock_user_directory,
        transactions=mock_transactions,
    )


@pytest.fixture
def store_session():
    return object()


@pytest.fixture
def transactional_donation_service(
    mock_repository, mock_donation_repository, mock_user_directory, store_session
):
    return DonationService(
        campaign_repository=mock_repository,
        donation_repository=mock_donation_repository,
        user_directory=mock_user_directory,
        transactions=MockTransactionProvider(mock_repository, session=store_session),
    )


@pytest.fixture
def admin_service(mock_user_directory):
    return AdminService(mock_user_directory)


@pytest.fixture
def outcome_evaluator(mock_repository):
    return CampaignOutcomeEvaluator(mock_repository)


@pytest.fixture
def creator(mock_user_directory):
    user = mock_user_directory.add(
        FundraisingTestDataFactory.make_user_record(role=UserRole.CREATOR, name="Creator One")
    )
    return FundraisingTestDataFactory.make_principal(UserRole.CREATOR, user_id=user.user_id)


@pytest.fixture
def other_creator(mock_user_directory):
    user = mock_user_directory.add(
        FundraisingTestDataFactory.make_user_record(role=UserRole.CREATOR, name="Creator Two")
    )
    return FundraisingTestDataFactory.make_principal(UserRole.CREATOR, user_id=user.user_id)


@pytest.fixture
def admin(mock_user_directory):
    user = mock_user_directory.add(
        FundraisingTestDataFactory.make_user_record(role=UserRole.ADMIN, name="Admin")
    )
    return FundraisingTestDataFactory.make_principal(UserRole.ADMIN, user_id=user.user_id)


@pytest.fixture
def donor(mock_user_directory):
    user = mock_user_directory.add(
        FundraisingTestDataFactory.make_user_record(role=UserRole.DONOR, name="Donor One")
    )
    return FundraisingTestDataFactory.make_principal(UserRole.DONOR, user_id=user.user_id)


@pytest.fixture
def active_campaign(mock_repository, creator):
    campaign = FundraisingTestDataFactory.make_campaign(
        creator_id=creator.user_id, status=CampaignStatus.ACTIVE, goal_amount=10000
    )
    mock_repository.seed(campaign)
    return campaign


@pytest.fixture
def pending_campaign(mock_repository, creator):
    campaign = FundraisingTestDataFactory.make_campaign(
        creator_id=creator.user_id, status=CampaignStatus.PENDING
    )
    mock_repository.seed(campaign)
    return campaign


@pytest.fixture
def client(
    jwt_manager,
    campaign_service,
    donation_service,
    admin_service,
    outcome_evaluator,
):
    """Create FastAPI test client with mocked dependencies"""
    from fastapi.testclient import TestClient

    store = MagicMock()
    store.health_check = AsyncMock(return_value=True)
    fake_factory = SimpleNamespace(
        store=store,
        service=campaign_service,
        donation_service=donation_service,
        admin_service=admin_service,
        outcome_evaluator=outcome_evaluator,
    )

    # Patch the global factory in main so lifespan skips initialization
    with patch("microservices.campaign_service.main.factory", fake_factory):
        from microservices.campaign_service.main import app

        with TestClient(app, raise_server_exceptions=False) as test_client:
            yield test_client
