"""
Component Tests for campaign and user listings

Public discovery, moderation queue, creator dashboard and admin user list.
"""

import pytest
from datetime import timedelta

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../../.."))

from microservices.campaign_service.protocols import CampaignValidationError, ForbiddenError
from tests.contracts.campaign.data_contract import (
    CampaignCategory,
    CampaignStatus,
    FundraisingTestDataFactory,
    UserRole,
)


@pytest.fixture
def mixed_campaigns(mock_repository, creator):
    """One campaign per status plus extra active ones"""
    base = FundraisingTestDataFactory.past(days=10)
    campaigns = []
    for i, status in enumerate(CampaignStatus):
        campaigns.append(
            FundraisingTestDataFactory.make_campaign(
                creator_id=creator.user_id, status=status, created_at=base + timedelta(hours=i)
            )
        )
    mock_repository.seed(*campaigns)
    return campaigns


class TestPublicListing:
    """Tests for list_public_campaigns()"""

    async def test_only_active_campaigns(self, campaign_service, mixed_campaigns):
        result = await campaign_service.list_public_campaigns()

        assert result.total == 1
        assert all(c.status == CampaignStatus.ACTIVE for c in result.items)
        assert result.items[0].creator.name == "Creator One"

    async def test_pagination(self, campaign_service, mock_repository, creator):
        base = FundraisingTestDataFactory.past(days=5)
        mock_repository.seed(*[
            FundraisingTestDataFactory.make_campaign(
                creator_id=creator.user_id,
                status=CampaignStatus.ACTIVE,
                created_at=base + timedelta(minutes=i),
            )
            for i in range(25)
        ])

        first = await campaign_service.list_public_campaigns()
        last = await campaign_service.list_public_campaigns(page=3)

        assert len(first.items) == 12
        assert first.total == 25
        assert first.total_pages == 3
        assert first.current_page == 1
        assert len(last.items) == 1
        assert last.current_page == 3

    async def test_newest_first_by_default(self, campaign_service, mock_repository):
        older = FundraisingTestDataFactory.make_campaign(
            status=CampaignStatus.ACTIVE, created_at=FundraisingTestDataFactory.past(days=3)
        )
        newer = FundraisingTestDataFactory.make_campaign(
            status=CampaignStatus.ACTIVE, created_at=FundraisingTestDataFactory.past(days=1)
        )
        mock_repository.seed(older, newer)

        result = await campaign_service.list_public_campaigns()

        assert [c.campaign_id for c in result.items] == [newer.campaign_id, older.campaign_id]

    async def test_trending_sort(self, campaign_service, mock_repository):
        quiet = FundraisingTestDataFactory.make_campaign(status=CampaignStatus.ACTIVE, view_count=3)
        busy = FundraisingTestDataFactory.make_campaign(status=CampaignStatus.ACTIVE, view_count=90)
        shared = FundraisingTestDataFactory.make_campaign(
            status=CampaignStatus.ACTIVE, view_count=3, share_count=10
        )
        mock_repository.seed(quiet, busy, shared)

        result = await campaign_service.list_public_campaigns(sort="trending")

        assert [c.campaign_id for c in result.items] == [
            busy.campaign_id, shared.campaign_id, quiet.campaign_id
        ]

    async def test_ending_soon_sort(self, campaign_service, mock_repository):
        later = FundraisingTestDataFactory.make_campaign(
            status=CampaignStatus.ACTIVE, deadline=FundraisingTestDataFactory.future(20)
        )
        sooner = FundraisingTestDataFactory.make_campaign(
            status=CampaignStatus.ACTIVE, deadline=FundraisingTestDataFactory.future(2)
        )
        mock_repository.seed(later, sooner)

        result = await campaign_service.list_public_campaigns(sort="ending-soon")

        assert [c.campaign_id for c in result.items] == [sooner.campaign_id, later.campaign_id]

    async def test_category_filter(self, campaign_service, mock_repository):
        medical = FundraisingTestDataFactory.make_campaign(
            status=CampaignStatus.ACTIVE, category=CampaignCategory.MEDICAL
        )
        school = FundraisingTestDataFactory.make_campaign(
            status=CampaignStatus.ACTIVE, category=CampaignCategory.EDUCATION
        )
        mock_repository.seed(medical, school)

        result = await campaign_service.list_public_campaigns(category="education")

        assert [c.campaign_id for c in result.items] == [school.campaign_id]

    async def test_search_is_case_insensitive(self, campaign_service, mock_repository):
        match = FundraisingTestDataFactory.make_campaign(
            status=CampaignStatus.ACTIVE, title="Rebuild The Village School"
        )
        other = FundraisingTestDataFactory.make_campaign(
            status=CampaignStatus.ACTIVE, title="Knee Surgery"
        )
        mock_repository.seed(match, other)

        result = await campaign_service.list_public_campaigns(search="village")

        assert [c.campaign_id for c in result.items] == [match.campaign_id]

    async def test_invalid_category(self, campaign_service):
        with pytest.raises(CampaignValidationError) as exc:
            await campaign_service.list_public_campaigns(category="sports")
        assert exc.value.field == "category"

    @pytest.mark.parametrize("page,limit,field", [(0, 12, "page"), (1, 0, "limit"), (1, 101, "limit")])
    async def test_bad_paging(self, campaign_service, page, limit, field):
        with pytest.raises(CampaignValidationError) as exc:
            await campaign_service.list_public_campaigns(page=page, limit=limit)
        assert exc.value.field == field

    async def test_empty_listing(self, campaign_service):
        result = await campaign_service.list_public_campaigns()

        assert result.items == []
        assert result.total == 0
        assert result.total_pages == 0


class TestPendingListing:
    """Tests for list_pending_campaigns()"""

    async def test_admin_sees_pending_only(self, campaign_service, mixed_campaigns, admin):
        result = await campaign_service.list_pending_campaigns(admin)

        assert [c.status for c in result.items] == [CampaignStatus.PENDING]

    async def test_non_admin_forbidden(self, campaign_service, creator, donor):
        for principal in (creator, donor):
            with pytest.raises(ForbiddenError):
                await campaign_service.list_pending_campaigns(principal)


class TestMyCampaigns:
    """Tests for list_my_campaigns()"""

    async def test_all_statuses_newest_first(self, campaign_service, mixed_campaigns, creator):
        result = await campaign_service.list_my_campaigns(creator)

        assert len(result) == len(mixed_campaigns)
        created = [c.created_at for c in result]
        assert created == sorted(created, reverse=True)

    async def test_other_creators_excluded(self, campaign_service, mixed_campaigns, other_creator):
        assert await campaign_service.list_my_campaigns(other_creator) == []


class TestAdminUsers:
    """Tests for AdminService.list_users()"""

    async def test_lists_users_newest_first(self, admin_service, mock_user_directory, admin):
        mock_user_directory.add(
            FundraisingTestDataFactory.make_user_record(
                role=UserRole.DONOR, name="Old Donor", created_at=FundraisingTestDataFactory.past(days=30)
            )
        )

        result = await admin_service.list_users(admin)

        assert result.total == 2
        assert result.items[0].name == "Admin"
        assert result.items[-1].name == "Old Donor"

    async def test_role_and_search_filters(self, admin_service, mock_user_directory, admin, creator, donor):
        by_role = await admin_service.list_users(admin, role="creator")
        by_name = await admin_service.list_users(admin, search="donor")

        assert [u.user_id for u in by_role.items] == [creator.user_id]
        assert [u.user_id for u in by_name.items] == [donor.user_id]

    async def test_unknown_role_ignored(self, admin_service, admin, creator, donor):
        result = await admin_service.list_users(admin, role="superuser")
        assert result.total == 3

    async def test_non_admin_forbidden(self, admin_service, creator):
        with pytest.raises(ForbiddenError):
            await admin_service.list_users(creator)
