"""Client rating of completed campaigns and issue reports."""

from decimal import Decimal

import pytest

from auth.roles import Actor, UserType
from core.exceptions import InvalidTransitionError, ForbiddenError, NotFoundError
from database.campaign_models import CampaignStatus, ReportStatus
from database.models import Notification, User, UserTypeDB, ClientProfile
from services.campaign_service import CampaignService
from services.facades import ClientCampaignFacade, AdminCampaignFacade
from services.milestone_service import MilestoneService
from services.notification_service import NotificationCategory


@pytest.fixture
def make_completed(db, make_active, influencer_actors, client_actor):
    """Active campaign whose milestones were all submitted and approved."""
    def _make(agency=None, **kwargs):
        campaign = make_active(**kwargs)
        if agency is not None:
            CampaignService(db).assign_agency(campaign.id, agency.id)
        milestones = MilestoneService(db)
        for milestone in campaign.milestones:
            milestones.submit(milestone.id, influencer_actors[0], {"live_links": ["https://example.test/post"]})
            milestones.review(milestone.id, client_actor, accept=True)
        campaign = CampaignService(db).get(campaign.id)
        assert campaign.status == CampaignStatus.COMPLETED
        return campaign
    return _make


class TestRating:

    def test_rating_requires_completion(self, db, make_active, client_actor):
        campaign = make_active()

        with pytest.raises(InvalidTransitionError):
            CampaignService(db).rate(campaign.id, 5, "Great", client_actor)

        assert CampaignService(db).get(campaign.id).is_rated is False

    def test_rating_is_stored_once(self, db, make_completed, client_actor):
        campaign = make_completed()
        service = CampaignService(db)

        campaign = service.rate(campaign.id, 4, "Solid reach", client_actor)

        assert campaign.is_rated is True
        assert campaign.rating == 4
        assert campaign.client_review == "Solid reach"
        assert campaign.rated_at is not None
        with pytest.raises(InvalidTransitionError):
            service.rate(campaign.id, 1, "Changed my mind", client_actor)
        assert service.get(campaign.id).rating == 4

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range(self, db, make_completed, client_actor, rating):
        campaign = make_completed()

        with pytest.raises(InvalidTransitionError):
            CampaignService(db).rate(campaign.id, rating, None, client_actor)

    def test_agency_running_average(self, db, make_completed, parties, client_actor):
        agency = parties["agency"]
        agency.average_rating = Decimal("4.0")
        agency.total_reviews = 2
        db.commit()
        campaign = make_completed(agency=agency)

        CampaignService(db).rate(campaign.id, 5, None, client_actor)

        db.refresh(agency)
        assert agency.total_reviews == 3
        assert agency.average_rating == Decimal("4.3")

    def test_agency_is_notified(self, db, make_completed, parties, client_actor):
        campaign = make_completed(agency=parties["agency"])

        CampaignService(db).rate(campaign.id, 3, None, client_actor)

        categories = {
            n.category for n in db.query(Notification).filter(Notification.user_id == parties["agency_user"].id)
        }
        assert NotificationCategory.CAMPAIGN_RATED.value in categories

    def test_unmanaged_campaign_leaves_agencies_alone(self, db, make_completed, parties, client_actor):
        campaign = make_completed()

        CampaignService(db).rate(campaign.id, 2, None, client_actor)

        db.refresh(parties["agency"])
        assert parties["agency"].total_reviews == 0

    def test_only_owner_rates_through_facade(self, db, make_completed, client_actor):
        campaign = make_completed()
        rival = User(email="rival@brand.test", name="rival", user_type=UserTypeDB.CLIENT, is_active=True)
        db.add(rival)
        db.flush()
        db.add(ClientProfile(user_id=rival.id, company_name="Rival Co"))
        db.commit()

        with pytest.raises(ForbiddenError):
            ClientCampaignFacade(db, Actor(rival.id, UserType.CLIENT)).rate_campaign(campaign.id, 5)

        campaign = ClientCampaignFacade(db, client_actor).rate_campaign(campaign.id, 5, "Loved it")
        assert campaign.rating == 5


class TestReports:

    def test_report_is_pending_and_notifies_admins(self, db, make_active, parties, client_actor):
        campaign = make_active()

        report = ClientCampaignFacade(db, client_actor).report_issue(campaign.id, "  Influencer went silent  ")

        assert report.status == ReportStatus.PENDING
        assert report.reason == "Influencer went silent"
        assert report.reporter_user_id == parties["client_user"].id
        notices = db.query(Notification).filter(
            Notification.user_id == parties["admin_user"].id,
            Notification.category == NotificationCategory.CAMPAIGN_REPORTED.value,
        ).all()
        assert len(notices) == 1
        assert notices[0].data["campaign_id"] == campaign.id

    def test_blank_reason_is_refused(self, db, make_active, client_actor):
        campaign = make_active()

        with pytest.raises(InvalidTransitionError):
            CampaignService(db).create_report(campaign.id, client_actor, "   ")
        assert CampaignService(db).list_reports() == []

    def test_unknown_campaign(self, db, parties, client_actor):
        with pytest.raises(NotFoundError):
            CampaignService(db).create_report("missing", client_actor, "Where is it?")

    def test_admin_resolves_once(self, db, make_active, client_actor, admin_actor):
        campaign = make_active()
        report = CampaignService(db).create_report(campaign.id, client_actor, "Late delivery")
        admin = AdminCampaignFacade(db, admin_actor)

        assert [r.id for r in admin.list_reports(ReportStatus.PENDING)] == [report.id]

        report = admin.resolve_report(report.id, dismiss=True, note="Delivery confirmed")

        assert report.status == ReportStatus.DISMISSED
        assert report.resolved_at is not None
        assert admin.list_reports(ReportStatus.PENDING) == []
        with pytest.raises(InvalidTransitionError):
            admin.resolve_report(report.id)
