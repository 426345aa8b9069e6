"""Tests for the creation wizard, placement and funding."""

from datetime import datetime, timedelta, date
from decimal import Decimal

import pytest

from core.exceptions import InvalidTransitionError, NotFoundError
from database.campaign_models import (
    Campaign, CampaignStatus, CampaignType, CampaignMilestone, PaymentStatus,
)
from services.campaign_service import CampaignService


@pytest.fixture
def service(db):
    return CampaignService(db)


class TestWizard:

    def test_create_draft(self, service, parties):
        campaign = service.create_draft(parties["client"].id, "Launch", CampaignType.PAID_AD)

        assert campaign.status == CampaignStatus.DRAFT
        assert campaign.current_step == 1
        assert campaign.is_placed is False
        assert campaign.payment_status == PaymentStatus.PENDING

    def test_step_never_moves_backwards(self, service, make_draft):
        campaign = make_draft()
        assert campaign.current_step == 5

        campaign = service.update_basic_info(campaign.id, name="Renamed")

        assert campaign.current_step == 5
        assert campaign.name == "Renamed"

    def test_budget_step_computes_triple(self, service, make_draft):
        campaign = make_draft(base_budget="10000")

        assert campaign.base_budget == Decimal("10000.00")
        assert campaign.vat_amount == Decimal("1500.00")
        assert campaign.total_budget == Decimal("11500.00")

    def test_budget_replaces_milestones(self, db, service, make_draft):
        campaign = make_draft()

        service.update_budget(campaign.id, "5000", [{"content_title": "Story", "order": 0}])

        rows = db.query(CampaignMilestone).filter(CampaignMilestone.campaign_id == campaign.id).all()
        assert [m.content_title for m in rows] == ["Story"]

    def test_duplicate_milestone_order_rejected(self, service, make_draft):
        campaign = make_draft()

        with pytest.raises(InvalidTransitionError) as exc:
            service.update_budget(campaign.id, "5000", [
                {"content_title": "A", "order": 1},
                {"content_title": "B", "order": 1},
            ])

        assert exc.value.errors == ["Duplicate milestone order: 1"]

    def test_targeting_overlap_rejected(self, service, make_draft, parties):
        campaign = make_draft()
        influencer_id = parties["influencers"][0].id

        with pytest.raises(InvalidTransitionError):
            service.update_targeting(
                campaign.id,
                preferred_influencer_ids=[influencer_id],
                excluded_influencer_ids=[influencer_id],
            )

    def test_unknown_influencer_listed(self, service, make_draft):
        campaign = make_draft()

        with pytest.raises(NotFoundError) as exc:
            service.update_targeting(campaign.id, preferred_influencer_ids=["nope-1", "nope-2"])

        assert len(exc.value.errors) == 2

    def test_past_starting_date_rejected(self, service, make_draft):
        campaign = make_draft()

        with pytest.raises(InvalidTransitionError):
            service.update_details(campaign.id, starting_date=date.today() - timedelta(days=1))

    def test_unknown_detail_field_rejected(self, service, make_draft):
        campaign = make_draft()

        with pytest.raises(InvalidTransitionError):
            service.update_details(campaign.id, status="active")

    def test_assets_are_replaced(self, service, make_draft):
        campaign = make_draft()
        service.update_assets(campaign.id, assets=[{"file_name": "logo.png", "file_url": "s3://a/logo.png"}])

        campaign = service.update_assets(campaign.id, need_sample_product=True, assets=[
            {"file_name": "brief.pdf", "file_url": "s3://a/brief.pdf", "category": "content"},
        ])

        assert [a.file_name for a in campaign.assets] == ["brief.pdf"]
        assert campaign.need_sample_product is True

    def test_delete_asset(self, service, make_draft):
        campaign = make_draft()
        campaign = service.update_assets(campaign.id, assets=[{"file_name": "logo.png", "file_url": "s3://a/logo.png"}])

        service.delete_asset(campaign.id, campaign.assets[0].id)

        assert service.get(campaign.id).assets == []

    def test_summary_lists_missing_fields(self, service, parties):
        campaign = service.create_draft(parties["client"].id, "Launch", CampaignType.PAID_AD)

        summary = service.summary(campaign.id)

        assert "Niche is required" in summary["missing_fields"]
        assert summary["milestone_count"] == 0

    def test_delete_draft(self, db, service, make_draft):
        campaign = make_draft()
        campaign_id = campaign.id

        service.delete_draft(campaign_id)

        assert db.query(Campaign).filter(Campaign.id == campaign_id).first() is None
        assert db.query(CampaignMilestone).filter(CampaignMilestone.campaign_id == campaign_id).count() == 0


class TestPlacement:

    def test_place(self, service, make_draft, client_actor):
        campaign = make_draft()

        campaign = service.place(campaign.id, client_actor)

        assert campaign.status == CampaignStatus.NEEDS_QUOTE
        assert campaign.is_placed is True
        assert campaign.placed_at is not None

    def test_placement_aggregates_every_missing_field(self, service, parties, client_actor):
        campaign = service.create_draft(parties["client"].id, "Launch", CampaignType.PAID_AD)

        with pytest.raises(InvalidTransitionError) as exc:
            service.place(campaign.id, client_actor)

        errors = exc.value.errors
        assert "Niche is required" in errors
        assert "Campaign goals is required" in errors
        assert "Starting date is required" in errors
        assert "Duration is required" in errors
        assert "Total budget must be greater than zero" in errors
        assert "At least one milestone is required" in errors
        assert service.get(campaign.id).status == CampaignStatus.DRAFT

    def test_placed_campaign_is_locked(self, service, make_placed):
        campaign = make_placed()

        with pytest.raises(InvalidTransitionError):
            service.update_basic_info(campaign.id, name="Too late")
        with pytest.raises(InvalidTransitionError):
            service.delete_draft(campaign.id)
        with pytest.raises(InvalidTransitionError):
            service.place(campaign.id, None)

    def test_admin_placement_records_admin(self, service, make_draft, admin_actor):
        campaign = make_draft()

        campaign = service.place(campaign.id, admin_actor)

        assert campaign.assigned_admin_id == admin_actor.actor_id


class TestFunding:

    def test_cannot_fund_before_accept(self, service, make_placed, client_actor):
        campaign = make_placed()

        with pytest.raises(InvalidTransitionError):
            service.fund(campaign.id, "100", client_actor)

    def test_partial_then_full(self, service, make_accepted, client_actor, admin_actor):
        campaign = make_accepted(quote="10000")

        campaign = service.fund(campaign.id, "5000", client_actor)
        assert campaign.status == CampaignStatus.PARTIAL_PAID
        assert campaign.payment_status == PaymentStatus.PARTIAL
        assert campaign.due_amount == Decimal("6500.00")

        campaign = service.verify_payment(campaign.id, "6500", admin_actor)
        assert campaign.status == CampaignStatus.PAID
        assert campaign.payment_status == PaymentStatus.FULL
        assert campaign.due_amount == Decimal("0.00")

    def test_overpayment_rejected(self, service, make_accepted, client_actor):
        campaign = make_accepted(quote="10000")

        with pytest.raises(InvalidTransitionError):
            service.fund(campaign.id, "11500.01", client_actor)

        assert service.get(campaign.id).paid_amount == Decimal("0.00")

    def test_non_positive_payment_rejected(self, service, make_accepted, client_actor):
        campaign = make_accepted()

        with pytest.raises(InvalidTransitionError):
            service.fund(campaign.id, "0", client_actor)

    def test_platform_fee_override(self, service, make_accepted):
        campaign = make_accepted(quote="10000")

        campaign = service.update_platform_fee(campaign.id, "500")

        assert campaign.platform_fee_amount == Decimal("500.00")
        assert campaign.available_for_execution == Decimal("9500.00")

    def test_platform_fee_cannot_exceed_base(self, service, make_accepted):
        campaign = make_accepted(quote="10000")

        with pytest.raises(InvalidTransitionError):
            service.update_platform_fee(campaign.id, "10000.01")
