"""Tests for influencer/agency offers and the promotion to ACTIVE."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from core.exceptions import InvalidTransitionError, ForbiddenError, NotFoundError
from database.campaign_models import (
    CampaignStatus, CampaignAssignment, AssignmentStatus, PartyType, DeliveryStatus,
)
from services.assignment_service import AssignmentService, OfferRequest, DeliveryAddress
from services.campaign_service import CampaignService
from services.negotiation_service import NegotiationService


def _offer(influencer, amount="4000", **kwargs):
    return OfferRequest(PartyType.INFLUENCER, influencer.id, Decimal(amount), **kwargs)


def _count(db, campaign_id):
    return db.query(CampaignAssignment).filter(CampaignAssignment.campaign_id == campaign_id).count()


@pytest.fixture
def service(db):
    return AssignmentService(db)


class TestCreate:

    def test_create_moves_paid_campaign_to_pending_assignment(self, db, service, make_funded, parties, admin_actor):
        campaign = make_funded()

        created = service.create_assignments(campaign.id, [_offer(parties["influencers"][0])], admin_actor)

        assert len(created) == 1
        assert created[0].status == AssignmentStatus.NEW_OFFER
        assert created[0].vat_amount == Decimal("600.00")
        assert created[0].total_amount == Decimal("4600.00")
        assert created[0].offer_expires_at is not None
        assert CampaignService(db).get(campaign.id).status == CampaignStatus.PENDING_ASSIGNMENT

    def test_unfunded_campaign_refuses_offers(self, service, make_accepted, parties, admin_actor):
        campaign = make_accepted()

        with pytest.raises(InvalidTransitionError):
            service.create_assignments(campaign.id, [_offer(parties["influencers"][0])], admin_actor)

    def test_duplicate_party_creates_nothing(self, db, service, make_funded, parties, admin_actor):
        campaign = make_funded()
        first, second, third = parties["influencers"]
        service.create_assignments(campaign.id, [_offer(first)], admin_actor)

        with pytest.raises(InvalidTransitionError) as exc:
            service.create_assignments(campaign.id, [_offer(second), _offer(first), _offer(third)], admin_actor)

        assert exc.value.errors == [f"Party {first.id} already has an open assignment"]
        assert _count(db, campaign.id) == 1

    def test_same_party_twice_in_one_batch(self, db, service, make_funded, parties, admin_actor):
        campaign = make_funded()
        first = parties["influencers"][0]

        with pytest.raises(InvalidTransitionError):
            service.create_assignments(campaign.id, [_offer(first), _offer(first, "100")], admin_actor)

        assert _count(db, campaign.id) == 0

    def test_unknown_party(self, db, service, make_funded, admin_actor):
        campaign = make_funded()

        with pytest.raises(NotFoundError):
            service.create_assignments(campaign.id, [OfferRequest(PartyType.INFLUENCER, "ghost", Decimal("10"))], admin_actor)

        assert _count(db, campaign.id) == 0

    def test_excluded_influencer_refused(self, db, service, make_draft, parties, client_actor, admin_actor):
        excluded = parties["influencers"][2]
        campaign = make_draft()
        CampaignService(db).update_targeting(campaign.id, excluded_influencer_ids=[excluded.id])
        CampaignService(db).place(campaign.id, client_actor)
        NegotiationService(db).send_quote(campaign.id, admin_actor, "10000")
        campaign = NegotiationService(db).accept(campaign.id, client_actor)
        CampaignService(db).fund(campaign.id, campaign.total_budget, client_actor)

        with pytest.raises(InvalidTransitionError):
            service.create_assignments(campaign.id, [_offer(excluded)], admin_actor)

    def test_past_expiry_rejected(self, service, make_funded, parties, admin_actor):
        campaign = make_funded()
        offer = _offer(parties["influencers"][0], expires_at=datetime.utcnow() - timedelta(minutes=1))

        with pytest.raises(InvalidTransitionError):
            service.create_assignments(campaign.id, [offer], admin_actor)

    def test_party_can_be_reoffered_after_decline(self, db, service, make_funded, parties, admin_actor, influencer_actors):
        campaign = make_funded()
        influencer = parties["influencers"][0]
        (assignment,) = service.create_assignments(campaign.id, [_offer(influencer)], admin_actor)
        service.respond(assignment.id, influencer_actors[0], accept=False, message="Busy")

        created = service.create_assignments(campaign.id, [_offer(influencer, "5000")], admin_actor)

        assert len(created) == 1


class TestRespond:

    def test_accept_promotes_when_fully_paid(self, db, service, make_funded, parties, admin_actor, influencer_actors):
        campaign = make_funded()
        (assignment,) = service.create_assignments(campaign.id, [_offer(parties["influencers"][0])], admin_actor)

        assignment = service.respond(assignment.id, influencer_actors[0], accept=True)

        assert assignment.status == AssignmentStatus.IN_PROGRESS
        assert assignment.accepted_at is not None
        assert CampaignService(db).get(campaign.id).status == CampaignStatus.ACTIVE

    def test_waits_for_every_open_offer(self, db, service, make_funded, parties, admin_actor, influencer_actors):
        campaign = make_funded()
        first, second = service.create_assignments(
            campaign.id, [_offer(parties["influencers"][0]), _offer(parties["influencers"][1])], admin_actor,
        )

        service.respond(first.id, influencer_actors[0], accept=True)
        assert CampaignService(db).get(campaign.id).status == CampaignStatus.PENDING_ASSIGNMENT

        service.respond(second.id, influencer_actors[1], accept=False)
        assert CampaignService(db).get(campaign.id).status == CampaignStatus.ACTIVE

    def test_all_declined_stays_pending(self, db, service, make_funded, parties, admin_actor, influencer_actors):
        campaign = make_funded()
        (assignment,) = service.create_assignments(campaign.id, [_offer(parties["influencers"][0])], admin_actor)

        assignment = service.respond(assignment.id, influencer_actors[0], accept=False, message="Not my niche")

        assert assignment.status == AssignmentStatus.DECLINED
        assert assignment.decline_reason == "Not my niche"
        assert CampaignService(db).get(campaign.id).status == CampaignStatus.PENDING_ASSIGNMENT

    def test_partial_payment_blocks_activation(self, db, service, make_accepted, parties, admin_actor, client_actor, influencer_actors):
        campaign = make_accepted(quote="10000")
        CampaignService(db).fund(campaign.id, "1000", client_actor)
        (assignment,) = service.create_assignments(campaign.id, [_offer(parties["influencers"][0])], admin_actor)
        service.respond(assignment.id, influencer_actors[0], accept=True)
        assert CampaignService(db).get(campaign.id).status == CampaignStatus.PENDING_ASSIGNMENT

        campaign = CampaignService(db).fund(campaign.id, "10500", client_actor)

        assert campaign.status == CampaignStatus.ACTIVE

    def test_expired_offer(self, db, service, make_funded, parties, admin_actor, influencer_actors):
        campaign = make_funded()
        (assignment,) = service.create_assignments(campaign.id, [_offer(parties["influencers"][0])], admin_actor)
        assignment.offer_expires_at = datetime.utcnow() - timedelta(seconds=1)
        db.commit()

        with pytest.raises(InvalidTransitionError) as exc:
            service.respond(assignment.id, influencer_actors[0], accept=True)

        assert "expired" in exc.value.detail
        db.expire_all()
        assert service.get(assignment.id).status == AssignmentStatus.EXPIRED

    def test_only_the_party_can_respond(self, service, make_funded, parties, admin_actor, influencer_actors):
        campaign = make_funded()
        (assignment,) = service.create_assignments(campaign.id, [_offer(parties["influencers"][0])], admin_actor)

        with pytest.raises(ForbiddenError):
            service.respond(assignment.id, influencer_actors[1], accept=True)

    def test_cannot_answer_twice(self, service, make_funded, parties, admin_actor, influencer_actors):
        campaign = make_funded()
        (assignment,) = service.create_assignments(campaign.id, [_offer(parties["influencers"][0])], admin_actor)
        service.respond(assignment.id, influencer_actors[0], accept=False)

        with pytest.raises(InvalidTransitionError):
            service.respond(assignment.id, influencer_actors[0], accept=True)

    def test_sample_product_requires_address(self, service, make_funded, parties, admin_actor, influencer_actors):
        campaign = make_funded(need_sample_product=True)
        (assignment,) = service.create_assignments(campaign.id, [_offer(parties["influencers"][0])], admin_actor)

        with pytest.raises(InvalidTransitionError):
            service.respond(assignment.id, influencer_actors[0], accept=True)

        assignment = service.respond(
            assignment.id, influencer_actors[0], accept=True,
            delivery=DeliveryAddress("12 Market St", city="Nairobi"),
        )
        assert assignment.delivery_status == DeliveryStatus.PENDING
        assert assignment.delivery_city == "Nairobi"


class TestAssignerActions:

    def test_lazy_expiry_on_listing(self, db, service, make_funded, parties, admin_actor):
        campaign = make_funded()
        (assignment,) = service.create_assignments(campaign.id, [_offer(parties["influencers"][0])], admin_actor)
        assignment.offer_expires_at = datetime.utcnow() - timedelta(seconds=1)
        db.commit()

        listed = service.list_for_campaign(campaign.id)

        assert [a.status for a in listed] == [AssignmentStatus.EXPIRED]

    def test_cancel_open_offer(self, service, make_funded, parties, admin_actor):
        campaign = make_funded()
        (assignment,) = service.create_assignments(campaign.id, [_offer(parties["influencers"][0])], admin_actor)

        assignment = service.cancel(assignment.id, admin_actor)

        assert assignment.status == AssignmentStatus.CANCELLED
        with pytest.raises(InvalidTransitionError):
            service.cancel(assignment.id, admin_actor)

    def test_update_recomputes_vat(self, service, make_funded, parties, admin_actor):
        campaign = make_funded()
        (assignment,) = service.create_assignments(campaign.id, [_offer(parties["influencers"][0])], admin_actor)

        assignment = service.update(assignment.id, offered_amount=Decimal("2000"))

        assert assignment.vat_amount == Decimal("300.00")
        assert assignment.total_amount == Decimal("2300.00")

    def test_delivery_moves_forward_only(self, service, make_active, db):
        campaign = make_active(need_sample_product=True)
        (assignment,) = service.list_for_campaign(campaign.id)

        assignment = service.update_delivery(assignment.id, DeliveryStatus.SHIPPED)
        assert assignment.delivery_status == DeliveryStatus.SHIPPED

        with pytest.raises(InvalidTransitionError):
            service.update_delivery(assignment.id, DeliveryStatus.PENDING)
