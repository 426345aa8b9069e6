"""
Tests for the turn-based budget negotiation.

Tests cover:
1. Quote and strict turn alternation
2. Accept copies the latest proposal verbatim
3. Reject, reset and decline
4. Agency-managed campaigns and service fee proposals
"""

from decimal import Decimal

import pytest

from core.exceptions import InvalidTransitionError, ForbiddenError
from database.campaign_models import (
    CampaignStatus, CampaignNegotiation, NegotiationAction, NegotiationParty,
)
from services.campaign_service import CampaignService
from services.negotiation_service import NegotiationService, BudgetProposal, ServiceFeeProposal


def _entries(db, campaign_id):
    return (
        db.query(CampaignNegotiation)
        .filter(CampaignNegotiation.campaign_id == campaign_id)
        .order_by(CampaignNegotiation.sequence)
        .all()
    )


class TestQuote:

    def test_quote_moves_to_quoted_and_hands_turn_to_client(self, db, make_placed, admin_actor):
        campaign = make_placed()

        campaign = NegotiationService(db).send_quote(campaign.id, admin_actor, "12000")

        assert campaign.status == CampaignStatus.QUOTED
        assert campaign.negotiation_turn == NegotiationParty.CLIENT
        assert campaign.quoted_total_budget == Decimal("13800.00")
        entries = _entries(db, campaign.id)
        assert [e.action for e in entries] == [NegotiationAction.REQUEST]
        assert entries[0].sender == NegotiationParty.ADMIN

    def test_quote_does_not_touch_confirmed_budget(self, db, make_placed, admin_actor):
        campaign = make_placed(base_budget="10000")

        campaign = NegotiationService(db).send_quote(campaign.id, admin_actor, "12000")

        assert campaign.base_budget == Decimal("10000.00")
        assert campaign.total_budget == Decimal("11500.00")

    def test_client_cannot_quote(self, db, make_placed, client_actor):
        campaign = make_placed()

        with pytest.raises(ForbiddenError):
            NegotiationService(db).send_quote(campaign.id, client_actor, "12000")

    def test_quote_only_once(self, db, make_placed, admin_actor):
        campaign = make_placed()
        negotiations = NegotiationService(db)
        negotiations.send_quote(campaign.id, admin_actor, "12000")

        with pytest.raises(InvalidTransitionError):
            negotiations.send_quote(campaign.id, admin_actor, "13000")


class TestTurns:

    def test_turn_alternates(self, db, make_placed, admin_actor, client_actor):
        campaign = make_placed()
        negotiations = NegotiationService(db)
        negotiations.send_quote(campaign.id, admin_actor, "12000")

        campaign = negotiations.counter_offer(campaign.id, client_actor, BudgetProposal(Decimal("9000")))
        assert campaign.status == CampaignStatus.NEGOTIATING
        assert campaign.negotiation_turn == NegotiationParty.ADMIN

        campaign = negotiations.counter_offer(campaign.id, admin_actor, BudgetProposal(Decimal("10500")))
        assert campaign.negotiation_turn == NegotiationParty.CLIENT

    def test_out_of_turn_counter_leaves_no_trace(self, db, make_placed, admin_actor, client_actor):
        campaign = make_placed()
        negotiations = NegotiationService(db)
        negotiations.send_quote(campaign.id, admin_actor, "12000")
        negotiations.counter_offer(campaign.id, client_actor, BudgetProposal(Decimal("9000")))
        before = len(_entries(db, campaign.id))

        with pytest.raises(InvalidTransitionError) as exc:
            negotiations.counter_offer(campaign.id, client_actor, BudgetProposal(Decimal("8000")))

        assert "not your turn" in exc.value.detail
        db.expire_all()
        campaign = CampaignService(db).get(campaign.id)
        assert campaign.negotiation_turn == NegotiationParty.ADMIN
        assert campaign.status == CampaignStatus.NEGOTIATING
        assert campaign.quoted_base_budget == Decimal("9000.00")
        assert len(_entries(db, campaign.id)) == before

    def test_counter_does_not_overwrite_confirmed_budget(self, db, make_placed, admin_actor, client_actor):
        campaign = make_placed(base_budget="10000")
        negotiations = NegotiationService(db)
        negotiations.send_quote(campaign.id, admin_actor, "12000")

        campaign = negotiations.counter_offer(campaign.id, client_actor, BudgetProposal(Decimal("9000")))

        assert campaign.base_budget == Decimal("10000.00")

    def test_sequence_is_strictly_increasing(self, db, make_placed, admin_actor, client_actor):
        campaign = make_placed()
        negotiations = NegotiationService(db)
        negotiations.send_quote(campaign.id, admin_actor, "12000")
        negotiations.counter_offer(campaign.id, client_actor, BudgetProposal(Decimal("9000")))
        negotiations.counter_offer(campaign.id, admin_actor, BudgetProposal(Decimal("10000")))

        assert [e.sequence for e in _entries(db, campaign.id)] == [1, 2, 3]


class TestAccept:

    def test_accept_copies_latest_triple(self, db, make_placed, admin_actor, client_actor):
        campaign = make_placed()
        negotiations = NegotiationService(db)
        negotiations.send_quote(campaign.id, admin_actor, "12000")
        negotiations.counter_offer(campaign.id, client_actor, BudgetProposal(Decimal("9000")))
        negotiations.counter_offer(campaign.id, admin_actor, BudgetProposal(Decimal("10333.33")))

        campaign = negotiations.accept(campaign.id, client_actor)

        latest = [e for e in _entries(db, campaign.id) if e.has_budget][-1]
        assert campaign.status == CampaignStatus.ACCEPTED
        assert campaign.base_budget == latest.proposed_base_budget == Decimal("10333.33")
        assert campaign.vat_amount == latest.proposed_vat_amount == Decimal("1550.00")
        assert campaign.total_budget == latest.proposed_total_budget == Decimal("11883.33")
        assert campaign.negotiation_turn is None
        assert campaign.quoted_base_budget is None

    def test_accept_sets_platform_fee_and_due(self, db, make_accepted):
        campaign = make_accepted(quote="10000")

        assert campaign.platform_fee_amount == Decimal("1000.00")
        assert campaign.available_for_execution == Decimal("9000.00")
        assert campaign.due_amount == Decimal("11500.00")

    def test_accept_out_of_turn(self, db, make_placed, admin_actor):
        campaign = make_placed()
        negotiations = NegotiationService(db)
        negotiations.send_quote(campaign.id, admin_actor, "12000")

        with pytest.raises(InvalidTransitionError):
            negotiations.accept(campaign.id, admin_actor)

    def test_accept_without_proposal(self, db, make_placed, client_actor):
        campaign = make_placed()

        with pytest.raises(InvalidTransitionError):
            NegotiationService(db).accept(campaign.id, client_actor)


class TestClosing:

    def test_reject_cancels(self, db, make_placed, admin_actor, client_actor):
        campaign = make_placed()
        negotiations = NegotiationService(db)
        negotiations.send_quote(campaign.id, admin_actor, "12000")

        campaign = negotiations.reject(campaign.id, client_actor, "Too expensive")

        assert campaign.status == CampaignStatus.CANCELLED
        assert campaign.cancelled_at is not None
        assert _entries(db, campaign.id)[-1].action == NegotiationAction.REJECT

    def test_terminal_campaign_refuses_negotiation(self, db, make_placed, admin_actor, client_actor):
        campaign = make_placed()
        negotiations = NegotiationService(db)
        negotiations.send_quote(campaign.id, admin_actor, "12000")
        negotiations.reject(campaign.id, client_actor)

        with pytest.raises(InvalidTransitionError):
            negotiations.counter_offer(campaign.id, admin_actor, BudgetProposal(Decimal("9000")))

    def test_reset_returns_to_needs_quote(self, db, make_placed, admin_actor, client_actor):
        campaign = make_placed()
        negotiations = NegotiationService(db)
        negotiations.send_quote(campaign.id, admin_actor, "12000")
        negotiations.counter_offer(campaign.id, client_actor, BudgetProposal(Decimal("9000")))

        campaign = negotiations.reset(campaign.id, admin_actor)

        assert campaign.status == CampaignStatus.NEEDS_QUOTE
        assert campaign.negotiation_turn is None
        assert campaign.quoted_total_budget is None
        campaign = negotiations.send_quote(campaign.id, admin_actor, "11000")
        assert campaign.status == CampaignStatus.QUOTED

    def test_decline_request(self, db, make_placed, admin_actor):
        campaign = make_placed()

        campaign = NegotiationService(db).decline_request(campaign.id, admin_actor, "Out of scope")

        assert campaign.status == CampaignStatus.DECLINED
        assert campaign.is_terminal


class TestAgencyNegotiation:

    @pytest.fixture
    def agency_campaign(self, db, make_placed, parties, admin_actor):
        campaign = make_placed()
        return CampaignService(db).assign_agency(campaign.id, parties["agency"].id)

    def test_agency_quotes_instead_of_admin(self, db, agency_campaign, agency_actor, admin_actor):
        negotiations = NegotiationService(db)

        with pytest.raises(InvalidTransitionError):
            negotiations.send_quote(agency_campaign.id, admin_actor, "12000")

        campaign = negotiations.send_quote(agency_campaign.id, agency_actor, "12000")
        assert campaign.status == CampaignStatus.QUOTED
        assert _entries(db, campaign.id)[0].sender == NegotiationParty.AGENCY

    def test_service_fee_is_copied_on_accept(self, db, agency_campaign, agency_actor, client_actor):
        negotiations = NegotiationService(db)
        negotiations.send_quote(agency_campaign.id, agency_actor, "12000")
        negotiations.counter_offer(agency_campaign.id, client_actor, BudgetProposal(Decimal("10000")))
        negotiations.counter_offer(agency_campaign.id, agency_actor, ServiceFeeProposal(Decimal("12.5")))

        campaign = negotiations.accept(agency_campaign.id, client_actor)

        assert campaign.agency_fee_percent == Decimal("12.50")
        assert campaign.base_budget == Decimal("10000.00")

    def test_client_cannot_propose_service_fee(self, db, agency_campaign, agency_actor, client_actor):
        negotiations = NegotiationService(db)
        negotiations.send_quote(agency_campaign.id, agency_actor, "12000")

        with pytest.raises(InvalidTransitionError):
            negotiations.counter_offer(agency_campaign.id, client_actor, ServiceFeeProposal(Decimal("5")))


class TestHistory:

    def test_history_reports_whose_turn(self, db, make_placed, admin_actor, client_actor):
        campaign = make_placed()
        negotiations = NegotiationService(db)
        negotiations.send_quote(campaign.id, admin_actor, "12000")

        assert negotiations.history(campaign.id, client_actor)["your_turn"] is True
        assert negotiations.history(campaign.id, admin_actor)["your_turn"] is False

    def test_mark_read_only_touches_other_side(self, db, make_placed, admin_actor, client_actor):
        campaign = make_placed()
        negotiations = NegotiationService(db)
        negotiations.send_quote(campaign.id, admin_actor, "12000")
        negotiations.counter_offer(campaign.id, client_actor, BudgetProposal(Decimal("9000")))

        assert negotiations.mark_read(campaign.id, client_actor) == 1
        assert negotiations.mark_read(campaign.id, client_actor) == 0
        assert negotiations.mark_read(campaign.id, admin_actor) == 1
