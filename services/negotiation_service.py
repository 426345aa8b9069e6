"""
Negotiation Engine

Turn-based budget dialogue between the client and the provider side of a
campaign (the platform admin, or the managing agency when one is set).
Every move is appended to the campaign's negotiation log; the confirmed
budget fields are only written by `accept`.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from auth.roles import Actor, UserType
from config.app_config import PLATFORM_FEE_PERCENT
from core.budget import compute_budget, compute_platform_fee, to_money
from core.exceptions import InvalidTransitionError, ForbiddenError
from database.config import atomic
from database.campaign_models import (
    Campaign, CampaignStatus, CampaignNegotiation, NegotiationAction, NegotiationParty,
)
from services.lifecycle import (
    lock_campaign, get_campaign, transition, touch, require_status, admin_notices,
    NEGOTIABLE_STATUSES,
)
from services.notification_service import NotificationService, Notice, NotificationCategory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BudgetProposal:
    base_budget: Decimal


@dataclass(frozen=True)
class ServiceFeeProposal:
    """Agency-only: the share of the budget the agency asks for its service."""
    fee_percent: Decimal


NegotiationProposal = Union[BudgetProposal, ServiceFeeProposal]


def provider_party(campaign: Campaign) -> NegotiationParty:
    """The side that quotes: the managing agency if there is one, else the platform admin."""
    return NegotiationParty.AGENCY if campaign.agency_id else NegotiationParty.ADMIN


def other_party(campaign: Campaign, party: NegotiationParty) -> NegotiationParty:
    return provider_party(campaign) if party == NegotiationParty.CLIENT else NegotiationParty.CLIENT


class NegotiationService:
    def __init__(self, db: Session):
        self.db = db
        self.notifications = NotificationService(db)

    # =========================================================================
    # PROTOCOL
    # =========================================================================

    def send_quote(self, campaign_id: str, actor: Actor, base_budget) -> Campaign:
        """Provider's opening quote on a freshly placed campaign."""
        notices = []
        with atomic(self.db):
            campaign = lock_campaign(self.db, campaign_id)
            party = self._party_for(campaign, actor)
            if party != provider_party(campaign):
                raise ForbiddenError("Only the quoting side can send a quote")
            require_status(campaign, {CampaignStatus.NEEDS_QUOTE}, "quote")
            self._require_turn(campaign, party)

            budget = compute_budget(base_budget)
            self._set_quoted(campaign, budget)
            self._append(campaign, actor, party, NegotiationAction.REQUEST, budget=budget)
            campaign.negotiation_turn = NegotiationParty.CLIENT
            transition(campaign, CampaignStatus.QUOTED)

            notices.append(Notice(
                campaign.client.user_id, "client", "Quote Received",
                f"Your campaign '{campaign.name}' was quoted at {budget.total} (incl. VAT).",
                NotificationCategory.QUOTE_SENT,
                {"campaign_id": campaign.id, "total": str(budget.total)},
            ))
        self.notifications.dispatch(notices)
        return campaign

    def counter_offer(
        self,
        campaign_id: str,
        actor: Actor,
        proposal: NegotiationProposal,
        message: Optional[str] = None,
    ) -> Campaign:
        notices = []
        with atomic(self.db):
            campaign = lock_campaign(self.db, campaign_id)
            party = self._party_for(campaign, actor)
            require_status(campaign, NEGOTIABLE_STATUSES, "negotiate")
            self._require_turn(campaign, party)

            if isinstance(proposal, BudgetProposal):
                budget = compute_budget(proposal.base_budget)
                self._set_quoted(campaign, budget)
                self._append(campaign, actor, party, NegotiationAction.COUNTER_OFFER, budget=budget, message=message)
            elif isinstance(proposal, ServiceFeeProposal):
                if party != NegotiationParty.AGENCY:
                    raise InvalidTransitionError("Only an agency can propose a service fee")
                self._append(
                    campaign, actor, party, NegotiationAction.COUNTER_OFFER,
                    fee_percent=to_money(proposal.fee_percent), message=message,
                )
            else:
                raise InvalidTransitionError(f"Unsupported proposal: {type(proposal).__name__}")

            receiver = other_party(campaign, party)
            campaign.negotiation_turn = receiver
            transition(campaign, CampaignStatus.NEGOTIATING)
            notices.extend(self._notices_for(
                campaign, receiver, "New Counter Offer",
                f"A counter offer was made on '{campaign.name}'.",
            ))
        self.notifications.dispatch(notices)
        return campaign

    def accept(self, campaign_id: str, actor: Actor) -> Campaign:
        """Adopt the most recently proposed budget as the confirmed budget."""
        notices = []
        with atomic(self.db):
            campaign = lock_campaign(self.db, campaign_id)
            party = self._party_for(campaign, actor)
            require_status(campaign, {CampaignStatus.QUOTED, CampaignStatus.NEGOTIATING}, "accept")
            self._require_turn(campaign, party, allow_unset=False)

            latest = self._latest(campaign.id, with_budget=True)
            if latest is None:
                raise InvalidTransitionError("There is no budget proposal to accept")

            campaign.base_budget = latest.proposed_base_budget
            campaign.vat_amount = latest.proposed_vat_amount
            campaign.total_budget = latest.proposed_total_budget
            campaign.net_payable_amount = latest.proposed_total_budget
            fee_entry = self._latest(campaign.id, with_fee=True)
            if fee_entry is not None:
                campaign.agency_fee_percent = fee_entry.proposed_service_fee_percent

            fee, available = compute_platform_fee(campaign.base_budget, PLATFORM_FEE_PERCENT)
            campaign.platform_fee_amount = fee
            campaign.available_for_execution = available
            campaign.due_amount = to_money(campaign.total_budget) - to_money(campaign.paid_amount or 0)
            self._clear_quoted(campaign)

            self._append(campaign, actor, party, NegotiationAction.ACCEPT)
            campaign.negotiation_turn = None
            transition(campaign, CampaignStatus.ACCEPTED)

            notices.extend(self._notices_for(
                campaign, other_party(campaign, party), "Budget Accepted",
                f"The budget for '{campaign.name}' was accepted at {campaign.total_budget}.",
            ))
        self.notifications.dispatch(notices)
        return campaign

    def reject(self, campaign_id: str, actor: Actor, reason: Optional[str] = None) -> Campaign:
        """Walk away from the negotiation. The campaign is cancelled."""
        notices = []
        with atomic(self.db):
            campaign = lock_campaign(self.db, campaign_id)
            party = self._party_for(campaign, actor)
            require_status(campaign, NEGOTIABLE_STATUSES, "reject")
            self._require_turn(campaign, party)

            self._append(campaign, actor, party, NegotiationAction.REJECT, message=reason)
            campaign.negotiation_turn = None
            campaign.cancelled_at = datetime.utcnow()
            transition(campaign, CampaignStatus.CANCELLED)

            notices.extend(self._notices_for(
                campaign, other_party(campaign, party), "Negotiation Rejected",
                f"The negotiation on '{campaign.name}' was rejected." + (f" Reason: {reason}" if reason else ""),
            ))
        self.notifications.dispatch(notices)
        return campaign

    # =========================================================================
    # ADMIN CONTROLS
    # =========================================================================

    def reset(self, campaign_id: str, actor: Actor) -> Campaign:
        """Clear the turn and outstanding quote so a fresh quote can be sent."""
        with atomic(self.db):
            campaign = lock_campaign(self.db, campaign_id)
            require_status(campaign, {CampaignStatus.QUOTED, CampaignStatus.NEGOTIATING}, "reset the negotiation of")
            self._clear_quoted(campaign)
            self._append(campaign, actor, NegotiationParty.ADMIN, NegotiationAction.MESSAGE, message="Negotiation reset")
            campaign.negotiation_turn = None
            transition(campaign, CampaignStatus.NEEDS_QUOTE)
        return campaign

    def decline_request(self, campaign_id: str, actor: Actor, reason: str) -> Campaign:
        """Refuse a placed request before any quote was sent."""
        notices = []
        with atomic(self.db):
            campaign = lock_campaign(self.db, campaign_id)
            require_status(campaign, {CampaignStatus.NEEDS_QUOTE}, "decline")
            self._append(campaign, actor, NegotiationParty.ADMIN, NegotiationAction.REJECT, message=reason)
            campaign.negotiation_turn = None
            transition(campaign, CampaignStatus.DECLINED)
            notices.append(Notice(
                campaign.client.user_id, "client", "Campaign Declined",
                f"Your campaign '{campaign.name}' was declined. Reason: {reason}",
                NotificationCategory.NEGOTIATION_RESPONSE, {"campaign_id": campaign.id},
            ))
        self.notifications.dispatch(notices)
        return campaign

    # =========================================================================
    # LOG
    # =========================================================================

    def history(self, campaign_id: str, actor: Actor) -> dict:
        campaign = get_campaign(self.db, campaign_id)
        entries = (
            self.db.query(CampaignNegotiation)
            .filter(CampaignNegotiation.campaign_id == campaign.id)
            .order_by(CampaignNegotiation.sequence)
            .all()
        )
        party = self._party_for(campaign, actor, strict=False)
        return {
            "campaign_id": campaign.id,
            "status": campaign.status,
            "negotiation_turn": campaign.negotiation_turn,
            "your_turn": party is not None and campaign.negotiation_turn == party,
            "entries": entries,
        }

    def mark_read(self, campaign_id: str, actor: Actor) -> int:
        """Mark every entry sent by the other side as read. Returns how many changed."""
        campaign = get_campaign(self.db, campaign_id)
        party = self._party_for(campaign, actor, strict=False)
        with atomic(self.db):
            unread = self.db.query(CampaignNegotiation).filter(
                CampaignNegotiation.campaign_id == campaign.id,
                CampaignNegotiation.is_read == False  # noqa: E712
            ).all()
            now = datetime.utcnow()
            count = 0
            for entry in unread:
                if entry.sender == party:
                    continue
                entry.is_read = True
                entry.read_at = now
                count += 1
        return count

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _party_for(self, campaign: Campaign, actor: Actor, strict: bool = True) -> Optional[NegotiationParty]:
        if actor.role == UserType.CLIENT:
            return NegotiationParty.CLIENT
        if actor.role == UserType.AGENCY:
            if campaign.agency_id is None:
                if strict:
                    raise ForbiddenError("Campaign is not managed by an agency")
                return None
            return NegotiationParty.AGENCY
        if actor.role == UserType.ADMIN:
            if campaign.agency_id is not None and strict:
                raise InvalidTransitionError("Campaign budget is negotiated by its agency")
            return NegotiationParty.ADMIN
        if strict:
            raise ForbiddenError("This role cannot take part in budget negotiation")
        return None

    def _require_turn(self, campaign: Campaign, party: NegotiationParty, allow_unset: bool = True):
        turn = campaign.negotiation_turn
        if turn is None and allow_unset:
            return
        if turn != party:
            logger.warning(f"campaign {campaign.id}: {party.value} acted out of turn (turn={turn.value if turn else None})")
            raise InvalidTransitionError(
                "It is not your turn to respond",
                errors=[f"Waiting on: {turn.value if turn else 'nobody'}"],
            )

    def _append(
        self,
        campaign: Campaign,
        actor: Actor,
        party: NegotiationParty,
        action: NegotiationAction,
        budget=None,
        fee_percent=None,
        message: Optional[str] = None,
    ) -> CampaignNegotiation:
        campaign.negotiation_count = (campaign.negotiation_count or 0) + 1
        entry = CampaignNegotiation(
            campaign_id=campaign.id,
            sequence=campaign.negotiation_count,
            sender=party,
            sender_user_id=actor.actor_id,
            action=action,
            proposed_base_budget=budget.base if budget else None,
            proposed_vat_amount=budget.vat if budget else None,
            proposed_total_budget=budget.total if budget else None,
            proposed_service_fee_percent=fee_percent,
            message=message,
        )
        self.db.add(entry)
        touch(campaign)
        return entry

    def _latest(self, campaign_id: str, with_budget: bool = False, with_fee: bool = False) -> Optional[CampaignNegotiation]:
        self.db.flush()
        query = self.db.query(CampaignNegotiation).filter(CampaignNegotiation.campaign_id == campaign_id)
        if with_budget:
            query = query.filter(CampaignNegotiation.proposed_base_budget.isnot(None))
        if with_fee:
            query = query.filter(CampaignNegotiation.proposed_service_fee_percent.isnot(None))
        return query.order_by(CampaignNegotiation.sequence.desc()).first()

    def _set_quoted(self, campaign: Campaign, budget):
        campaign.quoted_base_budget = budget.base
        campaign.quoted_vat_amount = budget.vat
        campaign.quoted_total_budget = budget.total

    def _clear_quoted(self, campaign: Campaign):
        campaign.quoted_base_budget = None
        campaign.quoted_vat_amount = None
        campaign.quoted_total_budget = None

    def _notices_for(self, campaign: Campaign, party: NegotiationParty, title: str, message: str) -> List[Notice]:
        data = {"campaign_id": campaign.id}
        category = NotificationCategory.NEGOTIATION_RESPONSE
        if party == NegotiationParty.CLIENT:
            return [Notice(campaign.client.user_id, "client", title, message, category, data)]
        if party == NegotiationParty.AGENCY and campaign.agency is not None:
            return [Notice(campaign.agency.user_id, "agency", title, message, category, data)]
        return admin_notices(self.db, title, message, category, data)
