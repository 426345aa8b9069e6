"""
Role-scoped campaign facades.

Each facade checks that the actor's role holds the permission and owns the
campaign, then hands the call to the lifecycle services. No lifecycle rule
lives here.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy.orm import Session

from auth.roles import Actor, UserType, Permission, has_permission
from core.exceptions import ForbiddenError, InvalidTransitionError
from database.campaign_models import Campaign, CampaignStatus, PartyType
from services.assignment_service import AssignmentService, OfferRequest, DeliveryAddress
from services.campaign_service import CampaignService
from services.milestone_service import MilestoneService
from services.negotiation_service import NegotiationService, NegotiationProposal
from services.profile_service import ProfileDirectory


class _CampaignFacade(ABC):
    role: UserType = None

    def __init__(self, db: Session, actor: Actor):
        if actor.role != self.role:
            raise ForbiddenError(f"This action requires the {self.role.value} role")
        self.db = db
        self.actor = actor
        self.profiles = ProfileDirectory(db)
        self.campaigns = CampaignService(db)
        self.negotiations = NegotiationService(db)
        self.assignments = AssignmentService(db)
        self.milestones = MilestoneService(db)

    def _require(self, permission: Permission):
        if not has_permission(self.actor.role, permission):
            raise ForbiddenError("You don't have permission to perform this action")

    def _campaign(self, campaign_id: str) -> Campaign:
        campaign = self.campaigns.get(campaign_id)
        self._check_access(campaign)
        return campaign

    @abstractmethod
    def _check_access(self, campaign: Campaign):
        """Raise ForbiddenError unless the actor may see this campaign."""

    def _milestone_campaign(self, milestone_id: str) -> Campaign:
        milestone = self.milestones.get(milestone_id)
        return self._campaign(milestone.campaign_id)

    # shared reads

    def get_campaign(self, campaign_id: str) -> Campaign:
        self._require(Permission.VIEW_CAMPAIGNS)
        return self._campaign(campaign_id)

    def negotiation_history(self, campaign_id: str) -> dict:
        self._campaign(campaign_id)
        return self.negotiations.history(campaign_id, self.actor)

    def mark_negotiations_read(self, campaign_id: str) -> int:
        self._campaign(campaign_id)
        return self.negotiations.mark_read(campaign_id, self.actor)

    def progress(self, campaign_id: str) -> dict:
        self._campaign(campaign_id)
        return self.milestones.progress(campaign_id)


# ============================================================================
# CLIENT
# ============================================================================

class ClientCampaignFacade(_CampaignFacade):
    role = UserType.CLIENT

    def __init__(self, db: Session, actor: Actor):
        super().__init__(db, actor)
        self.client = self.profiles.client_for_user(actor.actor_id)

    def _check_access(self, campaign: Campaign):
        if campaign.client_id != self.client.id:
            raise ForbiddenError("You do not own this campaign")

    def list_campaigns(self, status: Optional[CampaignStatus] = None) -> List[Campaign]:
        return self.campaigns.list_campaigns(client_id=self.client.id, status=status)

    # wizard

    def create_draft(self, name: str, campaign_type) -> Campaign:
        self._require(Permission.CREATE_CAMPAIGNS)
        return self.campaigns.create_draft(self.client.id, name, campaign_type)

    def update_basic_info(self, campaign_id: str, **fields) -> Campaign:
        self._require(Permission.EDIT_OWN_CAMPAIGNS)
        self._campaign(campaign_id)
        return self.campaigns.update_basic_info(campaign_id, **fields)

    def update_targeting(self, campaign_id: str, **fields) -> Campaign:
        self._require(Permission.EDIT_OWN_CAMPAIGNS)
        self._campaign(campaign_id)
        return self.campaigns.update_targeting(campaign_id, **fields)

    def update_details(self, campaign_id: str, **fields) -> Campaign:
        self._require(Permission.EDIT_OWN_CAMPAIGNS)
        self._campaign(campaign_id)
        return self.campaigns.update_details(campaign_id, **fields)

    def update_budget(self, campaign_id: str, base_budget, milestones: List[dict]) -> Campaign:
        self._require(Permission.EDIT_OWN_CAMPAIGNS)
        self._campaign(campaign_id)
        return self.campaigns.update_budget(campaign_id, base_budget, milestones)

    def update_assets(self, campaign_id: str, need_sample_product=None, assets=None) -> Campaign:
        self._require(Permission.EDIT_OWN_CAMPAIGNS)
        self._campaign(campaign_id)
        return self.campaigns.update_assets(campaign_id, need_sample_product, assets)

    def delete_asset(self, campaign_id: str, asset_id: str) -> None:
        self._require(Permission.EDIT_OWN_CAMPAIGNS)
        self._campaign(campaign_id)
        self.campaigns.delete_asset(campaign_id, asset_id)

    def summary(self, campaign_id: str) -> dict:
        self._campaign(campaign_id)
        return self.campaigns.summary(campaign_id)

    def budget_preview(self, base_budget):
        return self.campaigns.budget_preview(base_budget)

    def place(self, campaign_id: str) -> Campaign:
        self._require(Permission.PLACE_CAMPAIGNS)
        self._campaign(campaign_id)
        return self.campaigns.place(campaign_id, self.actor)

    def delete_draft(self, campaign_id: str) -> None:
        self._require(Permission.EDIT_OWN_CAMPAIGNS)
        self._campaign(campaign_id)
        self.campaigns.delete_draft(campaign_id)

    # negotiation

    def counter_offer(self, campaign_id: str, proposal: NegotiationProposal, message: Optional[str] = None) -> Campaign:
        self._require(Permission.NEGOTIATE_BUDGET)
        self._campaign(campaign_id)
        return self.negotiations.counter_offer(campaign_id, self.actor, proposal, message)

    def accept_budget(self, campaign_id: str) -> Campaign:
        self._require(Permission.NEGOTIATE_BUDGET)
        self._campaign(campaign_id)
        return self.negotiations.accept(campaign_id, self.actor)

    def reject_budget(self, campaign_id: str, reason: Optional[str] = None) -> Campaign:
        self._require(Permission.NEGOTIATE_BUDGET)
        self._campaign(campaign_id)
        return self.negotiations.reject(campaign_id, self.actor, reason)

    # funding and review

    def fund(self, campaign_id: str, amount) -> Campaign:
        self._require(Permission.FUND_CAMPAIGNS)
        self._campaign(campaign_id)
        return self.campaigns.fund(campaign_id, amount, self.actor)

    def review_milestone(self, milestone_id: str, accept: bool, reason: Optional[str] = None):
        self._require(Permission.REVIEW_MILESTONES)
        self._milestone_campaign(milestone_id)
        return self.milestones.review(milestone_id, self.actor, accept, reason)

    def list_assignments(self, campaign_id: str):
        self._campaign(campaign_id)
        return self.assignments.list_for_campaign(campaign_id)

    # feedback

    def rate_campaign(self, campaign_id: str, rating: int, review: Optional[str] = None) -> Campaign:
        self._require(Permission.RATE_CAMPAIGNS)
        self._campaign(campaign_id)
        return self.campaigns.rate(campaign_id, rating, review, self.actor)

    def report_issue(self, campaign_id: str, reason: str):
        self._require(Permission.REPORT_ISSUES)
        self._campaign(campaign_id)
        return self.campaigns.create_report(campaign_id, self.actor, reason)


# ============================================================================
# ADMIN
# ============================================================================

class AdminCampaignFacade(_CampaignFacade):
    role = UserType.ADMIN

    def _check_access(self, campaign: Campaign):
        # admins see every campaign
        return None

    def list_campaigns(self, status: Optional[CampaignStatus] = None) -> List[Campaign]:
        self._require(Permission.VIEW_ALL_CAMPAIGNS)
        return self.campaigns.list_campaigns(status=status)

    def place(self, campaign_id: str) -> Campaign:
        return self.campaigns.place(campaign_id, self.actor)

    def send_quote(self, campaign_id: str, base_budget) -> Campaign:
        self._require(Permission.SEND_QUOTES)
        return self.negotiations.send_quote(campaign_id, self.actor, base_budget)

    def counter_offer(self, campaign_id: str, proposal: NegotiationProposal, message: Optional[str] = None) -> Campaign:
        self._require(Permission.NEGOTIATE_BUDGET)
        return self.negotiations.counter_offer(campaign_id, self.actor, proposal, message)

    def accept_budget(self, campaign_id: str) -> Campaign:
        return self.negotiations.accept(campaign_id, self.actor)

    def reject_budget(self, campaign_id: str, reason: Optional[str] = None) -> Campaign:
        return self.negotiations.reject(campaign_id, self.actor, reason)

    def reset_negotiation(self, campaign_id: str) -> Campaign:
        self._require(Permission.MANAGE_PLATFORM)
        return self.negotiations.reset(campaign_id, self.actor)

    def decline_request(self, campaign_id: str, reason: str) -> Campaign:
        self._require(Permission.MANAGE_PLATFORM)
        return self.negotiations.decline_request(campaign_id, self.actor, reason)

    def verify_payment(self, campaign_id: str, amount) -> Campaign:
        self._require(Permission.VERIFY_PAYMENTS)
        return self.campaigns.verify_payment(campaign_id, amount, self.actor)

    def assign_agency(self, campaign_id: str, agency_id: str) -> Campaign:
        self._require(Permission.MANAGE_PLATFORM)
        return self.campaigns.assign_agency(campaign_id, agency_id)

    def update_platform_fee(self, campaign_id: str, fee_amount) -> Campaign:
        self._require(Permission.MANAGE_PLATFORM)
        return self.campaigns.update_platform_fee(campaign_id, fee_amount)

    def create_assignments(self, campaign_id: str, offers: List[OfferRequest]):
        self._require(Permission.MANAGE_ASSIGNMENTS)
        return self.assignments.create_assignments(campaign_id, offers, self.actor)

    def list_assignments(self, campaign_id: str):
        return self.assignments.list_for_campaign(campaign_id)

    def cancel_assignment(self, assignment_id: str):
        self._require(Permission.MANAGE_ASSIGNMENTS)
        return self.assignments.cancel(assignment_id, self.actor)

    def update_assignment(self, assignment_id: str, **patch):
        self._require(Permission.MANAGE_ASSIGNMENTS)
        return self.assignments.update(assignment_id, **patch)

    def update_delivery(self, assignment_id: str, delivery_status):
        self._require(Permission.MANAGE_ASSIGNMENTS)
        return self.assignments.update_delivery(assignment_id, delivery_status)

    def review_milestone(self, milestone_id: str, accept: bool, reason: Optional[str] = None):
        self._require(Permission.REVIEW_MILESTONES)
        return self.milestones.review(milestone_id, self.actor, accept, reason)

    def update_metrics(self, milestone_id: str, metrics: dict):
        return self.milestones.update_metrics(milestone_id, self.actor, metrics)

    def record_payout(self, milestone_id: str, amount):
        self._require(Permission.RECORD_PAYOUTS)
        return self.milestones.record_payout(milestone_id, amount)

    def list_reports(self, status=None):
        self._require(Permission.MANAGE_PLATFORM)
        return self.campaigns.list_reports(status=status)

    def resolve_report(self, report_id: str, dismiss: bool = False, note: Optional[str] = None):
        self._require(Permission.MANAGE_PLATFORM)
        return self.campaigns.resolve_report(report_id, dismiss, note)


# ============================================================================
# AGENCY
# ============================================================================

class AgencyCampaignFacade(_CampaignFacade):
    role = UserType.AGENCY

    def __init__(self, db: Session, actor: Actor):
        super().__init__(db, actor)
        self.agency = self.profiles.agency_for_user(actor.actor_id)

    def _check_access(self, campaign: Campaign):
        if campaign.agency_id == self.agency.id:
            return
        # agencies executing an offer may read the campaign but not manage it
        held = self.assignments.list_for_party(PartyType.AGENCY, self.agency.id)
        if any(a.campaign_id == campaign.id for a in held):
            return
        raise ForbiddenError("This campaign is not managed by your agency")

    def _managed(self, campaign_id: str) -> Campaign:
        campaign = self.campaigns.get(campaign_id)
        if campaign.agency_id != self.agency.id:
            raise ForbiddenError("This campaign is not managed by your agency")
        return campaign

    def list_campaigns(self, status: Optional[CampaignStatus] = None) -> List[Campaign]:
        return self.campaigns.list_campaigns(agency_id=self.agency.id, status=status)

    def send_quote(self, campaign_id: str, base_budget) -> Campaign:
        self._managed(campaign_id)
        return self.negotiations.send_quote(campaign_id, self.actor, base_budget)

    def counter_offer(self, campaign_id: str, proposal: NegotiationProposal, message: Optional[str] = None) -> Campaign:
        self._require(Permission.NEGOTIATE_BUDGET)
        self._managed(campaign_id)
        return self.negotiations.counter_offer(campaign_id, self.actor, proposal, message)

    def accept_budget(self, campaign_id: str) -> Campaign:
        self._managed(campaign_id)
        return self.negotiations.accept(campaign_id, self.actor)

    def reject_budget(self, campaign_id: str, reason: Optional[str] = None) -> Campaign:
        self._managed(campaign_id)
        return self.negotiations.reject(campaign_id, self.actor, reason)

    def create_assignments(self, campaign_id: str, offers: List[OfferRequest]):
        self._require(Permission.MANAGE_ASSIGNMENTS)
        self._managed(campaign_id)
        if any(PartyType(o.party_type) != PartyType.INFLUENCER for o in offers):
            raise InvalidTransitionError("Agencies can only send offers to influencers")
        return self.assignments.create_assignments(campaign_id, offers, self.actor)

    def list_assignments(self, campaign_id: str):
        self._managed(campaign_id)
        return self.assignments.list_for_campaign(campaign_id)

    def cancel_assignment(self, assignment_id: str):
        assignment = self.assignments.get(assignment_id)
        self._managed(assignment.campaign_id)
        return self.assignments.cancel(assignment_id, self.actor)

    def update_assignment(self, assignment_id: str, **patch):
        assignment = self.assignments.get(assignment_id)
        self._managed(assignment.campaign_id)
        return self.assignments.update(assignment_id, **patch)

    def my_offers(self):
        return self.assignments.list_for_party(PartyType.AGENCY, self.agency.id)

    def respond_to_offer(self, assignment_id: str, accept: bool, message=None, delivery: Optional[DeliveryAddress] = None):
        self._require(Permission.RESPOND_TO_OFFERS)
        return self.assignments.respond(assignment_id, self.actor, accept, message, delivery)

    def submit_milestone(self, milestone_id: str, payload: dict):
        self._require(Permission.SUBMIT_MILESTONES)
        return self.milestones.submit(milestone_id, self.actor, payload)

    def update_metrics(self, milestone_id: str, metrics: dict):
        return self.milestones.update_metrics(milestone_id, self.actor, metrics)


# ============================================================================
# INFLUENCER
# ============================================================================

class InfluencerCampaignFacade(_CampaignFacade):
    role = UserType.INFLUENCER

    def __init__(self, db: Session, actor: Actor):
        super().__init__(db, actor)
        self.influencer = self.profiles.influencer_for_user(actor.actor_id)

    def _check_access(self, campaign: Campaign):
        held = self.assignments.list_for_party(PartyType.INFLUENCER, self.influencer.id)
        if not any(a.campaign_id == campaign.id for a in held):
            raise ForbiddenError("You have no offer on this campaign")

    def negotiation_history(self, campaign_id: str) -> dict:
        raise ForbiddenError("Influencers do not take part in budget negotiation")

    def mark_negotiations_read(self, campaign_id: str) -> int:
        raise ForbiddenError("Influencers do not take part in budget negotiation")

    def my_offers(self, status=None):
        return self.assignments.list_for_party(PartyType.INFLUENCER, self.influencer.id, status)

    def respond_to_offer(self, assignment_id: str, accept: bool, message=None, delivery: Optional[DeliveryAddress] = None):
        self._require(Permission.RESPOND_TO_OFFERS)
        return self.assignments.respond(assignment_id, self.actor, accept, message, delivery)

    def submit_milestone(self, milestone_id: str, payload: dict):
        self._require(Permission.SUBMIT_MILESTONES)
        return self.milestones.submit(milestone_id, self.actor, payload)

    def update_metrics(self, milestone_id: str, metrics: dict):
        return self.milestones.update_metrics(milestone_id, self.actor, metrics)
