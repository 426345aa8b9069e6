"""
Agency Campaigns Router
Campaigns managed by an agency: quoting, negotiation and influencer offers,
plus offers the agency itself received
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from database.config import get_db
from database.campaign_models import CampaignStatus
from auth.roles import Actor, UserType
from auth.decorators import require_user_type
from schemas.campaign import (
    QuoteRequest, CounterOfferRequest, RejectRequest, CreateAssignmentsRequest, AssignmentUpdate,
    OfferResponseRequest, MilestoneSubmit, MetricsUpdate,
    CampaignResponse, AssignmentResponse, MilestoneResponse, NegotiationHistoryResponse,
    ProgressResponse, campaign_to_response, history_to_response,
)
from services.facades import AgencyCampaignFacade

router = APIRouter(prefix="/agency/campaigns", tags=["Agency Campaigns"])


def get_facade(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_user_type(UserType.AGENCY)),
) -> AgencyCampaignFacade:
    return AgencyCampaignFacade(db, actor)


def _response(campaign) -> CampaignResponse:
    return campaign_to_response(campaign, UserType.AGENCY)


@router.get("", response_model=List[CampaignResponse])
async def list_campaigns(
    status: Optional[CampaignStatus] = Query(None),
    facade: AgencyCampaignFacade = Depends(get_facade),
):
    return [_response(c) for c in facade.list_campaigns(status)]


@router.get("/offers", response_model=List[AssignmentResponse])
async def my_offers(facade: AgencyCampaignFacade = Depends(get_facade)):
    return [AssignmentResponse.model_validate(a) for a in facade.my_offers()]


@router.post("/offers/{assignment_id}/respond", response_model=AssignmentResponse)
async def respond_to_offer(assignment_id: str, data: OfferResponseRequest, facade: AgencyCampaignFacade = Depends(get_facade)):
    assignment = facade.respond_to_offer(assignment_id, data.accept, data.message, data.to_delivery())
    return AssignmentResponse.model_validate(assignment)


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(campaign_id: str, facade: AgencyCampaignFacade = Depends(get_facade)):
    return _response(facade.get_campaign(campaign_id))


@router.get("/{campaign_id}/progress", response_model=ProgressResponse)
async def campaign_progress(campaign_id: str, facade: AgencyCampaignFacade = Depends(get_facade)):
    return facade.progress(campaign_id)


# ============================================================================
# NEGOTIATION
# ============================================================================

@router.post("/{campaign_id}/quote", response_model=CampaignResponse)
async def send_quote(campaign_id: str, data: QuoteRequest, facade: AgencyCampaignFacade = Depends(get_facade)):
    return _response(facade.send_quote(campaign_id, data.base_budget))


@router.post("/{campaign_id}/counter-offer", response_model=CampaignResponse)
async def counter_offer(campaign_id: str, data: CounterOfferRequest, facade: AgencyCampaignFacade = Depends(get_facade)):
    """Counter with a new base budget or a service fee percentage."""
    return _response(facade.counter_offer(campaign_id, data.proposal.to_proposal(), data.message))


@router.post("/{campaign_id}/accept", response_model=CampaignResponse)
async def accept_budget(campaign_id: str, facade: AgencyCampaignFacade = Depends(get_facade)):
    return _response(facade.accept_budget(campaign_id))


@router.post("/{campaign_id}/reject", response_model=CampaignResponse)
async def reject_budget(campaign_id: str, data: RejectRequest, facade: AgencyCampaignFacade = Depends(get_facade)):
    return _response(facade.reject_budget(campaign_id, data.reason))


@router.get("/{campaign_id}/negotiations", response_model=NegotiationHistoryResponse)
async def negotiation_history(campaign_id: str, facade: AgencyCampaignFacade = Depends(get_facade)):
    return history_to_response(facade.negotiation_history(campaign_id))


@router.post("/{campaign_id}/negotiations/read")
async def mark_negotiations_read(campaign_id: str, facade: AgencyCampaignFacade = Depends(get_facade)):
    return {"marked_read": facade.mark_negotiations_read(campaign_id)}


# ============================================================================
# INFLUENCER OFFERS
# ============================================================================

@router.post("/{campaign_id}/assignments", response_model=List[AssignmentResponse], status_code=201)
async def create_assignments(campaign_id: str, data: CreateAssignmentsRequest, facade: AgencyCampaignFacade = Depends(get_facade)):
    created = facade.create_assignments(campaign_id, [o.to_offer() for o in data.offers])
    return [AssignmentResponse.model_validate(a) for a in created]


@router.get("/{campaign_id}/assignments", response_model=List[AssignmentResponse])
async def list_assignments(campaign_id: str, facade: AgencyCampaignFacade = Depends(get_facade)):
    return [AssignmentResponse.model_validate(a) for a in facade.list_assignments(campaign_id)]


@router.put("/assignments/{assignment_id}", response_model=AssignmentResponse)
async def update_assignment(assignment_id: str, data: AssignmentUpdate, facade: AgencyCampaignFacade = Depends(get_facade)):
    return AssignmentResponse.model_validate(
        facade.update_assignment(assignment_id, **data.model_dump(exclude_unset=True))
    )


@router.post("/assignments/{assignment_id}/cancel", response_model=AssignmentResponse)
async def cancel_assignment(assignment_id: str, facade: AgencyCampaignFacade = Depends(get_facade)):
    return AssignmentResponse.model_validate(facade.cancel_assignment(assignment_id))


# ============================================================================
# MILESTONES
# ============================================================================

@router.post("/milestones/{milestone_id}/submit", response_model=MilestoneResponse)
async def submit_milestone(milestone_id: str, data: MilestoneSubmit, facade: AgencyCampaignFacade = Depends(get_facade)):
    return MilestoneResponse.model_validate(facade.submit_milestone(milestone_id, data.model_dump(exclude_unset=True)))


@router.put("/milestones/{milestone_id}/metrics", response_model=MilestoneResponse)
async def update_metrics(milestone_id: str, data: MetricsUpdate, facade: AgencyCampaignFacade = Depends(get_facade)):
    return MilestoneResponse.model_validate(facade.update_metrics(milestone_id, data.model_dump(exclude_unset=True)))
