"""
Admin Campaigns Router
Quoting, negotiation oversight, payment verification, invitations and milestone review
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from database.config import get_db
from database.campaign_models import CampaignStatus, ReportStatus
from auth.roles import Actor, UserType
from auth.decorators import require_admin
from schemas.campaign import (
    QuoteRequest, CounterOfferRequest, RejectRequest, DeclineRequest, PaymentRequest,
    AssignAgencyRequest, PlatformFeeRequest, CreateAssignmentsRequest, AssignmentUpdate,
    DeliveryUpdate, MilestoneReview, MetricsUpdate, PayoutRequest, ReportResolveRequest, ReportResponse,
    CampaignResponse, AssignmentResponse, MilestoneResponse, NegotiationHistoryResponse,
    ProgressResponse, campaign_to_response, history_to_response,
)
from services.facades import AdminCampaignFacade

router = APIRouter(prefix="/admin/campaigns", tags=["Admin Campaigns"])


def get_facade(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin()),
) -> AdminCampaignFacade:
    return AdminCampaignFacade(db, actor)


def _response(campaign) -> CampaignResponse:
    return campaign_to_response(campaign, UserType.ADMIN)


# ============================================================================
# CAMPAIGNS
# ============================================================================

@router.get("", response_model=List[CampaignResponse])
async def list_campaigns(
    status: Optional[CampaignStatus] = Query(None),
    facade: AdminCampaignFacade = Depends(get_facade),
):
    return [_response(c) for c in facade.list_campaigns(status)]


@router.get("/reports", response_model=List[ReportResponse])
async def list_reports(
    status: Optional[ReportStatus] = Query(None),
    facade: AdminCampaignFacade = Depends(get_facade),
):
    """Issues raised by clients, newest first."""
    return [ReportResponse.model_validate(r) for r in facade.list_reports(status)]


@router.post("/reports/{report_id}/resolve", response_model=ReportResponse)
async def resolve_report(report_id: str, data: ReportResolveRequest, facade: AdminCampaignFacade = Depends(get_facade)):
    return ReportResponse.model_validate(facade.resolve_report(report_id, data.dismiss, data.note))


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(campaign_id: str, facade: AdminCampaignFacade = Depends(get_facade)):
    return _response(facade.get_campaign(campaign_id))


@router.post("/{campaign_id}/place", response_model=CampaignResponse)
async def place_campaign(campaign_id: str, facade: AdminCampaignFacade = Depends(get_facade)):
    """Place a client's draft on their behalf."""
    return _response(facade.place(campaign_id))


@router.post("/{campaign_id}/assign-agency", response_model=CampaignResponse)
async def assign_agency(campaign_id: str, data: AssignAgencyRequest, facade: AdminCampaignFacade = Depends(get_facade)):
    return _response(facade.assign_agency(campaign_id, data.agency_id))


@router.put("/{campaign_id}/platform-fee", response_model=CampaignResponse)
async def update_platform_fee(campaign_id: str, data: PlatformFeeRequest, facade: AdminCampaignFacade = Depends(get_facade)):
    return _response(facade.update_platform_fee(campaign_id, data.fee_amount))


@router.post("/{campaign_id}/verify-payment", response_model=CampaignResponse)
async def verify_payment(campaign_id: str, data: PaymentRequest, facade: AdminCampaignFacade = Depends(get_facade)):
    """Record a payment received outside the platform."""
    return _response(facade.verify_payment(campaign_id, data.amount))


@router.get("/{campaign_id}/progress", response_model=ProgressResponse)
async def campaign_progress(campaign_id: str, facade: AdminCampaignFacade = Depends(get_facade)):
    return facade.progress(campaign_id)


# ============================================================================
# NEGOTIATION
# ============================================================================

@router.post("/{campaign_id}/quote", response_model=CampaignResponse)
async def send_quote(campaign_id: str, data: QuoteRequest, facade: AdminCampaignFacade = Depends(get_facade)):
    return _response(facade.send_quote(campaign_id, data.base_budget))


@router.post("/{campaign_id}/counter-offer", response_model=CampaignResponse)
async def counter_offer(campaign_id: str, data: CounterOfferRequest, facade: AdminCampaignFacade = Depends(get_facade)):
    return _response(facade.counter_offer(campaign_id, data.proposal.to_proposal(), data.message))


@router.post("/{campaign_id}/accept", response_model=CampaignResponse)
async def accept_budget(campaign_id: str, facade: AdminCampaignFacade = Depends(get_facade)):
    return _response(facade.accept_budget(campaign_id))


@router.post("/{campaign_id}/reject", response_model=CampaignResponse)
async def reject_budget(campaign_id: str, data: RejectRequest, facade: AdminCampaignFacade = Depends(get_facade)):
    return _response(facade.reject_budget(campaign_id, data.reason))


@router.post("/{campaign_id}/reset-negotiation", response_model=CampaignResponse)
async def reset_negotiation(campaign_id: str, facade: AdminCampaignFacade = Depends(get_facade)):
    return _response(facade.reset_negotiation(campaign_id))


@router.post("/{campaign_id}/decline", response_model=CampaignResponse)
async def decline_request(campaign_id: str, data: DeclineRequest, facade: AdminCampaignFacade = Depends(get_facade)):
    return _response(facade.decline_request(campaign_id, data.reason))


@router.get("/{campaign_id}/negotiations", response_model=NegotiationHistoryResponse)
async def negotiation_history(campaign_id: str, facade: AdminCampaignFacade = Depends(get_facade)):
    return history_to_response(facade.negotiation_history(campaign_id))


@router.post("/{campaign_id}/negotiations/read")
async def mark_negotiations_read(campaign_id: str, facade: AdminCampaignFacade = Depends(get_facade)):
    return {"marked_read": facade.mark_negotiations_read(campaign_id)}


# ============================================================================
# ASSIGNMENTS
# ============================================================================

@router.post("/{campaign_id}/assignments", response_model=List[AssignmentResponse], status_code=201)
async def create_assignments(campaign_id: str, data: CreateAssignmentsRequest, facade: AdminCampaignFacade = Depends(get_facade)):
    """Send offers to influencers or agencies. All offers are created or none are."""
    created = facade.create_assignments(campaign_id, [o.to_offer() for o in data.offers])
    return [AssignmentResponse.model_validate(a) for a in created]


@router.get("/{campaign_id}/assignments", response_model=List[AssignmentResponse])
async def list_assignments(campaign_id: str, facade: AdminCampaignFacade = Depends(get_facade)):
    return [AssignmentResponse.model_validate(a) for a in facade.list_assignments(campaign_id)]


@router.put("/assignments/{assignment_id}", response_model=AssignmentResponse)
async def update_assignment(assignment_id: str, data: AssignmentUpdate, facade: AdminCampaignFacade = Depends(get_facade)):
    return AssignmentResponse.model_validate(
        facade.update_assignment(assignment_id, **data.model_dump(exclude_unset=True))
    )


@router.post("/assignments/{assignment_id}/cancel", response_model=AssignmentResponse)
async def cancel_assignment(assignment_id: str, facade: AdminCampaignFacade = Depends(get_facade)):
    return AssignmentResponse.model_validate(facade.cancel_assignment(assignment_id))


@router.put("/assignments/{assignment_id}/delivery", response_model=AssignmentResponse)
async def update_delivery(assignment_id: str, data: DeliveryUpdate, facade: AdminCampaignFacade = Depends(get_facade)):
    return AssignmentResponse.model_validate(facade.update_delivery(assignment_id, data.delivery_status))


# ============================================================================
# MILESTONES
# ============================================================================

@router.post("/milestones/{milestone_id}/review", response_model=MilestoneResponse)
async def review_milestone(milestone_id: str, data: MilestoneReview, facade: AdminCampaignFacade = Depends(get_facade)):
    return MilestoneResponse.model_validate(facade.review_milestone(milestone_id, data.accept, data.reason))


@router.put("/milestones/{milestone_id}/metrics", response_model=MilestoneResponse)
async def update_metrics(milestone_id: str, data: MetricsUpdate, facade: AdminCampaignFacade = Depends(get_facade)):
    return MilestoneResponse.model_validate(facade.update_metrics(milestone_id, data.model_dump(exclude_unset=True)))


@router.post("/milestones/{milestone_id}/payout", response_model=MilestoneResponse)
async def record_payout(milestone_id: str, data: PayoutRequest, facade: AdminCampaignFacade = Depends(get_facade)):
    return MilestoneResponse.model_validate(facade.record_payout(milestone_id, data.amount))
