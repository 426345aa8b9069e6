"""
Client Campaigns Router
Campaign wizard, placement, budget negotiation, funding and milestone review for clients
"""

from fastapi import APIRouter, Depends, Query, status as http_status
from sqlalchemy.orm import Session
from typing import List, Optional

from database.config import get_db
from database.campaign_models import CampaignStatus
from auth.roles import Actor, UserType
from auth.decorators import require_user_type
from schemas.campaign import (
    CampaignCreate, BasicInfoUpdate, TargetingUpdate, DetailsUpdate, BudgetUpdate, AssetsUpdate,
    BudgetPreviewRequest, BudgetBreakdownResponse, CounterOfferRequest, RejectRequest,
    PaymentRequest, MilestoneReview, RateCampaignRequest, ReportRequest, ReportResponse,
    CampaignResponse, MilestoneResponse, AssignmentResponse,
    NegotiationHistoryResponse, ProgressResponse, campaign_to_response, history_to_response,
)
from services.facades import ClientCampaignFacade

router = APIRouter(prefix="/client/campaigns", tags=["Client Campaigns"])


def get_facade(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_user_type(UserType.CLIENT)),
) -> ClientCampaignFacade:
    return ClientCampaignFacade(db, actor)


def _response(campaign) -> CampaignResponse:
    return campaign_to_response(campaign, UserType.CLIENT, include_internal=False)


# ============================================================================
# WIZARD
# ============================================================================

@router.get("", response_model=List[CampaignResponse])
async def list_campaigns(
    status: Optional[CampaignStatus] = Query(None),
    facade: ClientCampaignFacade = Depends(get_facade),
):
    return [_response(c) for c in facade.list_campaigns(status)]


@router.post("", response_model=CampaignResponse, status_code=http_status.HTTP_201_CREATED)
async def create_campaign(data: CampaignCreate, facade: ClientCampaignFacade = Depends(get_facade)):
    """Step 1: start a draft campaign."""
    return _response(facade.create_draft(data.name, data.campaign_type))


@router.post("/budget-preview", response_model=BudgetBreakdownResponse)
async def budget_preview(data: BudgetPreviewRequest, facade: ClientCampaignFacade = Depends(get_facade)):
    return BudgetBreakdownResponse(**facade.budget_preview(data.base_budget).as_dict())


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(campaign_id: str, facade: ClientCampaignFacade = Depends(get_facade)):
    return _response(facade.get_campaign(campaign_id))


@router.put("/{campaign_id}/basic-info", response_model=CampaignResponse)
async def update_basic_info(campaign_id: str, data: BasicInfoUpdate, facade: ClientCampaignFacade = Depends(get_facade)):
    return _response(facade.update_basic_info(campaign_id, **data.model_dump(exclude_unset=True)))


@router.put("/{campaign_id}/targeting", response_model=CampaignResponse)
async def update_targeting(campaign_id: str, data: TargetingUpdate, facade: ClientCampaignFacade = Depends(get_facade)):
    """Step 2: product type, niche, agency and influencer preferences."""
    return _response(facade.update_targeting(campaign_id, **data.model_dump(exclude_unset=True)))


@router.put("/{campaign_id}/details", response_model=CampaignResponse)
async def update_details(campaign_id: str, data: DetailsUpdate, facade: ClientCampaignFacade = Depends(get_facade)):
    """Step 3: goals, content guidance and schedule."""
    return _response(facade.update_details(campaign_id, **data.model_dump(exclude_unset=True)))


@router.put("/{campaign_id}/budget", response_model=CampaignResponse)
async def update_budget(campaign_id: str, data: BudgetUpdate, facade: ClientCampaignFacade = Depends(get_facade)):
    """Step 4: budget and milestones. Milestones are replaced wholesale."""
    milestones = [m.model_dump(exclude_none=True) for m in data.milestones]
    return _response(facade.update_budget(campaign_id, data.base_budget, milestones))


@router.put("/{campaign_id}/assets", response_model=CampaignResponse)
async def update_assets(campaign_id: str, data: AssetsUpdate, facade: ClientCampaignFacade = Depends(get_facade)):
    """Step 5: sample product flag and asset references."""
    assets = [a.model_dump() for a in data.assets] if data.assets is not None else None
    return _response(facade.update_assets(campaign_id, data.need_sample_product, assets))


@router.delete("/{campaign_id}/assets/{asset_id}", status_code=http_status.HTTP_204_NO_CONTENT)
async def delete_asset(campaign_id: str, asset_id: str, facade: ClientCampaignFacade = Depends(get_facade)):
    facade.delete_asset(campaign_id, asset_id)


@router.get("/{campaign_id}/summary")
async def campaign_summary(campaign_id: str, facade: ClientCampaignFacade = Depends(get_facade)):
    return facade.summary(campaign_id)


@router.post("/{campaign_id}/place", response_model=CampaignResponse)
async def place_campaign(campaign_id: str, facade: ClientCampaignFacade = Depends(get_facade)):
    """Lock the wizard and send the campaign out for a quote."""
    return _response(facade.place(campaign_id))


@router.delete("/{campaign_id}", status_code=http_status.HTTP_204_NO_CONTENT)
async def delete_draft(campaign_id: str, facade: ClientCampaignFacade = Depends(get_facade)):
    facade.delete_draft(campaign_id)


# ============================================================================
# NEGOTIATION
# ============================================================================

@router.get("/{campaign_id}/negotiations", response_model=NegotiationHistoryResponse)
async def negotiation_history(campaign_id: str, facade: ClientCampaignFacade = Depends(get_facade)):
    return history_to_response(facade.negotiation_history(campaign_id))


@router.post("/{campaign_id}/negotiations/read")
async def mark_negotiations_read(campaign_id: str, facade: ClientCampaignFacade = Depends(get_facade)):
    return {"marked_read": facade.mark_negotiations_read(campaign_id)}


@router.post("/{campaign_id}/counter-offer", response_model=CampaignResponse)
async def counter_offer(campaign_id: str, data: CounterOfferRequest, facade: ClientCampaignFacade = Depends(get_facade)):
    return _response(facade.counter_offer(campaign_id, data.proposal.to_proposal(), data.message))


@router.post("/{campaign_id}/accept", response_model=CampaignResponse)
async def accept_budget(campaign_id: str, facade: ClientCampaignFacade = Depends(get_facade)):
    return _response(facade.accept_budget(campaign_id))


@router.post("/{campaign_id}/reject", response_model=CampaignResponse)
async def reject_budget(campaign_id: str, data: RejectRequest, facade: ClientCampaignFacade = Depends(get_facade)):
    return _response(facade.reject_budget(campaign_id, data.reason))


# ============================================================================
# FUNDING AND EXECUTION
# ============================================================================

@router.post("/{campaign_id}/fund", response_model=CampaignResponse)
async def fund_campaign(campaign_id: str, data: PaymentRequest, facade: ClientCampaignFacade = Depends(get_facade)):
    return _response(facade.fund(campaign_id, data.amount))


@router.get("/{campaign_id}/assignments", response_model=List[AssignmentResponse])
async def list_assignments(campaign_id: str, facade: ClientCampaignFacade = Depends(get_facade)):
    return [AssignmentResponse.model_validate(a) for a in facade.list_assignments(campaign_id)]


@router.get("/{campaign_id}/progress", response_model=ProgressResponse)
async def campaign_progress(campaign_id: str, facade: ClientCampaignFacade = Depends(get_facade)):
    return facade.progress(campaign_id)


@router.post("/milestones/{milestone_id}/review", response_model=MilestoneResponse)
async def review_milestone(milestone_id: str, data: MilestoneReview, facade: ClientCampaignFacade = Depends(get_facade)):
    """Accept a submitted deliverable, or decline it with a reason."""
    return MilestoneResponse.model_validate(facade.review_milestone(milestone_id, data.accept, data.reason))


# ============================================================================
# FEEDBACK
# ============================================================================

@router.post("/{campaign_id}/rate", response_model=CampaignResponse)
async def rate_campaign(campaign_id: str, data: RateCampaignRequest, facade: ClientCampaignFacade = Depends(get_facade)):
    """Rate a completed campaign, once."""
    return _response(facade.rate_campaign(campaign_id, data.rating, data.review))


@router.post("/{campaign_id}/report", response_model=ReportResponse, status_code=http_status.HTTP_201_CREATED)
async def report_issue(campaign_id: str, data: ReportRequest, facade: ClientCampaignFacade = Depends(get_facade)):
    return ReportResponse.model_validate(facade.report_issue(campaign_id, data.reason))
