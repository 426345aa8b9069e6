"""
Influencer Campaigns Router
Offers received by an influencer and the deliverables they submit
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from database.config import get_db
from database.campaign_models import AssignmentStatus
from auth.roles import Actor, UserType
from auth.decorators import require_user_type
from schemas.campaign import (
    OfferResponseRequest, MilestoneSubmit, MetricsUpdate,
    CampaignResponse, AssignmentResponse, MilestoneResponse, ProgressResponse, campaign_to_response,
)
from services.facades import InfluencerCampaignFacade

router = APIRouter(prefix="/influencer/campaigns", tags=["Influencer Campaigns"])


def get_facade(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_user_type(UserType.INFLUENCER)),
) -> InfluencerCampaignFacade:
    return InfluencerCampaignFacade(db, actor)


@router.get("/offers", response_model=List[AssignmentResponse])
async def my_offers(
    status: Optional[AssignmentStatus] = Query(None),
    facade: InfluencerCampaignFacade = Depends(get_facade),
):
    return [AssignmentResponse.model_validate(a) for a in facade.my_offers(status)]


@router.post("/offers/{assignment_id}/respond", response_model=AssignmentResponse)
async def respond_to_offer(assignment_id: str, data: OfferResponseRequest, facade: InfluencerCampaignFacade = Depends(get_facade)):
    """
    Accept or decline an offer.
    Campaigns that need a sample product require a delivery address on accept.
    """
    assignment = facade.respond_to_offer(assignment_id, data.accept, data.message, data.to_delivery())
    return AssignmentResponse.model_validate(assignment)


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(campaign_id: str, facade: InfluencerCampaignFacade = Depends(get_facade)):
    campaign = facade.get_campaign(campaign_id)
    return campaign_to_response(campaign, UserType.INFLUENCER, include_internal=False)


@router.get("/{campaign_id}/progress", response_model=ProgressResponse)
async def campaign_progress(campaign_id: str, facade: InfluencerCampaignFacade = Depends(get_facade)):
    return facade.progress(campaign_id)


@router.post("/milestones/{milestone_id}/submit", response_model=MilestoneResponse)
async def submit_milestone(milestone_id: str, data: MilestoneSubmit, facade: InfluencerCampaignFacade = Depends(get_facade)):
    return MilestoneResponse.model_validate(facade.submit_milestone(milestone_id, data.model_dump(exclude_unset=True)))


@router.put("/milestones/{milestone_id}/metrics", response_model=MilestoneResponse)
async def update_metrics(milestone_id: str, data: MetricsUpdate, facade: InfluencerCampaignFacade = Depends(get_facade)):
    return MilestoneResponse.model_validate(facade.update_metrics(milestone_id, data.model_dump(exclude_unset=True)))
