# Services Module for the Campaign Platform
# Contains the campaign lifecycle services and the role facades in front of them

from services.notification_service import NotificationService, NotificationCategory, Notice
from services.profile_service import ProfileDirectory
from services.campaign_service import CampaignService
from services.negotiation_service import (
    NegotiationService,
    BudgetProposal,
    ServiceFeeProposal,
    NegotiationProposal,
)
from services.assignment_service import AssignmentService, OfferRequest, DeliveryAddress
from services.milestone_service import MilestoneService
from services.facades import (
    ClientCampaignFacade,
    AdminCampaignFacade,
    AgencyCampaignFacade,
    InfluencerCampaignFacade,
)

__all__ = [
    'NotificationService',
    'NotificationCategory',
    'Notice',
    'ProfileDirectory',
    'CampaignService',
    'NegotiationService',
    'BudgetProposal',
    'ServiceFeeProposal',
    'NegotiationProposal',
    'AssignmentService',
    'OfferRequest',
    'DeliveryAddress',
    'MilestoneService',
    'ClientCampaignFacade',
    'AdminCampaignFacade',
    'AgencyCampaignFacade',
    'InfluencerCampaignFacade',
]
