# Schemas module for the Campaign Platform
# Organizes all Pydantic schemas in a modular structure

from schemas.campaign import (
    # Labels
    STATUS_LABELS,
    display_status,

    # Wizard
    CampaignCreate,
    BasicInfoUpdate,
    TargetingUpdate,
    DetailsUpdate,
    MilestoneInput,
    BudgetUpdate,
    AssetInput,
    AssetsUpdate,
    BudgetPreviewRequest,

    # Negotiation
    QuoteRequest,
    BudgetProposalIn,
    ServiceFeeProposalIn,
    CounterOfferRequest,
    RejectRequest,
    DeclineRequest,

    # Admin / funding
    PaymentRequest,
    AssignAgencyRequest,
    PlatformFeeRequest,

    # Assignments
    OfferIn,
    CreateAssignmentsRequest,
    AssignmentUpdate,
    OfferResponseRequest,
    DeliveryUpdate,

    # Milestones
    MilestoneSubmit,
    MilestoneReview,
    MetricsUpdate,
    PayoutRequest,

    # Feedback
    RateCampaignRequest,
    ReportRequest,
    ReportResolveRequest,

    # Responses
    BudgetBreakdownResponse,
    MilestoneResponse,
    AssetResponse,
    NegotiationResponse,
    NegotiationHistoryResponse,
    AssignmentResponse,
    ReportResponse,
    CampaignResponse,
    ProgressResponse,
    campaign_to_response,
    history_to_response,
)
from schemas.notification import NotificationResponse

__all__ = [
    # Labels
    "STATUS_LABELS",
    "display_status",

    # Wizard
    "CampaignCreate",
    "BasicInfoUpdate",
    "TargetingUpdate",
    "DetailsUpdate",
    "MilestoneInput",
    "BudgetUpdate",
    "AssetInput",
    "AssetsUpdate",
    "BudgetPreviewRequest",

    # Negotiation
    "QuoteRequest",
    "BudgetProposalIn",
    "ServiceFeeProposalIn",
    "CounterOfferRequest",
    "RejectRequest",
    "DeclineRequest",

    # Admin / funding
    "PaymentRequest",
    "AssignAgencyRequest",
    "PlatformFeeRequest",

    # Assignments
    "OfferIn",
    "CreateAssignmentsRequest",
    "AssignmentUpdate",
    "OfferResponseRequest",
    "DeliveryUpdate",

    # Milestones
    "MilestoneSubmit",
    "MilestoneReview",
    "MetricsUpdate",
    "PayoutRequest",

    # Feedback
    "RateCampaignRequest",
    "ReportRequest",
    "ReportResolveRequest",

    # Responses
    "BudgetBreakdownResponse",
    "MilestoneResponse",
    "AssetResponse",
    "NegotiationResponse",
    "NegotiationHistoryResponse",
    "AssignmentResponse",
    "ReportResponse",
    "CampaignResponse",
    "ProgressResponse",
    "campaign_to_response",
    "history_to_response",

    # Notifications
    "NotificationResponse",
]
