# Pydantic Schemas for the Campaign Lifecycle API
# Request payloads, response shapes and per-role status labels

from pydantic import BaseModel, Field
from typing import Optional, List, Union, Literal, Dict, Annotated
from datetime import datetime
from decimal import Decimal

from auth.roles import UserType
from database.campaign_models import (
    CampaignStatus, CampaignType, PaymentStatus, NegotiationParty, NegotiationAction,
    MilestoneStatus, MilestonePaymentStatus, AssignmentStatus, PartyType, DeliveryStatus,
    AssetCategory, ReportStatus,
)
from services.assignment_service import OfferRequest, DeliveryAddress
from services.negotiation_service import BudgetProposal, ServiceFeeProposal


# ============================================================================
# STATUS LABELS
# ============================================================================

# Each role sees its own wording for the same canonical status
STATUS_LABELS: Dict[UserType, Dict[CampaignStatus, str]] = {
    UserType.CLIENT: {
        CampaignStatus.DRAFT: "Draft",
        CampaignStatus.NEEDS_QUOTE: "Needs Quote",
        CampaignStatus.QUOTED: "Quote Received",
        CampaignStatus.NEGOTIATING: "Negotiating",
        CampaignStatus.ACCEPTED: "Awaiting Payment",
        CampaignStatus.PARTIAL_PAID: "Partially Paid",
        CampaignStatus.PAID: "Paid",
        CampaignStatus.PENDING_ASSIGNMENT: "Finding Influencers",
        CampaignStatus.ACTIVE: "Promoting",
        CampaignStatus.IN_REVIEW: "Needs Your Review",
    },
    UserType.ADMIN: {
        CampaignStatus.NEEDS_QUOTE: "Received",
        CampaignStatus.QUOTED: "Quoted",
        CampaignStatus.PENDING_ASSIGNMENT: "Pending Invitation",
        CampaignStatus.ACTIVE: "Active",
    },
    UserType.AGENCY: {
        CampaignStatus.NEEDS_QUOTE: "Pending Agency",
        CampaignStatus.NEGOTIATING: "Agency Negotiating",
        CampaignStatus.ACCEPTED: "Agency Accepted",
        CampaignStatus.ACTIVE: "Promoting",
    },
    UserType.INFLUENCER: {
        CampaignStatus.PENDING_ASSIGNMENT: "New Offer",
        CampaignStatus.ACTIVE: "In Progress",
    },
}


def display_status(status: CampaignStatus, role: UserType) -> str:
    """Role-facing label. Falls back to the title-cased canonical name."""
    status = CampaignStatus(status)
    label = STATUS_LABELS.get(role, {}).get(status)
    return label or status.value.replace("_", " ").title()


# ============================================================================
# WIZARD REQUESTS
# ============================================================================

class CampaignCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    campaign_type: CampaignType


class BasicInfoUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    campaign_type: Optional[CampaignType] = None


class TargetingUpdate(BaseModel):
    product_type: Optional[str] = Field(None, max_length=100)
    niche: Optional[str] = Field(None, max_length=100)
    agency_id: Optional[str] = None
    preferred_influencer_ids: Optional[List[str]] = None
    excluded_influencer_ids: Optional[List[str]] = None


class DetailsUpdate(BaseModel):
    goals: Optional[str] = None
    product_service_details: Optional[str] = None
    dos: Optional[List[str]] = None
    donts: Optional[List[str]] = None
    reporting_requirements: Optional[str] = None
    usage_rights: Optional[str] = None
    starting_date: Optional[datetime] = None
    duration_days: Optional[int] = Field(None, ge=1, le=365)


class MilestoneInput(BaseModel):
    order: Optional[int] = Field(None, ge=0)
    content_title: str = Field(..., min_length=1, max_length=255)
    platform: Optional[str] = None
    content_quantity: Optional[int] = Field(None, ge=1)
    delivery_days: Optional[int] = Field(None, ge=1)
    expected_reach: Optional[int] = Field(None, ge=0)
    expected_views: Optional[int] = Field(None, ge=0)
    expected_likes: Optional[int] = Field(None, ge=0)
    expected_comments: Optional[int] = Field(None, ge=0)


class BudgetUpdate(BaseModel):
    base_budget: Decimal = Field(..., gt=0)
    milestones: List[MilestoneInput] = Field(default_factory=list)


class AssetInput(BaseModel):
    category: AssetCategory = AssetCategory.BRAND
    asset_type: Optional[str] = None
    file_name: str
    file_url: str
    file_size: Optional[int] = Field(None, ge=0)
    mime_type: Optional[str] = None
    description: Optional[str] = None


class AssetsUpdate(BaseModel):
    need_sample_product: Optional[bool] = None
    assets: Optional[List[AssetInput]] = None


class BudgetPreviewRequest(BaseModel):
    base_budget: Decimal = Field(..., ge=0)


# ============================================================================
# NEGOTIATION REQUESTS
# ============================================================================

class QuoteRequest(BaseModel):
    base_budget: Decimal = Field(..., gt=0)


class BudgetProposalIn(BaseModel):
    kind: Literal["budget"] = "budget"
    base_budget: Decimal = Field(..., gt=0)

    def to_proposal(self) -> BudgetProposal:
        return BudgetProposal(base_budget=self.base_budget)


class ServiceFeeProposalIn(BaseModel):
    kind: Literal["service_fee"]
    fee_percent: Decimal = Field(..., ge=0, le=100)

    def to_proposal(self) -> ServiceFeeProposal:
        return ServiceFeeProposal(fee_percent=self.fee_percent)


NegotiationProposalIn = Annotated[
    Union[BudgetProposalIn, ServiceFeeProposalIn],
    Field(discriminator="kind"),
]


class CounterOfferRequest(BaseModel):
    proposal: NegotiationProposalIn
    message: Optional[str] = Field(None, max_length=2000)


class RejectRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)


class DeclineRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


# ============================================================================
# ADMIN / FUNDING REQUESTS
# ============================================================================

class PaymentRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)


class AssignAgencyRequest(BaseModel):
    agency_id: str


class PlatformFeeRequest(BaseModel):
    fee_amount: Decimal = Field(..., ge=0)


# ============================================================================
# ASSIGNMENT REQUESTS
# ============================================================================

class OfferIn(BaseModel):
    party_type: PartyType = PartyType.INFLUENCER
    party_id: str
    offered_amount: Decimal = Field(..., gt=0)
    message: Optional[str] = None
    expires_at: Optional[datetime] = None
    percentage: Optional[Decimal] = Field(None, ge=0, le=100)

    def to_offer(self) -> OfferRequest:
        return OfferRequest(**self.model_dump())


class CreateAssignmentsRequest(BaseModel):
    offers: List[OfferIn] = Field(..., min_length=1)


class AssignmentUpdate(BaseModel):
    offered_amount: Optional[Decimal] = Field(None, gt=0)
    message: Optional[str] = None
    expires_at: Optional[datetime] = None
    percentage: Optional[Decimal] = Field(None, ge=0, le=100)


class OfferResponseRequest(BaseModel):
    accept: bool
    message: Optional[str] = None
    delivery_address: Optional[str] = None
    delivery_city: Optional[str] = None
    delivery_phone: Optional[str] = None

    def to_delivery(self) -> Optional[DeliveryAddress]:
        if not self.delivery_address:
            return None
        return DeliveryAddress(address=self.delivery_address, city=self.delivery_city, phone=self.delivery_phone)


class DeliveryUpdate(BaseModel):
    delivery_status: DeliveryStatus


# ============================================================================
# MILESTONE REQUESTS
# ============================================================================

class MilestoneSubmit(BaseModel):
    """Partial submission: only fields sent by the caller are written."""
    submission_description: Optional[str] = None
    submission_attachments: Optional[List[dict]] = None
    live_links: Optional[List[str]] = None
    requested_amount: Optional[Decimal] = Field(None, ge=0)


class MilestoneReview(BaseModel):
    accept: bool
    reason: Optional[str] = Field(None, max_length=2000)


class MetricsUpdate(BaseModel):
    actual_reach: Optional[int] = Field(None, ge=0)
    actual_views: Optional[int] = Field(None, ge=0)
    actual_likes: Optional[int] = Field(None, ge=0)
    actual_comments: Optional[int] = Field(None, ge=0)


class PayoutRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)


# ============================================================================
# FEEDBACK REQUESTS
# ============================================================================

class RateCampaignRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = Field(None, max_length=2000)


class ReportRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class ReportResolveRequest(BaseModel):
    dismiss: bool = False
    note: Optional[str] = Field(None, max_length=2000)


# ============================================================================
# RESPONSES
# ============================================================================

class BudgetBreakdownResponse(BaseModel):
    base: Decimal
    vat: Decimal
    total: Decimal
    net_payable: Decimal


class MilestoneResponse(BaseModel):
    id: str
    order: int
    content_title: str
    platform: Optional[str] = None
    content_quantity: Optional[int] = None
    delivery_days: Optional[int] = None
    expected_reach: Optional[int] = None
    expected_views: Optional[int] = None
    expected_likes: Optional[int] = None
    expected_comments: Optional[int] = None
    actual_reach: Optional[int] = None
    actual_views: Optional[int] = None
    actual_likes: Optional[int] = None
    actual_comments: Optional[int] = None
    status: MilestoneStatus
    payment_status: MilestonePaymentStatus
    submission_description: Optional[str] = None
    submission_attachments: Optional[List[dict]] = None
    live_links: Optional[List[str]] = None
    requested_amount: Optional[Decimal] = None
    paid_amount: Optional[Decimal] = None
    rejection_reason: Optional[str] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AssetResponse(BaseModel):
    id: str
    category: AssetCategory
    asset_type: Optional[str] = None
    file_name: str
    file_url: str
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    description: Optional[str] = None

    class Config:
        from_attributes = True


class NegotiationResponse(BaseModel):
    id: str
    sequence: int
    sender: NegotiationParty
    action: NegotiationAction
    proposed_base_budget: Optional[Decimal] = None
    proposed_vat_amount: Optional[Decimal] = None
    proposed_total_budget: Optional[Decimal] = None
    proposed_service_fee_percent: Optional[Decimal] = None
    message: Optional[str] = None
    is_read: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NegotiationHistoryResponse(BaseModel):
    campaign_id: str
    status: CampaignStatus
    negotiation_turn: Optional[NegotiationParty] = None
    your_turn: bool
    entries: List[NegotiationResponse]


class AssignmentResponse(BaseModel):
    id: str
    campaign_id: str
    party_type: PartyType
    influencer_id: Optional[str] = None
    agency_id: Optional[str] = None
    status: AssignmentStatus
    percentage: Optional[Decimal] = None
    offered_amount: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    message: Optional[str] = None
    decline_reason: Optional[str] = None
    offer_expires_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None
    delivery_address: Optional[str] = None
    delivery_city: Optional[str] = None
    delivery_status: Optional[DeliveryStatus] = None

    class Config:
        from_attributes = True


class ReportResponse(BaseModel):
    id: str
    campaign_id: str
    reporter_user_id: str
    reason: str
    status: ReportStatus
    resolution_note: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CampaignResponse(BaseModel):
    id: str
    client_id: str
    agency_id: Optional[str] = None
    name: str
    campaign_type: CampaignType
    product_type: Optional[str] = None
    niche: Optional[str] = None
    goals: Optional[str] = None
    product_service_details: Optional[str] = None
    dos: Optional[List[str]] = None
    donts: Optional[List[str]] = None
    reporting_requirements: Optional[str] = None
    usage_rights: Optional[str] = None
    starting_date: Optional[datetime] = None
    duration_days: Optional[int] = None
    need_sample_product: bool = False

    status: CampaignStatus
    status_label: str
    current_step: int
    is_placed: bool
    placed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    base_budget: Optional[Decimal] = None
    vat_amount: Optional[Decimal] = None
    total_budget: Optional[Decimal] = None
    net_payable_amount: Optional[Decimal] = None
    quoted_base_budget: Optional[Decimal] = None
    quoted_vat_amount: Optional[Decimal] = None
    quoted_total_budget: Optional[Decimal] = None
    agency_fee_percent: Optional[Decimal] = None
    platform_fee_amount: Optional[Decimal] = None
    available_for_execution: Optional[Decimal] = None

    payment_status: PaymentStatus
    paid_amount: Optional[Decimal] = None
    due_amount: Optional[Decimal] = None
    negotiation_turn: Optional[NegotiationParty] = None

    is_rated: bool = False
    rating: Optional[int] = None
    client_review: Optional[str] = None

    milestones: List[MilestoneResponse] = []
    assets: List[AssetResponse] = []
    preferred_influencer_ids: List[str] = []
    excluded_influencer_ids: List[str] = []


class ProgressResponse(BaseModel):
    campaign_id: str
    status: CampaignStatus
    total: int
    counts: Dict[str, int]
    all_accepted: bool
    target_reach: int
    actual_reach: int
    overflow: int
    achieved_percent: Decimal
    bonus_eligible: bool


def campaign_to_response(campaign, role: UserType, include_internal: bool = True) -> CampaignResponse:
    """Build the API shape of a campaign for the given role."""
    data = {
        attr.key: getattr(campaign, attr.key)
        for attr in campaign.__mapper__.column_attrs
        if attr.key in CampaignResponse.model_fields
    }
    data["status_label"] = display_status(campaign.status, role)
    data["milestones"] = [MilestoneResponse.model_validate(m) for m in campaign.milestones]
    data["assets"] = [AssetResponse.model_validate(a) for a in campaign.assets]
    data["preferred_influencer_ids"] = [p.id for p in campaign.preferred_influencers]
    data["excluded_influencer_ids"] = [p.id for p in campaign.excluded_influencers]
    if not include_internal:
        # platform margins stay between the admin and the agency
        data["platform_fee_amount"] = None
        data["available_for_execution"] = None
        data["agency_fee_percent"] = None
    return CampaignResponse(**data)


def history_to_response(history: dict) -> NegotiationHistoryResponse:
    entries = [NegotiationResponse.model_validate(e) for e in history["entries"]]
    return NegotiationHistoryResponse(**{**history, "entries": entries})
