# Campaign Lifecycle Models
# Campaign aggregate plus its milestones, assets, negotiation log and assignments.

from sqlalchemy import (
    Column, String, Integer, DateTime, ForeignKey, Text, JSON, Enum, Boolean,
    Numeric, Table, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from database.models import Base, generate_uuid


def _enum(enum_cls, name):
    return Enum(enum_cls, values_callable=lambda x: [e.value for e in x], name=name)


# ============================================================================
# ENUMS
# ============================================================================

class CampaignStatus(str, enum.Enum):
    DRAFT = "draft"
    NEEDS_QUOTE = "needs_quote"                # placed, waiting for a quote
    QUOTED = "quoted"                          # quote sent, client to review
    NEGOTIATING = "negotiating"
    ACCEPTED = "accepted"                      # budget agreed, ready for funding
    PARTIAL_PAID = "partial_paid"
    PAID = "paid"
    PENDING_ASSIGNMENT = "pending_assignment"  # offers out to parties
    ACTIVE = "active"                          # promoting
    IN_REVIEW = "in_review"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DECLINED = "declined"


TERMINAL_CAMPAIGN_STATUSES = {
    CampaignStatus.COMPLETED,
    CampaignStatus.CANCELLED,
    CampaignStatus.DECLINED,
}


class CampaignType(str, enum.Enum):
    PAID_AD = "paid_ad"
    INFLUENCER_PROMOTION = "influencer_promotion"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    FULL = "full"


class NegotiationParty(str, enum.Enum):
    CLIENT = "client"
    ADMIN = "admin"
    AGENCY = "agency"


# Shared by the campaign turn and the negotiation sender columns
NEGOTIATION_PARTY_ENUM = _enum(NegotiationParty, "negotiationparty")


class NegotiationAction(str, enum.Enum):
    REQUEST = "request"
    COUNTER_OFFER = "counter_offer"
    ACCEPT = "accept"
    REJECT = "reject"
    MESSAGE = "message"


class MilestoneStatus(str, enum.Enum):
    PENDING = "pending"
    IN_REVIEW = "in_review"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class MilestonePaymentStatus(str, enum.Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


class AssignmentStatus(str, enum.Enum):
    NEW_OFFER = "new_offer"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


TERMINAL_ASSIGNMENT_STATUSES = {
    AssignmentStatus.COMPLETED,
    AssignmentStatus.DECLINED,
    AssignmentStatus.CANCELLED,
    AssignmentStatus.EXPIRED,
}

ACTIVE_ASSIGNMENT_STATUSES = {
    AssignmentStatus.ACCEPTED,
    AssignmentStatus.IN_PROGRESS,
}


class PartyType(str, enum.Enum):
    INFLUENCER = "influencer"
    AGENCY = "agency"


class DeliveryStatus(str, enum.Enum):
    PENDING = "pending"
    SHIPPED = "shipped"
    DELIVERED = "delivered"


class AssetCategory(str, enum.Enum):
    BRAND = "brand"
    CONTENT = "content"


class ReportStatus(str, enum.Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


# ============================================================================
# INFLUENCER PREFERENCES (non-owning)
# ============================================================================

campaign_preferred_influencers = Table(
    "campaign_preferred_influencers",
    Base.metadata,
    Column("campaign_id", String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), primary_key=True),
    Column("influencer_id", String(36), ForeignKey("influencer_profiles.id", ondelete="CASCADE"), primary_key=True),
)

campaign_excluded_influencers = Table(
    "campaign_excluded_influencers",
    Base.metadata,
    Column("campaign_id", String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), primary_key=True),
    Column("influencer_id", String(36), ForeignKey("influencer_profiles.id", ondelete="CASCADE"), primary_key=True),
)


# ============================================================================
# CAMPAIGN
# ============================================================================

class Campaign(Base):
    """Influencer marketing campaign.

    Created as a draft by the client wizard (steps 1-5), placed once, then
    driven through quoting, negotiation, funding, assignment and execution.
    `version_id` guards every transition against concurrent writers.
    """
    __tablename__ = "campaigns"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    client_id = Column(String(36), ForeignKey("client_profiles.id"), nullable=False, index=True)
    agency_id = Column(String(36), ForeignKey("agency_profiles.id"), nullable=True)
    assigned_admin_id = Column(String(36), ForeignKey("users.id"), nullable=True)

    # Step 1: basic info
    name = Column(String(255), nullable=False)
    campaign_type = Column(_enum(CampaignType, "campaigntype"), nullable=False)

    # Step 2: targeting
    product_type = Column(String(100))
    niche = Column(String(100))

    # Step 3: details
    goals = Column(Text)
    product_service_details = Column(Text)
    dos = Column(JSON)  # ["Show the product label"]
    donts = Column(JSON)
    reporting_requirements = Column(Text)
    usage_rights = Column(Text)
    starting_date = Column(DateTime)
    duration_days = Column(Integer)

    # Step 5
    need_sample_product = Column(Boolean, default=False, nullable=False)

    # Lifecycle
    status = Column(_enum(CampaignStatus, "campaignstatus"), default=CampaignStatus.DRAFT, nullable=False, index=True)
    current_step = Column(Integer, default=1, nullable=False)
    is_placed = Column(Boolean, default=False, nullable=False)
    placed_at = Column(DateTime)
    completed_at = Column(DateTime)
    cancelled_at = Column(DateTime)

    # Confirmed budget
    base_budget = Column(Numeric(12, 2))
    vat_amount = Column(Numeric(12, 2))
    total_budget = Column(Numeric(12, 2))
    net_payable_amount = Column(Numeric(12, 2))

    # Outstanding quote (not yet accepted)
    quoted_base_budget = Column(Numeric(12, 2))
    quoted_vat_amount = Column(Numeric(12, 2))
    quoted_total_budget = Column(Numeric(12, 2))

    agency_fee_percent = Column(Numeric(5, 2))
    platform_fee_amount = Column(Numeric(12, 2))
    available_for_execution = Column(Numeric(12, 2))

    # Funding
    payment_status = Column(_enum(PaymentStatus, "paymentstatus"), default=PaymentStatus.PENDING, nullable=False)
    paid_amount = Column(Numeric(12, 2), default=0, nullable=False)
    due_amount = Column(Numeric(12, 2))

    # Negotiation
    negotiation_turn = Column(NEGOTIATION_PARTY_ENUM, nullable=True)
    negotiation_count = Column(Integer, default=0, nullable=False)

    # Client rating, once completed
    is_rated = Column(Boolean, default=False, nullable=False)
    rating = Column(Integer)
    client_review = Column(Text)
    rated_at = Column(DateTime)

    version_id = Column(Integer, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version_id}

    # Relationships
    client = relationship("ClientProfile", backref="campaigns")
    agency = relationship("AgencyProfile", backref="managed_campaigns")
    assigned_admin = relationship("User", foreign_keys=[assigned_admin_id])
    milestones = relationship(
        "CampaignMilestone", back_populates="campaign",
        cascade="all, delete-orphan", order_by="CampaignMilestone.order",
    )
    assets = relationship("CampaignAsset", back_populates="campaign", cascade="all, delete-orphan")
    negotiations = relationship(
        "CampaignNegotiation", back_populates="campaign",
        cascade="all, delete-orphan", order_by="CampaignNegotiation.sequence",
    )
    assignments = relationship("CampaignAssignment", back_populates="campaign", cascade="all, delete-orphan")
    preferred_influencers = relationship("InfluencerProfile", secondary=campaign_preferred_influencers)
    excluded_influencers = relationship("InfluencerProfile", secondary=campaign_excluded_influencers)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_CAMPAIGN_STATUSES

    @property
    def has_confirmed_budget(self) -> bool:
        return self.total_budget is not None and self.status not in (
            CampaignStatus.DRAFT,
            CampaignStatus.NEEDS_QUOTE,
            CampaignStatus.QUOTED,
            CampaignStatus.NEGOTIATING,
        )


# ============================================================================
# MILESTONE
# ============================================================================

class CampaignMilestone(Base):
    """One deliverable. `order` is unique per campaign and drives review order."""
    __tablename__ = "campaign_milestones"
    __table_args__ = (
        UniqueConstraint("campaign_id", "order", name="uq_campaign_milestone_order"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    order = Column(Integer, nullable=False)

    # Content descriptor
    content_title = Column(String(255), nullable=False)
    platform = Column(String(50))
    content_quantity = Column(Integer, default=1)
    delivery_days = Column(Integer)

    # Expected vs actual performance
    expected_reach = Column(Integer)
    expected_views = Column(Integer)
    expected_likes = Column(Integer)
    expected_comments = Column(Integer)
    actual_reach = Column(Integer)
    actual_views = Column(Integer)
    actual_likes = Column(Integer)
    actual_comments = Column(Integer)

    status = Column(_enum(MilestoneStatus, "milestonestatus"), default=MilestoneStatus.PENDING, nullable=False)
    payment_status = Column(_enum(MilestonePaymentStatus, "milestonepaymentstatus"), default=MilestonePaymentStatus.UNPAID, nullable=False)

    # Submission payload
    submission_description = Column(Text)
    submission_attachments = Column(JSON)  # [{"url": ..., "file_name": ...}]
    live_links = Column(JSON)  # ["https://..."]
    requested_amount = Column(Numeric(12, 2))
    paid_amount = Column(Numeric(12, 2), default=0, nullable=False)
    rejection_reason = Column(Text)

    submitted_by_user_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    submitted_at = Column(DateTime)
    reviewed_at = Column(DateTime)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    campaign = relationship("Campaign", back_populates="milestones")


# ============================================================================
# ASSET
# ============================================================================

class CampaignAsset(Base):
    """Opaque file reference issued by the storage service."""
    __tablename__ = "campaign_assets"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(_enum(AssetCategory, "assetcategory"), default=AssetCategory.BRAND, nullable=False)
    asset_type = Column(String(50))  # image, video, document
    file_name = Column(String(255), nullable=False)
    file_url = Column(String(1000), nullable=False)
    file_size = Column(Integer)
    mime_type = Column(String(100))
    description = Column(Text)
    created_at = Column(DateTime, server_default=func.now())

    campaign = relationship("Campaign", back_populates="assets")


# ============================================================================
# NEGOTIATION
# ============================================================================

class CampaignNegotiation(Base):
    """One immutable turn of the budget dialogue. Only the read flag ever changes."""
    __tablename__ = "campaign_negotiations"
    __table_args__ = (
        UniqueConstraint("campaign_id", "sequence", name="uq_campaign_negotiation_sequence"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)  # per-campaign, strictly increasing

    sender = Column(NEGOTIATION_PARTY_ENUM, nullable=False)
    sender_user_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    action = Column(_enum(NegotiationAction, "negotiationaction"), nullable=False)

    proposed_base_budget = Column(Numeric(12, 2))
    proposed_vat_amount = Column(Numeric(12, 2))
    proposed_total_budget = Column(Numeric(12, 2))
    proposed_service_fee_percent = Column(Numeric(5, 2))

    message = Column(Text)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime)

    created_at = Column(DateTime, server_default=func.now())

    campaign = relationship("Campaign", back_populates="negotiations")

    @property
    def has_budget(self) -> bool:
        return self.proposed_base_budget is not None


# ============================================================================
# ASSIGNMENT
# ============================================================================

class CampaignAssignment(Base):
    """Offer binding a campaign to one influencer or agency."""
    __tablename__ = "campaign_assignments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    party_type = Column(_enum(PartyType, "partytype"), nullable=False)
    influencer_id = Column(String(36), ForeignKey("influencer_profiles.id"), nullable=True, index=True)
    agency_id = Column(String(36), ForeignKey("agency_profiles.id"), nullable=True, index=True)
    assigned_by_user_id = Column(String(36), ForeignKey("users.id"), nullable=True)

    status = Column(_enum(AssignmentStatus, "assignmentstatus"), default=AssignmentStatus.NEW_OFFER, nullable=False)

    # Offer
    percentage = Column(Numeric(5, 2))  # optional split of the execution budget
    offered_amount = Column(Numeric(12, 2), nullable=False)
    vat_amount = Column(Numeric(12, 2), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    message = Column(Text)
    decline_reason = Column(Text)
    offer_expires_at = Column(DateTime)

    # Timeline
    accepted_at = Column(DateTime)
    started_at = Column(DateTime)
    completed_at = Column(DateTime)
    declined_at = Column(DateTime)
    cancelled_at = Column(DateTime)

    # Sample product delivery
    delivery_address = Column(Text)
    delivery_city = Column(String(100))
    delivery_phone = Column(String(50))
    delivery_status = Column(_enum(DeliveryStatus, "deliverystatus"), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    campaign = relationship("Campaign", back_populates="assignments")
    influencer = relationship("InfluencerProfile", backref="campaign_assignments")
    agency = relationship("AgencyProfile", backref="campaign_assignments")

    @property
    def party_id(self):
        return self.influencer_id if self.party_type == PartyType.INFLUENCER else self.agency_id

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ASSIGNMENT_STATUSES


# ============================================================================
# REPORT
# ============================================================================

class CampaignReport(Base):
    """Issue raised by the client on one of their campaigns, for the admins to handle."""
    __tablename__ = "campaign_reports"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    reporter_user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    reason = Column(Text, nullable=False)
    status = Column(_enum(ReportStatus, "reportstatus"), default=ReportStatus.PENDING, nullable=False, index=True)
    resolution_note = Column(Text)
    resolved_at = Column(DateTime)
    created_at = Column(DateTime, server_default=func.now())

    campaign = relationship("Campaign", backref="reports")
