"""
Campaign State Machine

Owns the campaign aggregate: the five-step creation wizard, placement,
funding and the admin-side adjustments. Negotiation, assignments and
milestones live in their own services and feed back into the status
through the helpers in services.lifecycle.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from auth.roles import Actor
from core.budget import compute_budget, to_money, running_average, BudgetBreakdown
from core.exceptions import InvalidTransitionError, NotFoundError
from database.config import atomic
from database.campaign_models import (
    Campaign, CampaignStatus, CampaignType, CampaignMilestone, CampaignAsset,
    AssetCategory, NegotiationParty, PaymentStatus, CampaignReport, ReportStatus,
)
from database.models import AgencyProfile
from services.lifecycle import (
    lock_campaign, get_campaign, transition, touch, require_status,
    promote_if_ready, admin_notices,
    FUNDABLE_STATUSES,
)
from services.notification_service import NotificationService, Notice, NotificationCategory
from services.profile_service import ProfileDirectory

logger = logging.getLogger(__name__)

WIZARD_STEPS = 5

MIN_RATING, MAX_RATING = 1, 5

# Placement requirements: (attribute, label)
REQUIRED_FOR_PLACEMENT = [
    ("name", "Campaign name"),
    ("campaign_type", "Campaign type"),
    ("niche", "Niche"),
    ("goals", "Campaign goals"),
    ("starting_date", "Starting date"),
    ("duration_days", "Duration"),
]

STEP3_FIELDS = (
    "goals", "product_service_details", "dos", "donts",
    "reporting_requirements", "usage_rights", "starting_date", "duration_days",
)

MILESTONE_FIELDS = (
    "content_title", "platform", "content_quantity", "delivery_days",
    "expected_reach", "expected_views", "expected_likes", "expected_comments",
)


class CampaignService:
    def __init__(self, db: Session):
        self.db = db
        self.profiles = ProfileDirectory(db)
        self.notifications = NotificationService(db)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get(self, campaign_id: str) -> Campaign:
        return get_campaign(self.db, campaign_id)

    def list_campaigns(
        self,
        client_id: Optional[str] = None,
        agency_id: Optional[str] = None,
        status: Optional[CampaignStatus] = None,
        campaign_ids: Optional[List[str]] = None,
    ) -> List[Campaign]:
        query = self.db.query(Campaign)
        if client_id:
            query = query.filter(Campaign.client_id == client_id)
        if agency_id:
            query = query.filter(Campaign.agency_id == agency_id)
        if status:
            query = query.filter(Campaign.status == status)
        if campaign_ids is not None:
            query = query.filter(Campaign.id.in_(campaign_ids))
        return query.order_by(Campaign.created_at.desc()).all()

    def budget_preview(self, base_budget) -> BudgetBreakdown:
        return compute_budget(base_budget)

    def summary(self, campaign_id: str) -> dict:
        """Review summary shown before placement."""
        campaign = self.get(campaign_id)
        return {
            "campaign_id": campaign.id,
            "name": campaign.name,
            "campaign_type": campaign.campaign_type,
            "status": campaign.status,
            "current_step": campaign.current_step,
            "is_placed": campaign.is_placed,
            "niche": campaign.niche,
            "product_type": campaign.product_type,
            "starting_date": campaign.starting_date,
            "duration_days": campaign.duration_days,
            "budget": {
                "base": campaign.base_budget,
                "vat": campaign.vat_amount,
                "total": campaign.total_budget,
                "net_payable": campaign.net_payable_amount,
            },
            "milestone_count": len(campaign.milestones),
            "asset_count": len(campaign.assets),
            "preferred_influencer_count": len(campaign.preferred_influencers),
            "excluded_influencer_count": len(campaign.excluded_influencers),
            "need_sample_product": campaign.need_sample_product,
            "missing_fields": self._placement_errors(campaign),
        }

    # =========================================================================
    # WIZARD (steps 1-5)
    # =========================================================================

    def create_draft(self, client_id: str, name: str, campaign_type: CampaignType) -> Campaign:
        """Step 1: basic info."""
        with atomic(self.db):
            campaign = Campaign(
                client_id=client_id,
                name=name,
                campaign_type=CampaignType(campaign_type),
                status=CampaignStatus.DRAFT,
                current_step=1,
                paid_amount=Decimal("0"),
            )
            self.db.add(campaign)
        logger.info(f"campaign {campaign.id}: draft created for client {client_id}")
        return campaign

    def update_basic_info(self, campaign_id: str, name: Optional[str] = None, campaign_type: Optional[CampaignType] = None) -> Campaign:
        with atomic(self.db):
            campaign = self._editable(campaign_id)
            if name is not None:
                campaign.name = name
            if campaign_type is not None:
                campaign.campaign_type = CampaignType(campaign_type)
            self._advance_step(campaign, 1)
        return campaign

    def update_targeting(
        self,
        campaign_id: str,
        product_type: Optional[str] = None,
        niche: Optional[str] = None,
        agency_id: Optional[str] = None,
        preferred_influencer_ids: Optional[List[str]] = None,
        excluded_influencer_ids: Optional[List[str]] = None,
    ) -> Campaign:
        """Step 2: product type, niche, agency and influencer preferences."""
        overlap = set(preferred_influencer_ids or []) & set(excluded_influencer_ids or [])
        if overlap:
            raise InvalidTransitionError(
                "An influencer cannot be both preferred and excluded",
                errors=[f"Influencer {i} is in both lists" for i in sorted(overlap)],
            )

        with atomic(self.db):
            campaign = self._editable(campaign_id)
            if product_type is not None:
                campaign.product_type = product_type
            if niche is not None:
                campaign.niche = niche
            if agency_id is not None:
                campaign.agency_id = self.profiles.get_agency(agency_id).id
            if preferred_influencer_ids is not None:
                campaign.preferred_influencers = self.profiles.influencers_by_id(preferred_influencer_ids)
            if excluded_influencer_ids is not None:
                campaign.excluded_influencers = self.profiles.influencers_by_id(excluded_influencer_ids)
            self._advance_step(campaign, 2)
        return campaign

    def update_details(self, campaign_id: str, **details) -> Campaign:
        """Step 3: goals, content guidance, schedule."""
        unknown = set(details) - set(STEP3_FIELDS)
        if unknown:
            raise InvalidTransitionError("Unknown campaign details", errors=sorted(unknown))

        starting_date = details.get("starting_date")
        if starting_date is not None and not isinstance(starting_date, datetime):
            starting_date = datetime.combine(starting_date, datetime.min.time())
            details["starting_date"] = starting_date
        if starting_date is not None and starting_date.date() < datetime.utcnow().date():
            raise InvalidTransitionError(
                "Starting date cannot be in the past",
                errors=["starting_date must be today or later"],
            )

        with atomic(self.db):
            campaign = self._editable(campaign_id)
            for key, value in details.items():
                if value is not None:
                    setattr(campaign, key, value)
            self._advance_step(campaign, 3)
        return campaign

    def update_budget(self, campaign_id: str, base_budget, milestones: List[dict]) -> Campaign:
        """
        Step 4: budget and milestones.

        Milestones are replaced wholesale. A milestone without an explicit
        `order` takes its list position.
        """
        orders = [m.get("order") if m.get("order") is not None else i for i, m in enumerate(milestones)]
        duplicates = sorted({o for o in orders if orders.count(o) > 1})
        if duplicates:
            raise InvalidTransitionError(
                "Milestone order values must be unique",
                errors=[f"Duplicate milestone order: {o}" for o in duplicates],
            )

        budget = compute_budget(base_budget)

        with atomic(self.db):
            campaign = self._editable(campaign_id)
            campaign.base_budget = budget.base
            campaign.vat_amount = budget.vat
            campaign.total_budget = budget.total
            campaign.net_payable_amount = budget.net_payable

            # old rows must be gone before the new orders hit the unique constraint
            campaign.milestones.clear()
            self.db.flush()
            for order, data in zip(orders, milestones):
                fields = {k: data.get(k) for k in MILESTONE_FIELDS if data.get(k) is not None}
                campaign.milestones.append(CampaignMilestone(order=order, **fields))
            self._advance_step(campaign, 4)
        return campaign

    def update_assets(self, campaign_id: str, need_sample_product: Optional[bool] = None, assets: Optional[List[dict]] = None) -> Campaign:
        """Step 5: sample product flag and asset references."""
        with atomic(self.db):
            campaign = self._editable(campaign_id)
            if need_sample_product is not None:
                campaign.need_sample_product = need_sample_product
            if assets is not None:
                campaign.assets.clear()
                for data in assets:
                    campaign.assets.append(CampaignAsset(
                        category=AssetCategory(data.get("category") or AssetCategory.BRAND),
                        asset_type=data.get("asset_type"),
                        file_name=data["file_name"],
                        file_url=data["file_url"],
                        file_size=data.get("file_size"),
                        mime_type=data.get("mime_type"),
                        description=data.get("description"),
                    ))
            self._advance_step(campaign, 5)
        return campaign

    def delete_asset(self, campaign_id: str, asset_id: str) -> None:
        with atomic(self.db):
            campaign = self._editable(campaign_id)
            asset = next((a for a in campaign.assets if a.id == asset_id), None)
            if not asset:
                raise NotFoundError("Asset not found")
            campaign.assets.remove(asset)
            touch(campaign)

    def delete_draft(self, campaign_id: str) -> None:
        with atomic(self.db):
            campaign = self._editable(campaign_id)
            self.db.delete(campaign)
        logger.info(f"campaign {campaign_id}: draft deleted")

    # =========================================================================
    # PLACEMENT
    # =========================================================================

    def place(self, campaign_id: str, placed_by: Actor) -> Campaign:
        """Lock the wizard and open the campaign for quoting."""
        notices = []
        with atomic(self.db):
            campaign = lock_campaign(self.db, campaign_id)
            if campaign.is_placed:
                raise InvalidTransitionError("Campaign has already been placed")

            errors = self._placement_errors(campaign)
            if errors:
                logger.warning(f"campaign {campaign.id}: placement rejected ({len(errors)} problems)")
                raise InvalidTransitionError("Campaign is not ready to be placed", errors=errors)

            campaign.is_placed = True
            campaign.placed_at = datetime.utcnow()
            if placed_by.is_admin:
                campaign.assigned_admin_id = placed_by.actor_id
            transition(campaign, CampaignStatus.NEEDS_QUOTE)

            notices.extend(admin_notices(
                self.db, "New Campaign Request",
                f"Campaign '{campaign.name}' was placed and needs a quote.",
                NotificationCategory.CAMPAIGN_PLACED,
                {"campaign_id": campaign.id},
            ))
        self.notifications.dispatch(notices)
        return campaign

    def _placement_errors(self, campaign: Campaign) -> List[str]:
        errors = [f"{label} is required" for attr, label in REQUIRED_FOR_PLACEMENT if not getattr(campaign, attr)]
        if campaign.total_budget is None or campaign.total_budget <= 0:
            errors.append("Total budget must be greater than zero")
        if not campaign.milestones:
            errors.append("At least one milestone is required")
        return errors

    # =========================================================================
    # FUNDING
    # =========================================================================

    def fund(self, campaign_id: str, amount, actor: Actor) -> Campaign:
        """Client payment towards the accepted total."""
        return self._record_payment(campaign_id, amount, actor)

    def verify_payment(self, campaign_id: str, amount, actor: Actor) -> Campaign:
        """Admin confirmation of a payment received outside the platform."""
        return self._record_payment(campaign_id, amount, actor)

    def _record_payment(self, campaign_id: str, amount, actor: Actor) -> Campaign:
        amount = to_money(amount)
        if amount <= 0:
            raise InvalidTransitionError("Payment amount must be greater than zero")

        notices = []
        with atomic(self.db):
            campaign = lock_campaign(self.db, campaign_id)
            require_status(campaign, FUNDABLE_STATUSES, "fund")
            if campaign.payment_status == PaymentStatus.FULL:
                raise InvalidTransitionError("Campaign is already fully paid")

            paid = to_money(campaign.paid_amount or 0) + amount
            total = to_money(campaign.total_budget)
            if paid > total:
                raise InvalidTransitionError(
                    "Payment exceeds the amount due",
                    errors=[f"Amount due is {total - to_money(campaign.paid_amount or 0)}"],
                )

            campaign.paid_amount = paid
            campaign.due_amount = total - paid
            is_full = campaign.due_amount == 0
            campaign.payment_status = PaymentStatus.FULL if is_full else PaymentStatus.PARTIAL
            touch(campaign)
            logger.info(f"campaign {campaign.id}: payment {amount} recorded by {actor.role.value}, due {campaign.due_amount}")

            if campaign.status in (CampaignStatus.ACCEPTED, CampaignStatus.PARTIAL_PAID):
                transition(campaign, CampaignStatus.PAID if is_full else CampaignStatus.PARTIAL_PAID)

            data = {"campaign_id": campaign.id, "amount": str(amount), "due": str(campaign.due_amount)}
            if actor.is_admin:
                if is_full:
                    notices.append(Notice(
                        campaign.client.user_id, "client", "Payment Verified",
                        f"Payment for '{campaign.name}' is fully verified.",
                        NotificationCategory.PAYMENT_RECEIVED, data,
                    ))
            else:
                notices.extend(admin_notices(
                    self.db, "Payment Received",
                    f"{amount} received for '{campaign.name}'.",
                    NotificationCategory.PAYMENT_RECEIVED, data,
                ))

            if is_full:
                promote_if_ready(self.db, campaign)
        self.notifications.dispatch(notices)
        return campaign

    # =========================================================================
    # CLIENT FEEDBACK
    # =========================================================================

    def rate(self, campaign_id: str, rating: int, review: Optional[str], actor: Actor) -> Campaign:
        """
        Rate a completed campaign once.

        The rating is kept on the campaign and, when an agency managed it,
        folded into the agency's running average.
        """
        if not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
            raise InvalidTransitionError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

        notices = []
        with atomic(self.db):
            campaign = lock_campaign(self.db, campaign_id)
            require_status(campaign, {CampaignStatus.COMPLETED}, "rate")
            if campaign.is_rated:
                raise InvalidTransitionError("Campaign has already been rated")

            campaign.is_rated = True
            campaign.rating = rating
            campaign.client_review = review
            campaign.rated_at = datetime.utcnow()
            touch(campaign)

            if campaign.agency_id:
                agency = (
                    self.db.query(AgencyProfile)
                    .filter(AgencyProfile.id == campaign.agency_id)
                    .populate_existing()
                    .with_for_update()
                    .one()
                )
                count = agency.total_reviews or 0
                agency.average_rating = running_average(agency.average_rating or 0, count, rating)
                agency.total_reviews = count + 1
                notices.append(Notice(
                    agency.user_id, "agency", "Campaign Rated",
                    f"'{campaign.name}' was rated {rating}/{MAX_RATING}.",
                    NotificationCategory.CAMPAIGN_RATED, {"campaign_id": campaign.id, "rating": rating},
                ))
        logger.info(f"campaign {campaign_id}: rated {rating} by {actor.role.value}")
        self.notifications.dispatch(notices)
        return campaign

    def create_report(self, campaign_id: str, reporter: Actor, reason: str) -> CampaignReport:
        """Raise an issue on a campaign for the admins to look into."""
        if not (reason and reason.strip()):
            raise InvalidTransitionError("A reason is required", errors=["reason must not be empty"])

        campaign = self.get(campaign_id)
        report = CampaignReport(
            campaign_id=campaign.id,
            reporter_user_id=reporter.actor_id,
            reason=reason.strip(),
            status=ReportStatus.PENDING,
        )
        with atomic(self.db):
            self.db.add(report)
            notices = admin_notices(
                self.db, "Campaign Reported",
                f"An issue was reported on '{campaign.name}': {report.reason}",
                NotificationCategory.CAMPAIGN_REPORTED, {"campaign_id": campaign.id},
            )
        logger.warning(f"campaign {campaign_id}: issue reported by {reporter.role.value}")
        self.notifications.dispatch(notices)
        return report

    def list_reports(self, status: Optional[ReportStatus] = None, campaign_id: Optional[str] = None) -> List[CampaignReport]:
        query = self.db.query(CampaignReport)
        if status:
            query = query.filter(CampaignReport.status == status)
        if campaign_id:
            query = query.filter(CampaignReport.campaign_id == campaign_id)
        return query.order_by(CampaignReport.created_at.desc()).all()

    def resolve_report(self, report_id: str, dismiss: bool = False, note: Optional[str] = None) -> CampaignReport:
        with atomic(self.db):
            report = (
                self.db.query(CampaignReport)
                .filter(CampaignReport.id == report_id)
                .populate_existing()
                .with_for_update()
                .first()
            )
            if not report:
                raise NotFoundError("Report not found")
            if report.status != ReportStatus.PENDING:
                raise InvalidTransitionError(f"Report is already {report.status.value}")
            report.status = ReportStatus.DISMISSED if dismiss else ReportStatus.RESOLVED
            report.resolution_note = note
            report.resolved_at = datetime.utcnow()
        return report

    # =========================================================================
    # ADMIN ADJUSTMENTS
    # =========================================================================

    def assign_agency(self, campaign_id: str, agency_id: str) -> Campaign:
        """Hand the provider side of the campaign to an agency."""
        notices = []
        with atomic(self.db):
            campaign = lock_campaign(self.db, campaign_id)
            if campaign.is_terminal:
                raise InvalidTransitionError("Cannot assign an agency to a closed campaign")
            agency = self.profiles.get_agency(agency_id)
            campaign.agency_id = agency.id
            if campaign.negotiation_turn == NegotiationParty.ADMIN:
                campaign.negotiation_turn = NegotiationParty.AGENCY
            touch(campaign)
            notices.append(Notice(
                agency.user_id, "agency", "Campaign Assigned",
                f"You now manage campaign '{campaign.name}'.",
                NotificationCategory.AGENCY_ASSIGNED, {"campaign_id": campaign.id},
            ))
        logger.info(f"campaign {campaign_id}: managed by agency {agency_id}")
        self.notifications.dispatch(notices)
        return campaign

    def update_platform_fee(self, campaign_id: str, fee_amount) -> Campaign:
        """Override the platform fee kept from the agreed base budget."""
        fee = to_money(fee_amount)
        with atomic(self.db):
            campaign = lock_campaign(self.db, campaign_id)
            if campaign.is_terminal or not campaign.has_confirmed_budget:
                raise InvalidTransitionError("Platform fee can only be set on an accepted, open campaign")
            base = to_money(campaign.base_budget)
            if fee < 0 or fee > base:
                raise InvalidTransitionError("Platform fee must be between zero and the base budget")
            campaign.platform_fee_amount = fee
            campaign.available_for_execution = base - fee
            touch(campaign)
        return campaign

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _editable(self, campaign_id: str) -> Campaign:
        campaign = lock_campaign(self.db, campaign_id)
        if campaign.is_placed:
            raise InvalidTransitionError("Cannot modify a placed campaign")
        return campaign

    def _advance_step(self, campaign: Campaign, step: int):
        campaign.current_step = min(WIZARD_STEPS, max(campaign.current_step or 1, step))
        touch(campaign)

