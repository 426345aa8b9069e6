"""
Assignment Manager

Offers that bind a campaign to influencers or agencies. Each assignment
runs its own lifecycle (new_offer -> accepted/declined -> in_progress ->
completed, with cancelled/expired as side exits) and feeds the campaign's
promotion to ACTIVE once every offer is settled.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from auth.roles import Actor, UserType
from config.app_config import OFFER_EXPIRY_HOURS
from core.budget import compute_assignment_budget
from core.exceptions import InvalidTransitionError, ForbiddenError, NotFoundError
from database.config import atomic
from database.campaign_models import (
    CampaignStatus, CampaignAssignment, AssignmentStatus, PartyType,
    DeliveryStatus, TERMINAL_ASSIGNMENT_STATUSES, ACTIVE_ASSIGNMENT_STATUSES,
)
from services.lifecycle import (
    lock_campaign, lock_child, transition, touch, require_status, promote_if_ready,
    party_user, admin_notices, EXECUTABLE_STATUSES,
)
from services.notification_service import NotificationService, Notice, NotificationCategory
from services.profile_service import ProfileDirectory

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = {AssignmentStatus.NEW_OFFER, AssignmentStatus.ACCEPTED}

DELIVERY_FLOW = [DeliveryStatus.PENDING, DeliveryStatus.SHIPPED, DeliveryStatus.DELIVERED]


@dataclass
class OfferRequest:
    party_type: PartyType
    party_id: str
    offered_amount: Decimal
    message: Optional[str] = None
    expires_at: Optional[datetime] = None
    percentage: Optional[Decimal] = None


@dataclass
class DeliveryAddress:
    address: str
    city: Optional[str] = None
    phone: Optional[str] = None


class AssignmentService:
    def __init__(self, db: Session):
        self.db = db
        self.profiles = ProfileDirectory(db)
        self.notifications = NotificationService(db)

    # =========================================================================
    # CREATE
    # =========================================================================

    def create_assignments(self, campaign_id: str, offers: List[OfferRequest], assigned_by: Actor) -> List[CampaignAssignment]:
        """
        Send offers to a batch of parties.

        All offers are created together or not at all. Every unknown party and
        every party already holding an open assignment is reported at once.
        """
        if not offers:
            raise InvalidTransitionError("At least one offer is required")

        now = datetime.utcnow()
        seen, repeated = set(), set()
        for offer in offers:
            if offer.party_id in seen:
                repeated.add(offer.party_id)
            seen.add(offer.party_id)
        if repeated:
            raise InvalidTransitionError(
                "The same party appears more than once",
                errors=[f"Duplicate party in request: {pid}" for pid in sorted(repeated)],
            )
        errors = []
        for offer in offers:
            if Decimal(str(offer.offered_amount)) <= 0:
                errors.append(f"Offer to {offer.party_id} must be greater than zero")
            if offer.expires_at is not None and offer.expires_at <= now:
                errors.append(f"Offer to {offer.party_id} expires in the past")
        if errors:
            raise InvalidTransitionError("Invalid offers", errors=errors)

        notices = []
        with atomic(self.db):
            campaign = lock_campaign(self.db, campaign_id)
            require_status(campaign, EXECUTABLE_STATUSES, "assign")

            influencers = {p.id: p for p in self.profiles.influencers_by_id(
                [o.party_id for o in offers if PartyType(o.party_type) == PartyType.INFLUENCER]
            )}
            agencies = {a.id: a for a in self.profiles.agencies_by_id(
                [o.party_id for o in offers if PartyType(o.party_type) == PartyType.AGENCY]
            )}

            excluded = {p.id for p in campaign.excluded_influencers} & set(influencers)
            if excluded:
                raise InvalidTransitionError(
                    "Campaign excludes some of these influencers",
                    errors=[f"Influencer {pid} is excluded from this campaign" for pid in sorted(excluded)],
                )

            conflicting = self._open_party_ids(campaign.id) & {o.party_id for o in offers}
            if conflicting:
                logger.warning(f"campaign {campaign.id}: duplicate offers rejected for {sorted(conflicting)}")
                raise InvalidTransitionError(
                    "Some parties already hold an open assignment on this campaign",
                    errors=[f"Party {pid} already has an open assignment" for pid in sorted(conflicting)],
                )

            created = []
            for offer in offers:
                party_type = PartyType(offer.party_type)
                budget = compute_assignment_budget(offer.offered_amount)
                assignment = CampaignAssignment(
                    campaign_id=campaign.id,
                    party_type=party_type,
                    influencer_id=offer.party_id if party_type == PartyType.INFLUENCER else None,
                    agency_id=offer.party_id if party_type == PartyType.AGENCY else None,
                    assigned_by_user_id=assigned_by.actor_id,
                    status=AssignmentStatus.NEW_OFFER,
                    percentage=offer.percentage,
                    offered_amount=budget.base,
                    vat_amount=budget.vat,
                    total_amount=budget.total,
                    message=offer.message,
                    offer_expires_at=offer.expires_at or now + timedelta(hours=OFFER_EXPIRY_HOURS),
                )
                self.db.add(assignment)
                created.append(assignment)

                party = influencers.get(offer.party_id) or agencies.get(offer.party_id)
                notices.append(Notice(
                    party.user_id, party_type.value, "New Campaign Offer",
                    f"You have a new offer of {budget.total} on '{campaign.name}'.",
                    NotificationCategory.ASSIGNMENT_OFFER,
                    {"campaign_id": campaign.id, "amount": str(budget.total)},
                ))

            if campaign.status in (CampaignStatus.PARTIAL_PAID, CampaignStatus.PAID):
                transition(campaign, CampaignStatus.PENDING_ASSIGNMENT)
            else:
                touch(campaign)
        logger.info(f"campaign {campaign_id}: {len(created)} offers created by {assigned_by.role.value}")
        self.notifications.dispatch(notices)
        return created

    # =========================================================================
    # PARTY RESPONSE
    # =========================================================================

    def respond(
        self,
        assignment_id: str,
        actor: Actor,
        accept: bool,
        message: Optional[str] = None,
        delivery: Optional[DeliveryAddress] = None,
    ) -> CampaignAssignment:
        """
        Accept or decline an open offer.

        An offer past its expiry is closed as expired and the response is
        refused; the expiry itself is kept.
        """
        notices = []
        expired = False
        with atomic(self.db):
            assignment, campaign = self._lock(assignment_id)
            self._require_party(assignment, actor)
            self._require_open(assignment)

            now = datetime.utcnow()
            if assignment.offer_expires_at and assignment.offer_expires_at <= now:
                self._expire(assignment)
                promote_if_ready(self.db, campaign)
                expired = True
            elif accept:
                if campaign.need_sample_product and not (delivery and delivery.address):
                    raise InvalidTransitionError(
                        "A delivery address is required for this campaign",
                        errors=["delivery address is required to receive the sample product"],
                    )
                assignment.status = AssignmentStatus.ACCEPTED
                assignment.accepted_at = now
                # work starts on acceptance
                assignment.status = AssignmentStatus.IN_PROGRESS
                assignment.started_at = now
                if delivery is not None:
                    assignment.delivery_address = delivery.address
                    assignment.delivery_city = delivery.city
                    assignment.delivery_phone = delivery.phone
                if campaign.need_sample_product:
                    assignment.delivery_status = DeliveryStatus.PENDING
                touch(campaign)
                promote_if_ready(self.db, campaign)
            else:
                assignment.status = AssignmentStatus.DECLINED
                assignment.decline_reason = message
                assignment.declined_at = now
                touch(campaign)
                promote_if_ready(self.db, campaign)

            if not expired:
                verb = "accepted" if accept else "declined"
                notices.extend(admin_notices(
                    self.db, f"Offer {verb.title()}",
                    f"An offer on '{campaign.name}' was {verb}.",
                    NotificationCategory.ASSIGNMENT_RESPONSE,
                    {"campaign_id": campaign.id, "assignment_id": assignment.id},
                ))
                if campaign.agency is not None and assignment.party_type == PartyType.INFLUENCER:
                    notices.append(Notice(
                        campaign.agency.user_id, "agency", f"Offer {verb.title()}",
                        f"An influencer {verb} your offer on '{campaign.name}'.",
                        NotificationCategory.ASSIGNMENT_RESPONSE,
                        {"campaign_id": campaign.id, "assignment_id": assignment.id},
                    ))

        if expired:
            raise InvalidTransitionError("This offer has expired")
        logger.info(f"assignment {assignment_id}: {assignment.status.value}")
        self.notifications.dispatch(notices)
        return assignment

    # =========================================================================
    # ASSIGNER ACTIONS
    # =========================================================================

    def cancel(self, assignment_id: str, actor: Actor) -> CampaignAssignment:
        notices = []
        with atomic(self.db):
            assignment, campaign = self._lock(assignment_id)
            if assignment.status not in CANCELLABLE_STATUSES:
                raise InvalidTransitionError(
                    f"Cannot cancel an assignment that is {assignment.status.value}",
                    errors=["only new or accepted offers can be cancelled"],
                )
            assignment.status = AssignmentStatus.CANCELLED
            assignment.cancelled_at = datetime.utcnow()
            touch(campaign)
            promote_if_ready(self.db, campaign)

            user_id, role = party_user(assignment)
            notices.append(Notice(
                user_id, role, "Offer Cancelled",
                f"Your offer on '{campaign.name}' was cancelled.",
                NotificationCategory.ASSIGNMENT_OFFER,
                {"campaign_id": campaign.id, "assignment_id": assignment.id},
            ))
        logger.info(f"assignment {assignment_id}: cancelled by {actor.role.value}")
        self.notifications.dispatch(notices)
        return assignment

    def update(
        self,
        assignment_id: str,
        offered_amount=None,
        message: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        percentage=None,
    ) -> CampaignAssignment:
        """Edit an offer that nobody has answered yet."""
        with atomic(self.db):
            assignment, campaign = self._lock(assignment_id)
            if assignment.status != AssignmentStatus.NEW_OFFER:
                raise InvalidTransitionError("Only an unanswered offer can be edited")
            if offered_amount is not None:
                budget = compute_assignment_budget(offered_amount)
                assignment.offered_amount = budget.base
                assignment.vat_amount = budget.vat
                assignment.total_amount = budget.total
            if message is not None:
                assignment.message = message
            if expires_at is not None:
                if expires_at <= datetime.utcnow():
                    raise InvalidTransitionError("Offer expiry must be in the future")
                assignment.offer_expires_at = expires_at
            if percentage is not None:
                assignment.percentage = percentage
            touch(campaign)
        return assignment

    def update_delivery(self, assignment_id: str, delivery_status: DeliveryStatus) -> CampaignAssignment:
        """Move the sample product shipment forward: pending -> shipped -> delivered."""
        delivery_status = DeliveryStatus(delivery_status)
        with atomic(self.db):
            assignment, campaign = self._lock(assignment_id)
            if not campaign.need_sample_product:
                raise InvalidTransitionError("This campaign does not ship a sample product")
            if assignment.status not in ACTIVE_ASSIGNMENT_STATUSES:
                raise InvalidTransitionError("Delivery can only be tracked for an active assignment")
            current = assignment.delivery_status or DeliveryStatus.PENDING
            if DELIVERY_FLOW.index(delivery_status) <= DELIVERY_FLOW.index(current):
                raise InvalidTransitionError(
                    f"Delivery cannot move from {current.value} to {delivery_status.value}"
                )
            assignment.delivery_status = delivery_status
            touch(campaign)
        return assignment

    # =========================================================================
    # QUERIES
    # =========================================================================

    def list_for_campaign(self, campaign_id: str) -> List[CampaignAssignment]:
        """Assignments of a campaign, closing any lapsed offers first."""
        self.expire_lapsed(campaign_id)
        return (
            self.db.query(CampaignAssignment)
            .filter(CampaignAssignment.campaign_id == campaign_id)
            .order_by(CampaignAssignment.created_at)
            .all()
        )

    def list_for_party(self, party_type: PartyType, party_id: str, status: Optional[AssignmentStatus] = None) -> List[CampaignAssignment]:
        column = CampaignAssignment.influencer_id if party_type == PartyType.INFLUENCER else CampaignAssignment.agency_id
        query = self.db.query(CampaignAssignment).filter(column == party_id)
        if status:
            query = query.filter(CampaignAssignment.status == status)
        return query.order_by(CampaignAssignment.created_at.desc()).all()

    def expire_lapsed(self, campaign_id: str) -> int:
        lapsed_ids = [
            row[0] for row in self.db.query(CampaignAssignment.id).filter(
                CampaignAssignment.campaign_id == campaign_id,
                CampaignAssignment.status == AssignmentStatus.NEW_OFFER,
                CampaignAssignment.offer_expires_at <= datetime.utcnow(),
            ).all()
        ]
        if not lapsed_ids:
            return 0
        with atomic(self.db):
            campaign = lock_campaign(self.db, campaign_id)
            for assignment in (
                self.db.query(CampaignAssignment)
                .filter(CampaignAssignment.id.in_(lapsed_ids))
                .populate_existing()
                .all()
            ):
                if assignment.status == AssignmentStatus.NEW_OFFER:
                    self._expire(assignment)
            touch(campaign)
            promote_if_ready(self.db, campaign)
        return len(lapsed_ids)

    def get(self, assignment_id: str) -> CampaignAssignment:
        return self._get(assignment_id)

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _get(self, assignment_id: str) -> CampaignAssignment:
        assignment = self.db.query(CampaignAssignment).filter(CampaignAssignment.id == assignment_id).first()
        if not assignment:
            raise NotFoundError("Assignment not found")
        return assignment

    def _lock(self, assignment_id: str):
        assignment, campaign = lock_child(self.db, CampaignAssignment, assignment_id, "Assignment")
        if campaign.is_terminal:
            raise InvalidTransitionError(
                "Campaign is closed",
                errors=[f"campaign is {campaign.status.value}"],
            )
        return assignment, campaign

    def _open_party_ids(self, campaign_id: str) -> set:
        rows = self.db.query(CampaignAssignment).filter(
            CampaignAssignment.campaign_id == campaign_id,
            CampaignAssignment.status.notin_(list(TERMINAL_ASSIGNMENT_STATUSES)),
        ).all()
        return {a.party_id for a in rows}

    def _require_party(self, assignment: CampaignAssignment, actor: Actor):
        if actor.role == UserType.INFLUENCER and assignment.party_type == PartyType.INFLUENCER:
            if self.profiles.influencer_for_user(actor.actor_id).id == assignment.influencer_id:
                return
        if actor.role == UserType.AGENCY and assignment.party_type == PartyType.AGENCY:
            if self.profiles.agency_for_user(actor.actor_id).id == assignment.agency_id:
                return
        raise ForbiddenError("Only the assigned party can respond to this offer")

    def _require_open(self, assignment: CampaignAssignment):
        if assignment.status != AssignmentStatus.NEW_OFFER:
            raise InvalidTransitionError(
                f"This offer is already {assignment.status.value}",
                errors=["only new offers can be answered"],
            )

    def _expire(self, assignment: CampaignAssignment):
        assignment.status = AssignmentStatus.EXPIRED
        logger.info(f"assignment {assignment.id}: offer expired")
