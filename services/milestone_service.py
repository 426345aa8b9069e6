"""
Milestone Tracker

Per-deliverable sub-state-machine: pending -> in_review -> accepted | declined,
with declined -> in_review on resubmission. Accepting the last milestone of
a fully paid campaign completes it.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from auth.roles import Actor, UserType
from core.budget import to_money
from core.exceptions import InvalidTransitionError, ForbiddenError, NotFoundError
from database.config import atomic
from database.campaign_models import (
    CampaignStatus, CampaignMilestone, MilestoneStatus, MilestonePaymentStatus,
    CampaignAssignment, ACTIVE_ASSIGNMENT_STATUSES,
)
from services.lifecycle import (
    lock_child, get_campaign, transition, touch, require_status, check_completion,
    party_user, admin_notices, IN_EXECUTION_STATUSES,
)
from services.notification_service import NotificationService, Notice, NotificationCategory
from services.profile_service import ProfileDirectory

logger = logging.getLogger(__name__)

SUBMISSION_FIELDS = ("submission_description", "submission_attachments", "live_links", "requested_amount")
METRIC_FIELDS = ("actual_reach", "actual_views", "actual_likes", "actual_comments")

SUBMITTABLE_STATUSES = {MilestoneStatus.PENDING, MilestoneStatus.IN_REVIEW, MilestoneStatus.DECLINED}

# Reach beyond this share of the target qualifies for a performance bonus
BONUS_THRESHOLD_PERCENT = Decimal("100")


class MilestoneService:
    def __init__(self, db: Session):
        self.db = db
        self.profiles = ProfileDirectory(db)
        self.notifications = NotificationService(db)

    def submit(self, milestone_id: str, actor: Actor, payload: dict) -> CampaignMilestone:
        """
        Submit (or resubmit) a deliverable for review.

        Only the fields present in `payload` are written. Resubmitting a
        declined milestone clears its rejection reason.
        """
        unknown = set(payload) - set(SUBMISSION_FIELDS)
        if unknown:
            raise InvalidTransitionError("Unknown submission fields", errors=sorted(unknown))

        notices = []
        with atomic(self.db):
            milestone, campaign = lock_child(self.db, CampaignMilestone, milestone_id, "Milestone")
            require_status(campaign, IN_EXECUTION_STATUSES, "submit milestones for")
            assignment = self._active_assignment(campaign.id, actor)
            if milestone.status not in SUBMITTABLE_STATUSES:
                raise InvalidTransitionError(
                    f"Cannot submit a milestone that is {milestone.status.value}",
                    errors=["accepted milestones are final"],
                )

            for key, value in payload.items():
                if key == "requested_amount" and value is not None:
                    value = to_money(value)
                setattr(milestone, key, value)
            milestone.status = MilestoneStatus.IN_REVIEW
            milestone.rejection_reason = None
            milestone.submitted_by_user_id = actor.actor_id
            milestone.submitted_at = datetime.utcnow()

            if campaign.status == CampaignStatus.ACTIVE:
                transition(campaign, CampaignStatus.IN_REVIEW)
            else:
                touch(campaign)

            data = {"campaign_id": campaign.id, "milestone_id": milestone.id, "assignment_id": assignment.id}
            title = "Milestone Submitted"
            message = f"'{milestone.content_title}' on '{campaign.name}' is ready for review."
            notices.append(Notice(campaign.client.user_id, "client", title, message, NotificationCategory.MILESTONE_SUBMITTED, data))
            notices.extend(admin_notices(self.db, title, message, NotificationCategory.MILESTONE_SUBMITTED, data))
        logger.info(f"milestone {milestone_id}: submitted for review")
        self.notifications.dispatch(notices)
        return milestone

    def review(self, milestone_id: str, actor: Actor, accept: bool, reason: Optional[str] = None) -> CampaignMilestone:
        if not accept and not (reason and reason.strip()):
            raise InvalidTransitionError(
                "A reason is required to decline a milestone",
                errors=["reason must not be empty"],
            )

        notices = []
        with atomic(self.db):
            milestone, campaign = lock_child(self.db, CampaignMilestone, milestone_id, "Milestone")
            if milestone.status != MilestoneStatus.IN_REVIEW:
                raise InvalidTransitionError(
                    f"Cannot review a milestone that is {milestone.status.value}",
                    errors=["milestone must be in review"],
                )

            now = datetime.utcnow()
            milestone.reviewed_at = now
            submitter = self._submitter(campaign.id, milestone)
            data = {"campaign_id": campaign.id, "milestone_id": milestone.id}

            if accept:
                milestone.status = MilestoneStatus.ACCEPTED
                milestone.rejection_reason = None
                touch(campaign)
                if submitter:
                    notices.append(Notice(
                        submitter[0], submitter[1], "Milestone Approved",
                        f"'{milestone.content_title}' was approved.",
                        NotificationCategory.MILESTONE_APPROVED, data,
                    ))
                completed = check_completion(self.db, campaign, notices)
                if not completed and campaign.status == CampaignStatus.IN_REVIEW and not self._any_in_review(campaign.id):
                    transition(campaign, CampaignStatus.ACTIVE)
            else:
                milestone.status = MilestoneStatus.DECLINED
                milestone.rejection_reason = reason.strip()
                if campaign.status == CampaignStatus.IN_REVIEW:
                    transition(campaign, CampaignStatus.ACTIVE)
                else:
                    touch(campaign)
                if submitter:
                    notices.append(Notice(
                        submitter[0], submitter[1], "Milestone Declined",
                        f"'{milestone.content_title}' needs changes: {milestone.rejection_reason}",
                        NotificationCategory.MILESTONE_DECLINED, data,
                    ))
        logger.info(f"milestone {milestone_id}: {'accepted' if accept else 'declined'} by {actor.role.value}")
        self.notifications.dispatch(notices)
        return milestone

    def update_metrics(self, milestone_id: str, actor: Actor, metrics: dict) -> CampaignMilestone:
        """Record achieved reach/views/likes/comments after the content went live."""
        unknown = set(metrics) - set(METRIC_FIELDS)
        if unknown:
            raise InvalidTransitionError("Unknown metrics", errors=sorted(unknown))
        with atomic(self.db):
            milestone, campaign = lock_child(self.db, CampaignMilestone, milestone_id, "Milestone")
            if actor.role != UserType.ADMIN:
                self._active_assignment(campaign.id, actor)
            if milestone.status not in (MilestoneStatus.IN_REVIEW, MilestoneStatus.ACCEPTED):
                raise InvalidTransitionError("Metrics can only be recorded for submitted milestones")
            for key, value in metrics.items():
                if value is not None:
                    setattr(milestone, key, value)
            touch(campaign)
        return milestone

    def record_payout(self, milestone_id: str, amount) -> CampaignMilestone:
        """Pay out part or all of the amount requested for an accepted milestone."""
        amount = to_money(amount)
        if amount <= 0:
            raise InvalidTransitionError("Payout amount must be greater than zero")
        with atomic(self.db):
            milestone, campaign = lock_child(self.db, CampaignMilestone, milestone_id, "Milestone")
            if milestone.status != MilestoneStatus.ACCEPTED:
                raise InvalidTransitionError("Only accepted milestones can be paid")
            if milestone.requested_amount is None:
                raise InvalidTransitionError("Milestone has no requested amount")
            requested = to_money(milestone.requested_amount)
            paid = to_money(milestone.paid_amount or 0) + amount
            if paid > requested:
                raise InvalidTransitionError(
                    "Payout exceeds the requested amount",
                    errors=[f"Outstanding amount is {requested - to_money(milestone.paid_amount or 0)}"],
                )
            milestone.paid_amount = paid
            milestone.payment_status = MilestonePaymentStatus.PAID if paid == requested else MilestonePaymentStatus.PARTIAL
            touch(campaign)
        return milestone

    def progress(self, campaign_id: str) -> dict:
        """Milestone counts and reach against target for a campaign."""
        campaign = get_campaign(self.db, campaign_id)
        milestones = (
            self.db.query(CampaignMilestone)
            .filter(CampaignMilestone.campaign_id == campaign.id)
            .order_by(CampaignMilestone.order)
            .all()
        )
        counts = {status.value: 0 for status in MilestoneStatus}
        for m in milestones:
            counts[m.status.value] += 1

        target = sum(m.expected_reach or 0 for m in milestones)
        actual = sum(m.actual_reach or 0 for m in milestones)
        percent = (Decimal(actual) * 100 / Decimal(target)).quantize(Decimal("0.01")) if target else Decimal("0")
        return {
            "campaign_id": campaign.id,
            "status": campaign.status,
            "total": len(milestones),
            "counts": counts,
            "all_accepted": bool(milestones) and counts[MilestoneStatus.ACCEPTED.value] == len(milestones),
            "target_reach": target,
            "actual_reach": actual,
            "overflow": max(actual - target, 0),
            "achieved_percent": percent,
            "bonus_eligible": bool(target) and percent > BONUS_THRESHOLD_PERCENT,
        }

    def get(self, milestone_id: str) -> CampaignMilestone:
        return self._get(milestone_id)

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _get(self, milestone_id: str) -> CampaignMilestone:
        milestone = self.db.query(CampaignMilestone).filter(CampaignMilestone.id == milestone_id).first()
        if not milestone:
            raise NotFoundError("Milestone not found")
        return milestone

    def _active_assignment(self, campaign_id: str, actor: Actor) -> CampaignAssignment:
        query = self.db.query(CampaignAssignment).filter(
            CampaignAssignment.campaign_id == campaign_id,
            CampaignAssignment.status.in_(list(ACTIVE_ASSIGNMENT_STATUSES)),
        )
        if actor.role == UserType.INFLUENCER:
            profile = self.profiles.influencer_for_user(actor.actor_id)
            assignment = query.filter(CampaignAssignment.influencer_id == profile.id).first()
        elif actor.role == UserType.AGENCY:
            profile = self.profiles.agency_for_user(actor.actor_id)
            assignment = query.filter(CampaignAssignment.agency_id == profile.id).first()
        else:
            assignment = None
        if assignment is None:
            raise ForbiddenError("You do not hold an active assignment on this campaign")
        return assignment

    def _submitter(self, campaign_id: str, milestone: CampaignMilestone):
        """(user_id, role) of whoever submitted the milestone, if known."""
        if not milestone.submitted_by_user_id:
            return None
        assignments = self.db.query(CampaignAssignment).filter(CampaignAssignment.campaign_id == campaign_id).all()
        for assignment in assignments:
            user_id, role = party_user(assignment)
            if user_id == milestone.submitted_by_user_id:
                return user_id, role
        return milestone.submitted_by_user_id, "influencer"

    def _any_in_review(self, campaign_id: str) -> bool:
        self.db.flush()
        return self.db.query(CampaignMilestone.id).filter(
            CampaignMilestone.campaign_id == campaign_id,
            CampaignMilestone.status == MilestoneStatus.IN_REVIEW,
        ).first() is not None
