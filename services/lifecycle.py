# Campaign lifecycle helpers shared by the campaign, negotiation, assignment and milestone services

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from core.exceptions import NotFoundError, InvalidTransitionError
from database.campaign_models import (
    Campaign, CampaignStatus, CampaignMilestone, MilestoneStatus,
    CampaignAssignment, AssignmentStatus, ACTIVE_ASSIGNMENT_STATUSES, PaymentStatus,
)
from services.notification_service import Notice, NotificationCategory
from services.profile_service import ProfileDirectory

logger = logging.getLogger(__name__)


# Statuses in which assignments can be offered and executed
EXECUTABLE_STATUSES = {
    CampaignStatus.PARTIAL_PAID,
    CampaignStatus.PAID,
    CampaignStatus.PENDING_ASSIGNMENT,
    CampaignStatus.ACTIVE,
    CampaignStatus.IN_REVIEW,
}

# Statuses in which the budget dialogue is open
NEGOTIABLE_STATUSES = {
    CampaignStatus.NEEDS_QUOTE,
    CampaignStatus.QUOTED,
    CampaignStatus.NEGOTIATING,
}

# Statuses that can still be funded
FUNDABLE_STATUSES = {CampaignStatus.ACCEPTED} | EXECUTABLE_STATUSES

# Statuses in which deliverables are produced and reviewed
IN_EXECUTION_STATUSES = {CampaignStatus.ACTIVE, CampaignStatus.IN_REVIEW}

ALLOWED_TRANSITIONS = {
    CampaignStatus.DRAFT: {CampaignStatus.NEEDS_QUOTE},
    CampaignStatus.NEEDS_QUOTE: {
        CampaignStatus.QUOTED, CampaignStatus.NEGOTIATING, CampaignStatus.DECLINED, CampaignStatus.CANCELLED,
    },
    CampaignStatus.QUOTED: {
        CampaignStatus.NEGOTIATING, CampaignStatus.ACCEPTED, CampaignStatus.NEEDS_QUOTE, CampaignStatus.CANCELLED,
    },
    CampaignStatus.NEGOTIATING: {
        CampaignStatus.ACCEPTED, CampaignStatus.NEEDS_QUOTE, CampaignStatus.CANCELLED,
    },
    CampaignStatus.ACCEPTED: {CampaignStatus.PARTIAL_PAID, CampaignStatus.PAID},
    CampaignStatus.PARTIAL_PAID: {CampaignStatus.PAID, CampaignStatus.PENDING_ASSIGNMENT},
    CampaignStatus.PAID: {CampaignStatus.PENDING_ASSIGNMENT},
    CampaignStatus.PENDING_ASSIGNMENT: {CampaignStatus.ACTIVE},
    CampaignStatus.ACTIVE: {CampaignStatus.IN_REVIEW, CampaignStatus.COMPLETED},
    CampaignStatus.IN_REVIEW: {CampaignStatus.ACTIVE, CampaignStatus.COMPLETED},
    CampaignStatus.COMPLETED: set(),
    CampaignStatus.CANCELLED: set(),
    CampaignStatus.DECLINED: set(),
}


def lock_campaign(db: Session, campaign_id: str) -> Campaign:
    """
    Load a campaign for mutation.

    Takes a row lock where the database supports it and refreshes any copy
    already in the session so preconditions are checked against the latest row.
    """
    campaign = (
        db.query(Campaign)
        .filter(Campaign.id == campaign_id)
        .populate_existing()
        .with_for_update()
        .first()
    )
    if not campaign:
        raise NotFoundError("Campaign not found")
    return campaign


def lock_child(db: Session, model, child_id: str, label: str):
    """
    Load a campaign child row (assignment, milestone) for mutation.

    The parent campaign is locked first, then the child is re-read past the
    identity map so its status reflects what other transactions committed.
    Returns (child, campaign).
    """
    campaign_id = db.query(model.campaign_id).filter(model.id == child_id).scalar()
    if campaign_id is None:
        raise NotFoundError(f"{label} not found")
    campaign = lock_campaign(db, campaign_id)
    child = (
        db.query(model)
        .filter(model.id == child_id)
        .populate_existing()
        .with_for_update()
        .first()
    )
    if child is None:
        raise NotFoundError(f"{label} not found")
    return child, campaign


def get_campaign(db: Session, campaign_id: str) -> Campaign:
    campaign = db.query(Campaign).filter(Campaign.id == campaign_id).first()
    if not campaign:
        raise NotFoundError("Campaign not found")
    return campaign


def touch(campaign: Campaign):
    """Mark the campaign row dirty so the version check runs even when only children change."""
    campaign.updated_at = datetime.utcnow()


def transition(campaign: Campaign, new_status: CampaignStatus):
    """Move the campaign along an edge of ALLOWED_TRANSITIONS. Re-entering the current status is a no-op."""
    old_status = campaign.status
    if old_status != new_status and new_status not in ALLOWED_TRANSITIONS.get(old_status, set()):
        logger.warning(f"campaign {campaign.id}: refused {_value(old_status)} -> {_value(new_status)}")
        raise InvalidTransitionError(
            f"Campaign cannot move from '{_value(old_status)}' to '{_value(new_status)}'"
        )
    campaign.status = new_status
    touch(campaign)
    if old_status != new_status:
        logger.info(f"campaign {campaign.id}: {_value(old_status)} -> {_value(new_status)}")


def require_status(campaign: Campaign, allowed, action: str):
    if campaign.status not in allowed:
        logger.warning(f"campaign {campaign.id}: cannot {action} while {_value(campaign.status)}")
        raise InvalidTransitionError(
            f"Cannot {action} a campaign in status '{_value(campaign.status)}'",
            errors=[f"status must be one of: {', '.join(sorted(_value(s) for s in allowed))}"],
        )


def _value(status) -> str:
    return status.value if hasattr(status, "value") else str(status)


def promote_if_ready(db: Session, campaign: Campaign) -> bool:
    """
    Move a campaign waiting on invitations to ACTIVE.

    Requires full payment, no offer still open, and at least one party that
    accepted. Re-scans assignments from the database on every call.
    """
    if campaign.status != CampaignStatus.PENDING_ASSIGNMENT:
        return False
    if campaign.payment_status != PaymentStatus.FULL:
        return False

    db.flush()
    statuses = [
        row[0] for row in db.query(CampaignAssignment.status)
        .filter(CampaignAssignment.campaign_id == campaign.id).all()
    ]
    if AssignmentStatus.NEW_OFFER in statuses:
        return False
    if not any(s in ACTIVE_ASSIGNMENT_STATUSES for s in statuses):
        return False

    transition(campaign, CampaignStatus.ACTIVE)
    return True


def check_completion(db: Session, campaign: Campaign, notices: Optional[List[Notice]] = None) -> bool:
    """
    Complete an executing campaign once every milestone is accepted.

    Only ACTIVE and IN_REVIEW campaigns complete, and both imply full payment.
    Sibling milestones are re-fetched, never taken from cached state. On
    completion, assignments still in progress are closed as completed and
    offers nobody answered are cancelled.
    """
    if campaign.status not in IN_EXECUTION_STATUSES:
        return False
    if campaign.payment_status != PaymentStatus.FULL:
        return False

    db.flush()
    milestone_statuses = [
        row[0] for row in db.query(CampaignMilestone.status)
        .filter(CampaignMilestone.campaign_id == campaign.id).all()
    ]
    if not milestone_statuses:
        return False
    if any(s != MilestoneStatus.ACCEPTED for s in milestone_statuses):
        return False

    now = datetime.utcnow()
    transition(campaign, CampaignStatus.COMPLETED)
    campaign.completed_at = now

    open_assignments = db.query(CampaignAssignment).filter(
        CampaignAssignment.campaign_id == campaign.id,
        CampaignAssignment.status.in_(list(ACTIVE_ASSIGNMENT_STATUSES) + [AssignmentStatus.NEW_OFFER]),
    ).all()
    in_progress = []
    for assignment in open_assignments:
        if assignment.status == AssignmentStatus.NEW_OFFER:
            assignment.status = AssignmentStatus.CANCELLED
            assignment.cancelled_at = now
        else:
            assignment.status = AssignmentStatus.COMPLETED
            assignment.completed_at = now
            in_progress.append(assignment)

    if notices is not None:
        notices.extend(completion_notices(db, campaign, in_progress))
    return True


def completion_notices(db: Session, campaign: Campaign, assignments) -> List[Notice]:
    data = {"campaign_id": campaign.id}
    title = "Campaign Completed!"
    message = f"Campaign '{campaign.name}' is complete."
    notices = [Notice(campaign.client.user_id, "client", title, message, NotificationCategory.CAMPAIGN_COMPLETED, data)]
    for assignment in assignments:
        user_id, role = party_user(assignment)
        notices.append(Notice(user_id, role, title, message, NotificationCategory.CAMPAIGN_COMPLETED, data))
    return notices


def party_user(assignment: CampaignAssignment):
    """(user_id, role) of the party holding an assignment."""
    if assignment.influencer is not None:
        return assignment.influencer.user_id, "influencer"
    return assignment.agency.user_id, "agency"


def admin_notices(db: Session, title: str, message: str, category, data=None) -> List[Notice]:
    return [
        Notice(user_id, "admin", title, message, category, dict(data or {}))
        for user_id in ProfileDirectory(db).admin_user_ids()
    ]
