# Notification Service for the Campaign Platform
# Persists in-app notifications for lifecycle events. Delivery (push/SMS) is downstream.

import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from dataclasses import dataclass, field
from typing import Iterable, Optional
from datetime import datetime
from enum import Enum

from database.models import Notification

logger = logging.getLogger(__name__)


class NotificationCategory(str, Enum):
    """Lifecycle events that notify a party."""
    CAMPAIGN_PLACED = "campaign_placed"
    AGENCY_ASSIGNED = "agency_assigned"
    QUOTE_SENT = "quote_sent"
    NEGOTIATION_RESPONSE = "negotiation_response"
    ASSIGNMENT_OFFER = "assignment_offer"
    ASSIGNMENT_RESPONSE = "assignment_response"
    MILESTONE_SUBMITTED = "milestone_submitted"
    MILESTONE_APPROVED = "milestone_approved"
    MILESTONE_DECLINED = "milestone_declined"
    CAMPAIGN_COMPLETED = "campaign_completed"
    PAYMENT_RECEIVED = "payment_received"
    CAMPAIGN_RATED = "campaign_rated"
    CAMPAIGN_REPORTED = "campaign_reported"


@dataclass
class Notice:
    """A notification queued during a transition and sent once it has committed."""
    user_id: str
    role: str
    title: str
    message: str
    category: NotificationCategory
    data: dict = field(default_factory=dict)


class NotificationService:
    """
    Service for creating and managing user notifications.

    `notify` is fire-and-forget: it runs after the lifecycle transaction has
    committed, commits on its own and never raises.
    """

    def __init__(self, db: Session):
        self.db = db

    def notify(
        self,
        user_id: str,
        role: str,
        title: str,
        message: str,
        category: NotificationCategory | str,
        data: Optional[dict] = None,
    ) -> Optional[Notification]:
        """
        Create and commit a notification.

        Returns:
            The created Notification, or None when it could not be stored
        """
        if not user_id:
            return None
        category_value = category.value if isinstance(category, NotificationCategory) else str(category)
        role_value = role.value if hasattr(role, "value") else role
        try:
            notification = Notification(
                user_id=user_id,
                role=role_value,
                category=category_value,
                title=title,
                message=message,
                data=data or {},
            )
            self.db.add(notification)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Failed to store {category_value} notification for user {user_id}")
            return None
        return notification

    def dispatch(self, notices: Iterable[Notice]) -> int:
        """Send queued notices, returns how many were stored."""
        sent = 0
        for notice in notices:
            stored = self.notify(
                notice.user_id, notice.role, notice.title,
                notice.message, notice.category, notice.data,
            )
            if stored is not None:
                sent += 1
        return sent

    def list_for_user(self, user_id: str, unread_only: bool = False, limit: int = 20, offset: int = 0):
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.read == False)  # noqa: E712
        return query.order_by(Notification.created_at.desc()).offset(offset).limit(limit).all()

    def mark_read(self, notification_id: str, user_id: str) -> bool:
        """
        Mark a notification as read.

        Returns:
            True if notification was marked read, False if not found
        """
        notification = self.db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id
        ).first()

        if not notification:
            return False
        notification.read = True
        notification.read_at = datetime.utcnow()
        self.db.commit()
        return True

    def get_unread_count(self, user_id: str) -> int:
        """Get unread notification count for a user."""
        return self.db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.read == False  # noqa: E712
        ).count()
