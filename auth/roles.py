# Role-Based Access Control for the Campaign Platform
# Defines actor roles and the campaign permissions each role holds

from dataclasses import dataclass
from enum import Enum
from typing import List, Set


class UserType(str, Enum):
    """Actor roles in the campaign lifecycle."""
    CLIENT = "client"
    AGENCY = "agency"
    INFLUENCER = "influencer"
    ADMIN = "admin"


class Permission(str, Enum):
    """Fine-grained campaign permissions."""

    # Client permissions
    CREATE_CAMPAIGNS = "create_campaigns"
    EDIT_OWN_CAMPAIGNS = "edit_own_campaigns"
    PLACE_CAMPAIGNS = "place_campaigns"
    FUND_CAMPAIGNS = "fund_campaigns"
    RATE_CAMPAIGNS = "rate_campaigns"
    REPORT_ISSUES = "report_issues"

    # Negotiation
    NEGOTIATE_BUDGET = "negotiate_budget"
    SEND_QUOTES = "send_quotes"

    # Execution
    MANAGE_ASSIGNMENTS = "manage_assignments"
    RESPOND_TO_OFFERS = "respond_to_offers"
    SUBMIT_MILESTONES = "submit_milestones"
    REVIEW_MILESTONES = "review_milestones"

    # Common
    VIEW_CAMPAIGNS = "view_campaigns"
    VIEW_NOTIFICATIONS = "view_notifications"

    # Admin permissions
    VIEW_ALL_CAMPAIGNS = "view_all_campaigns"
    VERIFY_PAYMENTS = "verify_payments"
    RECORD_PAYOUTS = "record_payouts"
    MANAGE_PLATFORM = "manage_platform"


# Role to permissions mapping
ROLE_PERMISSIONS: dict[UserType, Set[Permission]] = {
    UserType.CLIENT: {
        Permission.CREATE_CAMPAIGNS,
        Permission.EDIT_OWN_CAMPAIGNS,
        Permission.PLACE_CAMPAIGNS,
        Permission.FUND_CAMPAIGNS,
        Permission.RATE_CAMPAIGNS,
        Permission.REPORT_ISSUES,
        Permission.NEGOTIATE_BUDGET,
        Permission.REVIEW_MILESTONES,
        Permission.VIEW_CAMPAIGNS,
        Permission.VIEW_NOTIFICATIONS,
    },

    UserType.AGENCY: {
        Permission.NEGOTIATE_BUDGET,
        Permission.MANAGE_ASSIGNMENTS,
        Permission.RESPOND_TO_OFFERS,
        Permission.SUBMIT_MILESTONES,
        Permission.VIEW_CAMPAIGNS,
        Permission.VIEW_NOTIFICATIONS,
    },

    UserType.INFLUENCER: {
        Permission.RESPOND_TO_OFFERS,
        Permission.SUBMIT_MILESTONES,
        Permission.VIEW_CAMPAIGNS,
        Permission.VIEW_NOTIFICATIONS,
    },

    UserType.ADMIN: {
        # Admin has ALL permissions
        *Permission.__members__.values()
    },
}


@dataclass(frozen=True)
class Actor:
    """Verified caller identity handed to the lifecycle services."""
    actor_id: str  # user id
    role: UserType

    @property
    def is_admin(self) -> bool:
        return self.role == UserType.ADMIN

    @classmethod
    def from_user(cls, user) -> "Actor":
        raw = user.user_type.value if hasattr(user.user_type, "value") else user.user_type
        return cls(actor_id=user.id, role=UserType(str(raw).lower()))


def get_permissions_for_role(user_type: UserType) -> Set[Permission]:
    """Get all permissions for a given user type."""
    return ROLE_PERMISSIONS.get(user_type, set())


def has_permission(user_type: UserType, permission: Permission) -> bool:
    """Check if a user type has a specific permission."""
    return permission in get_permissions_for_role(user_type)


def has_any_permission(user_type: UserType, permissions: List[Permission]) -> bool:
    """Check if a user type has any of the given permissions."""
    user_permissions = get_permissions_for_role(user_type)
    return any(p in user_permissions for p in permissions)
