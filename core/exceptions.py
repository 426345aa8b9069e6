# Domain errors raised by the campaign lifecycle services.
# Routers never catch these; server.py maps them onto HTTP responses.

from typing import List, Optional


class CampaignError(Exception):
    """Base class for lifecycle failures. Carries a summary and optional detail list."""

    status_code = 400

    def __init__(self, detail: str, errors: Optional[List[str]] = None):
        super().__init__(detail)
        self.detail = detail
        self.errors = list(errors or [])

    def to_dict(self) -> dict:
        return {"detail": self.detail, "errors": self.errors}


class NotFoundError(CampaignError):
    """Campaign, milestone, assignment or profile does not exist."""
    status_code = 404


class ForbiddenError(CampaignError):
    """Actor does not own the aggregate or has the wrong role."""
    status_code = 403


class InvalidTransitionError(CampaignError):
    """
    Wrong turn, wrong status, terminal-state mutation, duplicate offer or
    incomplete placement data. `errors` lists every violated precondition.
    """
    status_code = 400


class ConflictError(CampaignError):
    """A concurrent transition on the same campaign committed first."""
    status_code = 409
