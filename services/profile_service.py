# Profile Directory
# Resolves user ids to the client/agency/influencer profiles the campaign core works with

from typing import Iterable, List
from sqlalchemy.orm import Session

from core.exceptions import NotFoundError
from database.models import User, UserTypeDB, ClientProfile, AgencyProfile, InfluencerProfile


class ProfileDirectory:
    def __init__(self, db: Session):
        self.db = db

    def client_for_user(self, user_id: str) -> ClientProfile:
        profile = self.db.query(ClientProfile).filter(ClientProfile.user_id == user_id).first()
        if not profile:
            raise NotFoundError("Client profile not found")
        return profile

    def agency_for_user(self, user_id: str) -> AgencyProfile:
        profile = self.db.query(AgencyProfile).filter(AgencyProfile.user_id == user_id).first()
        if not profile:
            raise NotFoundError("Agency profile not found")
        return profile

    def influencer_for_user(self, user_id: str) -> InfluencerProfile:
        profile = self.db.query(InfluencerProfile).filter(InfluencerProfile.user_id == user_id).first()
        if not profile:
            raise NotFoundError("Influencer profile not found")
        return profile

    def get_agency(self, agency_id: str) -> AgencyProfile:
        agency = self.db.query(AgencyProfile).filter(AgencyProfile.id == agency_id).first()
        if not agency:
            raise NotFoundError("Agency not found")
        return agency

    def influencers_by_id(self, influencer_ids: Iterable[str]) -> List[InfluencerProfile]:
        """Load influencers, raising NotFound that lists every unknown id."""
        ids = list(dict.fromkeys(influencer_ids))
        if not ids:
            return []
        found = self.db.query(InfluencerProfile).filter(InfluencerProfile.id.in_(ids)).all()
        missing = set(ids) - {p.id for p in found}
        if missing:
            raise NotFoundError(
                "Influencers not found",
                errors=[f"Unknown influencer id: {i}" for i in sorted(missing)],
            )
        return found

    def agencies_by_id(self, agency_ids: Iterable[str]) -> List[AgencyProfile]:
        ids = list(dict.fromkeys(agency_ids))
        if not ids:
            return []
        found = self.db.query(AgencyProfile).filter(AgencyProfile.id.in_(ids)).all()
        missing = set(ids) - {a.id for a in found}
        if missing:
            raise NotFoundError(
                "Agencies not found",
                errors=[f"Unknown agency id: {i}" for i in sorted(missing)],
            )
        return found

    def admin_user_ids(self) -> List[str]:
        rows = self.db.query(User.id).filter(
            User.user_type == UserTypeDB.ADMIN,
            User.is_active == True  # noqa: E712
        ).all()
        return [row[0] for row in rows]
