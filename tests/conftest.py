"""Shared pytest fixtures: an in-memory database, seeded parties and campaign factories."""

import os

# module-level engine in database.config must not reach for postgres
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from auth.roles import Actor, UserType
from database.models import (
    Base, User, UserTypeDB, ClientProfile, AgencyProfile, InfluencerProfile,
)
from database import campaign_models  # noqa: F401
from database.campaign_models import CampaignType, PartyType
from services.assignment_service import AssignmentService, OfferRequest, DeliveryAddress
from services.campaign_service import CampaignService
from services.negotiation_service import NegotiationService


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# Parties
# =============================================================================

def _make_user(db, email, user_type, name=None):
    user = User(email=email, name=name or email.split("@")[0], user_type=user_type, is_active=True)
    db.add(user)
    db.flush()
    return user


@pytest.fixture
def parties(db):
    """One client, one admin, one agency and three influencers."""
    client_user = _make_user(db, "client@brand.test", UserTypeDB.CLIENT)
    admin_user = _make_user(db, "admin@platform.test", UserTypeDB.ADMIN)
    agency_user = _make_user(db, "agency@agency.test", UserTypeDB.AGENCY)

    client = ClientProfile(user_id=client_user.id, company_name="Brand Co")
    agency = AgencyProfile(user_id=agency_user.id, agency_name="Reach Agency")
    db.add_all([client, agency])

    influencers = []
    influencer_users = []
    for i in range(3):
        user = _make_user(db, f"creator{i}@social.test", UserTypeDB.INFLUENCER)
        profile = InfluencerProfile(user_id=user.id, display_name=f"Creator {i}", niche="beauty")
        db.add(profile)
        influencers.append(profile)
        influencer_users.append(user)
    db.commit()

    return {
        "client": client,
        "client_user": client_user,
        "admin_user": admin_user,
        "agency": agency,
        "agency_user": agency_user,
        "influencers": influencers,
        "influencer_users": influencer_users,
    }


@pytest.fixture
def client_actor(parties):
    return Actor(parties["client_user"].id, UserType.CLIENT)


@pytest.fixture
def admin_actor(parties):
    return Actor(parties["admin_user"].id, UserType.ADMIN)


@pytest.fixture
def agency_actor(parties):
    return Actor(parties["agency_user"].id, UserType.AGENCY)


@pytest.fixture
def influencer_actors(parties):
    return [Actor(u.id, UserType.INFLUENCER) for u in parties["influencer_users"]]


# =============================================================================
# Campaign factories
# =============================================================================

MILESTONES = [
    {"content_title": "Unboxing reel", "platform": "instagram", "expected_reach": 5000},
    {"content_title": "Tutorial video", "platform": "tiktok", "expected_reach": 8000},
]


@pytest.fixture
def make_draft(db, parties):
    """Complete, unplaced draft that passes placement checks."""
    def _make(milestones=None, base_budget="10000", need_sample_product=False):
        service = CampaignService(db)
        campaign = service.create_draft(parties["client"].id, "Summer Launch", CampaignType.INFLUENCER_PROMOTION)
        service.update_targeting(campaign.id, product_type="cosmetics", niche="beauty")
        service.update_details(
            campaign.id,
            goals="Drive awareness for the new range",
            starting_date=datetime.utcnow() + timedelta(days=7),
            duration_days=30,
        )
        service.update_budget(campaign.id, base_budget, milestones if milestones is not None else MILESTONES)
        service.update_assets(campaign.id, need_sample_product=need_sample_product)
        return campaign
    return _make


@pytest.fixture
def make_placed(db, make_draft, client_actor):
    def _make(**kwargs):
        campaign = make_draft(**kwargs)
        return CampaignService(db).place(campaign.id, client_actor)
    return _make


@pytest.fixture
def make_accepted(db, make_placed, admin_actor, client_actor):
    """Campaign quoted by the admin at the given base and accepted by the client."""
    def _make(quote="10000", **kwargs):
        campaign = make_placed(**kwargs)
        negotiations = NegotiationService(db)
        negotiations.send_quote(campaign.id, admin_actor, quote)
        return negotiations.accept(campaign.id, client_actor)
    return _make


@pytest.fixture
def make_funded(db, make_accepted, client_actor):
    """Accepted campaign paid in full (status PAID)."""
    def _make(**kwargs):
        campaign = make_accepted(**kwargs)
        return CampaignService(db).fund(campaign.id, campaign.total_budget, client_actor)
    return _make


@pytest.fixture
def make_active(db, make_funded, parties, admin_actor, influencer_actors):
    """Funded campaign with one influencer who accepted the offer (status ACTIVE)."""
    def _make(**kwargs):
        campaign = make_funded(**kwargs)
        assignments = AssignmentService(db)
        offer = OfferRequest(PartyType.INFLUENCER, parties["influencers"][0].id, Decimal("4000"))
        (assignment,) = assignments.create_assignments(campaign.id, [offer], admin_actor)
        assignments.respond(assignment.id, influencer_actors[0], accept=True, delivery=DeliveryAddress("1 Test Road"))
        db.refresh(campaign)
        return campaign
    return _make
