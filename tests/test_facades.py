"""Role and ownership checks in the per-role campaign facades."""

from decimal import Decimal

import pytest

from auth.roles import Actor, UserType
from core.exceptions import ForbiddenError, InvalidTransitionError
from database.campaign_models import CampaignType, PartyType
from database.models import User, UserTypeDB, ClientProfile
from services.assignment_service import OfferRequest
from services.campaign_service import CampaignService
from services.facades import (
    ClientCampaignFacade, AdminCampaignFacade, AgencyCampaignFacade, InfluencerCampaignFacade,
)


@pytest.fixture
def other_client_actor(db):
    user = User(email="rival@brand.test", name="rival", user_type=UserTypeDB.CLIENT, is_active=True)
    db.add(user)
    db.flush()
    db.add(ClientProfile(user_id=user.id, company_name="Rival Co"))
    db.commit()
    return Actor(user.id, UserType.CLIENT)


def test_wrong_role_is_refused(db, client_actor):
    with pytest.raises(ForbiddenError):
        AdminCampaignFacade(db, client_actor)


def test_client_sees_only_own_campaigns(db, make_draft, other_client_actor):
    campaign = make_draft()
    facade = ClientCampaignFacade(db, other_client_actor)

    with pytest.raises(ForbiddenError):
        facade.get_campaign(campaign.id)
    with pytest.raises(ForbiddenError):
        facade.update_basic_info(campaign.id, name="Hijacked")
    assert facade.list_campaigns() == []


def test_client_wizard_through_facade(db, parties, client_actor):
    facade = ClientCampaignFacade(db, client_actor)

    campaign = facade.create_draft("Autumn", CampaignType.PAID_AD)
    campaign = facade.update_basic_info(campaign.id, name="Autumn Drop")

    assert campaign.client_id == parties["client"].id
    assert [c.id for c in facade.list_campaigns()] == [campaign.id]


def test_influencer_has_no_negotiation_history(db, make_active, influencer_actors):
    campaign = make_active()
    facade = InfluencerCampaignFacade(db, influencer_actors[0])

    assert facade.get_campaign(campaign.id).id == campaign.id
    with pytest.raises(ForbiddenError):
        facade.negotiation_history(campaign.id)


def test_influencer_without_offer_cannot_read(db, make_active, influencer_actors):
    campaign = make_active()

    with pytest.raises(ForbiddenError):
        InfluencerCampaignFacade(db, influencer_actors[1]).get_campaign(campaign.id)


def test_agency_sends_influencer_offers_only(db, make_placed, parties, admin_actor, agency_actor, client_actor):
    campaign = make_placed()
    CampaignService(db).assign_agency(campaign.id, parties["agency"].id)
    facade = AgencyCampaignFacade(db, agency_actor)
    facade.send_quote(campaign.id, "10000")
    campaign = ClientCampaignFacade(db, client_actor).accept_budget(campaign.id)
    CampaignService(db).fund(campaign.id, campaign.total_budget, client_actor)

    with pytest.raises(InvalidTransitionError):
        facade.create_assignments(campaign.id, [OfferRequest(PartyType.AGENCY, parties["agency"].id, Decimal("100"))])

    created = facade.create_assignments(
        campaign.id, [OfferRequest(PartyType.INFLUENCER, parties["influencers"][0].id, Decimal("3000"))],
    )
    assert len(created) == 1


def test_agency_cannot_manage_foreign_campaign(db, make_placed, agency_actor):
    campaign = make_placed()

    with pytest.raises(ForbiddenError):
        AgencyCampaignFacade(db, agency_actor).send_quote(campaign.id, "10000")


def test_admin_sees_everything(db, make_draft, admin_actor):
    campaign = make_draft()

    facade = AdminCampaignFacade(db, admin_actor)

    assert facade.get_campaign(campaign.id).id == campaign.id
    assert campaign.id in [c.id for c in facade.list_campaigns()]


def test_base_facade_is_abstract(db, client_actor):
    from services.facades import _CampaignFacade

    with pytest.raises(TypeError):
        _CampaignFacade(db, client_actor)
