# Campaign Routers Module
# Exports the role-scoped API routers

from routers.client_campaigns import router as client_campaigns_router
from routers.admin_campaigns import router as admin_campaigns_router
from routers.agency_campaigns import router as agency_campaigns_router
from routers.influencer_campaigns import router as influencer_campaigns_router
from routers.notifications import router as notifications_router

__all__ = [
    'client_campaigns_router',
    'admin_campaigns_router',
    'agency_campaigns_router',
    'influencer_campaigns_router',
    'notifications_router',
]
