# FastAPI Server for the Campaign Lifecycle API

import logging
import sys

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

from core.exceptions import CampaignError
from database.config import init_db
from routers import (
    client_campaigns_router,
    admin_campaigns_router,
    agency_campaigns_router,
    influencer_campaigns_router,
    notifications_router,
)

load_dotenv()

# Configure Logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Campaign Lifecycle API",
    description="Influencer marketing campaigns: quoting, negotiation, funding, invitations and milestones",
    version="1.0.0"
)


@app.on_event("startup")
def startup_event():
    # Tables are owned by alembic in deployed environments; create_all only fills gaps
    init_db()
    logger.info("Database tables initialized")


# CORS Setup - Allow all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,  # Required when using "*"
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CampaignError)
async def campaign_error_handler(request: Request, exc: CampaignError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ============================================================================
# CAMPAIGN ROUTERS (v2 API)
# ============================================================================
app.include_router(client_campaigns_router, prefix="/api/v2")
app.include_router(admin_campaigns_router, prefix="/api/v2")
app.include_router(agency_campaigns_router, prefix="/api/v2")
app.include_router(influencer_campaigns_router, prefix="/api/v2")
app.include_router(notifications_router, prefix="/api/v2")


@app.get("/health")
def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
