# Run:
# uvicorn services.safety_scoring.main:app --host 0.0.0.0 --port 20003 --reload
# Docs: http://127.0.0.1:20003/docs

from datetime import datetime
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()

from common.constants import API_PREFIX
from common.schemas import LocationSample, as_utc, utcnow
from common.types import LocationSource
from libs.fastapi_service import FastAPIServiceFactory, ServiceAppConfig, success_response
from libs.geo import Coordinate
from services.container import ServiceContainer, get_container, lifespan

router = APIRouter(prefix=f"{API_PREFIX}/safety", tags=["Safety Scoring"])


class HistoryPoint(BaseModel):
    location: Coordinate
    timestamp: datetime


class AssessRequest(BaseModel):
    location: Coordinate
    timestamp: Optional[datetime] = None
    recent_alert_count: int = Field(default=0, ge=0)
    history: List[HistoryPoint] = Field(default_factory=list)
    source: LocationSource = LocationSource.PING


@router.post("/assess")
async def assess(body: AssessRequest, container: ServiceContainer = Depends(get_container)):
    """Score a location/time without storing anything."""
    history = [
        LocationSample(user_id="adhoc", coordinate=p.location, timestamp=as_utc(p.timestamp))
        for p in body.history
    ]
    assessment = container.scorer.assess(
        body.location,
        as_utc(body.timestamp) if body.timestamp else utcnow(),
        recent_alert_count=body.recent_alert_count,
        history=history,
        source=body.source,
    )
    return success_response(assessment, "Safety assessment calculated")


factory = FastAPIServiceFactory(
    ServiceAppConfig(
        title="Safety Scoring Service",
        description="Location/time safety scoring APIs.",
        service_name="safety_scoring",
        lifespan=lifespan,
    )
)
app = factory.create_app()
app.include_router(router)


@app.get("/")
async def root():
    return {"service": "safety_scoring", "status": "running"}
