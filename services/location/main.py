# Run:
# uvicorn services.location.main:app --host 0.0.0.0 --port 20002 --reload
# Docs: http://127.0.0.1:20002/docs

from datetime import datetime
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()

from common.constants import API_PREFIX, LOCATION_HISTORY_LIMIT
from common.types import LocationSource
from libs.fastapi_service import FastAPIServiceFactory, ServiceAppConfig, success_response
from libs.geo import Coordinate
from services.container import ServiceContainer, get_container, lifespan
from services.location.service import registry as location_registry

router = APIRouter(prefix=f"{API_PREFIX}/location", tags=["Location"])


class PingRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    location: Coordinate
    timestamp: Optional[datetime] = None
    accuracy: Optional[float] = Field(default=None, ge=0)
    speed: Optional[float] = Field(default=None, ge=0)
    source: LocationSource = LocationSource.PING


class BatchSample(BaseModel):
    location: Coordinate
    timestamp: datetime
    accuracy: Optional[float] = Field(default=None, ge=0)
    speed: Optional[float] = Field(default=None, ge=0)
    source: LocationSource = LocationSource.PING


class BatchRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    samples: List[BatchSample] = Field(..., min_length=1, max_length=500)


@router.post("/ping", status_code=201)
async def record_ping(body: PingRequest, container: ServiceContainer = Depends(get_container)):
    result = await container.location_service.record_ping(
        body.user_id,
        body.location,
        timestamp=body.timestamp,
        accuracy=body.accuracy,
        speed=body.speed,
        source=body.source,
    )
    return success_response(result, "Location recorded")


@router.post("/batch", status_code=201)
async def record_batch(body: BatchRequest, container: ServiceContainer = Depends(get_container)):
    """Offline sync of buffered samples."""
    results = await container.location_service.record_batch(
        body.user_id,
        [
            {
                "coordinate": s.location,
                "timestamp": s.timestamp,
                "accuracy": s.accuracy,
                "speed": s.speed,
                "source": s.source,
            }
            for s in body.samples
        ],
    )
    return success_response(
        {"recorded": len(results), "results": results}, f"{len(results)} locations synced"
    )


@router.get("/users/{user_id}/history")
async def location_history(
    user_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = Query(LOCATION_HISTORY_LIMIT, ge=1, le=LOCATION_HISTORY_LIMIT),
    container: ServiceContainer = Depends(get_container),
):
    samples = await container.location_service.history(user_id, start=start, end=end, limit=limit)
    return success_response(samples, "Location history retrieved")


@router.get("/users/{user_id}/safety-score")
async def safety_score(user_id: str, container: ServiceContainer = Depends(get_container)):
    assessment = await container.location_service.user_safety_score(user_id)
    return success_response(assessment, "Safety score calculated")


factory = FastAPIServiceFactory(
    ServiceAppConfig(
        title="Location Service",
        description="Location pings, offline sync, history and safety score APIs.",
        service_name="location",
        lifespan=lifespan,
    )
)
app = factory.create_app()
factory.include_registry(location_registry)
app.include_router(router)


@app.get("/")
async def root():
    return {"service": "location", "status": "running"}
