# Run:
# uvicorn services.sos.main:app --host 0.0.0.0 --port 20006 --reload
# Docs: http://127.0.0.1:20006/docs

from datetime import datetime
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()

from common.constants import API_PREFIX, DEFAULT_HISTORY_PAGE_SIZE
from common.schemas import as_utc
from common.types import AlertStatus
from libs.fastapi_service import FastAPIServiceFactory, ServiceAppConfig, success_response
from libs.geo import Coordinate
from libs.task_queue import registry as task_queue_registry
from services.container import ServiceContainer, get_container, lifespan
from services.sos.coordinator import registry as sos_registry

router = APIRouter(prefix=f"{API_PREFIX}/alerts", tags=["Alerts"])


class SOSRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    location: Coordinate
    accuracy: Optional[float] = Field(default=None, ge=0)
    message: Optional[str] = Field(default=None, max_length=500)
    media: List[str] = Field(default_factory=list)


class StatusUpdateRequest(BaseModel):
    status: AlertStatus
    resolver_id: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


class AcknowledgeRequest(BaseModel):
    acknowledged_at: Optional[datetime] = None


@router.post("/sos", status_code=201)
async def trigger_sos(body: SOSRequest, container: ServiceContainer = Depends(get_container)):
    """Create an SOS alert; contacts and responders are notified in the background."""
    alert = await container.coordinator.create_sos(
        body.user_id,
        body.location,
        accuracy=body.accuracy,
        message=body.message,
        media=body.media,
    )
    return success_response(alert, "SOS alert triggered. Emergency contacts are being notified.")


@router.get("/{alert_id}")
async def get_alert(alert_id: str, container: ServiceContainer = Depends(get_container)):
    alert = await container.coordinator.get_alert(alert_id)
    return success_response(alert, "Alert retrieved")


@router.patch("/{alert_id}/status")
async def update_alert_status(
    alert_id: str,
    body: StatusUpdateRequest,
    container: ServiceContainer = Depends(get_container),
):
    alert = await container.coordinator.update_status(
        alert_id, body.status, resolver_id=body.resolver_id, notes=body.notes
    )
    return success_response(alert, f"Alert {body.status.value}")


@router.post("/{alert_id}/responders/{responder_id}/ack")
async def acknowledge_responder(
    alert_id: str,
    responder_id: str,
    body: Optional[AcknowledgeRequest] = None,
    container: ServiceContainer = Depends(get_container),
):
    at_time = as_utc(body.acknowledged_at) if body and body.acknowledged_at else None
    alert = await container.coordinator.acknowledge_responder(alert_id, responder_id, at_time)
    return success_response(alert, "Responder acknowledged")


@router.get("/users/{user_id}/summary")
async def alert_summary(user_id: str, container: ServiceContainer = Depends(get_container)):
    summary = await container.coordinator.alert_summary(user_id)
    return success_response(summary, "Alert summary retrieved")


@router.get("/users/{user_id}/history")
async def alert_history(
    user_id: str,
    limit: int = Query(DEFAULT_HISTORY_PAGE_SIZE, ge=1, le=100),
    page: int = Query(1, ge=1),
    container: ServiceContainer = Depends(get_container),
):
    alerts = await container.coordinator.alert_history(user_id, limit=limit, page=page)
    return success_response(
        {"alerts": alerts, "page": page, "limit": limit}, "Alert history retrieved"
    )


factory = FastAPIServiceFactory(
    ServiceAppConfig(
        title="SOS Service",
        description="SOS alerts, status lifecycle and responder acknowledgement APIs.",
        service_name="sos",
        lifespan=lifespan,
    )
)
app = factory.create_app()
factory.include_registry(sos_registry)
factory.include_registry(task_queue_registry)
app.include_router(router)


@app.get("/")
async def root():
    return {"service": "sos", "status": "running"}
