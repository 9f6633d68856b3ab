# Run:
# uvicorn services.zones.main:app --host 0.0.0.0 --port 20004 --reload
# Docs: http://127.0.0.1:20004/docs

from typing import List

from dotenv import load_dotenv
from fastapi import APIRouter, Depends

# Load environment variables from .env file
load_dotenv()

from common.constants import API_PREFIX
from common.schemas import Geofence
from libs.fastapi_service import FastAPIServiceFactory, ServiceAppConfig, success_response
from libs.geo import Coordinate
from services.container import ServiceContainer, get_container, lifespan

router = APIRouter(prefix=f"{API_PREFIX}/zones", tags=["Zones"])


@router.get("")
async def list_zones(container: ServiceContainer = Depends(get_container)):
    return success_response(container.zone_index.zones(), "Zones retrieved")


@router.put("")
async def replace_zones(
    zones: List[Geofence], container: ServiceContainer = Depends(get_container)
):
    """Replace the whole zone set; an invalid zone rejects the request and keeps the old set."""
    container.zone_index.load_zones(zones)
    await container.audit.record(
        event_type="zone", message=f"Zone set replaced ({len(zones)} zones)"
    )
    return success_response(container.zone_index.zones(), f"{len(zones)} zones loaded")


@router.post("", status_code=201)
async def upsert_zone(zone: Geofence, container: ServiceContainer = Depends(get_container)):
    container.zone_index.upsert_zone(zone)
    await container.audit.record(
        event_type="zone", message=f"Zone {zone.id} saved", event_id=zone.id
    )
    return success_response(zone, "Zone saved")


@router.get("/{zone_id}")
async def get_zone(zone_id: str, container: ServiceContainer = Depends(get_container)):
    return success_response(container.zone_index.get(zone_id), "Zone retrieved")


@router.delete("/{zone_id}")
async def delete_zone(zone_id: str, container: ServiceContainer = Depends(get_container)):
    container.zone_index.remove_zone(zone_id)
    await container.audit.record(
        event_type="zone", message=f"Zone {zone_id} removed", event_id=zone_id
    )
    return success_response({"zone_id": zone_id}, "Zone removed")


@router.post("/classify")
async def classify_point(point: Coordinate, container: ServiceContainer = Depends(get_container)):
    match = container.zone_index.classify(point)
    message = f"Inside {match.zone_name}" if match else "Not inside any zone"
    return success_response({"in_zone": match is not None, "zone": match}, message)


factory = FastAPIServiceFactory(
    ServiceAppConfig(
        title="Zones Service",
        description="Geofence management and point classification APIs.",
        service_name="zones",
        lifespan=lifespan,
    )
)
app = factory.create_app()
app.include_router(router)


@app.get("/")
async def root():
    return {"service": "zones", "status": "running"}
