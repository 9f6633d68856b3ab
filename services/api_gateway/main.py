# Run:
# uvicorn services.api_gateway.main:app --host 0.0.0.0 --port 8080 --reload
# Every API router in one process

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from common.constants import SERVICES
from libs.fastapi_service import FastAPIServiceFactory, ServiceAppConfig
from libs.task_queue import registry as task_queue_registry
from services.consent.main import router as consent_router
from services.container import lifespan
from services.location.main import router as location_router
from services.location.service import registry as location_registry
from services.notification.main import router as notification_router
from services.safety_scoring.main import router as safety_router
from services.sos.coordinator import registry as sos_registry
from services.sos.main import router as alerts_router
from services.user_management.main import router as users_router
from services.zones.main import router as zones_router

factory = FastAPIServiceFactory(
    ServiceAppConfig(
        title="Tourist Safety Backend",
        description="Location tracking, SOS alerts, zones, safety scoring and consent.",
        service_name="gateway",
        lifespan=lifespan,
    )
)
app = factory.create_app()
for registry in (sos_registry, location_registry, task_queue_registry):
    factory.include_registry(registry)
for router in (
    alerts_router,
    location_router,
    zones_router,
    safety_router,
    notification_router,
    users_router,
    consent_router,
):
    app.include_router(router)


@app.get("/")
async def index():
    return {
        "services": {
            name: f"http://127.0.0.1:{port}/docs" for name, (_module, port) in SERVICES.items()
        }
    }
