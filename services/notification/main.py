# Run:
# uvicorn services.notification.main:app --host 0.0.0.0 --port 20001 --reload
# Docs: http://127.0.0.1:20001/docs

from dotenv import load_dotenv
from fastapi import APIRouter, Depends, Query

# Load environment variables from .env file
load_dotenv()

from common.constants import API_PREFIX
from libs.fastapi_service import FastAPIServiceFactory, ServiceAppConfig, success_response
from services.container import ServiceContainer, get_container, lifespan

router = APIRouter(prefix=f"{API_PREFIX}/notifications", tags=["Notifications"])


@router.get("/users/{user_id}")
async def list_notifications(
    user_id: str,
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    container: ServiceContainer = Depends(get_container),
):
    items, unread = await container.inbox.list_for_user(
        user_id, unread_only=unread_only, limit=limit
    )
    return success_response(
        {"notifications": items, "unread_count": unread}, "Notifications retrieved"
    )


@router.post("/users/{user_id}/read-all")
async def mark_all_read(user_id: str, container: ServiceContainer = Depends(get_container)):
    changed = await container.inbox.mark_all_read(user_id)
    return success_response({"updated": changed}, "All notifications marked as read")


@router.post("/users/{user_id}/{notification_id}/read")
async def mark_read(
    user_id: str, notification_id: str, container: ServiceContainer = Depends(get_container)
):
    notification = await container.inbox.mark_read(user_id, notification_id)
    return success_response(notification, "Notification marked as read")


factory = FastAPIServiceFactory(
    ServiceAppConfig(
        title="Notification Service",
        description="In-app notification inbox APIs.",
        service_name="notification",
        lifespan=lifespan,
    )
)
app = factory.create_app()
app.include_router(router)


@app.get("/")
async def root():
    return {"service": "notification", "status": "running"}
