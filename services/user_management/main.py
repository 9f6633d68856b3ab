# Run:
# uvicorn services.user_management.main:app --host 0.0.0.0 --port 20000 --reload
# Docs: http://127.0.0.1:20000/docs

from typing import Optional

from dotenv import load_dotenv
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()

from common.constants import API_PREFIX
from common.schemas import EmergencyContact, UserProfile
from libs.fastapi_service import FastAPIServiceFactory, ServiceAppConfig, success_response
from services.container import ServiceContainer, get_container, lifespan

router = APIRouter(prefix=f"{API_PREFIX}/users", tags=["User Management"])


class ProfileRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = None
    phone: Optional[str] = None
    nationality: Optional[str] = None
    preferred_language: str = "en"


@router.put("/{user_id}")
async def upsert_profile(
    user_id: str, body: ProfileRequest, container: ServiceContainer = Depends(get_container)
):
    """Create or replace a profile; the last write wins."""
    profile = await container.user_store.upsert_user(
        UserProfile(user_id=user_id, **body.model_dump())
    )
    await container.audit.record(
        event_type="user_management", message="Profile saved", user_id=user_id
    )
    return success_response(profile, "Profile saved")


@router.get("/{user_id}")
async def get_profile(user_id: str, container: ServiceContainer = Depends(get_container)):
    profile = await container.user_store.get_user(user_id)
    return success_response(profile, "Profile retrieved")


@router.put("/{user_id}/contacts")
async def upsert_contact(
    user_id: str, contact: EmergencyContact, container: ServiceContainer = Depends(get_container)
):
    """Create or replace an emergency contact keyed by contact_id."""
    saved = await container.user_store.upsert_contact(user_id, contact)
    return success_response(saved, "Emergency contact saved")


@router.get("/{user_id}/contacts")
async def list_contacts(user_id: str, container: ServiceContainer = Depends(get_container)):
    contacts = await container.user_store.get_emergency_contacts(user_id)
    return success_response(contacts, "Emergency contacts retrieved")


@router.delete("/{user_id}/contacts/{contact_id}")
async def remove_contact(
    user_id: str, contact_id: str, container: ServiceContainer = Depends(get_container)
):
    await container.user_store.remove_contact(user_id, contact_id)
    return success_response({"contact_id": contact_id}, "Emergency contact removed")


factory = FastAPIServiceFactory(
    ServiceAppConfig(
        title="User Management Service",
        description="Tourist profile and emergency contact APIs.",
        service_name="user_management",
        lifespan=lifespan,
    )
)
app = factory.create_app()
app.include_router(router)


@app.get("/")
async def root():
    return {"service": "user_management", "status": "running"}
