# Run:
# uvicorn services.consent.main:app --host 0.0.0.0 --port 20005 --reload
# Docs: http://127.0.0.1:20005/docs

from dotenv import load_dotenv
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()

from common.constants import API_PREFIX
from common.types import ConsentType
from libs.fastapi_service import FastAPIServiceFactory, ServiceAppConfig, success_response
from services.container import ServiceContainer, get_container, lifespan

router = APIRouter(prefix=f"{API_PREFIX}/consent", tags=["Consent"])


class ConsentRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    type: ConsentType
    granted: bool
    purpose: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)


class RevokeRequest(BaseModel):
    purpose: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)


@router.post("", status_code=201)
async def record_consent(body: ConsentRequest, container: ServiceContainer = Depends(get_container)):
    record = await container.consent_service.record(
        body.user_id, body.type, body.granted, body.purpose, body.version
    )
    return success_response(record, "Consent recorded")


@router.get("/users/{user_id}")
async def consent_history(user_id: str, container: ServiceContainer = Depends(get_container)):
    records = await container.consent_service.history(user_id)
    return success_response(records, "Consent history retrieved")


@router.get("/users/{user_id}/{consent_type}")
async def current_consent(
    user_id: str, consent_type: ConsentType, container: ServiceContainer = Depends(get_container)
):
    record = await container.consent_service.current(user_id, consent_type)
    return success_response(record, "Current consent retrieved")


@router.post("/users/{user_id}/{consent_type}/revoke")
async def revoke_consent(
    user_id: str,
    consent_type: ConsentType,
    body: RevokeRequest,
    container: ServiceContainer = Depends(get_container),
):
    record = await container.consent_service.revoke(
        user_id, consent_type, body.purpose, body.version
    )
    return success_response(record, "Consent revoked")


factory = FastAPIServiceFactory(
    ServiceAppConfig(
        title="Consent Service",
        description="Append-only consent log APIs.",
        service_name="consent",
        lifespan=lifespan,
    )
)
app = factory.create_app()
app.include_router(router)


@app.get("/")
async def root():
    return {"service": "consent", "status": "running"}
