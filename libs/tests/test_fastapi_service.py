# pytest libs/tests/test_fastapi_service.py -q

import pytest
from fastapi import APIRouter
from fastapi.testclient import TestClient
from prometheus_client import CollectorRegistry, Counter
from pydantic import BaseModel, Field

from common.errors import DependencyFailure, InvalidTransition, NotFound, ValidationError
from libs.fastapi_service import FastAPIServiceFactory, ServiceAppConfig, success_response

pytestmark = pytest.mark.unit


class Body(BaseModel):
    count: int = Field(..., ge=0)


def _build():
    factory = FastAPIServiceFactory(
        ServiceAppConfig(title="Test", description="test app", service_name="test_svc")
    )
    app = factory.create_app()
    router = APIRouter()

    errors = {
        "validation": ValidationError("bad input"),
        "missing": NotFound("no such thing"),
        "conflict": InvalidTransition("already closed"),
        "upstream": DependencyFailure("provider down"),
    }

    @router.get("/raise/{kind}")
    async def raise_error(kind: str):
        raise errors[kind]

    @router.post("/echo")
    async def echo(body: Body):
        return success_response(body, "echoed")

    app.include_router(router)
    return factory, app


def test_health_endpoint():
    _, app = _build()
    res = TestClient(app).get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok", "service": "test_svc"}


@pytest.mark.parametrize(
    "kind, status",
    [("validation", 400), ("missing", 404), ("conflict", 409), ("upstream", 502)],
)
def test_domain_errors_map_to_envelope(kind, status):
    _, app = _build()
    res = TestClient(app).get(f"/raise/{kind}")
    assert res.status_code == status
    body = res.json()
    assert body["success"] is False
    assert body["message"]


def test_request_validation_is_400():
    _, app = _build()
    res = TestClient(app).post("/echo", json={"count": -1})
    assert res.status_code == 400
    assert res.json()["success"] is False
    assert res.json()["message"] == "Invalid request"


def test_success_envelope():
    _, app = _build()
    res = TestClient(app).post("/echo", json={"count": 3})
    assert res.status_code == 200
    assert res.json() == {"success": True, "message": "echoed", "data": {"count": 3}}


def test_unknown_route_uses_envelope():
    _, app = _build()
    res = TestClient(app).get("/nope")
    assert res.status_code == 404
    assert res.json()["success"] is False


def test_metrics_include_extra_registries():
    factory, app = _build()
    registry = CollectorRegistry()
    counter = Counter("widgets_total", "Widgets", registry=registry)
    counter.inc()
    factory.include_registry(registry)
    factory.include_registry(registry)

    client = TestClient(app)
    client.get("/health")
    text = client.get("/metrics").text

    assert "service_requests_total" in text
    assert text.count("widgets_total 1.0") == 1


def test_request_metrics_use_route_template():
    factory, app = _build()
    client = TestClient(app)
    client.get("/raise/missing")
    client.get("/raise/conflict")

    text = client.get("/metrics").text

    assert 'path="/raise/{kind}"' in text
    assert "/raise/missing" not in text
