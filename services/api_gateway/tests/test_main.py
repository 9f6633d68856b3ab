# pytest services/api_gateway/tests/test_main.py -q

import pytest
from fastapi.testclient import TestClient

from main import app as index_app
from services.api_gateway.main import app
from services.container import get_container

pytestmark = pytest.mark.unit


@pytest.fixture()
def client(container):
    app.dependency_overrides[get_container] = lambda: container
    with TestClient(app) as c:
        yield c
        c.portal.call(container.task_queue.stop)
    app.dependency_overrides.clear()


def test_service_index_lists_every_service():
    services = TestClient(index_app).get("/").json()["services"]
    assert set(services) == {
        "user_management",
        "notification",
        "location",
        "safety_scoring",
        "zones",
        "consent",
        "sos",
        "gateway",
    }
    assert services["sos"] == "http://127.0.0.1:20006/docs"


def test_gateway_serves_every_router(client):
    assert client.get("/health").json() == {"status": "ok", "service": "gateway"}
    assert client.get("/api/v1/zones").status_code == 200
    assert client.get("/api/v1/notifications/users/tourist-1").status_code == 200
    assert client.get("/api/v1/consent/users/tourist-1").status_code == 200
    assert client.get("/api/v1/alerts/users/tourist-1/summary").status_code == 200
    assert client.get("/api/v1/users/ghost").status_code == 404


def test_end_to_end_tourist_flow(client, container, seed_tourist, fake_sink):
    client.portal.call(seed_tourist, container.user_store)

    ping = client.post(
        "/api/v1/location/ping",
        json={"user_id": "tourist-1", "location": {"latitude": 28.64, "longitude": 77.21}},
    )
    assert ping.status_code == 201
    assert ping.json()["data"]["zone"]["zone_id"] == "paharganj"

    sos = client.post(
        "/api/v1/alerts/sos",
        json={"user_id": "tourist-1", "location": {"latitude": 28.64, "longitude": 77.21}},
    )
    assert sos.status_code == 201
    alert_id = sos.json()["data"]["id"]
    client.portal.call(container.task_queue.join)

    alert = client.get(f"/api/v1/alerts/{alert_id}").json()["data"]
    assert len(alert["responders"]) == 2
    assert len(fake_sink.emails) == 3
    # risk zone warning + SOS confirmation
    assert len(fake_sink.pushes) == 2

    resolved = client.patch(f"/api/v1/alerts/{alert_id}/status", json={"status": "resolved"})
    assert resolved.status_code == 200


def test_gateway_metrics_include_domain_registries(client):
    client.post(
        "/api/v1/location/ping",
        json={"user_id": "tourist-1", "location": {"latitude": 28.64, "longitude": 77.21}},
    )
    text = client.get("/metrics").text
    assert "location_samples_total" in text
    assert "sos_alerts_created_total" in text
