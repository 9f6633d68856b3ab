# pytest services/notification/tests/test_main.py -q

import pytest
from fastapi.testclient import TestClient

from services.container import get_container
from services.notification.main import app

pytestmark = pytest.mark.unit


@pytest.fixture()
def client(container):
    app.dependency_overrides[get_container] = lambda: container
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _add(client, container, title):
    return client.portal.call(container.inbox.add, "tourist-1", title, f"{title} body")


def test_list_empty_inbox(client):
    res = client.get("/api/v1/notifications/users/tourist-1")
    assert res.status_code == 200
    assert res.json()["data"] == {"notifications": [], "unread_count": 0}


def test_list_mark_read_and_read_all(client, container):
    first = _add(client, container, "First")
    _add(client, container, "Second")
    _add(client, container, "Third")

    data = client.get("/api/v1/notifications/users/tourist-1?limit=2").json()["data"]
    assert [n["title"] for n in data["notifications"]] == ["Third", "Second"]
    assert data["unread_count"] == 3

    res = client.post(f"/api/v1/notifications/users/tourist-1/{first.id}/read")
    assert res.status_code == 200
    assert res.json()["data"]["read"] is True

    data = client.get("/api/v1/notifications/users/tourist-1?unread_only=true").json()["data"]
    assert [n["title"] for n in data["notifications"]] == ["Third", "Second"]

    res = client.post("/api/v1/notifications/users/tourist-1/read-all")
    assert res.json()["data"] == {"updated": 2}


def test_mark_unknown_notification_is_404(client):
    res = client.post("/api/v1/notifications/users/tourist-1/ntf_missing/read")
    assert res.status_code == 404
    assert res.json()["success"] is False


def test_limit_validation(client):
    assert client.get("/api/v1/notifications/users/tourist-1?limit=0").status_code == 400
