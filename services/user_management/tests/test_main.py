# pytest services/user_management/tests/test_main.py -q

import pytest
from fastapi.testclient import TestClient

import libs.audit_logger as audit_logger
from services.container import get_container
from services.user_management.main import app

pytestmark = pytest.mark.unit

CONTACT = {
    "contact_id": "c1",
    "name": "Mum",
    "phone": "+919800000001",
    "email": "mum@example.com",
    "relationship": "parent",
    "is_primary": True,
}


@pytest.fixture()
def client(container, monkeypatch):
    monkeypatch.setattr(audit_logger, "audit_logs", [])
    app.dependency_overrides[get_container] = lambda: container
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _profile(client, name="Asha Verma", **extra):
    return client.put("/api/v1/users/tourist-1", json={"name": name, **extra})


def test_root(client):
    assert client.get("/").json() == {"service": "user_management", "status": "running"}


def test_profile_upsert_and_get(client):
    res = _profile(client, nationality="IN")
    assert res.status_code == 200, res.text
    assert res.json()["data"]["preferred_language"] == "en"

    _profile(client, name="Asha V.", preferred_language="hi")
    data = client.get("/api/v1/users/tourist-1").json()["data"]
    assert data["name"] == "Asha V."
    assert data["preferred_language"] == "hi"
    assert data["nationality"] is None

    assert audit_logger.audit_logs[-1]["event_type"] == "user_management"


def test_unknown_profile_is_404(client):
    res = client.get("/api/v1/users/ghost")
    assert res.status_code == 404


def test_profile_requires_name(client):
    assert _profile(client, name="").status_code == 400


def test_contacts_lifecycle(client):
    _profile(client)

    res = client.put("/api/v1/users/tourist-1/contacts", json=CONTACT)
    assert res.status_code == 200
    client.put("/api/v1/users/tourist-1/contacts", json=dict(CONTACT, name="Mother"))

    contacts = client.get("/api/v1/users/tourist-1/contacts").json()["data"]
    assert len(contacts) == 1
    assert contacts[0]["name"] == "Mother"

    assert client.delete("/api/v1/users/tourist-1/contacts/c1").status_code == 200
    assert client.delete("/api/v1/users/tourist-1/contacts/c1").status_code == 404
    assert client.get("/api/v1/users/tourist-1/contacts").json()["data"] == []


def test_contact_for_unknown_user_is_404(client):
    res = client.put("/api/v1/users/ghost/contacts", json=CONTACT)
    assert res.status_code == 404
