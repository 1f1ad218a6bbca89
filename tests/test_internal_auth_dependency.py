# tests/test_internal_auth_dependency.py
import logging
from http import HTTPStatus

from app.api.dependencies import internal_auth as auth_module

PAYLOAD = {
    "spec": {"frequency": "weekly", "time_of_day": "10:00", "anchor": {"weekday": "monday"}},
    "reference_instant": "2025-03-05T12:00:00Z",
}


class DummySettingsProd:
    APP_ENV = "prod"
    INTERNAL_API_KEY = "supersecret"


class DummySettingsProdNoKey:
    APP_ENV = "prod"
    INTERNAL_API_KEY = None


class DummySettingsLocalWithKey:
    APP_ENV = "local"
    INTERNAL_API_KEY = "localsecret"


def test_internal_endpoint_401_when_key_missing_in_prod(monkeypatch, client):
    """
    In non-local env (APP_ENV='prod') with INTERNAL_API_KEY set, calling an
    /internal endpoint without the X-Internal-Api-Key header should return 401.
    """
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsProd())

    resp = client.post("/internal/next-occurrence", json=PAYLOAD)
    assert resp.status_code == HTTPStatus.UNAUTHORIZED
    body = resp.json()
    assert "invalid or missing" in body["detail"].lower()


def test_internal_endpoint_401_when_key_wrong_in_prod(monkeypatch, client):
    """
    Wrong key => 401.
    """
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsProd())

    resp = client.post(
        "/internal/next-occurrence",
        json=PAYLOAD,
        headers={"X-Internal-Api-Key": "wrong-key"},
    )
    assert resp.status_code == HTTPStatus.UNAUTHORIZED
    body = resp.json()
    assert "invalid or missing" in body["detail"].lower()


def test_internal_endpoint_200_when_key_correct_in_prod(monkeypatch, client):
    """
    Correct key => request goes through (200).
    """
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsProd())

    resp = client.post(
        "/internal/next-occurrence",
        json=PAYLOAD,
        headers={"X-Internal-Api-Key": "supersecret"},
    )
    assert resp.status_code == HTTPStatus.OK
    data = resp.json()
    assert data["local_date"] == "2025-03-10"


def test_internal_endpoint_500_when_prod_key_not_configured(monkeypatch, client):
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsProdNoKey())

    resp = client.post("/internal/next-occurrence", json=PAYLOAD)
    assert resp.status_code == HTTPStatus.INTERNAL_SERVER_ERROR


def test_local_env_enforces_key_once_configured(monkeypatch, client):
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsLocalWithKey())

    assert client.post("/internal/next-occurrence", json=PAYLOAD).status_code == HTTPStatus.UNAUTHORIZED
    resp = client.post(
        "/internal/next-occurrence",
        json=PAYLOAD,
        headers={"X-Internal-Api-Key": "localsecret"},
    )
    assert resp.status_code == HTTPStatus.OK


def test_rejected_call_is_logged_without_the_key(monkeypatch, client, caplog):
    monkeypatch.setattr(auth_module, "get_settings", lambda: DummySettingsProd())

    with caplog.at_level(logging.WARNING, logger="app.api.dependencies.internal_auth"):
        resp = client.post(
            "/internal/next-occurrence",
            json=PAYLOAD,
            headers={"X-Internal-Api-Key": "wrong-key"},
        )

    assert resp.status_code == HTTPStatus.UNAUTHORIZED
    messages = [record.getMessage() for record in caplog.records]
    assert any("Rejected /internal call" in m for m in messages)
    assert not any("wrong-key" in m for m in messages)
