import os
import sys
from unittest.mock import MagicMock, patch

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from api import app as app_module
from api.routes import client_routes, system_routes
from config.app_config import AppConfig, ServerConfig, VlessConfig
from core.exceptions import ClientNotFoundError, ReloadError

TOKEN = "secret-token"
AUTH = {"Authorization": f"Bearer {TOKEN}"}


@pytest.fixture
def service():
    return MagicMock()


@pytest.fixture
def client(tmp_path, service):
    config = AppConfig(
        vless=VlessConfig(state_dir=str(tmp_path)),
        server=ServerConfig(api_token=TOKEN),
    )
    app = app_module.create_app(config)
    with patch.object(client_routes, "get_client_service", return_value=service), patch.object(
        system_routes, "get_client_service", return_value=service
    ):
        yield app.test_client()


def client_payload(**overrides):
    payload = {
        "id": "alice",
        "name": "alice",
        "address": "uuid-a",
        "created_at": "2024-01-01T00:00:00Z",
        "config": "{}\n",
        "vless_uri": "vless://uuid-a@vpn.example.com:443?encryption=none#alice",
        "qr_base64": "iVBORw0KGgo=",
    }
    payload.update(overrides)
    return payload


def test_create_client(client, service):
    service.create_client.return_value = client_payload(config_path="/etc/vpn/clients/alice.json")

    response = client.post("/clients", json={"name": "alice"}, headers=AUTH)

    assert response.status_code == 201
    assert response.get_json()["config_path"] == "/etc/vpn/clients/alice.json"
    service.create_client.assert_called_once_with("alice")


def test_create_client_without_body(client, service):
    service.create_client.return_value = client_payload(config_path="/x")

    response = client.post("/clients", headers=AUTH)

    assert response.status_code == 201
    service.create_client.assert_called_once_with("")


def test_create_client_rejects_bad_json(client, service):
    response = client.post("/clients", data="{oops", content_type="application/json", headers=AUTH)

    assert response.status_code == 400
    service.create_client.assert_not_called()


def test_create_client_rejects_non_object(client, service):
    response = client.post("/clients", json=["alice"], headers=AUTH)
    assert response.status_code == 400


def test_create_client_reload_failure_is_bad_gateway(client, service):
    service.create_client.side_effect = ReloadError("Client 'alice' was created but sing-box failed to reload: exit 1")

    response = client.post("/clients", json={"name": "alice"}, headers=AUTH)

    assert response.status_code == 502
    assert "alice" in response.get_json()["message"]


def test_create_client_requires_token(client, service):
    response = client.post("/clients", json={"name": "alice"})
    assert response.status_code == 401
    service.create_client.assert_not_called()


def test_get_client_config(client, service):
    service.get_client_config.return_value = client_payload()

    response = client.get("/clients/alice/config", headers=AUTH)

    assert response.status_code == 200
    assert response.get_json()["vless_uri"].startswith("vless://")
    service.get_client_config.assert_called_once_with("alice")


def test_get_client_config_not_found(client, service):
    service.get_client_config.side_effect = ClientNotFoundError("ghost")

    response = client.get("/clients/ghost/config", headers=AUTH)

    assert response.status_code == 404
    assert "ghost" in response.get_json()["message"]


def test_status_is_public(client, service):
    service.get_status.return_value = {"running": False, "interface": "vless", "clients": []}

    response = client.get("/status")

    assert response.status_code == 200
    assert response.get_json()["interface"] == "vless"


def test_start_and_stop(client, service):
    service.start_interface.return_value = {"status": "started"}
    service.stop_interface.return_value = {"status": "stopped"}

    assert client.post("/start", headers=AUTH).get_json() == {"status": "started"}
    assert client.post("/stop", headers=AUTH).get_json() == {"status": "stopped"}


def test_unknown_route_returns_json_404(client):
    response = client.get("/nope", headers=AUTH)
    assert response.status_code == 404
    assert "error" in response.get_json()


def test_health_check(client):
    cert_manager = MagicMock()
    cert_manager.get_certificate_info.return_value = {"exists": False}
    with patch.object(app_module, "get_service", return_value=cert_manager):
        response = client.get("/api/health")

    assert response.status_code == 200
    assert response.get_json()["status"] == "healthy"


def test_create_client_rejects_non_string_name(client, service):
    response = client.post("/clients", json={"name": 42}, headers=AUTH)

    assert response.status_code == 400
    assert response.get_json()["error"] == "Validation error"
    service.create_client.assert_not_called()


def test_get_client_config_trims_id(client, service):
    service.get_client_config.return_value = client_payload()

    response = client.get("/clients/%20alice%20/config", headers=AUTH)

    assert response.status_code == 200
    service.get_client_config.assert_called_once_with("alice")


def test_get_client_config_rejects_blank_id(client, service):
    response = client.get("/clients/%20%20/config", headers=AUTH)

    assert response.status_code == 400
    assert response.get_json()["error"] == "Validation error"
    service.get_client_config.assert_not_called()
