import base64
import os
import sys
from datetime import datetime, timezone
from unittest.mock import MagicMock

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from core.state_manager import StateManager
from data.models import ClientRecord
from service.client_service import ClientService
from service.qr_service import QRService


def make_record():
    return ClientRecord(
        id="alice",
        name="Alice",
        uuid="uuid-a",
        address="uuid-a",
        config_path="/etc/vpn/clients/alice.json",
        created_at=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
    )


def make_service():
    state_manager = MagicMock(spec=StateManager)
    state_manager.client_share_uri.return_value = "vless://uuid-a@vpn.example.com:443?type=ws#Alice"
    return ClientService(state_manager, QRService()), state_manager


def test_create_client_payload():
    service, state_manager = make_service()
    state_manager.create_client.return_value = (make_record(), "{}\n")

    result = service.create_client("Alice")

    assert result["id"] == "alice"
    assert result["created_at"] == "2024-01-02T03:04:05Z"
    assert result["config_path"] == "/etc/vpn/clients/alice.json"
    assert result["vless_uri"].startswith("vless://")
    assert base64.b64decode(result["qr_base64"]).startswith(b"\x89PNG")


def test_blank_name_gets_timestamped_default():
    service, state_manager = make_service()
    state_manager.create_client.return_value = (make_record(), "{}\n")

    service.create_client("   ")

    name = state_manager.create_client.call_args[0][0]
    assert name.startswith("client-")
    assert name[len("client-"):].isdigit()


def test_get_client_config_omits_config_path():
    service, state_manager = make_service()
    state_manager.get_client_config.return_value = (make_record(), "{}\n")

    result = service.get_client_config("alice")

    assert "config_path" not in result
    assert result["config"] == "{}\n"


def test_interface_actions():
    service, state_manager = make_service()
    assert service.start_interface() == {"status": "started"}
    assert service.stop_interface() == {"status": "stopped"}
    state_manager.start_interface.assert_called_once_with()
    state_manager.stop_interface.assert_called_once_with()
