import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from config.app_config import AppConfig, ServerConfig, VlessConfig
from core.exceptions import ConfigurationError

ENV_KEYS = [
    "VLESS_STATE_DIR", "WG_DIR", "VLESS_ENDPOINT", "WG_ENDPOINT",
    "VLESS_LISTEN_ADDRESS", "VLESS_LISTEN_PORT", "WG_LISTEN_PORT",
    "VLESS_WS_PATH", "VLESS_TLS_SERVER_NAME", "VLESS_TLS_CERT_PATH",
    "VLESS_TLS_KEY_PATH", "VLESS_CLIENT_TUN_NAME", "VLESS_CLIENT_TUN_CIDR",
    "VLESS_CLIENT_INSECURE_TLS", "SING_BOX_BIN", "API_BIND", "API_TOKEN",
    "VLESS_AUTOSTART", "WG_AUTOSTART", "LOG_LEVEL", "SERVER_THREADS",
    "VLESS_STOP_GRACE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    config = AppConfig.from_env()

    assert config.vless.state_dir == "/etc/vpn"
    assert config.vless.listen_port == 443
    assert config.vless.endpoint_host == "127.0.0.1"
    assert config.vless.tls_server_name == "127.0.0.1"
    assert config.vless.websocket_path == "/vpn"
    assert config.vless.tls_cert_path == "/etc/vpn/tls/server.crt"
    assert config.vless.client_insecure_tls is True
    assert config.server.api_bind == "127.0.0.1:8080"
    assert config.server.auto_start is True


def test_legacy_fallbacks(monkeypatch):
    monkeypatch.setenv("WG_DIR", "/srv/vpn")
    monkeypatch.setenv("WG_ENDPOINT", "vpn.example.com")
    monkeypatch.setenv("WG_LISTEN_PORT", "8443")
    monkeypatch.setenv("WG_AUTOSTART", "false")

    config = AppConfig.from_env()

    assert config.vless.state_dir == "/srv/vpn"
    assert config.vless.endpoint_host == "vpn.example.com"
    assert config.vless.listen_port == 8443
    assert config.server.auto_start is False


def test_new_names_win_over_legacy(monkeypatch):
    monkeypatch.setenv("WG_DIR", "/srv/old")
    monkeypatch.setenv("VLESS_STATE_DIR", "/srv/new")
    monkeypatch.setenv("WG_LISTEN_PORT", "8443")
    monkeypatch.setenv("VLESS_LISTEN_PORT", "9443")

    config = AppConfig.from_env()

    assert config.vless.state_dir == "/srv/new"
    assert config.vless.listen_port == 9443


def test_invalid_values_fall_back(monkeypatch):
    monkeypatch.setenv("VLESS_LISTEN_PORT", "abc")
    monkeypatch.setenv("VLESS_CLIENT_INSECURE_TLS", "maybe")
    monkeypatch.setenv("VLESS_STOP_GRACE", "soon")

    config = AppConfig.from_env()

    assert config.vless.listen_port == 443
    assert config.vless.client_insecure_tls is True
    assert config.vless.stop_grace_seconds == 0.35


def test_env_file_is_loaded(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("VLESS_WS_PATH=tunnel\nAPI_TOKEN=abc123\n")

    try:
        config = AppConfig.from_env(str(env_file))
    finally:
        os.environ.pop("API_TOKEN", None)
        os.environ.pop("VLESS_WS_PATH", None)

    assert config.vless.websocket_path == "/tunnel"
    assert config.server.api_token == "abc123"


def test_validate_rejects_bad_port():
    config = AppConfig(vless=VlessConfig(listen_port=70000))
    with pytest.raises(ConfigurationError):
        config.validate()


def test_server_bind_parsing():
    assert ServerConfig(api_bind="0.0.0.0:9000").host == "0.0.0.0"
    assert ServerConfig(api_bind="0.0.0.0:9000").port == 9000
    assert ServerConfig(api_bind="[::]:8080").host == "::"
    assert ServerConfig(api_bind=":8080").host == "0.0.0.0"
    assert ServerConfig(api_bind=":8080").port == 8080
    assert ServerConfig(api_bind="localhost").host == "localhost"
