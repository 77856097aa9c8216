"""
Centralized application configuration management.
Provides type-safe configuration with environment variable support.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from config.env_loader import (
    load_env_file,
    get_config_value,
    get_int_config,
    get_float_config,
    get_bool_config,
    first_non_empty,
)
from config.constants import VlessConstants
from core.exceptions import ConfigurationError

def normalize_websocket_path(path: str) -> str:
    """Return the websocket path with a leading slash, defaulting to /vpn."""
    trimmed = (path or "").strip()
    if not trimmed:
        return VlessConstants.DEFAULT_WS_PATH
    if not trimmed.startswith("/"):
        return "/" + trimmed
    return trimmed

@dataclass(frozen=True)
class VlessConfig:
    """Data-plane and state configuration. Immutable for the process lifetime."""
    state_dir: str = VlessConstants.DEFAULT_STATE_DIR
    interface: str = VlessConstants.INTERFACE_NAME
    listen_address: str = "::"
    listen_port: int = VlessConstants.DEFAULT_LISTEN_PORT
    endpoint_host: str = "127.0.0.1"
    websocket_path: str = VlessConstants.DEFAULT_WS_PATH
    tls_server_name: str = ""
    tls_cert_path: str = ""
    tls_key_path: str = ""
    client_tun_name: str = VlessConstants.DEFAULT_TUN_NAME
    client_tun_cidr: str = VlessConstants.DEFAULT_TUN_CIDR
    client_insecure_tls: bool = True
    sing_box_binary: str = "sing-box"
    stop_grace_seconds: float = VlessConstants.STOP_GRACE_SECONDS

    def __post_init__(self):
        """Derive TLS paths from the state directory when not given."""
        if not self.tls_cert_path:
            object.__setattr__(self, "tls_cert_path", os.path.join(self.state_dir, "tls", "server.crt"))
        if not self.tls_key_path:
            object.__setattr__(self, "tls_key_path", os.path.join(self.state_dir, "tls", "server.key"))
        object.__setattr__(self, "websocket_path", normalize_websocket_path(self.websocket_path))

@dataclass
class ServerConfig:
    """HTTP API settings."""
    api_bind: str = "127.0.0.1:8080"
    api_token: str = ""
    auto_start: bool = True
    threads: int = 4

    @property
    def host(self) -> str:
        """Bind host; an empty host in ``:port`` means all interfaces."""
        bind = self.api_bind.strip()
        host, sep, _ = bind.rpartition(":")
        if not sep:
            return bind or "127.0.0.1"
        return host.strip("[]") or "0.0.0.0"

    @property
    def port(self) -> int:
        _, _, port = self.api_bind.rpartition(":")
        try:
            return int(port)
        except ValueError:
            return 8080

@dataclass
class MonitoringConfig:
    """Logging settings."""
    log_level: str = "INFO"

@dataclass
class AppConfig:
    """Main application configuration."""
    vless: VlessConfig = field(default_factory=VlessConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> 'AppConfig':
        """Load configuration from environment variables.

        Legacy ``WG_*`` variables are honoured as fallbacks so existing
        deployments keep their state directory, endpoint and port.
        """
        if env_file:
            load_env_file(env_file)

        state_dir = first_non_empty(
            os.environ.get("VLESS_STATE_DIR", ""),
            os.environ.get("WG_DIR", ""),
            VlessConstants.DEFAULT_STATE_DIR,
        )
        endpoint = first_non_empty(
            os.environ.get("VLESS_ENDPOINT", ""),
            os.environ.get("WG_ENDPOINT", ""),
            "127.0.0.1",
        )

        return cls(
            vless=VlessConfig(
                state_dir=state_dir,
                listen_address=get_config_value("VLESS_LISTEN_ADDRESS", "::"),
                listen_port=get_int_config(
                    "VLESS_LISTEN_PORT",
                    get_int_config("WG_LISTEN_PORT", VlessConstants.DEFAULT_LISTEN_PORT),
                ),
                endpoint_host=endpoint,
                websocket_path=get_config_value("VLESS_WS_PATH", VlessConstants.DEFAULT_WS_PATH),
                tls_server_name=get_config_value("VLESS_TLS_SERVER_NAME", endpoint),
                tls_cert_path=get_config_value("VLESS_TLS_CERT_PATH"),
                tls_key_path=get_config_value("VLESS_TLS_KEY_PATH"),
                client_tun_name=get_config_value("VLESS_CLIENT_TUN_NAME", VlessConstants.DEFAULT_TUN_NAME),
                client_tun_cidr=get_config_value("VLESS_CLIENT_TUN_CIDR", VlessConstants.DEFAULT_TUN_CIDR),
                client_insecure_tls=get_bool_config("VLESS_CLIENT_INSECURE_TLS", True),
                sing_box_binary=get_config_value("SING_BOX_BIN", "sing-box"),
                stop_grace_seconds=get_float_config("VLESS_STOP_GRACE", VlessConstants.STOP_GRACE_SECONDS),
            ),
            server=ServerConfig(
                api_bind=get_config_value("API_BIND", "127.0.0.1:8080"),
                api_token=get_config_value("API_TOKEN"),
                auto_start=get_bool_config("VLESS_AUTOSTART", get_bool_config("WG_AUTOSTART", True)),
                threads=get_int_config("SERVER_THREADS", 4),
            ),
            monitoring=MonitoringConfig(
                log_level=get_config_value("LOG_LEVEL", "INFO"),
            ),
        )

    def validate(self) -> None:
        """Validate configuration settings."""
        if not (1 <= self.vless.listen_port <= 65535):
            raise ConfigurationError(f"Listen port out of range: {self.vless.listen_port}")
        if not self.vless.state_dir:
            raise ConfigurationError("State directory is required")
        if not self.vless.sing_box_binary:
            raise ConfigurationError("SING_BOX_BIN must not be empty")
        if self.vless.stop_grace_seconds < 0:
            raise ConfigurationError("VLESS_STOP_GRACE must not be negative")

# Global configuration instance
_config: Optional[AppConfig] = None

def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        env_file = os.environ.get("VLESS_ENV_FILE", "/etc/vpn/.env")
        _config = AppConfig.from_env(env_file)
        _config.validate()
    return _config

def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
