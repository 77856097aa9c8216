"""
Pure builders for the sing-box documents derived from the client map.

Nothing here touches the filesystem. The same inputs always produce the
same documents; callers are responsible for passing clients in a stable
order (the state manager sorts by id).
"""

import ipaddress
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote, urlencode
from config.app_config import VlessConfig
from config.constants import VlessConstants as C
from core.types import JSONDocument

if TYPE_CHECKING:
    from data.models import ClientRecord

@dataclass
class ServerDocument:
    """Server-side sing-box configuration."""
    log: Dict[str, Any]
    inbounds: List[Dict[str, Any]]
    outbounds: List[Dict[str, Any]]
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> JSONDocument:
        document = {
            "log": self.log,
            "inbounds": self.inbounds,
            "outbounds": self.outbounds,
        }
        for key, value in self.extra.items():
            document.setdefault(key, value)
        return document

    @property
    def users(self) -> List[Dict[str, str]]:
        return self.inbounds[0]["users"] if self.inbounds else []

@dataclass
class ClientDocument:
    """Per-client sing-box configuration."""
    log: Dict[str, Any]
    dns: Dict[str, Any]
    inbounds: List[Dict[str, Any]]
    outbounds: List[Dict[str, Any]]
    route: Dict[str, Any]
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> JSONDocument:
        document = {
            "log": self.log,
            "dns": self.dns,
            "inbounds": self.inbounds,
            "outbounds": self.outbounds,
            "route": self.route,
        }
        for key, value in self.extra.items():
            document.setdefault(key, value)
        return document

    @property
    def tun_inbound(self) -> Dict[str, Any]:
        return self.inbounds[0]

def split_and_trim_csv(raw: str) -> List[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]

def _split_host_port(value: str) -> Optional[Tuple[str, str]]:
    """Split ``host:port`` or ``[v6]:port``; None when no port is present."""
    if value.startswith("["):
        end = value.find("]")
        if end == -1 or value[end + 1:end + 2] != ":":
            return None
        return value[1:end], value[end + 2:]
    if value.count(":") != 1:
        return None
    host, port = value.split(":")
    return host, port

def resolve_endpoint_host_port(raw_host: str, fallback_port: int) -> Tuple[str, int]:
    """Split an endpoint into host and port. Never raises.

    An explicit port wins over ``fallback_port``; an empty endpoint means
    loopback.
    """
    host = (raw_host or "").strip()
    port = fallback_port

    if not host:
        return "127.0.0.1", port

    parts = _split_host_port(host)
    if parts is None:
        return host, port

    parsed_host, parsed_port = parts
    try:
        candidate = int(parsed_port)
    except ValueError:
        candidate = 0
    if 0 < candidate <= 65535:
        port = candidate
    return parsed_host or "127.0.0.1", port

def route_exclude_cidrs_for_host(host: str) -> List[str]:
    """Host route for a literal IP endpoint so the tunnel never captures it."""
    trimmed = (host or "").strip()
    if not trimmed or "%" in trimmed:
        return []
    try:
        ip = ipaddress.ip_address(trimmed)
    except ValueError:
        return []
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    if ip.version == 4:
        return [f"{ip}/32"]
    return [f"{ip}/128"]

def _join_host_port(host: str, port: int) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"

def _direct_and_block_outbounds() -> List[Dict[str, Any]]:
    return [
        {"type": "direct", "tag": C.DIRECT_OUTBOUND_TAG},
        {"type": "block", "tag": C.BLOCK_OUTBOUND_TAG},
    ]

def build_server_config(cfg: VlessConfig, clients: Sequence["ClientRecord"]) -> ServerDocument:
    users = [{"name": c.name, "uuid": c.uuid} for c in clients]
    return ServerDocument(
        log={"level": "info", "timestamp": True},
        inbounds=[
            {
                "type": "vless",
                "tag": C.SERVER_INBOUND_TAG,
                "listen": cfg.listen_address,
                "listen_port": cfg.listen_port,
                "users": users,
                "tls": {
                    "enabled": True,
                    "server_name": cfg.tls_server_name,
                    "certificate_path": cfg.tls_cert_path,
                    "key_path": cfg.tls_key_path,
                },
                "transport": {
                    "type": "ws",
                    "path": cfg.websocket_path,
                },
            }
        ],
        outbounds=_direct_and_block_outbounds(),
    )

def build_client_config(cfg: VlessConfig, client: "ClientRecord") -> ClientDocument:
    host, port = resolve_endpoint_host_port(cfg.endpoint_host, cfg.listen_port)
    tun_addresses = split_and_trim_csv(cfg.client_tun_cidr) or [C.DEFAULT_TUN_CIDR]

    tun_inbound: Dict[str, Any] = {
        "type": "tun",
        "tag": C.CLIENT_INBOUND_TAG,
        "interface_name": cfg.client_tun_name,
        "address": tun_addresses,
        "auto_route": True,
        "strict_route": True,
        "sniff": True,
        "sniff_override_destination": False,
        "stack": "mixed",
    }
    exclude = route_exclude_cidrs_for_host(host)
    if exclude:
        tun_inbound["route_exclude_address"] = exclude

    tunnel_outbound = {
        "type": "vless",
        "tag": C.TUNNEL_OUTBOUND_TAG,
        "server": host,
        "server_port": port,
        "uuid": client.uuid,
        "tls": {
            "enabled": True,
            "server_name": cfg.tls_server_name,
            "insecure": cfg.client_insecure_tls,
        },
        "transport": {
            "type": "ws",
            "path": cfg.websocket_path,
        },
    }

    return ClientDocument(
        log={"level": "warn"},
        dns={
            "servers": [
                {
                    "type": "udp",
                    "tag": C.REMOTE_DNS_TAG,
                    "server": C.REMOTE_DNS_SERVER,
                    "detour": C.TUNNEL_OUTBOUND_TAG,
                }
            ],
            "final": C.REMOTE_DNS_TAG,
            "strategy": C.DNS_STRATEGY,
        },
        inbounds=[tun_inbound],
        outbounds=[tunnel_outbound] + _direct_and_block_outbounds(),
        route={
            "auto_detect_interface": True,
            "default_domain_resolver": {
                "server": C.REMOTE_DNS_TAG,
                "strategy": C.DNS_STRATEGY,
            },
            "rules": [
                {"protocol": "dns", "action": "hijack-dns"},
                {"ip_cidr": list(C.PRIVATE_CIDRS), "outbound": C.DIRECT_OUTBOUND_TAG},
            ],
            "final": C.TUNNEL_OUTBOUND_TAG,
        },
    )

def build_share_uri(cfg: VlessConfig, client: "ClientRecord") -> str:
    """vless:// link carrying the same connection parameters as the client document."""
    query = {
        "encryption": "none",
        "security": "tls",
        "type": "ws",
        "path": cfg.websocket_path,
    }
    if cfg.tls_server_name.strip():
        query["sni"] = cfg.tls_server_name
    if cfg.client_insecure_tls:
        query["allowInsecure"] = "1"

    host, port = resolve_endpoint_host_port(cfg.endpoint_host, cfg.listen_port)
    return "vless://{user}@{hostport}?{query}#{fragment}".format(
        user=quote(client.uuid, safe=""),
        hostport=_join_host_port(host, port),
        query=urlencode(sorted(query.items())),
        fragment=quote(client.name, safe=""),
    )

class ConfigGenerator:
    """Binds the pure builders to one configuration."""

    def __init__(self, config: VlessConfig):
        self.config = config

    def server_document(self, clients: Sequence["ClientRecord"]) -> ServerDocument:
        return build_server_config(self.config, clients)

    def client_document(self, client: "ClientRecord") -> ClientDocument:
        return build_client_config(self.config, client)

    def share_uri(self, client: "ClientRecord") -> str:
        return build_share_uri(self.config, client)
