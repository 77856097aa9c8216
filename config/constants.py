"""
System constants for the VLESS control plane.
Values baked into generated sing-box documents live here.
"""

class VlessConstants:
    """Immutable protocol labels and defaults."""

    INTERFACE_NAME = "vless"
    PROTOCOL = "vless"
    TRANSPORT = "ws+tls"

    DEFAULT_STATE_DIR = "/etc/vpn"
    DEFAULT_LISTEN_PORT = 443
    DEFAULT_WS_PATH = "/vpn"
    DEFAULT_TUN_NAME = "sb-tun"
    DEFAULT_TUN_CIDR = "172.19.0.1/30"

    # Inbound/outbound tags shared by server and client documents
    SERVER_INBOUND_TAG = "vless-in"
    CLIENT_INBOUND_TAG = "tun-in"
    TUNNEL_OUTBOUND_TAG = "vless-out"
    DIRECT_OUTBOUND_TAG = "direct"
    BLOCK_OUTBOUND_TAG = "block"

    REMOTE_DNS_TAG = "dns-remote"
    REMOTE_DNS_SERVER = "1.1.1.1"
    DNS_STRATEGY = "prefer_ipv4"

    # Sent direct by every client, never through the tunnel
    PRIVATE_CIDRS = (
        "127.0.0.0/8",
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "169.254.0.0/16",
        "224.0.0.0/4",
        "::1/128",
        "fc00::/7",
        "fe80::/10",
    )

    DEFAULT_CLIENT_NAME = "default-client"
    FALLBACK_CLIENT_ID = "client"
    MAX_ID_SUFFIX = 10000

    # Process supervision
    STOP_GRACE_SECONDS = 0.35
    LOG_TAIL_BYTES = 4096

    # TLS
    TLS_KEY_SIZE = 2048
    TLS_VALID_DAYS = 365
