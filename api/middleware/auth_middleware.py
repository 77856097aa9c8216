import hashlib
import hmac
import ipaddress
from functools import wraps
from flask import request, jsonify, current_app

TRUSTED_NETWORKS = tuple(ipaddress.ip_network(cidr) for cidr in (
    "10.0.0.0/8",
    "172.16.0.0/12",
    "192.168.0.0/16",
    "fc00::/7",
    "224.0.0.0/24",
    "ff02::/16",
))

class AuthMiddleware:
    """
    API token authentication for the VLESS manager API.

    Clients send ``Authorization: Bearer <token>`` or ``X-API-Token``. When no
    token is configured, only loopback, private and link-local peers are
    accepted.
    """

    @staticmethod
    def init_app(app, api_token: str = "") -> None:
        """Store the expected token in the Flask configuration."""
        app.config['API_TOKEN'] = (api_token or "").strip()

    @staticmethod
    def require_auth(f):
        """Decorator to require API token authentication for protected endpoints."""
        @wraps(f)
        def decorated_function(*args, **kwargs):
            expected_token = current_app.config.get('API_TOKEN', '')

            if not expected_token:
                if AuthMiddleware.is_trusted_local(request.remote_addr):
                    return f(*args, **kwargs)
                return jsonify({
                    'error': 'Unauthorized',
                    'message': 'API token is required for non-local access'
                }), 401

            provided_token = AuthMiddleware.request_token()
            if not AuthMiddleware._verify_token(provided_token, expected_token):
                return jsonify({
                    'error': 'Unauthorized',
                    'message': 'The provided API token is invalid'
                }), 401

            return f(*args, **kwargs)
        return decorated_function

    @staticmethod
    def request_token() -> str:
        auth = request.headers.get('Authorization', '').strip()
        if auth.lower().startswith('bearer '):
            return auth[len('Bearer '):].strip()
        return request.headers.get('X-API-Token', '').strip()

    @staticmethod
    def is_trusted_local(remote_addr: str) -> bool:
        """Loopback, link-local (unicast and multicast), RFC 1918 and ULA peers only."""
        host = (remote_addr or '').strip()
        if host.startswith('[') and ']' in host:
            host = host[1:host.index(']')]
        try:
            ip = ipaddress.ip_address(host)
        except ValueError:
            return False
        if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
            ip = ip.ipv4_mapped
        if ip.is_loopback or ip.is_link_local:
            return True
        return any(ip in network for network in TRUSTED_NETWORKS if network.version == ip.version)

    @staticmethod
    def _verify_token(provided_token: str, expected_token: str) -> bool:
        """Constant-time comparison over SHA-256 digests."""
        provided = (provided_token or '').strip()
        expected = (expected_token or '').strip()
        if not provided or not expected:
            return False
        return hmac.compare_digest(
            hashlib.sha256(provided.encode()).digest(),
            hashlib.sha256(expected.encode()).digest(),
        )
