from flask import Blueprint, jsonify
from api.middleware.auth_middleware import AuthMiddleware
from core.dependency_container import get_service
from service.client_service import ClientService

system_bp = Blueprint('system', __name__)

def get_client_service() -> ClientService:
    """Factory function to get the client service."""
    return get_service('client_service')

@system_bp.route('/status', methods=['GET'])
def system_status():
    """Get interface status and the client list (no authentication required)."""
    return jsonify(get_client_service().get_status()), 200

@system_bp.route('/start', methods=['POST'])
@AuthMiddleware.require_auth
def start_interface():
    """Start the sing-box data plane."""
    return jsonify(get_client_service().start_interface()), 200

@system_bp.route('/stop', methods=['POST'])
@AuthMiddleware.require_auth
def stop_interface():
    """Stop the sing-box data plane."""
    return jsonify(get_client_service().stop_interface()), 200
