from flask import Blueprint, request, jsonify
from api.middleware.auth_middleware import AuthMiddleware
from core.dependency_container import get_service
from core.exceptions import ValidationError
from service.client_service import ClientService

client_bp = Blueprint('clients', __name__)

def get_client_service() -> ClientService:
    """Factory function to get the client service."""
    return get_service('client_service')

@client_bp.route('', methods=['POST'])
@AuthMiddleware.require_auth
def create_client():
    """
    Create a new client and return its configuration.

    Request body (optional):
    {
        "name": "string"
    }
    """
    data = {}
    if request.get_data(cache=True).strip():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({
                'error': 'Invalid JSON',
                'message': 'Request body must be a JSON object'
            }), 400

    name = data.get('name') or ''
    if not isinstance(name, str):
        raise ValidationError('name', repr(name), 'must be a string')

    client_service = get_client_service()
    result = client_service.create_client(name)
    return jsonify(result), 201

@client_bp.route('/<client_id>/config', methods=['GET'])
@AuthMiddleware.require_auth
def get_client_config(client_id: str):
    """Return the stored client document along with its share link and QR code."""
    client_id = client_id.strip()
    if not client_id:
        raise ValidationError('client_id', client_id, 'must not be empty')

    client_service = get_client_service()
    return jsonify(client_service.get_client_config(client_id)), 200
