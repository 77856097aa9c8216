from flask import jsonify
from werkzeug.exceptions import HTTPException
from core.exceptions import (
    VPNManagerError,
    ClientNotFoundError,
    ValidationError,
    StateParseError,
    StorageError,
    ProcessError,
    ReloadError,
    CertificateGenerationError
)
from core.logging_config import get_logger

logger = get_logger(__name__)

class ErrorHandler:
    """
    Centralized error handling for the VLESS manager API.
    """

    @staticmethod
    def init_app(app) -> None:
        """Initialize error handlers with Flask app."""

        @app.errorhandler(ClientNotFoundError)
        def handle_client_not_found(e):
            return jsonify({
                'error': 'Client not found',
                'message': str(e)
            }), 404

        @app.errorhandler(ValidationError)
        def handle_validation_error(e):
            return jsonify({
                'error': 'Validation error',
                'message': str(e)
            }), 400

        @app.errorhandler(StateParseError)
        def handle_parse_error(e):
            logger.error("Corrupt state file", path=e.path, reason=e.reason)
            return jsonify({
                'error': 'State file corrupt',
                'message': str(e)
            }), 500

        @app.errorhandler(StorageError)
        def handle_storage_error(e):
            logger.error("Storage failure", error=str(e))
            return jsonify({
                'error': 'Storage error',
                'message': str(e)
            }), 500

        @app.errorhandler(ReloadError)
        def handle_reload_error(e):
            logger.error("Data plane reload failed", error=e.reason)
            return jsonify({
                'error': 'Reload error',
                'message': str(e)
            }), 502

        @app.errorhandler(ProcessError)
        def handle_process_error(e):
            logger.error("Data plane process error", error=e.reason)
            return jsonify({
                'error': 'Process error',
                'message': str(e)
            }), 500

        @app.errorhandler(CertificateGenerationError)
        def handle_cert_error(e):
            return jsonify({
                'error': 'Certificate generation error',
                'message': str(e)
            }), 500

        @app.errorhandler(VPNManagerError)
        def handle_vpn_error(e):
            return jsonify({
                'error': 'VPN Manager error',
                'message': str(e)
            }), 500

        @app.errorhandler(HTTPException)
        def handle_http_error(e):
            return jsonify({
                'error': e.name,
                'message': e.description
            }), e.code

        @app.errorhandler(Exception)
        def handle_generic_error(e):
            logger.exception("Unhandled API error", error=str(e))
            return jsonify({
                'error': 'Internal server error',
                'message': 'An unexpected error occurred'
            }), 500

        @app.errorhandler(404)
        def handle_not_found(e):
            return jsonify({
                'error': 'Not found',
                'message': 'The requested endpoint does not exist'
            }), 404

        @app.errorhandler(405)
        def handle_method_not_allowed(e):
            return jsonify({
                'error': 'Method not allowed',
                'message': 'The HTTP method is not allowed for this endpoint'
            }), 405
