#!/usr/bin/env python3
import logging
import sys
from typing import Optional
from flask import Flask, jsonify
from flask_cors import CORS

from config.app_config import AppConfig, get_config
from core.dependency_container import cleanup_container, get_service, initialize_container
from core.exceptions import ConfigurationError, VPNManagerError
from core.logging_config import get_logger, setup_structured_logging
from .routes.client_routes import client_bp
from .routes.system_routes import system_bp
from .middleware.access_log import AccessLogMiddleware
from .middleware.error_handler import ErrorHandler
from .middleware.auth_middleware import AuthMiddleware

logger = get_logger(__name__)

def create_app(config: Optional[AppConfig] = None) -> Flask:
    """
    Creates and configures the Flask application serving the VLESS control API.
    """
    config = config or get_config()
    app = Flask(__name__)
    app.json.sort_keys = False

    CORS(app)

    AuthMiddleware.init_app(app, config.server.api_token)
    AccessLogMiddleware.init_app(app)
    ErrorHandler.init_app(app)

    app.register_blueprint(system_bp)
    app.register_blueprint(client_bp, url_prefix='/clients')

    @app.route("/api/health")
    def health_check():
        certificate = get_service('certificate_manager').get_certificate_info()
        return jsonify({
            "status": "healthy",
            "message": "VLESS Manager API is running",
            "certificate": certificate,
        })

    return app


def warn_insecure_settings(config: AppConfig) -> None:
    if not config.server.api_token:
        logger.warning(
            "API_TOKEN is empty; API access is limited to local and private networks",
            api_bind=config.server.api_bind,
        )
    if config.vless.client_insecure_tls:
        logger.warning("Client documents skip TLS verification (VLESS_CLIENT_INSECURE_TLS=true)")


def prepare_runtime(config: AppConfig) -> None:
    """Initialize state on disk and optionally bring up the data plane."""
    state_manager = get_service('state_manager')
    try:
        state_manager.initialize_state()
    except VPNManagerError as e:
        logger.error("Failed to initialize state", error=str(e))
        sys.exit(1)

    if config.server.auto_start:
        try:
            state_manager.start_interface()
            logger.info("Data plane started", pid=state_manager.supervisor.pid)
        except VPNManagerError as e:
            logger.error("Failed to start data plane", error=str(e))


def main() -> None:
    try:
        config = get_config()
    except ConfigurationError as e:
        print(f"Invalid configuration: {e}")
        sys.exit(1)
    setup_structured_logging(config.monitoring.log_level)
    initialize_container(config)

    prepare_runtime(config)
    warn_insecure_settings(config)

    app = create_app(config)

    from waitress import serve

    # Suppress Waitress queue warnings
    logging.getLogger('waitress.queue').setLevel(logging.ERROR)

    logger.info("Starting VLESS Manager API", host=config.server.host, port=config.server.port)
    try:
        serve(app, host=config.server.host, port=config.server.port, threads=config.server.threads)
    finally:
        cleanup_container()


if __name__ == "__main__":
    main()
