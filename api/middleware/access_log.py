import time
from flask import g, request
from core.logging_config import get_logger

logger = get_logger("access")

class AccessLogMiddleware:
    """One log line per request: method, path, status, duration and peer."""

    @staticmethod
    def init_app(app) -> None:

        @app.before_request
        def start_timer():
            g.request_started = time.monotonic()

        @app.after_request
        def log_request(response):
            started = getattr(g, 'request_started', None)
            duration_ms = (time.monotonic() - started) * 1000 if started is not None else 0.0
            logger.info(
                "request",
                method=request.method,
                path=request.path,
                status=response.status_code,
                duration_ms=round(duration_ms, 1),
                remote=request.remote_addr,
            )
            return response
