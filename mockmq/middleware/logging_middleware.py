"""
Logging middleware for FastAPI request/response tracking.

This middleware logs every request with timing, tags nested log records with
a request id and records API metrics.
"""

import time
import uuid
from typing import Callable, Dict, Optional
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..utils.logging import (
    get_logger,
    set_request_context,
    clear_request_context,
    log_api_request
)
from ..utils.metrics import record_api_metrics


logger = get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging HTTP requests and responses with performance metrics.

    Each request gets a short request id, returned in the ``X-Request-ID``
    response header and attached to every log record emitted while the
    request is handled.
    """

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list = None
    ):
        """
        Initialize logging middleware.

        Args:
            app: ASGI application
            log_requests: Whether to log incoming requests
            exclude_paths: List of paths to exclude from logging
        """
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = exclude_paths or ['/health', '/metrics', '/favicon.ico']

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and response with logging."""
        request_id = str(uuid.uuid4())[:8]

        method = request.method
        path = request.url.path
        client_ip = self._get_client_ip(request)
        user_agent = request.headers.get('user-agent')

        if path in self.exclude_paths:
            return await call_next(request)

        set_request_context(
            request_id=request_id,
            method=method,
            path=path,
            client_ip=client_ip
        )

        if self.log_requests:
            logger.info(
                f"Incoming request: {method} {path}",
                extra={
                    'request_id': request_id,
                    'query_params': str(request.query_params) if request.query_params else None,
                    'headers': self._filter_sensitive_headers(dict(request.headers)),
                    'client_ip': client_ip
                }
            )

        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"Request processing failed: {method} {path}",
                extra={
                    'request_id': request_id,
                    'error_type': type(e).__name__,
                    'error_message': str(e)
                },
                exc_info=True
            )
            response = JSONResponse(
                status_code=500,
                content={
                    'error': 'INTERNAL_SERVER_ERROR',
                    'message': 'An unexpected error occurred',
                    'request_id': request_id
                }
            )

        duration_ms = (time.time() - start_time) * 1000
        response.headers['X-Request-ID'] = request_id

        log_api_request(
            method=method,
            path=path,
            status_code=response.status_code,
            duration_ms=duration_ms,
            request_id=request_id,
            user_agent=user_agent,
            client_ip=client_ip
        )

        record_api_metrics(
            method=method,
            path=path,
            status_code=response.status_code,
            duration_ms=duration_ms,
            collector=getattr(request.app.state, 'metrics', None)
        )

        clear_request_context()
        return response

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP address from request."""
        forwarded_for = request.headers.get('x-forwarded-for')
        if forwarded_for:
            return forwarded_for.split(',')[0].strip()

        real_ip = request.headers.get('x-real-ip')
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return 'unknown'

    def _filter_sensitive_headers(self, headers: Dict[str, str]) -> Dict[str, Optional[str]]:
        """Filter out sensitive header values."""
        sensitive_headers = {'authorization', 'cookie', 'x-api-key', 'x-auth-token'}

        return {
            key: '<redacted>' if key.lower() in sensitive_headers else value
            for key, value in headers.items()
        }
