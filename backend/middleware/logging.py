"""HTTP request logging middleware for audit trail."""

import logging
import os
import time
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("backend.requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Emit one structured log record per HTTP request."""

    def __init__(self, app, skip_paths: Optional[list] = None):
        super().__init__(app)
        self.skip_paths = skip_paths or ["/health", "/metrics"]
        self.hostname = os.getenv("HOSTNAME", "unknown")

    async def dispatch(self, request: Request, call_next):
        if any(request.url.path.startswith(path) for path in self.skip_paths):
            return await call_next(request)

        start_time = time.time()
        status_code = 500
        error_msg = None
        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as e:
            error_msg = str(e)
            raise
        finally:
            entry = {
                "session_id": self._get_session_id(request, response if error_msg is None else None),
                "endpoint": request.url.path,
                "method": request.method,
                "status": status_code,
                "duration_ms": int((time.time() - start_time) * 1000),
                "container": self.hostname,
                "payload_size": int(request.headers.get("content-length", 0) or 0),
            }
            if error_msg:
                entry["error"] = error_msg
            level = logging.ERROR if status_code >= 500 else (
                logging.WARNING if status_code >= 400 else logging.INFO)
            logger.log(level, "%s %s %d", request.method, request.url.path, status_code, extra=entry)

        return response

    def _get_session_id(self, request: Request, response) -> Optional[str]:
        """Session id from the request header or query, else from the response header."""
        session_id = request.headers.get("X-Session-ID") or request.query_params.get("session_id")
        if session_id:
            return session_id
        if response is not None:
            return response.headers.get("X-Session-ID")
        return None

