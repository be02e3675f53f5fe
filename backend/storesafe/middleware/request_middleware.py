"""
Request Middleware Module
=========================

Starlette middleware shared by every route.

- Request ID and timing headers, plus one log line per request
- Caller id taken from a valid bearer token for log context
- Security headers
- Login rate limiting per client IP

Authentication and role checks stay in the dependency layer; the
context middleware only reads the token.
"""

import time
import uuid
from collections import defaultdict
from typing import Callable, Optional

from fastapi.responses import JSONResponse
from jose import JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from storesafe.core.config import settings
from storesafe.core.exceptions import RateLimitError
from storesafe.core.logging import LogContext, get_logger, security_logger

logger = get_logger(__name__)

QUIET_PATHS = {"/", "/health", "/ready"}
LOGIN_PATH = "/auth/login"
RATE_LIMIT_WINDOW_SECONDS = 60


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id, times it and logs the outcome.

    `request.state.user_id` is set when the bearer token decodes; an
    invalid token is left for the auth dependency to reject.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        request.state.user_id = self._token_subject(request)

        with LogContext(request_id=request_id, user_id=request.state.user_id):
            start_time = time.perf_counter()
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    "Request processing error",
                    extra={"error": str(e), "path": request.url.path, "method": request.method},
                )
                raise

            process_time = time.perf_counter() - start_time
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = f"{process_time:.4f}"
            self._log_request(request, response, process_time)
        return response

    @staticmethod
    def _token_subject(request: Request) -> Optional[str]:
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return None
        try:
            payload = jwt.decode(
                auth_header.split(" ", 1)[1],
                settings.SECRET_KEY,
                algorithms=[settings.ALGORITHM],
                issuer=settings.ISSUER,
                audience=settings.AUDIENCE,
            )
        except JWTError:
            return None
        return payload.get("sub")

    @staticmethod
    def _log_request(request: Request, response: Response, process_time: float) -> None:
        if request.url.path in QUIET_PATHS:
            return

        log_data = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "process_time_ms": round(process_time * 1000, 2),
            "user_id": getattr(request.state, "user_id", None),
            "ip_address": request.client.host if request.client else None,
        }
        if response.status_code >= 500:
            logger.error("Request completed with error", extra=log_data)
        elif response.status_code >= 400:
            logger.warning("Request completed with client error", extra=log_data)
        else:
            logger.info("Request completed", extra=log_data)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds security headers to every response.

    Swagger UI and ReDoc need the CDN in the CSP, so the docs paths get a
    relaxed policy when DEBUG is on. HSTS is production only.
    """

    _DOCS_PATHS = {"/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if settings.DEBUG and request.url.path in self._DOCS_PATHS:
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; "
                "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "img-src 'self' data: https://cdn.jsdelivr.net https://fastapi.tiangolo.com; "
                "worker-src 'self' blob:; "
                "frame-ancestors 'none';"
            )
        else:
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; "
                "style-src 'self' 'unsafe-inline'; "
                "img-src 'self' data:; "
                "frame-ancestors 'none';"
            )

        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window on `POST /auth/login`, keyed by client IP.

    Per process only; several workers each keep their own window.
    """

    def __init__(self, app, max_requests: Optional[int] = None, window_seconds: int = RATE_LIMIT_WINDOW_SECONDS):
        super().__init__(app)
        self.max_requests = max_requests or settings.LOGIN_RATE_LIMIT
        self.window_seconds = window_seconds
        self._requests: dict[str, list[float]] = defaultdict(list)
        self._last_sweep = 0.0

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not settings.RATE_LIMIT_ENABLED:
            return await call_next(request)

        if request.url.path == LOGIN_PATH and request.method == "POST":
            client_ip = request.client.host if request.client else "unknown"
            if self._is_rate_limited(client_ip):
                security_logger.log_rate_limit_exceeded(ip_address=client_ip, endpoint=request.url.path)
                exc = RateLimitError(retry_after=self.window_seconds)
                return JSONResponse(
                    status_code=exc.status_code,
                    content={"message": exc.message, "details": exc.details},
                    headers={"Retry-After": str(self.window_seconds)},
                )

        return await call_next(request)

    def _is_rate_limited(self, key: str, now: Optional[float] = None) -> bool:
        current_time = now if now is not None else time.time()
        window_start = current_time - self.window_seconds
        if current_time - self._last_sweep >= self.window_seconds:
            self._sweep(window_start)
            self._last_sweep = current_time

        recent = [ts for ts in self._requests[key] if ts > window_start]
        if len(recent) >= self.max_requests:
            self._requests[key] = recent
            return True

        recent.append(current_time)
        self._requests[key] = recent
        return False

    def _sweep(self, window_start: float) -> None:
        """Forget clients with no attempts left in the window."""
        stale = [key for key, stamps in self._requests.items() if not stamps or stamps[-1] <= window_start]
        for key in stale:
            del self._requests[key]
