import time
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("access")

HDR_REQUEST_ID = "X-Request-Id"

class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        request_id = request.headers.get(HDR_REQUEST_ID, "-")

        logger.info(
            f"🌐 {request.method} {request.url.path} - "
            f"Client: {request.client.host if request.client else 'unknown'} - "
            f"Request-Id: {request_id}"
        )

        response = await call_next(request)

        process_time = time.time() - start_time

        # Caller identity is only known once the auth dependency ran
        claims = getattr(request.state, "claims", None)
        logger.info(
            f"✅ {request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"User: {claims.uid if claims else 'anonymous'} - "
            f"Time: {process_time:.4f}s"
        )

        response.headers["X-Process-Time"] = str(process_time)

        return response
