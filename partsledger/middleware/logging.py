import time
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("access")

class LoggingMiddleware(BaseHTTPMiddleware):
    """Access log for every HTTP request, with the acting operator when known"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        process_time = time.time() - start_time
        operator = getattr(request.state, "current_operator", None)
        actor = operator.name if operator else "anonymous"
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(
            level,
            f"{'✅' if level == logging.INFO else '⚠️'} {request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Operator: {actor} - "
            f"Time: {process_time:.4f}s"
        )

        response.headers["X-Process-Time"] = str(process_time)
        return response
