"""Request middleware: upload log context and error response logging."""

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from fotofi.core.logging import bind_upload_context

logger = logging.getLogger(__name__)

_UPLOAD_METHODS = frozenset({"POST", "PUT", "DELETE"})


async def _upload_identity(request: Request) -> tuple[str | None, str | None, str | None]:
    """(bucketName, fileName, uploadId) from a photo upload request's JSON body."""
    if request.method not in _UPLOAD_METHODS or not request.url.path.startswith("/photos/"):
        return None, None, None
    try:
        body = await request.json()
    except ValueError:
        return None, None, None
    if not isinstance(body, dict):
        return None, None, None
    return body.get("bucketName"), body.get("fileName"), body.get("uploadId")


class HTTPErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every error response; 4xx at WARNING, 5xx at ERROR.

    Photo upload requests also get their object key and upload id bound
    to the log context, so records from the handler carry them.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        bucket_name, file_name, upload_id = await _upload_identity(request)
        log_context = bind_upload_context(bucket_name, file_name, upload_id)

        try:
            response = await call_next(request)

            if response.status_code >= 400:
                logger.log(
                    logging.ERROR if response.status_code >= 500 else logging.WARNING,
                    "Server error response" if response.status_code >= 500 else "Client error response",
                    extra={
                        "http_status": response.status_code,
                        "method": request.method,
                        "path": request.url.path,
                        "bucket": bucket_name,
                        "upload_id": upload_id,
                        "duration_ms": round((time.perf_counter() - started) * 1000, 1),
                    },
                )
            return response
        finally:
            log_context.reset()
