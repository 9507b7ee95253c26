from __future__ import annotations

import json
import logging
import time
import uuid
from datetime import datetime, timezone

REQUEST_FIELDS = (
    "request_id",
    "path",
    "method",
    "status_code",
    "duration_ms",
    "remote_addr",
)

SHOP_FIELDS = (
    "product_id",
    "customer_id",
    "sale_id",
    "entry_id",
    "keys",
)


class JsonFormatter(logging.Formatter):
    """One JSON object per line; request and shop identifiers are lifted out of ``extra``."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in REQUEST_FIELDS + SHOP_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value if isinstance(value, (int, float, bool, list)) else str(value)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


class RequestLogMiddleware:
    """Attach/propagate request ID and emit per-request access logs."""

    def __init__(self, get_response):
        self.get_response = get_response
        self.logger = logging.getLogger("api.request")

    def __call__(self, request):
        started_at = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.request_id = request_id

        response = self.get_response(request)

        duration_ms = round((time.perf_counter() - started_at) * 1000, 2)
        self.logger.info(
            "request_completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "remote_addr": request.META.get("REMOTE_ADDR"),
            },
        )
        response["X-Request-ID"] = request_id
        return response
