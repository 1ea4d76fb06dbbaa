"""JSON envelopes for every route. Nothing else in the app builds a Response."""
import base64
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi.responses import JSONResponse, Response

from fileconvert.conversion.registry import ConversionRegistry
from fileconvert.ratelimit import RateLimitResult

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}
PREFLIGHT_MAX_AGE = "3600"


def _iso(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _json(status: int, body: dict[str, Any], headers: Optional[dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status, content=body, headers={**CORS_HEADERS, **(headers or {})})


def data_uri(buffer: bytes, media_type: str) -> str:
    return f"data:{media_type};base64,{base64.b64encode(buffer).decode('ascii')}"


def success_response(
    buffer: bytes,
    metadata: dict[str, Any],
    processing_time_ms: float,
    output_format: str,
    media_type: Optional[str] = None,
    extra_headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    original = metadata.get("original", {})
    final = metadata.get("final", {})
    processing = metadata.get("processing", {})
    body = {
        "success": True,
        "message": f"Conversion to {output_format.upper()} completed successfully",
        "image": data_uri(buffer, media_type or f"image/{output_format}"),
        "metadata": {
            **metadata,
            "width": final.get("width"),
            "height": final.get("height"),
            "format": output_format,
            "originalFormat": original.get("format"),
        },
        "originalSize": original.get("size", 0),
        "processedSize": len(buffer),
        "processingTime": round(processing_time_ms),
        "appliedOptions": processing.get("appliedOptions", []),
        "compressionRatio": processing.get("compressionRatio", "0"),
    }
    return _json(200, body, extra_headers)


def error_response(
    status: int,
    message: str,
    code: str,
    extra: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    body = {"success": False, "error": message, "code": code, **(extra or {})}
    return _json(status, body, headers)


def rate_limited_response(result: RateLimitResult) -> JSONResponse:
    return error_response(
        429,
        f"Rate limit exceeded. Maximum {result.limit} requests per day.",
        "RATE_LIMIT_EXCEEDED",
        extra={"resetTime": _iso(result.reset_time), "maxRequests": result.limit, "remaining": 0},
        headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Limit": str(result.limit)},
    )


def cors_preflight_response() -> Response:
    return Response(status_code=200, headers={**CORS_HEADERS, "Access-Control-Max-Age": PREFLIGHT_MAX_AGE})


def health_response(service: str, version: str) -> JSONResponse:
    return _json(200, {
        "status": "healthy",
        "timestamp": _iso(datetime.now(timezone.utc)),
        "service": service,
        "version": version,
    })


def rate_limit_status_response(ip: str, result: RateLimitResult) -> JSONResponse:
    """resetTime is only reported once the caller is blocked."""
    return _json(200, {
        "ip": ip,
        "remaining": result.remaining,
        "limit": result.limit,
        "resetTime": None if result.allowed else _iso(result.reset_time),
    })


def conversions_response(registry: ConversionRegistry) -> JSONResponse:
    stats = registry.stats()
    return _json(200, {
        "success": True,
        "conversions": stats["availableConversions"],
        "formats": stats["supportedFormats"],
        "totalConversions": stats["totalConversions"],
        "byCategory": stats["byCategory"],
    })
