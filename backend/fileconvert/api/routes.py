"""API routes: conversion dispatch, CORS preflight, health and quota status."""
import logging
import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from fileconvert.api.parser import parse_conversion_request
from fileconvert.api.responses import (
    conversions_response,
    cors_preflight_response,
    error_response,
    health_response,
    rate_limit_status_response,
    rate_limited_response,
    success_response,
)
from fileconvert.config import (
    CONVERT_PREFIX,
    DOCUMENT_SERVICE_NAME,
    DOCUMENT_SERVICE_VERSION,
    SERVICE_NAME,
    SERVICE_VERSION,
)
from fileconvert.conversion.service import ConversionService, get_conversion_service
from fileconvert.exceptions import InvalidFileError, ProcessingFailedError, RequestError
from fileconvert.ratelimit import RateLimiter, get_client_ip, get_rate_limiter

logger = logging.getLogger("converter.api")
router = APIRouter(tags=["converter"])


def client_ip(request: Request) -> str:
    return get_client_ip(request.headers, request.client.host if request.client else None)


@router.post(CONVERT_PREFIX + "/{conversion_type}")
async def convert(
    conversion_type: str,
    request: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
    service: ConversionService = Depends(get_conversion_service),
) -> Response:
    """
    Convert the uploaded `file` part using the registered `conversion_type` (e.g. jpg-to-png).
    Optional `options` part: JSON array of flags (optimize-size, improve-quality, reduce-noise).
    """
    start = time.perf_counter()
    ip = client_ip(request)
    quota = limiter.check(ip)
    if not quota.allowed:
        return rate_limited_response(quota)
    logger.info("Conversion request %s from %s (remaining %s)", conversion_type, ip, quota.remaining)

    try:
        parsed = await parse_conversion_request(request)
    except RequestError as e:
        logger.warning("Rejected request from %s: %s (%s)", ip, e.message, e.code)
        return error_response(e.status, e.message, e.code)
    logger.info("Parsed upload: %sMB, options=%s", parsed.size_mb, parsed.processing_options)

    key = conversion_type.lower()
    entry = service.lookup(key)
    if entry is None:
        logger.warning("Unsupported conversion requested: %s", key)
        return error_response(400, f"Conversion type '{key}' is not supported", "UNSUPPORTED_CONVERSION")

    prefix = entry.category.error_prefix
    try:
        result = await service.convert(entry, parsed.file_buffer, parsed.processing_options)
    except InvalidFileError as e:
        return error_response(e.status, e.message, e.code)
    except ProcessingFailedError as e:
        logger.error("%s returned no output", key)
        return error_response(500, e.message, f"{prefix}PROCESSING_ERROR")
    except Exception as e:
        logger.exception("Conversion %s failed", key)
        return error_response(500, f"Internal server error: {e}", f"{prefix}INTERNAL_ERROR")

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info("Conversion %s completed in %.0fms, options=%s", key, elapsed_ms, result.applied_options)
    return success_response(
        result.buffer,
        result.metadata,
        elapsed_ms,
        entry.output_format,
        media_type=entry.media_type,
        extra_headers={
            "X-RateLimit-Remaining": str(quota.remaining),
            "X-RateLimit-Limit": str(quota.limit),
        },
    )


@router.options(CONVERT_PREFIX + "/{conversion_type}")
async def convert_preflight(conversion_type: str) -> Response:
    return cors_preflight_response()


@router.get(CONVERT_PREFIX)
async def list_conversions(service: ConversionService = Depends(get_conversion_service)) -> Response:
    """Supported conversion keys, input/output formats and totals."""
    return conversions_response(service.registry)


@router.get("/health")
async def health() -> Response:
    return health_response(SERVICE_NAME, SERVICE_VERSION)


@router.get("/health-docs")
async def health_docs() -> Response:
    return health_response(DOCUMENT_SERVICE_NAME, DOCUMENT_SERVICE_VERSION)


@router.get("/rate-limit-status")
async def rate_limit_status(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> Response:
    """Quota status for the caller's IP. The status request itself counts against the quota."""
    ip = client_ip(request)
    return rate_limit_status_response(ip, limiter.check(ip))
