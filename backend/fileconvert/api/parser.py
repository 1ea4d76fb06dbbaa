"""Multipart request parsing: file bytes plus processing option flags."""
import json
import logging
from dataclasses import dataclass, field

from python_multipart.multipart import parse_options_header
from starlette.datastructures import FormData, Headers, UploadFile
from starlette.formparsers import MultiPartParser
from starlette.requests import Request

from fileconvert.exceptions import RequestError

logger = logging.getLogger("converter.parser")

FILE_FIELD = "file"
OPTIONS_FIELD = "options"


@dataclass
class ParsedRequest:
    file_buffer: bytes
    processing_options: list[str] = field(default_factory=list)
    filename: str = ""

    @property
    def size_mb(self) -> str:
        return f"{len(self.file_buffer) / 1024 / 1024:.2f}"


def parse_processing_options(raw: bytes) -> list[str]:
    """JSON array of flag strings. Anything else is logged and treated as no options."""
    try:
        value = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Ignoring malformed options field (%s): %r", e, raw[:100])
        return []
    if not isinstance(value, list):
        logger.warning("Ignoring options field that is not a JSON array: %r", raw[:100])
        return []
    return [item for item in value if isinstance(item, str)]


def _parsing_error(e: Exception) -> RequestError:
    detail = getattr(e, "detail", None) or getattr(e, "message", None) or str(e)
    logger.error("Multipart decode failed: %s", detail)
    return RequestError(f"Error parsing request: {detail}", code="PARSING_ERROR", status=500)


def _check_content_type(content_type: str) -> None:
    if not content_type or "multipart/form-data" not in content_type.lower():
        raise RequestError("Content-Type must be multipart/form-data", code="INVALID_CONTENT_TYPE")
    try:
        _, params = parse_options_header(content_type)
    except Exception as e:
        raise _parsing_error(e) from e
    if not params.get(b"boundary"):
        raise RequestError("Boundary not found in Content-Type", code="MISSING_BOUNDARY")


async def _first_value(form: FormData, name: str) -> tuple[bytes, str]:
    """Bytes and filename of the first part called `name` (empty when absent)."""
    values = form.getlist(name)
    if not values:
        return b"", ""
    value = values[0]
    if isinstance(value, UploadFile):
        return await value.read(), value.filename or ""
    return value.encode("utf-8"), ""


async def _from_form(form: FormData) -> ParsedRequest:
    try:
        file_buffer, filename = await _first_value(form, FILE_FIELD)
        raw_options, _ = await _first_value(form, OPTIONS_FIELD)
    finally:
        await form.close()
    if not file_buffer:
        raise RequestError("No file found in request", code="NO_FILE_FOUND")
    options = parse_processing_options(raw_options) if OPTIONS_FIELD in form else []
    return ParsedRequest(file_buffer=file_buffer, processing_options=options, filename=filename)


async def parse_multipart(content_type: str, body: bytes) -> ParsedRequest:
    """
    Decode a multipart/form-data body into the uploaded file and its option flags.

    Raises RequestError with INVALID_CONTENT_TYPE, MISSING_BOUNDARY or NO_FILE_FOUND (400),
    or PARSING_ERROR (500) for anything unexpected while decoding.
    """
    _check_content_type(content_type)

    async def stream():
        yield body

    try:
        form = await MultiPartParser(Headers({"content-type": content_type}), stream()).parse()
    except Exception as e:
        raise _parsing_error(e) from e
    return await _from_form(form)


async def parse_conversion_request(request: Request) -> ParsedRequest:
    _check_content_type(request.headers.get("content-type", ""))
    try:
        form = await request.form()
    except Exception as e:
        raise _parsing_error(e) from e
    return await _from_form(form)
