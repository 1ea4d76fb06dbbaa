"""Error types shared by the parser, the converters and the dispatch layer."""
from typing import Any, Optional


class ConverterError(Exception):
    """Base error: carries an HTTP status, a stable code and a readable message."""

    status: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status is not None:
            self.status = status
        self.details = details or {}


class RequestError(ConverterError):
    """The multipart request could not be turned into a file buffer."""

    status = 400
    code = "INVALID_REQUEST"


class InvalidFileError(ConverterError):
    """The uploaded bytes do not match the input format of the conversion."""

    status = 400
    code = "INVALID_FILE_FORMAT"


class ConversionError(ConverterError):
    """A codec or rendering library failed; message keeps the library's text."""

    status = 500
    code = "CONVERSION_ERROR"


class ProcessingFailedError(ConverterError):
    """A processor finished without producing output."""

    status = 500
    code = "PROCESSING_ERROR"
