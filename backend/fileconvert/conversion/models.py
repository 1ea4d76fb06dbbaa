"""Conversion result and category models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ConversionCategory(str, Enum):
    IMAGE = "image"
    DOCUMENT = "document"

    @property
    def error_prefix(self) -> str:
        """Prefix for processing/internal error codes (DOCUMENT_INTERNAL_ERROR etc.)."""
        return "" if self is ConversionCategory.IMAGE else "DOCUMENT_"


@dataclass
class ConversionResult:
    """Output of a processor: the converted bytes plus original/final/processing metadata."""

    success: bool
    buffer: bytes
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return bool(self.success) and bool(self.buffer)

    @property
    def applied_options(self) -> list[str]:
        return list(self.metadata.get("processing", {}).get("appliedOptions", []))
