from .models import ConversionCategory, ConversionResult
from .registry import ConversionEntry, ConversionRegistry, get_registry
from .service import ConversionService, get_conversion_service

__all__ = [
    "ConversionCategory",
    "ConversionResult",
    "ConversionEntry",
    "ConversionRegistry",
    "ConversionService",
    "get_registry",
    "get_conversion_service",
]
