"""Conversion service: registry lookup and processor execution off the event loop."""
import logging
import time
from typing import Optional, Sequence

from starlette.concurrency import run_in_threadpool

from fileconvert.conversion.models import ConversionResult
from fileconvert.conversion.registry import ConversionEntry, ConversionRegistry, get_registry
from fileconvert.exceptions import ProcessingFailedError

logger = logging.getLogger("converter.service")


class ConversionService:
    """Runs registered processors and enforces the result contract."""

    def __init__(self, registry: Optional[ConversionRegistry] = None):
        self.registry = registry if registry is not None else get_registry()
        logger.info("ConversionService initialized with %s conversions", len(self.registry))

    def lookup(self, conversion_type: str) -> Optional[ConversionEntry]:
        return self.registry.lookup(conversion_type)

    async def convert(
        self,
        entry: ConversionEntry,
        data: bytes,
        processing_options: Sequence[str],
    ) -> ConversionResult:
        """
        Run the entry's processor in the threadpool. Codec work is CPU-bound and
        ffmpeg blocks on a subprocess, so neither runs on the event loop.
        Raises ProcessingFailedError when the processor reports failure or returns no bytes.
        """
        start = time.perf_counter()
        result = await run_in_threadpool(entry.run, data, list(processing_options))
        if result is None or not result.ok:
            raise ProcessingFailedError(f"Error processing {entry.input_format.upper()} to {entry.output_format.upper()}")
        logger.info(
            "%s finished in %.0fms (%s bytes)",
            entry.key, (time.perf_counter() - start) * 1000, len(result.buffer),
        )
        return result


# Singleton
_conversion_service: Optional[ConversionService] = None


def get_conversion_service() -> ConversionService:
    global _conversion_service
    if _conversion_service is None:
        _conversion_service = ConversionService()
    return _conversion_service
