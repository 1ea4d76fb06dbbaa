"""Conversion service contract enforcement."""
import asyncio

import pytest

from fileconvert.conversion.models import ConversionResult
from fileconvert.conversion.options import PngOptions
from fileconvert.conversion.registry import ConversionEntry, ConversionRegistry
from fileconvert.conversion.service import ConversionService
from fileconvert.exceptions import ProcessingFailedError


def make_service(processor) -> tuple[ConversionService, ConversionEntry]:
    entry = ConversionEntry("a-to-png", "a", "png", processor, PngOptions())
    return ConversionService(ConversionRegistry([entry])), entry


class TestConversionService:
    def test_lookup(self):
        service, entry = make_service(lambda data, opts, params: ConversionResult(True, data))
        assert service.lookup("a-to-png") is entry
        assert service.lookup("b-to-png") is None

    def test_convert_returns_result(self):
        service, entry = make_service(lambda data, opts, params: ConversionResult(True, data[::-1]))
        result = asyncio.run(service.convert(entry, b"abc", ["optimize-size"]))
        assert result.buffer == b"cba"

    @pytest.mark.parametrize(
        "result",
        [ConversionResult(False, b"data"), ConversionResult(True, b""), None],
    )
    def test_failed_or_empty_result(self, result):
        service, entry = make_service(lambda data, opts, params: result)
        with pytest.raises(ProcessingFailedError, match="Error processing A to PNG"):
            asyncio.run(service.convert(entry, b"abc", []))

    def test_processor_exception_propagates(self):
        def boom(data, opts, params):
            raise RuntimeError("codec crashed")

        service, entry = make_service(boom)
        with pytest.raises(RuntimeError, match="codec crashed"):
            asyncio.run(service.convert(entry, b"abc", []))
