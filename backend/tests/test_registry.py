"""Conversion registry: completeness, queries and construction rules."""
import pytest

from fileconvert.conversion.models import ConversionCategory, ConversionResult
from fileconvert.conversion.options import PngOptions
from fileconvert.conversion.registry import (
    ConversionEntry,
    ConversionRegistry,
    build_entries,
    get_registry,
    make_key,
    split_key,
)


def _noop(data, processing_options, params):
    return ConversionResult(success=True, buffer=data)


class TestRegistryContents:
    """The default registry built at startup."""

    def test_every_key_resolves_to_matching_output(self):
        registry = get_registry()
        assert len(registry) > 0
        for key in registry.list_all():
            entry = registry.lookup(key)
            assert entry is not None
            assert key.endswith("-to-" + entry.output_format)
            assert entry.key == make_key(entry.input_format, entry.output_format)

    def test_known_pairs_registered(self):
        registry = get_registry()
        for key in ("jpg-to-png", "png-to-jpg", "webp-to-jpg", "ico-to-svg", "gif-to-mp4",
                    "txt-to-pdf", "docx-to-pdf", "word-to-pdf", "pdf-to-docx", "txt-to-html",
                    "heic-to-jpg", "heic-to-png"):
            assert key in registry, key

    def test_unregistered_pair_misses(self):
        registry = get_registry()
        assert registry.lookup("bmp-to-avif") is None
        assert not registry.has("bmp-to-avif")

    def test_lookup_is_case_sensitive_and_has_no_aliases(self):
        registry = get_registry()
        assert registry.lookup("JPG-TO-PNG") is None
        assert registry.lookup("jpeg-to-png") is None

    def test_document_entries_use_document_category(self):
        registry = get_registry()
        assert registry.lookup("txt-to-pdf").category is ConversionCategory.DOCUMENT
        assert registry.lookup("jpg-to-png").category is ConversionCategory.IMAGE

    def test_media_types(self):
        registry = get_registry()
        assert registry.lookup("jpg-to-png").media_type == "image/png"
        assert registry.lookup("ico-to-svg").media_type == "image/svg+xml"
        assert registry.lookup("txt-to-pdf").media_type == "application/pdf"

    def test_docx_to_pdf_uses_inch_margins(self):
        assert get_registry().lookup("docx-to-pdf").conversion_options.margin == 72


class TestRegistryQueries:
    def test_list_by_input_lowercases(self):
        registry = get_registry()
        keys = registry.list_by_input("JPG")
        assert "jpg-to-png" in keys
        assert all(key.startswith("jpg-to-") for key in keys)

    def test_list_by_output(self):
        keys = get_registry().list_by_output("pdf")
        assert {"txt-to-pdf", "docx-to-pdf", "word-to-pdf", "jpg-to-pdf"} <= set(keys)

    def test_supported_formats(self):
        registry = get_registry()
        formats = registry.supported_formats()
        assert formats["total"] == len(registry)
        assert formats["input"] == sorted(formats["input"])
        assert "txt" in formats["input"]
        assert "svg" in formats["output"]

    def test_stats(self):
        stats = get_registry().stats()
        assert stats["totalConversions"] == len(stats["availableConversions"])
        assert sum(stats["byCategory"].values()) == stats["totalConversions"]

    def test_supports_input_and_output(self):
        registry = get_registry()
        assert registry.supports_input("ico")
        assert not registry.supports_output("ico")


class TestRegistryConstruction:
    def test_duplicate_keys_rejected(self):
        entry = ConversionEntry("a-to-b", "a", "b", _noop, PngOptions())
        with pytest.raises(ValueError, match="Duplicate"):
            ConversionRegistry([entry, entry])

    def test_build_entries_has_unique_keys(self):
        keys = [entry.key for entry in build_entries()]
        assert len(keys) == len(set(keys))

    def test_split_key(self):
        assert split_key("txt-to-pdf") == ("txt", "pdf")

    def test_entry_run_passes_defaults(self):
        seen = {}

        def processor(data, processing_options, params):
            seen["params"] = params
            return ConversionResult(success=True, buffer=data)

        defaults = PngOptions(compress_level=3)
        entry = ConversionEntry("x-to-png", "x", "png", processor, defaults)
        result = entry.run(b"abc", [])
        assert result.buffer == b"abc"
        assert seen["params"] is defaults
