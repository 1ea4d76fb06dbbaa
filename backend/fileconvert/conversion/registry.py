"""Static table of supported conversions, keyed by "<input>-to-<output>"."""
import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Iterable, Optional, Sequence

from fileconvert.conversion import documents, video
from fileconvert.conversion.images import convert_ico_to_svg, convert_image, default_options_for
from fileconvert.conversion.models import ConversionCategory, ConversionResult
from fileconvert.conversion.options import (
    DocxOptions,
    HtmlOptions,
    JpegOptions,
    Mp4Options,
    OutputOptions,
    PdfOptions,
    PngOptions,
    PptxOptions,
    SvgOptions,
)

logger = logging.getLogger("converter.registry")

Processor = Callable[[bytes, Sequence[str], Any], ConversionResult]

KEY_SEPARATOR = "-to-"

MEDIA_TYPES = {
    "jpg": "image/jpg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "tiff": "image/tiff",
    "avif": "image/avif",
    "svg": "image/svg+xml",
    "mp4": "video/mp4",
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "html": "text/html",
}


def make_key(input_format: str, output_format: str) -> str:
    return f"{input_format}{KEY_SEPARATOR}{output_format}"


def split_key(key: str) -> tuple[str, str]:
    input_format, _, output_format = key.partition(KEY_SEPARATOR)
    return input_format, output_format


@dataclass(frozen=True)
class ConversionEntry:
    key: str
    input_format: str
    output_format: str
    processor: Processor
    conversion_options: OutputOptions
    category: ConversionCategory = ConversionCategory.IMAGE
    media_type: str = ""

    def run(self, data: bytes, processing_options: Sequence[str]) -> ConversionResult:
        return self.processor(data, processing_options, self.conversion_options)


class ConversionRegistry:
    """
    Immutable lookup table of ConversionEntry objects.
    Lookups are exact and case-sensitive; callers lowercase the key first.
    """

    def __init__(self, entries: Iterable[ConversionEntry]):
        self._entries: dict[str, ConversionEntry] = {}
        for entry in entries:
            if entry.key in self._entries:
                raise ValueError(f"Duplicate conversion key: {entry.key}")
            self._entries[entry.key] = entry

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, key: str) -> Optional[ConversionEntry]:
        return self._entries.get(key)

    def has(self, key: str) -> bool:
        return key in self._entries

    def list_all(self) -> list[str]:
        return list(self._entries)

    def list_by_input(self, fmt: str) -> list[str]:
        prefix = fmt.lower() + KEY_SEPARATOR
        return [key for key in self._entries if key.startswith(prefix)]

    def list_by_output(self, fmt: str) -> list[str]:
        suffix = KEY_SEPARATOR + fmt.lower()
        return [key for key in self._entries if key.endswith(suffix)]

    def supports_input(self, fmt: str) -> bool:
        return bool(self.list_by_input(fmt))

    def supports_output(self, fmt: str) -> bool:
        return bool(self.list_by_output(fmt))

    def supported_formats(self) -> dict[str, Any]:
        inputs = {entry.input_format for entry in self._entries.values()}
        outputs = {entry.output_format for entry in self._entries.values()}
        return {"input": sorted(inputs), "output": sorted(outputs), "total": len(self._entries)}

    def stats(self) -> dict[str, Any]:
        formats = self.supported_formats()
        by_category: dict[str, int] = {}
        for entry in self._entries.values():
            by_category[entry.category.value] = by_category.get(entry.category.value, 0) + 1
        return {
            "totalConversions": len(self._entries),
            "inputFormats": len(formats["input"]),
            "outputFormats": len(formats["output"]),
            "byCategory": by_category,
            "supportedFormats": formats,
            "availableConversions": self.list_all(),
        }


def entry(
    input_format: str,
    output_format: str,
    processor: Processor,
    defaults: OutputOptions,
    category: ConversionCategory = ConversionCategory.IMAGE,
) -> ConversionEntry:
    return ConversionEntry(
        key=make_key(input_format, output_format),
        input_format=input_format,
        output_format=output_format,
        processor=processor,
        conversion_options=defaults,
        category=category,
        media_type=MEDIA_TYPES.get(output_format, f"image/{output_format}"),
    )


RASTER_PAIRS = (
    ("avif", "bmp"), ("avif", "png"), ("avif", "webp"),
    ("bmp", "jpg"), ("bmp", "png"),
    ("gif", "jpg"), ("gif", "png"), ("gif", "webp"),
    ("heic", "avif"), ("heic", "jpg"), ("heic", "png"), ("heic", "webp"),
    ("jpg", "avif"), ("jpg", "bmp"), ("jpg", "png"), ("jpg", "tiff"), ("jpg", "webp"),
    ("png", "avif"), ("png", "bmp"), ("png", "jpg"), ("png", "tiff"), ("png", "webp"),
    ("tiff", "avif"), ("tiff", "jpg"), ("tiff", "png"), ("tiff", "webp"),
    ("webp", "jpg"), ("webp", "png"), ("webp", "tiff"),
)

# png-to-jpg and webp-to-jpg ship with an explicit option set; the rest take format defaults
RASTER_DEFAULTS: dict[tuple[str, str], OutputOptions] = {
    ("jpg", "png"): PngOptions(compress_level=6),
    ("png", "jpg"): JpegOptions(quality=90, progressive=False, optimize=True),
    ("webp", "jpg"): JpegOptions(quality=90, progressive=False, optimize=True),
}

DOC = ConversionCategory.DOCUMENT


def build_entries() -> list[ConversionEntry]:
    entries = [
        entry(
            src, dst,
            partial(convert_image, source=src, target=dst),
            RASTER_DEFAULTS.get((src, dst)) or default_options_for(dst),
        )
        for src, dst in RASTER_PAIRS
    ]
    entries += [
        entry("ico", "svg", convert_ico_to_svg, SvgOptions()),
        entry("gif", "mp4", video.convert_gif_to_mp4, Mp4Options()),
    ]
    entries += [
        entry(src, "pdf", partial(documents.convert_image_to_pdf, source=src), PdfOptions(), DOC)
        for src in ("jpg", "png", "webp")
    ]
    entries += [
        entry("pdf", "docx", documents.convert_pdf_to_docx, DocxOptions(font_name="Arial", font_size=12), DOC),
        entry("word", "pdf", documents.convert_docx_to_pdf, PdfOptions(margin=50, line_height=1.2), DOC),
        # 1in margins
        entry("docx", "pdf", documents.convert_docx_to_pdf, PdfOptions(margin=72), DOC),
        entry("txt", "pdf", documents.convert_txt_to_pdf, PdfOptions(font_name="Courier", font_size=11), DOC),
        entry("txt", "docx", documents.convert_txt_to_docx, DocxOptions(page_breaks=False), DOC),
        entry("txt", "html", documents.convert_txt_to_html, HtmlOptions(), DOC),
        entry("txt", "pptx", documents.convert_txt_to_pptx, PptxOptions(), DOC),
    ]
    return entries


_registry: Optional[ConversionRegistry] = None


def get_registry() -> ConversionRegistry:
    global _registry
    if _registry is None:
        _registry = ConversionRegistry(build_entries())
        logger.info("Conversion registry loaded with %s conversions", len(_registry))
    return _registry
