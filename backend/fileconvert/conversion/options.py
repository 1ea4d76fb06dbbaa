"""Typed default options per output format, adjusted by processing flags."""
from dataclasses import dataclass, replace
from typing import ClassVar, Optional, Sequence

OPTIMIZE_SIZE = "optimize-size"
IMPROVE_QUALITY = "improve-quality"
REDUCE_NOISE = "reduce-noise"

PAGE_SIZES = ("A4", "LETTER", "LEGAL")
RGB = tuple[int, int, int]


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")


@dataclass(frozen=True)
class OutputOptions:
    """Base for per-format options. Flags apply overrides in order: size, then quality."""

    size_overrides: ClassVar[dict] = {}
    quality_overrides: ClassVar[dict] = {}

    def for_flags(self, flags: Sequence[str]):
        opts = self
        if OPTIMIZE_SIZE in flags and self.size_overrides:
            opts = replace(opts, **self.size_overrides)
        if IMPROVE_QUALITY in flags and self.quality_overrides:
            opts = replace(opts, **self.quality_overrides)
        return opts


@dataclass(frozen=True)
class JpegOptions(OutputOptions):
    quality: int = 90
    progressive: bool = False
    optimize: bool = True
    subsampling: int = 2  # Pillow: 0 = 4:4:4, 2 = 4:2:0
    background: RGB = (255, 255, 255)

    size_overrides: ClassVar[dict] = {"quality": 80, "subsampling": 2}
    quality_overrides: ClassVar[dict] = {"quality": 95, "subsampling": 0}

    def __post_init__(self):
        _check_range("quality", self.quality, 1, 100)
        if self.subsampling not in (0, 1, 2):
            raise ValueError(f"subsampling must be 0, 1 or 2, got {self.subsampling}")


@dataclass(frozen=True)
class PngOptions(OutputOptions):
    compress_level: int = 6
    optimize: bool = False

    size_overrides: ClassVar[dict] = {"compress_level": 9, "optimize": True}
    quality_overrides: ClassVar[dict] = {"compress_level": 6}

    def __post_init__(self):
        _check_range("compress_level", self.compress_level, 0, 9)


@dataclass(frozen=True)
class WebpOptions(OutputOptions):
    quality: int = 80
    lossless: bool = False
    method: int = 4

    size_overrides: ClassVar[dict] = {"quality": 70, "method": 6}
    quality_overrides: ClassVar[dict] = {"quality": 90}

    def __post_init__(self):
        _check_range("quality", self.quality, 0, 100)
        _check_range("method", self.method, 0, 6)


@dataclass(frozen=True)
class AvifOptions(OutputOptions):
    quality: int = 50
    speed: int = 6

    size_overrides: ClassVar[dict] = {"quality": 40}
    quality_overrides: ClassVar[dict] = {"quality": 70, "speed": 4}

    def __post_init__(self):
        _check_range("quality", self.quality, 0, 100)
        _check_range("speed", self.speed, 0, 10)


@dataclass(frozen=True)
class TiffOptions(OutputOptions):
    compression: str = "tiff_lzw"

    size_overrides: ClassVar[dict] = {"compression": "tiff_adobe_deflate"}
    quality_overrides: ClassVar[dict] = {"compression": "tiff_lzw"}

    def __post_init__(self):
        if self.compression not in ("raw", "tiff_lzw", "tiff_adobe_deflate", "packbits"):
            raise ValueError(f"Unsupported TIFF compression: {self.compression}")


@dataclass(frozen=True)
class BmpOptions(OutputOptions):
    background: RGB = (255, 255, 255)


@dataclass(frozen=True)
class GifOptions(OutputOptions):
    optimize: bool = True


@dataclass(frozen=True)
class SvgOptions(OutputOptions):
    background_color: str = "transparent"
    preserve_aspect_ratio: str = "xMidYMid meet"


@dataclass(frozen=True)
class Mp4Options(OutputOptions):
    crf: int = 23
    preset: str = "medium"
    codec: str = "libx264"
    fps: Optional[int] = None
    scale: Optional[str] = None  # ffmpeg size, e.g. "640x?" or "640x480"

    size_overrides: ClassVar[dict] = {"crf": 28, "preset": "slow"}
    quality_overrides: ClassVar[dict] = {"crf": 18}

    def __post_init__(self):
        _check_range("crf", self.crf, 0, 51)
        if self.fps is not None:
            _check_range("fps", self.fps, 1, 120)


@dataclass(frozen=True)
class PdfOptions(OutputOptions):
    page_size: str = "A4"
    landscape: bool = False
    margin: float = 50.0  # points
    font_name: str = "Helvetica"
    font_size: float = 12.0
    line_height: float = 1.2
    fit_to_page: bool = True
    image_quality: int = 90
    title: str = ""
    author: str = "File Converter"

    size_overrides: ClassVar[dict] = {"font_size": 10.0, "line_height": 1.1, "margin": 36.0, "image_quality": 75}
    quality_overrides: ClassVar[dict] = {
        "font_size": 14.0, "line_height": 1.4, "font_name": "Times-Roman", "image_quality": 95,
    }

    def __post_init__(self):
        if self.page_size.upper() not in PAGE_SIZES:
            raise ValueError(f"page_size must be one of {PAGE_SIZES}, got {self.page_size}")
        _check_range("font_size", self.font_size, 4, 72)
        _check_range("margin", self.margin, 0, 200)
        _check_range("image_quality", self.image_quality, 1, 100)


@dataclass(frozen=True)
class DocxOptions(OutputOptions):
    font_name: str = "Arial"
    font_size: float = 12.0
    auto_detect_titles: bool = True
    page_breaks: bool = True
    extract_metadata: bool = True

    size_overrides: ClassVar[dict] = {"font_size": 10.0}
    quality_overrides: ClassVar[dict] = {"font_size": 14.0}

    def __post_init__(self):
        _check_range("font_size", self.font_size, 4, 72)


@dataclass(frozen=True)
class HtmlOptions(OutputOptions):
    title: str = "Converted document"
    theme: str = "light"
    font_family: str = "Arial, sans-serif"
    font_size: str = "16px"
    line_height: str = "1.6"
    auto_detect_titles: bool = True
    linkify: bool = True
    include_styles: bool = True

    size_overrides: ClassVar[dict] = {"font_size": "14px", "line_height": "1.4", "include_styles": False}
    quality_overrides: ClassVar[dict] = {"font_size": "18px", "line_height": "1.8", "font_family": "Georgia, serif"}

    def __post_init__(self):
        if self.theme not in ("light", "dark"):
            raise ValueError(f"theme must be 'light' or 'dark', got {self.theme}")


@dataclass(frozen=True)
class PptxOptions(OutputOptions):
    title: str = "Converted document"
    author: str = "File Converter"
    font_size: int = 18
    title_font_size: int = 28
    theme: str = "light"
    max_words_per_slide: int = 150
    auto_split: bool = True

    size_overrides: ClassVar[dict] = {"font_size": 16, "max_words_per_slide": 200}
    quality_overrides: ClassVar[dict] = {"font_size": 20, "title_font_size": 32, "max_words_per_slide": 100}

    def __post_init__(self):
        _check_range("font_size", self.font_size, 8, 60)
        _check_range("title_font_size", self.title_font_size, 8, 80)
        _check_range("max_words_per_slide", self.max_words_per_slide, 10, 1000)
        if self.theme not in ("light", "dark"):
            raise ValueError(f"theme must be 'light' or 'dark', got {self.theme}")
