"""Raster image conversion with Pillow."""
import base64
import io
import logging
from typing import Any, Sequence

from PIL import Image
from pillow_heif import register_heif_opener

from fileconvert.conversion.models import ConversionResult
from fileconvert.conversion.options import (
    AvifOptions,
    BmpOptions,
    GifOptions,
    JpegOptions,
    OPTIMIZE_SIZE,
    OutputOptions,
    PngOptions,
    SvgOptions,
    TiffOptions,
    WebpOptions,
)
from fileconvert.conversion.processing import (
    apply_image_options,
    build_metadata,
    flatten_alpha,
    has_alpha,
    image_info,
    size_mb,
)
from fileconvert.conversion.validators import ensure_format
from fileconvert.exceptions import ConversionError

logger = logging.getLogger("converter.images")

# lets Image.open decode HEIC/HEIF uploads
register_heif_opener()

PIL_FORMATS = {
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
    "avif": "AVIF",
    "tiff": "TIFF",
    "bmp": "BMP",
    "gif": "GIF",
}


def _open(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()  # first frame of animated inputs
    return img


def _prepare_for_target(img: Image.Image, target: str, opts: OutputOptions) -> Image.Image:
    """Mode conversion the target encoder needs."""
    if target in ("jpg", "jpeg", "bmp"):
        background = getattr(opts, "background", (255, 255, 255))
        return flatten_alpha(img, background)
    if target in ("webp", "avif", "png", "tiff"):
        if img.mode not in ("RGB", "RGBA", "L", "LA", "I;16"):
            return img.convert("RGBA" if has_alpha(img) else "RGB")
    return img


def _save_kwargs(target: str, opts: OutputOptions) -> dict[str, Any]:
    if isinstance(opts, JpegOptions):
        return {
            "quality": opts.quality,
            "progressive": opts.progressive,
            "optimize": opts.optimize,
            "subsampling": opts.subsampling,
        }
    if isinstance(opts, PngOptions):
        return {"compress_level": opts.compress_level, "optimize": opts.optimize}
    if isinstance(opts, WebpOptions):
        return {"quality": opts.quality, "lossless": opts.lossless, "method": opts.method}
    if isinstance(opts, AvifOptions):
        return {"quality": opts.quality, "speed": opts.speed}
    if isinstance(opts, TiffOptions):
        return {"compression": opts.compression}
    if isinstance(opts, GifOptions):
        return {"optimize": opts.optimize}
    return {}


def encode_image(img: Image.Image, target: str, opts: OutputOptions) -> bytes:
    pil_format = PIL_FORMATS.get(target)
    if pil_format is None:
        raise ConversionError(f"Unsupported output format: {target}")
    out = io.BytesIO()
    work = _prepare_for_target(img, target, opts)
    work.save(out, format=pil_format, **_save_kwargs(target, opts))
    return out.getvalue()


def convert_image(
    data: bytes,
    processing_options: Sequence[str],
    params: OutputOptions,
    *,
    source: str,
    target: str,
) -> ConversionResult:
    """
    Convert one raster image between formats.
    Validates magic bytes for `source`, applies pixel flags, encodes to `target`
    with `params` adjusted by optimize-size / improve-quality.
    """
    ensure_format(source, data)
    flags = list(processing_options or [])
    opts = params.for_flags(flags)
    label = f"{source.upper()}->{target.upper()}"
    try:
        original = _open(data)
        original_meta = image_info(original, len(data), fmt=source)
        logger.info(
            "Processing %s: %sx%s, %sMB",
            source.upper(), original.width, original.height, size_mb(len(data)),
        )
        work = apply_image_options(original, flags)
        out_bytes = encode_image(work, target, opts)
        final = _open(out_bytes)
        final_meta = image_info(final, len(out_bytes), fmt=target)
    except ConversionError:
        raise
    except Exception as e:
        raise ConversionError(f"Error converting {label}: {e}") from e

    logger.info(
        "%s generated: %sx%s, %sMB",
        target.upper(), final_meta["width"], final_meta["height"], size_mb(len(out_bytes)),
    )
    return ConversionResult(
        success=True,
        buffer=out_bytes,
        metadata=build_metadata(original_meta, final_meta, flags),
    )


def build_svg(png_bytes: bytes, width: int, height: int, opts: SvgOptions) -> bytes:
    b64 = base64.b64encode(png_bytes).decode("ascii")
    svg = (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<svg xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink" '
        f'width="{width}" height="{height}" viewBox="0 0 {width} {height}" '
        f'style="background-color: {opts.background_color}">\n'
        f'  <image x="0" y="0" width="{width}" height="{height}" '
        f'preserveAspectRatio="{opts.preserve_aspect_ratio}" '
        f'xlink:href="data:image/png;base64,{b64}"/>\n'
        "</svg>\n"
    )
    return svg.encode("utf-8")


def convert_ico_to_svg(
    data: bytes,
    processing_options: Sequence[str],
    params: SvgOptions,
) -> ConversionResult:
    """Wrap the largest icon frame, re-encoded as PNG, in an SVG <image> element."""
    ensure_format("ico", data)
    flags = list(processing_options or [])
    try:
        icon = _open(data)
        original_meta = image_info(icon, len(data), fmt="ico")
        work = apply_image_options(icon, flags)
        png_opts = PngOptions(compress_level=9, optimize=True) if OPTIMIZE_SIZE in flags else PngOptions()
        png_bytes = encode_image(work, "png", png_opts)
        svg_bytes = build_svg(png_bytes, work.width, work.height, params)
    except ConversionError:
        raise
    except Exception as e:
        raise ConversionError(f"Error converting ICO->SVG: {e}") from e

    final_meta = {
        "format": "svg",
        "width": work.width,
        "height": work.height,
        "size": len(svg_bytes),
        "channels": 4,
        "hasAlpha": True,
    }
    return ConversionResult(
        success=True,
        buffer=svg_bytes,
        metadata=build_metadata(original_meta, final_meta, flags),
    )


def default_options_for(target: str) -> OutputOptions:
    return {
        "jpg": JpegOptions,
        "jpeg": JpegOptions,
        "png": PngOptions,
        "webp": WebpOptions,
        "avif": AvifOptions,
        "tiff": TiffOptions,
        "bmp": BmpOptions,
        "gif": GifOptions,
    }[target]()
