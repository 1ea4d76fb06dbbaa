"""Shared pre-processing and metadata helpers used by every converter."""
import logging
import re
from typing import Any, Optional, Sequence

from PIL import Image, ImageFilter

from fileconvert.conversion.options import IMPROVE_QUALITY, REDUCE_NOISE

logger = logging.getLogger("converter.processing")

RGB = tuple[int, int, int]
# control characters XML 1.0 rejects; tab, newline and carriage return are allowed
XML_ILLEGAL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def apply_image_options(img: Image.Image, flags: Sequence[str]) -> Image.Image:
    """
    Apply processing flags that act on pixels.
    - reduce-noise: 3x3 median filter.
    - improve-quality: mild unsharp mask.
    On failure the untouched image is returned.
    """
    if not flags:
        return img
    try:
        work = img
        if work.mode not in ("RGB", "RGBA", "L"):
            work = work.convert("RGBA" if has_alpha(work) else "RGB")
        if REDUCE_NOISE in flags:
            work = work.filter(ImageFilter.MedianFilter(size=3))
        if IMPROVE_QUALITY in flags:
            work = work.filter(ImageFilter.UnsharpMask(radius=1, percent=60, threshold=2))
        return work
    except Exception as e:
        logger.warning("Shared image processing failed, using original image: %s", e)
        return img


def has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info)


def flatten_alpha(img: Image.Image, background: RGB = (255, 255, 255)) -> Image.Image:
    """Composite onto a solid background and return an RGB image."""
    if not has_alpha(img):
        return img if img.mode == "RGB" else img.convert("RGB")
    rgba = img.convert("RGBA")
    out = Image.new("RGB", rgba.size, background)
    out.paste(rgba, mask=rgba.split()[-1])
    return out


def strip_control_chars(text: str) -> str:
    return XML_ILLEGAL_CHARS.sub("", text)


def clean_text(text: str) -> str:
    """Collapse runs of blanks, squeeze blank lines to one and strip every line."""
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    return text.strip()


def image_info(img: Image.Image, size: int, fmt: Optional[str] = None) -> dict[str, Any]:
    return {
        "format": (fmt or img.format or "").lower(),
        "width": img.width,
        "height": img.height,
        "size": size,
        "channels": len(img.getbands()),
        "hasAlpha": has_alpha(img),
    }


def text_info(text: str, size: int, fmt: str = "txt") -> dict[str, Any]:
    return {
        "format": fmt,
        "wordCount": len(text.split()),
        "lineCount": len(text.split("\n")),
        "paragraphCount": len([p for p in re.split(r"\n\s*\n", text) if p.strip()]),
        "characterCount": len(text),
        "size": size,
    }


def build_metadata(
    original: dict[str, Any],
    final: dict[str, Any],
    flags: Sequence[str],
) -> dict[str, Any]:
    """Compose original/final/processing metadata; sizeChange is always final - original."""
    original_size = original["size"]
    final_size = final["size"]
    size_change = final_size - original_size
    if original_size > 0:
        change_percent = f"{size_change / original_size * 100:.1f}"
    else:
        change_percent = "0"
    if original_size > final_size:
        compression_ratio = f"{(original_size - final_size) / original_size * 100:.1f}"
    else:
        compression_ratio = "0"
    return {
        "original": original,
        "final": final,
        "processing": {
            "appliedOptions": list(flags),
            "sizeChange": size_change,
            "sizeChangePercent": change_percent,
            "compressionRatio": compression_ratio,
        },
    }


def size_mb(size: int) -> str:
    return f"{size / 1024 / 1024:.2f}"
