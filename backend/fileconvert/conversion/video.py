"""Animated GIF to MP4 via ffmpeg."""
import io
import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Sequence

from PIL import Image

from fileconvert.config import FFMPEG_PATH, FFMPEG_TIMEOUT
from fileconvert.conversion.models import ConversionResult
from fileconvert.conversion.options import Mp4Options
from fileconvert.conversion.processing import build_metadata, size_mb
from fileconvert.conversion.validators import ensure_format
from fileconvert.exceptions import ConversionError

logger = logging.getLogger("converter.video")


def gif_info(data: bytes) -> dict[str, Any]:
    with Image.open(io.BytesIO(data)) as img:
        frames = getattr(img, "n_frames", 1)
        return {
            "format": "gif",
            "width": img.width,
            "height": img.height,
            "size": len(data),
            "pages": frames,
            "isAnimated": frames > 1,
            "duration": img.info.get("duration"),
        }


def build_ffmpeg_command(src: Path, dest: Path, opts: Mp4Options) -> list[str]:
    cmd = [
        FFMPEG_PATH, "-y", "-i", str(src),
        "-c:v", opts.codec,
        "-crf", str(opts.crf),
        "-preset", opts.preset,
        "-pix_fmt", "yuv420p",
        "-movflags", "+faststart",
        # yuv420p needs even dimensions
        "-vf", _video_filter(opts),
        "-an",
    ]
    if opts.fps:
        cmd += ["-r", str(opts.fps)]
    cmd.append(str(dest))
    return cmd


def _video_filter(opts: Mp4Options) -> str:
    if opts.scale:
        width, _, height = opts.scale.partition("x")
        width = width if width and width != "?" else "-2"
        height = height if height and height != "?" else "-2"
        return f"scale={width}:{height}"
    return "scale=trunc(iw/2)*2:trunc(ih/2)*2"


def transcode_gif(data: bytes, opts: Mp4Options) -> bytes:
    with tempfile.TemporaryDirectory(prefix="gif2mp4_") as tmp:
        src = Path(tmp) / "input.gif"
        dest = Path(tmp) / "output.mp4"
        src.write_bytes(data)
        cmd = build_ffmpeg_command(src, dest, opts)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=FFMPEG_TIMEOUT,
            )
        except FileNotFoundError as e:
            logger.error("ffmpeg not found. Install ffmpeg for video conversion.")
            raise ConversionError("ffmpeg not installed") from e
        except subprocess.TimeoutExpired as e:
            raise ConversionError(f"ffmpeg timed out after {FFMPEG_TIMEOUT}s") from e
        if result.returncode != 0:
            raise ConversionError(result.stderr or result.stdout or "ffmpeg failed")
        return dest.read_bytes()


def convert_gif_to_mp4(
    data: bytes,
    processing_options: Sequence[str],
    params: Mp4Options,
) -> ConversionResult:
    ensure_format("gif", data)
    flags = list(processing_options or [])
    opts = params.for_flags(flags)
    try:
        original_meta = gif_info(data)
    except Exception as e:
        raise ConversionError(f"Error reading GIF: {e}") from e
    logger.info(
        "Processing GIF: %sx%s, %s frames, %sMB",
        original_meta["width"], original_meta["height"], original_meta["pages"], size_mb(len(data)),
    )
    mp4 = transcode_gif(data, opts)
    final_meta = {
        "format": "mp4",
        "size": len(mp4),
        "codec": opts.codec,
        "crf": opts.crf,
        "preset": opts.preset,
    }
    logger.info("MP4 generated: %sMB", size_mb(len(mp4)))
    return ConversionResult(
        success=True,
        buffer=mp4,
        metadata=build_metadata(original_meta, final_meta, flags),
    )
