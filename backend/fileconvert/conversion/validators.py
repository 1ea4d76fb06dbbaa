"""Magic-byte checks run before any expensive decoding."""
import io
import re
import zipfile
from typing import Callable

from fileconvert.exceptions import InvalidFileError

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
ICO_SIGNATURE = b"\x00\x00\x01\x00"
AVIF_BRANDS = {b"avif", b"avis"}
HEIC_BRANDS = {b"heic", b"heix", b"heim", b"heis", b"hevc", b"hevx", b"mif1", b"msf1"}

_BINARY_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
MAX_BINARY_RATIO = 0.3


def validate_jpg(data: bytes) -> bool:
    return len(data) >= 10 and data[:3] == b"\xff\xd8\xff"


def validate_png(data: bytes) -> bool:
    return len(data) >= 8 and data[:8] == PNG_SIGNATURE


def validate_gif(data: bytes) -> bool:
    return len(data) >= 6 and data[:6] in (b"GIF87a", b"GIF89a")


def validate_webp(data: bytes) -> bool:
    return len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP"


def validate_bmp(data: bytes) -> bool:
    return len(data) >= 14 and data[:2] == b"BM"


def validate_tiff(data: bytes) -> bool:
    return len(data) >= 8 and data[:4] in (b"II*\x00", b"MM\x00*")


def validate_avif(data: bytes) -> bool:
    """ISO-BMFF: an ftyp box at offset 4 whose major brand is avif/avis."""
    return len(data) >= 12 and data[4:8] == b"ftyp" and data[8:12] in AVIF_BRANDS


def validate_heic(data: bytes) -> bool:
    """ISO-BMFF with an HEVC still-image brand."""
    return len(data) >= 12 and data[4:8] == b"ftyp" and data[8:12] in HEIC_BRANDS


def validate_ico(data: bytes) -> bool:
    return len(data) >= 6 and data[:4] == ICO_SIGNATURE


def validate_pdf(data: bytes) -> bool:
    return len(data) >= 5 and data[:5] == b"%PDF-"


def validate_docx(data: bytes) -> bool:
    """DOCX is a ZIP container holding word/document.xml."""
    if len(data) < 4 or data[:4] != b"PK\x03\x04":
        return False
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            return "word/document.xml" in zf.namelist()
    except zipfile.BadZipFile:
        return False


def validate_txt(data: bytes) -> bool:
    if not data:
        return False
    text = data.decode("utf-8", errors="replace")
    binary = len(_BINARY_CHARS.findall(text)) + text.count("\ufffd")
    return binary / len(text) < MAX_BINARY_RATIO


VALIDATORS: dict[str, Callable[[bytes], bool]] = {
    "jpg": validate_jpg,
    "jpeg": validate_jpg,
    "png": validate_png,
    "gif": validate_gif,
    "webp": validate_webp,
    "bmp": validate_bmp,
    "tiff": validate_tiff,
    "avif": validate_avif,
    "heic": validate_heic,
    "ico": validate_ico,
    "pdf": validate_pdf,
    "docx": validate_docx,
    "word": validate_docx,
    "txt": validate_txt,
}


def ensure_format(fmt: str, data: bytes) -> None:
    """Raise InvalidFileError unless data looks like fmt. Unknown formats pass."""
    validator = VALIDATORS.get(fmt)
    if validator is not None and not validator(data):
        raise InvalidFileError(f"The file is not a valid {fmt.upper()} file")
