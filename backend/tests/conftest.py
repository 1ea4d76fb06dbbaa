"""
Shared fixtures: an app client with an isolated rate limiter and small in-memory sample files.
"""
import io
import json
import time
from typing import Callable, Optional, Sequence

import pytest
from docx import Document
from fastapi.testclient import TestClient
from PIL import Image
from reportlab.pdfgen import canvas

from fileconvert.config import CONVERT_PREFIX
from fileconvert.main import app
from fileconvert.ratelimit import RateLimiter, get_rate_limiter

SAMPLE_TEXT = (
    "QUARTERLY REPORT\n"
    "\n"
    "Revenue grew in every region this quarter.\n"
    "Visit https://example.com or write to team@example.com for details.\n"
    "- north region\n"
    "- south region\n"
    "\n"
    "Outlook\n"
    "\n"
    "We expect steady growth next year.\n"
)


class FakeClock:
    """Manually advanced stand-in for `time.time`, which the rate limiter store reads."""

    def __init__(self, start: float = 1_699_920_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _image_bytes(fmt: str, size=(64, 48), mode="RGB", color=(200, 30, 30), **save_kwargs) -> bytes:
    buf = io.BytesIO()
    Image.new(mode, size, color).save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()


@pytest.fixture
def clock(monkeypatch) -> FakeClock:
    fake = FakeClock()
    monkeypatch.setattr(time, "time", fake)
    return fake


@pytest.fixture
def limiter(clock) -> RateLimiter:
    """Fresh limiter per test, also used by the app through a dependency override."""
    fresh = RateLimiter(limit=200, window_seconds=24 * 60 * 60)
    app.dependency_overrides[get_rate_limiter] = lambda: fresh
    yield fresh
    app.dependency_overrides.pop(get_rate_limiter, None)


@pytest.fixture
def client(limiter) -> TestClient:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def convert(client) -> Callable:
    """POST a file to a conversion route; options are JSON-encoded unless already a string."""

    def _convert(conversion_type: str, data: bytes, options: Optional[Sequence[str] | str] = None, **kwargs):
        form = {}
        if options is not None:
            form["options"] = options if isinstance(options, str) else json.dumps(list(options))
        return client.post(
            f"{CONVERT_PREFIX}/{conversion_type}",
            files={"file": ("upload.bin", data, "application/octet-stream")},
            data=form,
            **kwargs,
        )

    return _convert


@pytest.fixture
def jpg_bytes() -> bytes:
    return _image_bytes("JPEG")


@pytest.fixture
def png_bytes() -> bytes:
    return _image_bytes("PNG")


@pytest.fixture
def rgba_png_bytes() -> bytes:
    return _image_bytes("PNG", mode="RGBA", color=(10, 120, 200, 128))


@pytest.fixture
def webp_bytes() -> bytes:
    return _image_bytes("WEBP")


@pytest.fixture
def bmp_bytes() -> bytes:
    return _image_bytes("BMP")


@pytest.fixture
def tiff_bytes() -> bytes:
    return _image_bytes("TIFF")


@pytest.fixture
def ico_bytes() -> bytes:
    return _image_bytes("ICO", size=(32, 32), mode="RGBA", color=(0, 128, 0, 255), sizes=[(32, 32)])


@pytest.fixture
def heic_bytes() -> bytes:
    # HEIF encoding comes from pillow-heif, registered when the converters are imported
    return _image_bytes("HEIF", quality=90)


@pytest.fixture
def gif_bytes() -> bytes:
    frames = [Image.new("RGB", (40, 30), color) for color in ((255, 0, 0), (0, 255, 0), (0, 0, 255))]
    buf = io.BytesIO()
    frames[0].save(buf, format="GIF", save_all=True, append_images=frames[1:], duration=100, loop=0)
    return buf.getvalue()


@pytest.fixture
def txt_bytes() -> bytes:
    return SAMPLE_TEXT.encode("utf-8")


@pytest.fixture
def docx_bytes() -> bytes:
    doc = Document()
    doc.core_properties.title = "Sample"
    doc.add_heading("Introduction", level=1)
    para = doc.add_paragraph("Plain text with ")
    para.add_run("bold").bold = True
    para.add_run(" and ")
    para.add_run("italic").italic = True
    doc.add_paragraph("First item", style="List Bullet")
    table = doc.add_table(rows=2, cols=2)
    for r, row in enumerate(table.rows):
        for c, cell in enumerate(row.cells):
            cell.text = f"r{r}c{c}"
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


@pytest.fixture
def pdf_bytes() -> bytes:
    buf = io.BytesIO()
    pdf = canvas.Canvas(buf)
    pdf.setTitle("Two Pages")
    pdf.setAuthor("Tester")
    pdf.drawString(72, 720, "Hello from page one")
    pdf.showPage()
    pdf.drawString(72, 720, "Hello from page two")
    pdf.showPage()
    pdf.save()
    return buf.getvalue()
