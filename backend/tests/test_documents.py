"""Document conversions: PDF, DOCX, HTML and PPTX outputs."""
import io

import pytest
from docx import Document
from pptx import Presentation
from pypdf import PageObject, PdfReader

from fileconvert.conversion.documents import (
    convert_docx_to_pdf,
    convert_image_to_pdf,
    convert_pdf_to_docx,
    convert_txt_to_docx,
    convert_txt_to_html,
    convert_txt_to_pdf,
    convert_txt_to_pptx,
    split_slides,
)
from fileconvert.conversion.options import DocxOptions, HtmlOptions, PdfOptions, PptxOptions
from fileconvert.conversion.textformat import heading_level, is_likely_title, linkify
from fileconvert.exceptions import InvalidFileError


def pdf_text(data: bytes) -> str:
    return "\n".join(page.extract_text() or "" for page in PdfReader(io.BytesIO(data)).pages)


class TestToPdf:
    def test_txt_to_pdf(self, txt_bytes):
        result = convert_txt_to_pdf(txt_bytes, [], PdfOptions())
        assert result.buffer.startswith(b"%PDF-")
        assert "QUARTERLY REPORT" in pdf_text(result.buffer)
        assert result.metadata["final"]["pages"] >= 1
        assert result.metadata["original"]["wordCount"] == len(txt_bytes.decode().split())

    def test_txt_to_pdf_landscape_letter(self, txt_bytes):
        result = convert_txt_to_pdf(txt_bytes, [], PdfOptions(page_size="LETTER", landscape=True))
        page = PdfReader(io.BytesIO(result.buffer)).pages[0]
        assert float(page.mediabox.width) > float(page.mediabox.height)

    def test_txt_rejects_binary(self, png_bytes):
        with pytest.raises(InvalidFileError):
            convert_txt_to_pdf(png_bytes, [], PdfOptions())

    def test_docx_to_pdf(self, docx_bytes):
        result = convert_docx_to_pdf(docx_bytes, [], PdfOptions(margin=72))
        text = pdf_text(result.buffer)
        assert "Introduction" in text
        assert "r1c1" in text
        original = result.metadata["original"]
        assert original["tables"] == 1
        assert original["headings"] == 1

    def test_docx_table_with_long_cells(self):
        doc = Document()
        table = doc.add_table(rows=2, cols=3)
        for row in table.rows:
            for cell in row.cells:
                cell.text = "lorem ipsum dolor sit amet " * 40
        buf = io.BytesIO()
        doc.save(buf)
        result = convert_docx_to_pdf(buf.getvalue(), [], PdfOptions(margin=72))
        assert result.metadata["final"]["pages"] >= 2
        assert "lorem ipsum" in pdf_text(result.buffer)

    def test_docx_rejects_pdf(self, pdf_bytes):
        with pytest.raises(InvalidFileError):
            convert_docx_to_pdf(pdf_bytes, [], PdfOptions())

    def test_image_to_pdf(self, png_bytes):
        result = convert_image_to_pdf(png_bytes, ["optimize-size"], PdfOptions(), source="png")
        reader = PdfReader(io.BytesIO(result.buffer))
        assert len(reader.pages) == 1
        assert reader.metadata.title == "Converted from PNG"
        assert result.metadata["original"]["width"] == 64

    def test_rgba_image_to_pdf(self, rgba_png_bytes):
        result = convert_image_to_pdf(rgba_png_bytes, [], PdfOptions(), source="png")
        assert result.ok


class TestToDocx:
    def test_txt_to_docx_detects_titles(self, txt_bytes):
        result = convert_txt_to_docx(txt_bytes, [], DocxOptions())
        doc = Document(io.BytesIO(result.buffer))
        headings = [p.text for p in doc.paragraphs if p.style.name.startswith("Heading")]
        assert "QUARTERLY REPORT" in headings
        assert result.metadata["final"]["headings"] == len(headings)

    def test_txt_to_docx_without_titles(self, txt_bytes):
        result = convert_txt_to_docx(txt_bytes, [], DocxOptions(auto_detect_titles=False))
        assert result.metadata["final"]["headings"] == 0

    def test_reduce_noise_cleans_text(self):
        messy = b"Title\n\n\n\n\nsome    spaced\t\ttext here.\n"
        result = convert_txt_to_docx(messy, ["reduce-noise"], DocxOptions())
        texts = [p.text for p in Document(io.BytesIO(result.buffer)).paragraphs]
        assert "some spaced text here." in texts

    def test_control_characters_dropped(self):
        result = convert_txt_to_docx(b"Report\n\nLine one\x07 bell\nLine two\x00\n", [], DocxOptions())
        texts = [p.text for p in Document(io.BytesIO(result.buffer)).paragraphs]
        assert "Line one bell" in texts
        assert "Line two" in texts

    def test_pdf_to_docx(self, pdf_bytes):
        result = convert_pdf_to_docx(pdf_bytes, [], DocxOptions())
        doc = Document(io.BytesIO(result.buffer))
        texts = [p.text for p in doc.paragraphs]
        assert "Two Pages" in texts
        assert "Hello from page one" in texts
        assert "Hello from page two" in texts
        assert result.metadata["original"]["pages"] == 2
        assert result.metadata["original"]["author"] == "Tester"

    def test_pdf_to_docx_control_characters_dropped(self, pdf_bytes, monkeypatch):
        monkeypatch.setattr(PageObject, "extract_text", lambda self, *args, **kwargs: "Total\x0b due\x1f today")
        result = convert_pdf_to_docx(pdf_bytes, [], DocxOptions())
        texts = [p.text for p in Document(io.BytesIO(result.buffer)).paragraphs]
        assert "Total due today" in texts

    def test_pdf_to_docx_without_metadata(self, pdf_bytes):
        result = convert_pdf_to_docx(pdf_bytes, [], DocxOptions(extract_metadata=False))
        texts = [p.text for p in Document(io.BytesIO(result.buffer)).paragraphs]
        assert "Two Pages" not in texts


class TestToHtml:
    def test_structure(self, txt_bytes):
        result = convert_txt_to_html(txt_bytes, [], HtmlOptions(title="Report"))
        html = result.buffer.decode("utf-8")
        assert html.startswith("<!DOCTYPE html>")
        assert "<title>Report</title>" in html
        assert "<h1>QUARTERLY REPORT</h1>" in html
        assert '<a href="https://example.com" target="_blank">https://example.com</a>' in html
        assert '<a href="mailto:team@example.com">team@example.com</a>' in html
        assert "<li>north region</li>" in html
        assert "<style>" in html

    def test_escapes_markup(self):
        result = convert_txt_to_html(b"Intro line\n<script>alert(1)</script> and more.\n", [], HtmlOptions())
        html = result.buffer.decode("utf-8")
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_optimize_size_drops_styles(self, txt_bytes):
        html = convert_txt_to_html(txt_bytes, ["optimize-size"], HtmlOptions()).buffer.decode("utf-8")
        assert "<style>" not in html

    def test_dark_theme(self, txt_bytes):
        html = convert_txt_to_html(txt_bytes, [], HtmlOptions(theme="dark")).buffer.decode("utf-8")
        assert "#1a1a1a" in html


class TestToPptx:
    def test_slides_generated(self, txt_bytes):
        result = convert_txt_to_pptx(txt_bytes, [], PptxOptions(title="Deck"))
        prs = Presentation(io.BytesIO(result.buffer))
        assert len(prs.slides) == result.metadata["final"]["slides"]
        assert prs.core_properties.title == "Deck"
        first_texts = [shape.text_frame.text for shape in prs.slides[0].shapes if shape.has_text_frame]
        assert "QUARTERLY REPORT" in first_texts

    def test_split_slides_groups_content(self):
        slides = split_slides("Agenda\nWe cover the plan in detail today.\nCosts\nCosts went down by a lot this year.")
        assert [s["title"] for s in slides] == ["Agenda", "Costs"]
        assert slides[0]["content"] == ["We cover the plan in detail today."]


class TestTextStructure:
    def test_title_detection(self):
        lines = ["First", "", "SECTION", "", "a sentence that ends.", ""]
        assert is_likely_title(lines, 0)
        assert is_likely_title(lines, 2)
        assert not is_likely_title(lines, 4)
        assert not is_likely_title(lines, 1)

    def test_heading_levels(self):
        lines = ["Doc", "Chapter 2 begins", "body text continues here.", "Subtitle", "", "text."]
        assert heading_level(lines, 0) == 1
        assert heading_level(lines, 1) == 1
        assert heading_level(lines, 2) is None
        assert heading_level(lines, 3) == 2

    def test_linkify(self):
        assert linkify("see http://a.io now") == 'see <a href="http://a.io" target="_blank">http://a.io</a> now'
