"""Document conversions: TXT/DOCX/images -> PDF, TXT/PDF -> DOCX, TXT -> HTML/PPTX."""
import io
import logging
from typing import Any, Iterator, Sequence
from xml.sax.saxutils import escape

from docx import Document
from docx.shared import Pt
from docx.table import Table as DocxTable
from docx.text.paragraph import Paragraph as DocxParagraph
from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.text import PP_ALIGN
from pptx.util import Inches
from pptx.util import Pt as PptPt
from pypdf import PdfReader
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, LEGAL, LETTER, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from fileconvert.conversion.images import _open
from fileconvert.conversion.models import ConversionResult
from fileconvert.conversion.options import (
    DocxOptions,
    HtmlOptions,
    PdfOptions,
    PptxOptions,
    REDUCE_NOISE,
)
from fileconvert.conversion.processing import (
    apply_image_options,
    build_metadata,
    clean_text,
    flatten_alpha,
    image_info,
    size_mb,
    strip_control_chars,
    text_info,
)
from fileconvert.conversion.textformat import decode_text, is_likely_title, render_html
from fileconvert.conversion.validators import ensure_format
from fileconvert.exceptions import ConversionError

logger = logging.getLogger("converter.documents")

PAGE_SIZES = {"A4": A4, "LETTER": LETTER, "LEGAL": LEGAL}
DOCX_HEADING_STYLES = {"Title": "Title", "Heading 1": "Heading1", "Heading 2": "Heading2", "Heading 3": "Heading3"}


def _page_size(opts: PdfOptions) -> tuple[float, float]:
    size = PAGE_SIZES[opts.page_size.upper()]
    return landscape(size) if opts.landscape else size


def pdf_page_count(pdf_bytes: bytes) -> int:
    return len(PdfReader(io.BytesIO(pdf_bytes)).pages)


def _read_text(data: bytes, flags: Sequence[str]) -> str:
    text = strip_control_chars(decode_text(data))
    if REDUCE_NOISE in flags:
        text = clean_text(text)
    return text


def _body_style(opts: PdfOptions) -> ParagraphStyle:
    return ParagraphStyle(
        "Body",
        parent=getSampleStyleSheet()["Normal"],
        fontName=opts.font_name,
        fontSize=opts.font_size,
        leading=opts.font_size * opts.line_height,
    )


def _build_pdf(story: list, opts: PdfOptions, title: str) -> bytes:
    out = io.BytesIO()
    doc = SimpleDocTemplate(
        out,
        pagesize=_page_size(opts),
        leftMargin=opts.margin,
        rightMargin=opts.margin,
        topMargin=opts.margin,
        bottomMargin=opts.margin,
        title=opts.title or title,
        author=opts.author,
    )
    # an empty story would produce a zero-page document
    doc.build(story or [Spacer(1, 1)])
    return out.getvalue()


def _pdf_result(original_meta: dict[str, Any], pdf: bytes, flags: Sequence[str]) -> ConversionResult:
    final_meta = {"format": "pdf", "size": len(pdf), "pages": pdf_page_count(pdf)}
    logger.info("PDF generated: %s pages, %sMB", final_meta["pages"], size_mb(len(pdf)))
    return ConversionResult(success=True, buffer=pdf, metadata=build_metadata(original_meta, final_meta, flags))


def _preserve_spaces(line: str) -> str:
    stripped = line.lstrip(" ")
    return "&nbsp;" * (len(line) - len(stripped)) + escape(stripped)


def convert_txt_to_pdf(data: bytes, processing_options: Sequence[str], params: PdfOptions) -> ConversionResult:
    ensure_format("txt", data)
    flags = list(processing_options or [])
    opts = params.for_flags(flags)
    text = _read_text(data, flags)
    original_meta = text_info(text, len(data))
    logger.info("Processing TXT: %s lines, %sKB", original_meta["lineCount"], f"{len(data) / 1024:.2f}")
    try:
        style = _body_style(opts)
        story = []
        for line in text.split("\n"):
            if line.strip():
                story.append(Paragraph(_preserve_spaces(line.expandtabs(4)), style))
            else:
                story.append(Spacer(1, style.leading))
        pdf = _build_pdf(story, opts, "Text document")
    except Exception as e:
        raise ConversionError(f"Error converting TXT->PDF: {e}") from e
    return _pdf_result(original_meta, pdf, flags)


def iter_docx_blocks(doc) -> Iterator[Any]:
    """Paragraphs and tables in body order."""
    for child in doc.element.body.iterchildren():
        tag = child.tag.rsplit("}", 1)[-1]
        if tag == "p":
            yield DocxParagraph(child, doc)
        elif tag == "tbl":
            yield DocxTable(child, doc)


def _runs_markup(paragraph: DocxParagraph) -> str:
    parts = []
    for run in paragraph.runs:
        if not run.text:
            continue
        chunk = escape(run.text)
        if run.bold:
            chunk = f"<b>{chunk}</b>"
        if run.italic:
            chunk = f"<i>{chunk}</i>"
        if run.underline:
            chunk = f"<u>{chunk}</u>"
        parts.append(chunk)
    return "".join(parts) or escape(paragraph.text)


def _docx_story(doc, opts: PdfOptions) -> tuple[list, dict[str, int]]:
    sheet = getSampleStyleSheet()
    body = _body_style(opts)
    story = []
    counts = {"paragraphs": 0, "tables": 0, "headings": 0}
    for block in iter_docx_blocks(doc):
        if isinstance(block, DocxTable):
            rows = [[Paragraph(escape(cell.text), body) for cell in row.cells] for row in block.rows]
            if not rows:
                continue
            ncols = max(len(row) for row in rows)
            col_width = (_page_size(opts)[0] - 2 * opts.margin) / ncols
            # rows taller than a page continue on the next one; a repeated header row could not be split
            table = Table(rows, colWidths=[col_width] * ncols, splitInRow=1)
            table.setStyle(TableStyle([
                ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#dddddd")),
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f5f5f5")),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ]))
            story.append(table)
            story.append(Spacer(1, body.leading))
            counts["tables"] += 1
            continue
        if not block.text.strip():
            story.append(Spacer(1, body.leading / 2))
            continue
        style_name = block.style.name if block.style is not None else ""
        if style_name in DOCX_HEADING_STYLES:
            story.append(Paragraph(escape(block.text), sheet[DOCX_HEADING_STYLES[style_name]]))
            counts["headings"] += 1
        elif style_name.startswith("List"):
            story.append(Paragraph(_runs_markup(block), body, bulletText="•"))
        else:
            story.append(Paragraph(_runs_markup(block), body))
        counts["paragraphs"] += 1
    return story, counts


def convert_docx_to_pdf(data: bytes, processing_options: Sequence[str], params: PdfOptions) -> ConversionResult:
    """Render DOCX paragraphs, headings, lists and tables to PDF. Layout is approximated, not reproduced."""
    ensure_format("docx", data)
    flags = list(processing_options or [])
    opts = params.for_flags(flags)
    try:
        doc = Document(io.BytesIO(data))
        story, counts = _docx_story(doc, opts)
        title = doc.core_properties.title or "Word document"
        pdf = _build_pdf(story, opts, title)
    except Exception as e:
        raise ConversionError(f"Error converting DOCX->PDF: {e}") from e
    original_meta = {"format": "docx", "size": len(data), **counts}
    logger.info("Processing DOCX: %s paragraphs, %s tables", counts["paragraphs"], counts["tables"])
    return _pdf_result(original_meta, pdf, flags)


def convert_image_to_pdf(
    data: bytes,
    processing_options: Sequence[str],
    params: PdfOptions,
    *,
    source: str,
) -> ConversionResult:
    """Place one image on a single page, scaled down to fit inside the margins."""
    ensure_format(source, data)
    flags = list(processing_options or [])
    opts = params.for_flags(flags)
    try:
        img = _open(data)
        original_meta = image_info(img, len(data), fmt=source)
        work = flatten_alpha(apply_image_options(img, flags))
        jpeg = io.BytesIO()
        work.save(jpeg, format="JPEG", quality=opts.image_quality, optimize=True)
        jpeg.seek(0)

        page_w, page_h = _page_size(opts)
        avail_w, avail_h = page_w - 2 * opts.margin, page_h - 2 * opts.margin
        scale = 1.0
        if opts.fit_to_page:
            scale = min(1.0, avail_w / work.width, avail_h / work.height)
        draw_w, draw_h = work.width * scale, work.height * scale
        x = (page_w - draw_w) / 2
        y = (page_h - draw_h) / 2

        out = io.BytesIO()
        pdf_canvas = canvas.Canvas(out, pagesize=(page_w, page_h))
        pdf_canvas.setTitle(opts.title or f"Converted from {source.upper()}")
        pdf_canvas.setAuthor(opts.author)
        pdf_canvas.drawImage(ImageReader(jpeg), x, y, width=draw_w, height=draw_h)
        pdf_canvas.showPage()
        pdf_canvas.save()
        pdf = out.getvalue()
    except Exception as e:
        raise ConversionError(f"Error converting {source.upper()}->PDF: {e}") from e
    return _pdf_result(original_meta, pdf, flags)


def _new_docx(opts: DocxOptions):
    doc = Document()
    normal = doc.styles["Normal"]
    normal.font.name = opts.font_name
    normal.font.size = Pt(opts.font_size)
    return doc


def _save_docx(doc) -> bytes:
    out = io.BytesIO()
    doc.save(out)
    return out.getvalue()


def convert_txt_to_docx(data: bytes, processing_options: Sequence[str], params: DocxOptions) -> ConversionResult:
    ensure_format("txt", data)
    flags = list(processing_options or [])
    opts = params.for_flags(flags)
    text = _read_text(data, flags)
    original_meta = text_info(text, len(data))
    headings = 0
    try:
        doc = _new_docx(opts)
        lines = text.split("\n")
        for i, line in enumerate(lines):
            if not line.strip():
                doc.add_paragraph("")
            elif opts.auto_detect_titles and is_likely_title(lines, i):
                doc.add_heading(line.strip(), level=1)
                headings += 1
            else:
                doc.add_paragraph(line)
        docx_bytes = _save_docx(doc)
    except Exception as e:
        raise ConversionError(f"Error converting TXT->DOCX: {e}") from e
    final_meta = {"format": "docx", "size": len(docx_bytes), "paragraphs": len(doc.paragraphs), "headings": headings}
    logger.info("DOCX generated: %s paragraphs, %sMB", final_meta["paragraphs"], size_mb(len(docx_bytes)))
    return ConversionResult(success=True, buffer=docx_bytes, metadata=build_metadata(original_meta, final_meta, flags))


def _looks_like_pdf_heading(line: str) -> bool:
    return len(line) < 80 and (line == line.upper() and any(c.isalpha() for c in line))


def convert_pdf_to_docx(data: bytes, processing_options: Sequence[str], params: DocxOptions) -> ConversionResult:
    """Extract text page by page with pypdf; layout, images and fonts are not carried over."""
    ensure_format("pdf", data)
    flags = list(processing_options or [])
    opts = params.for_flags(flags)
    try:
        reader = PdfReader(io.BytesIO(data))
        doc = _new_docx(opts)
        info = reader.metadata
        if opts.extract_metadata and info is not None:
            if info.title:
                doc.add_heading(strip_control_chars(str(info.title)), level=0)
            if info.author:
                doc.add_paragraph(f"Author: {strip_control_chars(str(info.author))}").runs[0].italic = True
        word_count = 0
        for page_number, page in enumerate(reader.pages):
            if opts.page_breaks and page_number > 0:
                doc.add_page_break()
            text = strip_control_chars(page.extract_text() or "")
            if REDUCE_NOISE in flags:
                text = clean_text(text)
            for line in text.split("\n"):
                line = line.strip()
                if not line:
                    continue
                word_count += len(line.split())
                if opts.auto_detect_titles and _looks_like_pdf_heading(line):
                    doc.add_heading(line, level=1)
                else:
                    doc.add_paragraph(line)
        docx_bytes = _save_docx(doc)
    except Exception as e:
        raise ConversionError(f"Error converting PDF->DOCX: {e}") from e
    original_meta = {
        "format": "pdf",
        "size": len(data),
        "pages": len(reader.pages),
        "title": str(info.title) if info is not None and info.title else None,
        "author": str(info.author) if info is not None and info.author else None,
    }
    final_meta = {"format": "docx", "size": len(docx_bytes), "paragraphs": len(doc.paragraphs), "wordCount": word_count}
    logger.info("DOCX generated from %s PDF pages, %sMB", original_meta["pages"], size_mb(len(docx_bytes)))
    return ConversionResult(success=True, buffer=docx_bytes, metadata=build_metadata(original_meta, final_meta, flags))


def convert_txt_to_html(data: bytes, processing_options: Sequence[str], params: HtmlOptions) -> ConversionResult:
    ensure_format("txt", data)
    flags = list(processing_options or [])
    opts = params.for_flags(flags)
    text = _read_text(data, flags)
    original_meta = text_info(text, len(data))
    try:
        html_bytes = render_html(text, opts).encode("utf-8")
    except Exception as e:
        raise ConversionError(f"Error converting TXT->HTML: {e}") from e
    final_meta = {"format": "html", "size": len(html_bytes), "theme": opts.theme}
    return ConversionResult(success=True, buffer=html_bytes, metadata=build_metadata(original_meta, final_meta, flags))


def split_slides(text: str) -> list[dict[str, Any]]:
    """Group non-empty lines into slides: a title-looking line opens a new slide; long bodies are cut at 1000 chars."""
    lines = [line.strip() for line in text.split("\n") if line.strip()]
    slides: list[dict[str, Any]] = []
    current: dict[str, Any] = {"title": "", "content": []}
    for i, line in enumerate(lines):
        is_title = (
            i == 0
            or (len(line) < 50 and line == line.upper() and any(c.isalpha() for c in line))
            or (len(line) < 80 and not line.endswith((".", ",")))
        )
        if is_title and not current["title"] and not current["content"]:
            current["title"] = line
        elif is_title and current["content"]:
            slides.append(current)
            current = {"title": line, "content": []}
        else:
            current["content"].append(line)
            if len(" ".join(current["content"])) > 1000:
                slides.append(current)
                current = {"title": "", "content": []}
    if current["title"] or current["content"]:
        slides.append(current)
    if not slides:
        slides.append({"title": "Document", "content": [text[:1000]]})
    return slides


def _limit_words(content: str, max_words: int) -> str:
    words = content.split()
    if len(words) <= max_words:
        return content
    return " ".join(words[:max_words]) + "..."


def convert_txt_to_pptx(data: bytes, processing_options: Sequence[str], params: PptxOptions) -> ConversionResult:
    ensure_format("txt", data)
    flags = list(processing_options or [])
    opts = params.for_flags(flags)
    text = _read_text(data, flags)
    original_meta = text_info(text, len(data))
    if opts.theme == "dark":
        background, text_color = RGBColor(0x36, 0x36, 0x36), RGBColor(0xFF, 0xFF, 0xFF)
    else:
        background, text_color = RGBColor(0xFF, 0xFF, 0xFF), RGBColor(0x33, 0x33, 0x33)
    title_color = RGBColor(0x44, 0x72, 0xC4)
    slides = split_slides(text) if opts.auto_split else [{"title": "Document", "content": [text]}]
    try:
        prs = Presentation()
        prs.core_properties.title = opts.title
        prs.core_properties.author = opts.author
        blank = prs.slide_layouts[6]
        for index, slide_data in enumerate(slides):
            slide = prs.slides.add_slide(blank)
            fill = slide.background.fill
            fill.solid()
            fill.fore_color.rgb = background
            if slide_data["title"]:
                box = slide.shapes.add_textbox(Inches(0.5), Inches(0.5), Inches(9), Inches(1))
                para = box.text_frame.paragraphs[0]
                para.text = slide_data["title"]
                para.alignment = PP_ALIGN.CENTER
                para.font.size = PptPt(opts.title_font_size)
                para.font.bold = True
                para.font.color.rgb = title_color
            if slide_data["content"]:
                top = Inches(1.8) if slide_data["title"] else Inches(0.5)
                height = Inches(5.2) if slide_data["title"] else Inches(6.5)
                box = slide.shapes.add_textbox(Inches(0.5), top, Inches(9), height)
                frame = box.text_frame
                frame.word_wrap = True
                frame.text = _limit_words("\n\n".join(slide_data["content"]), opts.max_words_per_slide)
                for para in frame.paragraphs:
                    para.font.size = PptPt(opts.font_size)
                    para.font.color.rgb = text_color
            if len(slides) > 1:
                box = slide.shapes.add_textbox(Inches(8.5), Inches(7), Inches(1), Inches(0.3))
                para = box.text_frame.paragraphs[0]
                para.text = f"{index + 1} / {len(slides)}"
                para.alignment = PP_ALIGN.RIGHT
                para.font.size = PptPt(10)
        out = io.BytesIO()
        prs.save(out)
        pptx_bytes = out.getvalue()
    except Exception as e:
        raise ConversionError(f"Error converting TXT->PPTX: {e}") from e
    final_meta = {"format": "pptx", "size": len(pptx_bytes), "slides": len(slides)}
    logger.info("PPTX generated: %s slides, %sMB", len(slides), size_mb(len(pptx_bytes)))
    return ConversionResult(success=True, buffer=pptx_bytes, metadata=build_metadata(original_meta, final_meta, flags))
