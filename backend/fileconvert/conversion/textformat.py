"""Plain-text structure detection and TXT -> HTML rendering."""
import html
import re
from typing import Optional

from fileconvert.conversion.options import HtmlOptions

_LINK = re.compile(r"(https?://[^\s<]+)|([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})")
_CHAPTER = re.compile(r"^(chapter|cap[ií]tulo|part|section)\s+\d+", re.I)
_NUMBERED = re.compile(r"^\d+\.\s")
_BULLET = re.compile(r"^[-*+]\s")

THEMES = {
    "light": {"background": "#ffffff", "text": "#333333", "heading": "#2c3e50", "link": "#3498db", "border": "#e1e8ed"},
    "dark": {"background": "#1a1a1a", "text": "#e0e0e0", "heading": "#ffffff", "link": "#5dade2", "border": "#404040"},
}


def decode_text(data: bytes) -> str:
    return data.decode("utf-8-sig", errors="replace").replace("\r\n", "\n").replace("\r", "\n")


def _is_all_caps(text: str) -> bool:
    return text == text.upper() and any(c.isalpha() for c in text)


def is_likely_title(lines: list[str], index: int) -> bool:
    """First non-empty line, a short ALL CAPS line before a blank, or a short unpunctuated line before a blank."""
    trimmed = lines[index].strip()
    if not trimmed:
        return False
    first_non_empty = all(not line.strip() for line in lines[:index])
    next_empty = index < len(lines) - 1 and not lines[index + 1].strip()
    if first_non_empty:
        return True
    if _is_all_caps(trimmed) and len(trimmed) < 50 and next_empty:
        return True
    return len(trimmed) < 80 and next_empty and not trimmed.endswith(".")


def heading_level(lines: list[str], index: int) -> Optional[int]:
    """HTML heading level for a line, or None for body text."""
    trimmed = lines[index].strip()
    if not trimmed:
        return None
    if _CHAPTER.match(trimmed):
        return 1
    next_empty = index < len(lines) - 1 and not lines[index + 1].strip()
    if index == 0 or (_is_all_caps(trimmed) and len(trimmed) > 3 and next_empty):
        return 1
    if len(trimmed) < 80 and next_empty and not trimmed.endswith("."):
        return 2
    if _NUMBERED.match(trimmed):
        return 3
    return None


def _link(match: re.Match) -> str:
    url, email = match.group(1), match.group(2)
    if url:
        return f'<a href="{url}" target="_blank">{url}</a>'
    return f'<a href="mailto:{email}">{email}</a>'


def linkify(escaped: str) -> str:
    return _LINK.sub(_link, escaped)


def text_to_html_body(text: str, opts: HtmlOptions) -> str:
    lines = text.split("\n")
    out = []
    for i, line in enumerate(lines):
        trimmed = line.strip()
        if not trimmed:
            out.append("<br>")
            continue
        level = heading_level(lines, i) if opts.auto_detect_titles else None
        content = html.escape(trimmed)
        if opts.linkify:
            content = linkify(content)
        if level:
            out.append(f"<h{level}>{content}</h{level}>")
        elif _BULLET.match(trimmed):
            out.append(f"<ul><li>{_BULLET.sub('', content, count=1)}</li></ul>")
        elif _NUMBERED.match(trimmed):
            out.append(f"<ol><li>{_NUMBERED.sub('', content, count=1)}</li></ol>")
        else:
            out.append(f"<p>{content}</p>")
    return "\n".join(out)


def build_css(opts: HtmlOptions) -> str:
    c = THEMES[opts.theme]
    return f"""
    body {{
        max-width: 800px;
        margin: 0 auto;
        padding: 40px 20px;
        background: {c['background']};
        color: {c['text']};
        font-family: {opts.font_family};
        font-size: {opts.font_size};
        line-height: {opts.line_height};
    }}
    h1, h2, h3 {{ color: {c['heading']}; margin-top: 1.5em; }}
    h1 {{ border-bottom: 2px solid {c['border']}; padding-bottom: 0.3em; }}
    a {{ color: {c['link']}; }}
    ul, ol {{ margin: 0.2em 0; }}
"""


def render_html(text: str, opts: HtmlOptions) -> str:
    styles = f"<style>{build_css(opts)}</style>" if opts.include_styles else ""
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '<meta charset="UTF-8">\n'
        '<meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        f"<title>{html.escape(opts.title)}</title>\n"
        f"{styles}\n"
        "</head>\n"
        "<body>\n"
        f"{text_to_html_body(text, opts)}\n"
        "</body>\n"
        "</html>\n"
    )
