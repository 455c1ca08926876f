# Description: Small XML/HTML text helpers shared by the QTI encoder and decoder.
# file name: xml_utils.py

import html
import re
from xml.dom import minidom

_TAG_RE = re.compile(r"<[^>]+>")
_BREAK_RE = re.compile(r"<\s*br\s*/?\s*>|</\s*p\s*>\s*<\s*p[^>]*>", re.IGNORECASE)
_SOURCE_NEWLINE_RE = re.compile(r"[ \t]*\r?\n\s*")
# str.strip() would also eat \xa0
_OUTER_WHITESPACE = " \t\r\n"


def escape_xml(text) -> str:
    """Escape special XML characters in text content"""
    if text is None:
        return ""
    if not isinstance(text, str):
        text = str(text)

    # '&' must go first
    replacements = {
        '&': '&amp;',
        '<': '&lt;',
        '>': '&gt;',
        '"': '&quot;',
        "'": '&apos;'
    }

    for char, entity in replacements.items():
        text = text.replace(char, entity)

    return text


def to_html_paragraph(text) -> str:
    """Wrap plain text as an HTML paragraph, then escape it for a mattext element.

    Line breaks become ``<br/>`` so the XML text node itself stays on one line.
    """
    if text is None:
        text = ""
    body = html.escape(str(text), quote=False)
    body = body.replace("\r\n", "\n").replace("\n", "<br/>")
    return escape_xml(f"<p>{body}</p>")


def clean_html(text) -> str:
    """Strip HTML markup from mattext content and unescape entities.

    Indentation, blank lines and non-breaking spaces inside the text are kept.
    """
    if not text:
        return ""
    if _TAG_RE.search(text):
        # raw newlines in markup are layout whitespace, not content
        text = _SOURCE_NEWLINE_RE.sub(" ", text)
        text = _BREAK_RE.sub("\n", text)
        text = _TAG_RE.sub("", text)
    text = html.unescape(text)
    return text.strip(_OUTER_WHITESPACE)


def local_name(tag: str) -> str:
    """'{ns}item' -> 'item'"""
    if tag and tag.startswith("{"):
        return tag.rsplit("}", 1)[1]
    return tag


def prettify(xml_str: str) -> str:
    """Format XML string with proper indentation"""
    if isinstance(xml_str, str):
        xml_str = xml_str.encode('utf-8')
    dom = minidom.parseString(xml_str)
    pretty_xml = dom.toprettyxml(indent='  ', encoding='UTF-8').decode('utf-8')
    return '\n'.join(line for line in pretty_xml.split('\n') if line.strip())
