"""
Memo text → typed blocks → styled HTML.

    blocks = DocumentSectionParser().parse(text)
    html   = HTMLRenderer().render(blocks, ticker="AVGO")
"""

from .parser import DocumentSectionParser, Matched, NO_MATCH, parse_document
from .renderer import HTMLRenderer, render_page

__all__ = ["DocumentSectionParser", "HTMLRenderer", "Matched", "NO_MATCH", "parse_document", "render_page"]
