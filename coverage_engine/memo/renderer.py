"""
Coverage Desk — Memo HTML Renderer
────────────────────────────────────
Pure presentation: each BlockKind maps to exactly one fixed template.
Nothing here infers structure the parser did not extract.

Layout rules:
  - document header first (company, ticker, price)
  - the investment-thesis callout directly under the header, wherever
    it appeared in the source
  - every other block in source order
"""

import html
import re
from typing import Callable, Dict, List, Optional

from coverage_engine.memo.styles import PAGE_TEMPLATE, STYLESHEET
from coverage_engine.models.blocks import BlockKind, DocumentBlock, TableData


_BOLD = re.compile(r"\*\*(.+?)\*\*")


def inline(text: Optional[str]) -> str:
    """Escape, then turn **bold** into <strong> and newlines into <br>."""
    escaped = html.escape(text or "", quote=False)
    escaped = _BOLD.sub(r"<strong>\1</strong>", escaped)
    return escaped.replace("\n", "<br>\n")


def _attr(value: str) -> str:
    return html.escape(value or "", quote=True)


class HTMLRenderer:
    def __init__(self):
        self._templates: Dict[BlockKind, Callable[[DocumentBlock], str]] = {
            BlockKind.HEADING:             self._heading,
            BlockKind.PARAGRAPH:           self._paragraph,
            BlockKind.NUMBERED_SUBSECTION: self._numbered_subsection,
            BlockKind.CUSTOMER_ITEM:       lambda b: self._item_box(b, "customer-box"),
            BlockKind.COMPETITOR_ITEM:     lambda b: self._item_box(b, "competitor-box"),
            BlockKind.RISK_ITEM:           lambda b: self._item_box(b, "risk-box"),
            BlockKind.DEBATE_ITEM:         self._debate,
            BlockKind.QA_ITEM:             self._qa,
            BlockKind.DATA_TABLE:          self._data_table,
            BlockKind.VALUATION_CALLOUT:   self._valuation,
            BlockKind.THESIS_CALLOUT:      self._thesis,
            BlockKind.INSIGHT_CALLOUT:     self._insight,
        }
        missing = set(BlockKind) - set(self._templates)
        if missing:
            raise RuntimeError(f"No template for block kinds: {sorted(k.value for k in missing)}")

    # ── Public ────────────────────────────────────────────────
    def render(self, blocks: List[DocumentBlock], ticker: str,
               company_name: Optional[str] = None,
               price: Optional[float] = None,
               as_of: Optional[str] = None) -> str:
        thesis = [b for b in blocks if b.kind is BlockKind.THESIS_CALLOUT]
        body   = [b for b in blocks if b.kind is not BlockKind.THESIS_CALLOUT]
        parts  = [self.render_header(ticker, company_name, price, as_of)]
        parts += [self.render_block(b) for b in thesis]
        parts += [self.render_block(b) for b in body]
        return "\n".join(parts)

    def render_block(self, block: DocumentBlock) -> str:
        return self._templates[block.kind](block)

    def render_children(self, block: DocumentBlock) -> str:
        return "\n".join(self.render_block(child) for child in block.children)

    def render_header(self, ticker: str, company_name: Optional[str] = None,
                      price: Optional[float] = None, as_of: Optional[str] = None) -> str:
        ticker = (ticker or "").upper()
        info = [html.escape(ticker), "Initiation of Coverage"]
        if as_of:
            info.append(html.escape(as_of))
        right = ""
        if price is not None:
            right = f'<div class="price">${price:,.2f}</div>'
        return (
            '<div class="report-header">\n'
            '  <div class="header-left">\n'
            f'    <div class="company-name">{html.escape(company_name or ticker)}</div>\n'
            f'    <div class="ticker-info">{" · ".join(info)}</div>\n'
            '  </div>\n'
            f'  <div class="header-right">{right}</div>\n'
            '</div>'
        )

    # ── Templates ─────────────────────────────────────────────
    def _heading(self, block: DocumentBlock) -> str:
        return f"<h2>{inline(block.title)}</h2>"

    def _paragraph(self, block: DocumentBlock) -> str:
        return f"<p>{inline(block.text)}</p>"

    def _numbered_subsection(self, block: DocumentBlock) -> str:
        num = f'<span class="num">{block.number}</span>' if block.number is not None else ""
        return f"<h3>{num}{inline(block.title)}</h3>\n{self.render_children(block)}".rstrip()

    def _item_box(self, block: DocumentBlock, css_class: str) -> str:
        return (
            f'<div class="{css_class}">\n'
            f"  <strong>{inline(block.title)}</strong>\n"
            f"{self.render_children(block)}\n"
            "</div>"
        )

    def _debate(self, block: DocumentBlock) -> str:
        number = f"{block.number}. " if block.number is not None else ""
        parts = [
            '<div class="debate-box">',
            f'  <div class="debate-question">{number}{inline(block.title)}</div>',
        ]
        if block.metadata.get("context"):
            parts.append(f'  <p class="debate-context">{inline(block.metadata["context"])}</p>')
        if block.bull_case:
            parts.append(f'  <div class="bull-case"><span class="case-label">Bull Case</span>'
                         f'<p>{inline(block.bull_case)}</p></div>')
        if block.bear_case:
            parts.append(f'  <div class="bear-case"><span class="case-label">Bear Case</span>'
                         f'<p>{inline(block.bear_case)}</p></div>')
        parts.append("</div>")
        return "\n".join(parts)

    def _qa(self, block: DocumentBlock) -> str:
        return (
            '<div class="qa-box">\n'
            f'  <div class="qa-question"><strong>Q:</strong> {inline(block.question)}</div>\n'
            f'  <div class="qa-answer"><strong>A:</strong> {inline(block.answer)}</div>\n'
            "</div>"
        )

    def _data_table(self, block: DocumentBlock) -> str:
        table: TableData = block.table
        if table is None:
            return ""

        head = []
        for idx, header in enumerate(table.headers):
            if idx == 0:
                head.append(f'<th class="label">{inline(header)}</th>')
                continue
            classes = ["number"]
            if idx < len(table.estimate_columns) and table.estimate_columns[idx]:
                classes.append("estimate")
            head.append(f'<th class="{" ".join(classes)}">{inline(header)}</th>')

        rows = []
        for row in table.rows:
            cells = []
            for idx, cell in enumerate(row.cells):
                if idx == 0:
                    label_cls = "label metric-sub" if row.growth_row else "label"
                    cells.append(f'<td class="{label_cls}">{inline(cell.text)}</td>')
                    continue
                classes = ["number"]
                if cell.estimate:
                    classes.append("estimate")
                if cell.negative:
                    classes.append("negative")
                if cell.positive:
                    classes.append("positive")
                cells.append(f'<td class="{" ".join(classes)}">{inline(cell.text)}</td>')
            row_cls = ' class="growth-row"' if row.growth_row else ""
            rows.append(f"<tr{row_cls}>{''.join(cells)}</tr>")

        return (
            '<table class="data-table">\n'
            f"  <thead><tr>{''.join(head)}</tr></thead>\n"
            "  <tbody>\n    " + "\n    ".join(rows) + "\n  </tbody>\n"
            "</table>"
        )

    def _valuation(self, block: DocumentBlock) -> str:
        return f'<div class="valuation-summary">\n{self.render_children(block)}\n</div>'

    def _thesis(self, block: DocumentBlock) -> str:
        return (
            '<div class="thesis-box">\n'
            '  <div class="thesis-header"><span class="thesis-icon">&#9670;</span>'
            f'<span class="thesis-label">{inline(block.title or "Investment Thesis")}</span></div>\n'
            f'  <div class="thesis-text">\n{self.render_children(block)}\n  </div>\n'
            "</div>"
        )

    def _insight(self, block: DocumentBlock) -> str:
        return (
            '<div class="insight-box">\n'
            '  <div class="insight-label">Key Insight</div>\n'
            f'  <div class="insight-text">{inline(block.text)}</div>\n'
            "</div>"
        )


def render_page(fragment: str, title: str) -> str:
    """Wrap a rendered memo in a standalone HTML document with the stylesheet inlined."""
    return PAGE_TEMPLATE.format(title=_attr(title), styles=STYLESHEET, body=fragment)
