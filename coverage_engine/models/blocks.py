"""
Coverage Desk — Document Block Model
──────────────────────────────────────
The typed blocks the memo parser produces and the HTML renderer consumes.
BlockKind is the only coupling between the two: every kind here has
exactly one template in the renderer.

Text fields keep **bold** markers from the source; the renderer turns
them into <strong>. plain_text() gives the visible text.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class BlockKind(str, Enum):
    HEADING             = "heading"
    PARAGRAPH           = "paragraph"
    NUMBERED_SUBSECTION = "numbered-subsection"
    CUSTOMER_ITEM       = "customer-item"
    COMPETITOR_ITEM     = "competitor-item"
    DEBATE_ITEM         = "debate-item"
    RISK_ITEM           = "risk-item"
    QA_ITEM             = "qa-item"
    DATA_TABLE          = "data-table"
    VALUATION_CALLOUT   = "valuation-callout"
    THESIS_CALLOUT      = "thesis-callout"
    INSIGHT_CALLOUT     = "insight-callout"


@dataclass
class TableCell:
    text:     str
    negative: bool = False
    positive: bool = False
    estimate: bool = False


@dataclass
class TableRow:
    cells:      List[TableCell]
    growth_row: bool = False   # label mentions margin / growth / yoy

    @property
    def label(self) -> str:
        return self.cells[0].text if self.cells else ""


@dataclass
class TableData:
    headers:          List[str]
    estimate_columns: List[bool]   # one flag per header; index 0 is always the label column
    rows:             List[TableRow] = field(default_factory=list)


@dataclass
class DocumentBlock:
    kind:     BlockKind
    title:    Optional[str] = None
    text:     Optional[str] = None
    children: List["DocumentBlock"] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    # ── Kind-specific accessors ───────────────────────────────
    @property
    def number(self) -> Optional[int]:
        return self.metadata.get("number")

    @property
    def bull_case(self) -> Optional[str]:
        return self.metadata.get("bull_case")

    @property
    def bear_case(self) -> Optional[str]:
        return self.metadata.get("bear_case")

    @property
    def question(self) -> Optional[str]:
        return self.metadata.get("question")

    @property
    def answer(self) -> Optional[str]:
        return self.metadata.get("answer")

    @property
    def table(self) -> Optional[TableData]:
        return self.metadata.get("table")

    def plain_text(self) -> str:
        """Visible text of this block and its children, emphasis markers removed."""
        parts = []
        for value in (self.title, self.text):
            if value:
                parts.append(value)
        for name in ("context", "question", "answer", "bull_case", "bear_case"):
            if self.metadata.get(name):
                parts.append(self.metadata[name])
        if self.table:
            parts.extend(self.table.headers)
            for row in self.table.rows:
                parts.extend(c.text for c in row.cells)
        parts.extend(child.plain_text() for child in self.children)
        return strip_emphasis("\n".join(p for p in parts if p))

    def to_dict(self) -> dict:
        d = asdict(self)
        d["kind"] = self.kind.value
        return d


def strip_emphasis(text: str) -> str:
    return (text or "").replace("**", "")
