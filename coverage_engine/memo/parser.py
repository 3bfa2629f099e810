"""
Coverage Desk — Memo Section Parser
─────────────────────────────────────
Turns the loosely structured memo text returned by the generator into an
ordered list of DocumentBlocks.

Pipeline:
  1. strip code fences, split on top-level headings (## Title)
  2. classify each section by keyword in its heading
  3. run the section's interpretation chain:
       attempt A → attempt B → … → generic paragraphs
     each attempt returns Matched(blocks) or NO_MATCH

Generator output is frequently malformed, so nothing here raises:
a section that fits none of its shapes is rendered as plain paragraphs.
Order of attempts per section kind matters and is fixed in CHAINS.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

from coverage_engine.memo.tables import has_table, split_tables
from coverage_engine.models.blocks import BlockKind, DocumentBlock, TableData, strip_emphasis

log = logging.getLogger("cov.memo.parser")


# ══════════════════════════════════════════════════════════════
# ATTEMPT RESULTS
# ══════════════════════════════════════════════════════════════
@dataclass
class Matched:
    blocks: List[DocumentBlock] = field(default_factory=list)


class NoMatch:
    def __repr__(self):
        return "NO_MATCH"


NO_MATCH = NoMatch()

AttemptResult = Union[Matched, NoMatch]
Attempt       = Callable[[str], AttemptResult]


# ══════════════════════════════════════════════════════════════
# SECTION CLASSIFICATION
# ══════════════════════════════════════════════════════════════
class SectionKind(str, Enum):
    THESIS      = "thesis"
    RISKS       = "risks"
    DEBATES     = "debates"
    CUSTOMERS   = "customers"
    COMPETITORS = "competitors"
    VALUATION   = "valuation"
    FINANCIAL   = "financial"
    QA          = "qa"
    GENERIC     = "generic"


# First rule whose keyword appears in the heading wins.
SECTION_RULES: List[Tuple[Tuple[str, ...], SectionKind]] = [
    (("investment thesis",),                 SectionKind.THESIS),
    (("key risks",),                         SectionKind.RISKS),
    (("key debates",),                       SectionKind.DEBATES),
    (("key customers", "partnerships"),      SectionKind.CUSTOMERS),
    (("competitive",),                       SectionKind.COMPETITORS),
    (("valuation",),                         SectionKind.VALUATION),
    (("financial",),                         SectionKind.FINANCIAL),
    (("appendix", "earnings call q&a"),      SectionKind.QA),
]


def classify_section(title: Optional[str]) -> SectionKind:
    lowered = strip_emphasis(title or "").lower()
    for keywords, kind in SECTION_RULES:
        if any(k in lowered for k in keywords):
            return kind
    return SectionKind.GENERIC


@dataclass
class Section:
    title: Optional[str]
    body:  str


# ══════════════════════════════════════════════════════════════
# PATTERNS
# ══════════════════════════════════════════════════════════════
_FENCE          = re.compile(r"^[ \t]*```[\w-]*[ \t]*$", re.M)
_MD_HEADING     = re.compile(r"^(#{1,2})(?!#)[ \t]+(.+?)[ \t]*#*[ \t]*$")
_BOLD_HEADING   = re.compile(r"^\*\*([^*\n]+?)\*\*[ \t]*$")
MAX_HEADING_LEN = 80
_SUB_HEADING    = re.compile(r"^###(?!#)[ \t]*(.+?)[ \t]*$", re.M)
_NUMBERED_SUB   = re.compile(r"^###(?!#)[ \t]*(\d+)[.)][ \t]*(.+?)[ \t]*$", re.M)
_NUMBERED_BOLD  = re.compile(r"^[ \t]*\*\*(\d+)[.)][ \t]*(.+?)\*\*[ \t]*:?[ \t]*(.*)$", re.M)
_LEADING_NUMBER = re.compile(r"^(\d+)[.)][ \t]*(.*)$")
_BLANK_LINE     = re.compile(r"\n[ \t]*\n")
_RULE_LINE      = re.compile(r"^[ \t]*(-{3,}|\*{3,}|_{3,})[ \t]*$")
_KEY_INSIGHT    = re.compile(r"(?:\*\*)?[ \t]*Key Insight[ \t]*(?:\*\*)?[ \t]*:[ \t]*(?:\*\*)?[ \t]*", re.I)
_BULL_LABEL     = re.compile(r"(?:\*\*)?[ \t]*Bull Case[ \t]*(?:\*\*)?[ \t]*:[ \t]*(?:\*\*)?[ \t]*", re.I)
_BEAR_LABEL     = re.compile(r"(?:\*\*)?[ \t]*Bear Case[ \t]*(?:\*\*)?[ \t]*:[ \t]*(?:\*\*)?[ \t]*", re.I)
_QUESTION_LABEL = re.compile(r"(?:^|(?<=\s))(?:\*\*)?(?:Q|Question)[ \t]*\d*[ \t]*(?:\*\*)?[ \t]*:[ \t]*(?:\*\*)?[ \t]*", re.M)
_ANSWER_LABEL   = re.compile(r"(?:^[ \t]*(?:\*\*)?(?:A|Answer)[ \t]*(?:\*\*)?[ \t]*:"
                             r"|(?<=\s)\*\*(?:A|Answer)[ \t]*(?:\*\*[ \t]*:|:[ \t]*\*\*))[ \t]*(?:\*\*)?[ \t]*", re.M)


def _clean_title(title: str) -> str:
    return strip_emphasis(title).strip().rstrip(":").strip()


# ══════════════════════════════════════════════════════════════
# SPLITTING
# ══════════════════════════════════════════════════════════════
def clean_text(raw_text: str) -> str:
    text = (raw_text or "").replace("\r\n", "\n").replace("\r", "\n")
    return _FENCE.sub("", text).strip("\n")


def _is_bold_heading(line: str) -> bool:
    m = _BOLD_HEADING.match(line.strip())
    if not m:
        return False
    inner = m.group(1).strip()
    if not inner or len(inner) > MAX_HEADING_LEN:
        return False
    # bolded key sentences end in punctuation; headings do not
    if inner.endswith((":", ".", "!", ";")):
        return False
    return not _LEADING_NUMBER.match(inner)


def split_sections(text: str) -> List[Section]:
    """Top-level (heading, body) pairs in source order. A leading document title is dropped."""
    lines = text.split("\n")

    first = next((i for i, line in enumerate(lines) if line.strip()), None)
    if first is not None and re.match(r"^#(?!#)[ \t]+\S", lines[first]):
        lines = lines[first + 1:]

    if any(_MD_HEADING.match(line) for line in lines):
        def heading_of(line):
            m = _MD_HEADING.match(line)
            return m.group(2) if m else None
        bold_mode = False
    elif any(_is_bold_heading(line) for line in lines):
        def heading_of(line):
            return _BOLD_HEADING.match(line.strip()).group(1) if _is_bold_heading(line) else None
        bold_mode = True
    else:
        body = "\n".join(lines).strip()
        return [Section(title=None, body=body)] if body else []

    sections: List[Section] = []
    title: Optional[str] = None
    buf: List[str] = []

    def flush():
        body = "\n".join(buf).strip()
        if title is not None or body:
            sections.append(Section(title=_clean_title(title) if title is not None else None, body=body))

    for line in lines:
        heading = heading_of(line)
        if heading is None:
            buf.append(line)
            continue
        flush()
        title, buf = heading, []
    flush()

    # Bold-heading documents open with a bold title line that has no body of its own.
    if bold_mode and len(sections) > 1 and sections[0].title is not None and not sections[0].body:
        sections = sections[1:]

    return sections


# ══════════════════════════════════════════════════════════════
# GENERIC
# ══════════════════════════════════════════════════════════════
def parse_paragraphs(text: str) -> List[DocumentBlock]:
    blocks = []
    for chunk in _BLANK_LINE.split(text or ""):
        lines = [line for line in chunk.strip().split("\n") if not _RULE_LINE.match(line)]
        para = "\n".join(lines).strip()
        if not para:
            continue
        if _KEY_INSIGHT.search(para):
            insight = _KEY_INSIGHT.sub("", para, count=1).strip()
            blocks.append(DocumentBlock(kind=BlockKind.INSIGHT_CALLOUT, text=insight))
        else:
            blocks.append(DocumentBlock(kind=BlockKind.PARAGRAPH, text=para))
    return blocks


def _paragraphs_and_tables(text: str) -> List[DocumentBlock]:
    blocks = []
    for segment in split_tables(text):
        if isinstance(segment, TableData):
            blocks.append(DocumentBlock(kind=BlockKind.DATA_TABLE, metadata={"table": segment}))
        else:
            blocks.extend(parse_paragraphs(segment))
    return blocks


def parse_generic(body: str) -> List[DocumentBlock]:
    """Paragraphs, tables, insight callouts and ### sub-sections, in order."""
    matches = list(_SUB_HEADING.finditer(body or ""))
    if not matches:
        return _paragraphs_and_tables(body)

    blocks = _paragraphs_and_tables(body[:matches[0].start()])
    for idx, m in enumerate(matches):
        end = matches[idx + 1].start() if idx + 1 < len(matches) else len(body)
        heading = _clean_title(m.group(1))
        number  = None
        numbered = _LEADING_NUMBER.match(heading)
        if numbered:
            number, heading = int(numbered.group(1)), numbered.group(2).strip()
        blocks.append(DocumentBlock(
            kind=BlockKind.NUMBERED_SUBSECTION,
            title=heading,
            children=_paragraphs_and_tables(body[m.end():end]),
            metadata={"number": number},
        ))
    return blocks


def single_paragraph(body: str) -> List[DocumentBlock]:
    body = (body or "").strip()
    return [DocumentBlock(kind=BlockKind.PARAGRAPH, text=body)] if body else []


# ══════════════════════════════════════════════════════════════
# NUMBERED ITEMS (risks / customers / competitors)
# ══════════════════════════════════════════════════════════════
def _numbered_spans(body: str, pattern) -> List[Tuple[int, str, str]]:
    """(number, title, item_body) for each marker; item body runs to the next marker."""
    matches = list(pattern.finditer(body))
    spans = []
    for idx, m in enumerate(matches):
        end = matches[idx + 1].start() if idx + 1 < len(matches) else len(body)
        inline = m.group(3) if m.re.groups >= 3 else ""
        item_body = ((inline or "") + body[m.end():end]).strip()
        spans.append((int(m.group(1)), _clean_title(m.group(2)), item_body))
    return spans


def _items_attempt(kind: BlockKind, pattern) -> Attempt:
    def attempt(body: str) -> AttemptResult:
        first = pattern.search(body)
        if not first:
            return NO_MATCH
        blocks = parse_generic(body[:first.start()])
        for number, title, item_body in _numbered_spans(body, pattern):
            blocks.append(DocumentBlock(
                kind=kind, title=title,
                children=parse_generic(item_body),
                metadata={"number": number},
            ))
        return Matched(blocks)
    attempt.__name__ = f"{kind.value}:{'sub_heading' if pattern is _NUMBERED_SUB else 'inline_bold'}"
    return attempt


# ══════════════════════════════════════════════════════════════
# DEBATES
# ══════════════════════════════════════════════════════════════
def extract_debate_fields(body: str) -> Dict[str, str]:
    """
    Bull/Bear spans run from their label to the next label or blank line.
    Anything outside a labelled span is returned as "context".
    """
    labels = sorted(
        [(m.start(), m.end(), "bull_case") for m in _BULL_LABEL.finditer(body)] +
        [(m.start(), m.end(), "bear_case") for m in _BEAR_LABEL.finditer(body)]
    )
    fields: Dict[str, str] = {}
    consumed: List[Tuple[int, int]] = []

    for idx, (start, end, name) in enumerate(labels):
        stop = labels[idx + 1][0] if idx + 1 < len(labels) else len(body)
        blank = _BLANK_LINE.search(body, end)
        if blank and blank.start() < stop:
            stop = blank.start()
        value = body[end:stop].strip()
        if name in fields:
            continue
        fields[name] = value
        consumed.append((start, stop))

    leftovers, cursor = [], 0
    for start, stop in consumed:
        leftovers.append(body[cursor:start])
        cursor = stop
    leftovers.append(body[cursor:])
    context = "\n\n".join(p.strip() for p in leftovers if p.strip())
    if context:
        fields["context"] = context
    return {k: v for k, v in fields.items() if v}


def _debate_attempt(pattern) -> Attempt:
    def attempt(body: str) -> AttemptResult:
        first = pattern.search(body)
        if not first:
            return NO_MATCH
        blocks = parse_generic(body[:first.start()])
        for number, question, item_body in _numbered_spans(body, pattern):
            metadata = {"number": number}
            metadata.update(extract_debate_fields(item_body))
            blocks.append(DocumentBlock(kind=BlockKind.DEBATE_ITEM, title=question, metadata=metadata))
        return Matched(blocks)
    attempt.__name__ = f"debate:{'sub_heading' if pattern is _NUMBERED_SUB else 'inline_bold'}"
    return attempt


# ══════════════════════════════════════════════════════════════
# TABLES / Q&A
# ══════════════════════════════════════════════════════════════
def table_attempt(body: str) -> AttemptResult:
    if not has_table(body):
        return NO_MATCH
    return Matched(parse_generic(body))


def qa_attempt(body: str) -> AttemptResult:
    questions = list(_QUESTION_LABEL.finditer(body))
    if not questions:
        return NO_MATCH

    blocks = parse_generic(body[:questions[0].start()])
    pairs  = 0
    for idx, q in enumerate(questions):
        end = questions[idx + 1].start() if idx + 1 < len(questions) else len(body)
        segment = body[q.end():end]
        a = _ANSWER_LABEL.search(segment)
        if not a:
            blocks.extend(single_paragraph(body[q.start():end]))
            continue
        question = segment[:a.start()].strip()
        answer   = segment[a.end():].strip()
        blocks.append(DocumentBlock(kind=BlockKind.QA_ITEM, metadata={"question": question, "answer": answer}))
        pairs += 1

    return Matched(blocks) if pairs else NO_MATCH


# ══════════════════════════════════════════════════════════════
# CHAINS
# ══════════════════════════════════════════════════════════════
CHAINS: Dict[SectionKind, Tuple[List[Attempt], Callable[[str], List[DocumentBlock]]]] = {
    SectionKind.RISKS: (
        [_items_attempt(BlockKind.RISK_ITEM, _NUMBERED_SUB), _items_attempt(BlockKind.RISK_ITEM, _NUMBERED_BOLD)],
        single_paragraph,
    ),
    SectionKind.CUSTOMERS: (
        [_items_attempt(BlockKind.CUSTOMER_ITEM, _NUMBERED_SUB), _items_attempt(BlockKind.CUSTOMER_ITEM, _NUMBERED_BOLD)],
        single_paragraph,
    ),
    SectionKind.COMPETITORS: (
        [_items_attempt(BlockKind.COMPETITOR_ITEM, _NUMBERED_SUB), _items_attempt(BlockKind.COMPETITOR_ITEM, _NUMBERED_BOLD)],
        single_paragraph,
    ),
    SectionKind.DEBATES: (
        [_debate_attempt(_NUMBERED_SUB), _debate_attempt(_NUMBERED_BOLD)],
        parse_generic,
    ),
    SectionKind.FINANCIAL: ([table_attempt], parse_generic),
    SectionKind.QA:        ([qa_attempt], parse_generic),
    SectionKind.GENERIC:   ([], parse_generic),
}


def run_chain(kind: SectionKind, body: str) -> List[DocumentBlock]:
    attempts, fallback = CHAINS[kind]
    for attempt in attempts:
        result = attempt(body)
        if isinstance(result, Matched):
            return result.blocks
    if attempts:
        log.debug(f"No structured match for {kind.value} section — generic fallback")
    return fallback(body)


# ══════════════════════════════════════════════════════════════
# PARSER
# ══════════════════════════════════════════════════════════════
class DocumentSectionParser:
    """parse(raw_text) → ordered DocumentBlocks. Never raises."""

    def parse(self, raw_text: str) -> List[DocumentBlock]:
        try:
            return self._parse(clean_text(raw_text))
        except Exception as e:
            log.error(f"Memo parse failed, rendering as plain text: {e}")
            return single_paragraph(raw_text)

    def _parse(self, text: str) -> List[DocumentBlock]:
        blocks: List[DocumentBlock] = []
        for section in split_sections(text):
            blocks.extend(self.parse_section(section))
        return blocks

    def parse_section(self, section: Section) -> List[DocumentBlock]:
        if section.title is None:
            return parse_generic(section.body)

        kind = classify_section(section.title)

        if kind is SectionKind.THESIS:
            return [DocumentBlock(kind=BlockKind.THESIS_CALLOUT, title=section.title,
                                  children=parse_generic(section.body))]

        heading = DocumentBlock(kind=BlockKind.HEADING, title=section.title)

        if kind is SectionKind.VALUATION:
            return [heading, DocumentBlock(kind=BlockKind.VALUATION_CALLOUT, title=section.title,
                                           children=parse_generic(section.body))]

        return [heading] + run_chain(kind, section.body)


def parse_document(raw_text: str) -> List[DocumentBlock]:
    return DocumentSectionParser().parse(raw_text)
