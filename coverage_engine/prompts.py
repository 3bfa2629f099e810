"""
Coverage Desk — Prompt Text
─────────────────────────────
The generation collaborator is opaque: these strings only have to ask for
the markup the memo parser understands.

  ## Section           top-level sections
  ### 1. Title         numbered items (debates, risks, customers, competitors)
  **Bull Case:** …     debate arguments
  | a | b |            pipe tables, estimate columns suffixed "E"
  Q: … / A: …          earnings-call Q&A
"""

from typing import TYPE_CHECKING, Dict, Iterable

if TYPE_CHECKING:
    from coverage_engine.research.base import SourceResult

SYSTEM_PROMPT = """You are a senior equity research analyst writing an initiation of coverage \
memo for institutional investors. Be specific, quantitative and balanced. Cite figures from \
the research provided; never invent numbers that are not supported by it."""

MEMO_SECTIONS = [
    "Investment Thesis",
    "Key Debates",
    "Key Customers & Partnerships",
    "Competitive Landscape",
    "Key Risks",
    "Financial Summary",
    "Valuation",
    "Appendix: Earnings Call Q&A",
]

FORMAT_RULES = """Formatting rules (follow exactly):
- Start with a single line "# <Company Name> (<TICKER>) — Initiation of Coverage".
- Each section starts with "## <Section Name>", in this order:
{sections}
- Inside Key Debates, Key Customers & Partnerships, Competitive Landscape and Key Risks,
  number every item as "### 1. <Title>" followed by its paragraph(s).
- Every debate carries both "**Bull Case:** ..." and "**Bear Case:** ..." lines.
- A standout observation may be written as "**Key Insight:** ...".
- Financial Summary is a markdown pipe table: metric rows, fiscal-year columns,
  estimate columns suffixed with "E" (e.g. FY2026E), negatives in parentheses,
  margin and growth rows as percentages.
- The appendix lists 3-5 exchanges as "Q: ..." then "A: ..." lines.
- Output markdown only. No code fences, no HTML."""


def build_research_prompt(ticker: str) -> str:
    return (
        f"Research {ticker} for an equity initiation of coverage. Search the web and report, "
        "with sources and dates:\n"
        "1. The 2-3 debates investors are having about the stock right now\n"
        "2. Named major customers and partnerships, with revenue exposure where disclosed\n"
        "3. Named competitors and how share is moving\n"
        "4. Takeaways from the most recent earnings call and guidance changes\n"
        "5. Consensus estimates and price targets\n"
        "Be concise and factual."
    )


def _section(title: str, body: str) -> str:
    return f"=== {title} ===\n{body.strip()}\n"


def format_research_context(results: Iterable["SourceResult"]) -> str:
    """Flatten successful source payloads into prompt context. Failed sources are omitted."""
    parts = []
    for result in results:
        if not result.ok:
            continue
        data = result.data
        if result.source == "SecFilings":
            sections = data.get("sections") or {}
            for name, text in sections.items():
                parts.append(_section(f"10-K {data.get('fiscalYear', '')} — {name}", text))
        elif result.source == "EarningsCalls":
            for t in data.get("transcripts") or []:
                parts.append(_section(f"Earnings call Q{t['quarter']} {t['year']}", t["transcript"]))
        elif result.source == "WebResearch":
            parts.append(_section("Web research", data.get("research", "")))
        elif result.source == "Financials":
            lines = [f"{k}: {v}" for k, v in data.items() if v is not None]
            parts.append(_section("Financial snapshot", "\n".join(lines)))
        else:
            lines = [f"{k}: {v}" for k, v in data.items()]
            parts.append(_section(result.source, "\n".join(lines)))
    return "\n".join(parts)


def build_memo_prompt(ticker: str, context: str, company: Dict = None) -> str:
    name = (company or {}).get("name") or ticker
    sections = "\n".join(f"  {i}. {s}" for i, s in enumerate(MEMO_SECTIONS, 1))
    research = context.strip() or "No external research was available. Use your own knowledge and say so."
    return (
        f"Write an initiation of coverage memo for {name} ({ticker}).\n\n"
        f"RESEARCH\n{research}\n\n"
        f"{FORMAT_RULES.format(sections=sections)}"
    )
