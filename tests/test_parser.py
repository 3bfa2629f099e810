"""Tests for coverage_engine.memo.parser."""

import re

import pytest

from coverage_engine.memo.parser import (
    NO_MATCH, DocumentSectionParser, Matched, SectionKind, classify_section, clean_text,
    qa_attempt, run_chain, split_sections, table_attempt,
)
from coverage_engine.models.blocks import BlockKind


def parse(text):
    return DocumentSectionParser().parse(text)


def kinds(blocks):
    return [b.kind for b in blocks]


MEMO = """# Broadcom Inc. (AVGO) — Initiation of Coverage

## Business Overview
Broadcom designs custom accelerators and networking silicon.

**Key Insight:** Networking attach grows with every accelerator cluster.

## Investment Thesis
Custom silicon demand compounds through 2027.

## Key Debates
### 1. Is growth sustainable?
**Bull Case:** Hyperscaler capex keeps rising.
**Bear Case:** Orders are lumpy and concentrated.

### 2. Is the stock priced in?
Shares trade at a premium multiple.
**Bull Case:** Earnings power supports the multiple.

## Key Risks
### 1. Customer concentration
Top customers dominate revenue.

## Financial Summary
| Metric | FY2025 | FY2026E |
|---|---|---|
| Revenue | 63.9 | 78.0 |
| Operating Margin | -1.5% | 4.0% |

## Valuation
Target multiple applied to forward earnings.

## Appendix: Earnings Call Q&A
Q: How durable is demand?
A: Visibility extends several quarters.
"""


class TestClassification:

    @pytest.mark.parametrize("title,kind", [
        ("Investment Thesis", SectionKind.THESIS),
        ("Key Risks", SectionKind.RISKS),
        ("Key Debates on the Stock", SectionKind.DEBATES),
        ("Key Customers & Partnerships", SectionKind.CUSTOMERS),
        ("Strategic Partnerships", SectionKind.CUSTOMERS),
        ("Competitive Landscape", SectionKind.COMPETITORS),
        ("Valuation", SectionKind.VALUATION),
        ("Financial Summary", SectionKind.FINANCIAL),
        ("Appendix", SectionKind.QA),
        ("Earnings Call Q&A", SectionKind.QA),
        ("Business Overview", SectionKind.GENERIC),
        (None, SectionKind.GENERIC),
    ])
    def test_keywords(self, title, kind):
        assert classify_section(title) is kind

    def test_first_rule_wins(self):
        assert classify_section("Key Risks to Valuation") is SectionKind.RISKS

    def test_case_insensitive_and_emphasis(self):
        assert classify_section("**KEY DEBATES**") is SectionKind.DEBATES


class TestSplitting:

    def test_leading_title_dropped(self):
        sections = split_sections("# Broadcom\n\n## Overview\nText.")
        assert [s.title for s in sections] == ["Overview"]

    def test_preamble_kept_without_heading(self):
        blocks = parse("Prepared for clients.\n\n## Overview\nText.")
        assert kinds(blocks) == [BlockKind.PARAGRAPH, BlockKind.HEADING, BlockKind.PARAGRAPH]
        assert blocks[0].text == "Prepared for clients."

    def test_code_fences_stripped(self):
        blocks = parse("```markdown\n## Overview\nText.\n```")
        assert kinds(blocks) == [BlockKind.HEADING, BlockKind.PARAGRAPH]
        assert blocks[1].text == "Text."

    def test_crlf_normalised(self):
        blocks = parse("## Overview\r\nLine one.\r\n\r\nLine two.")
        assert [b.text for b in blocks[1:]] == ["Line one.", "Line two."]

    def test_bold_headings_when_no_markdown_headings(self):
        text = (
            "**Broadcom Initiation**\n\n"
            "**Overview**\nBroadcom sells chips.\n\n"
            "**Key Debates on the Stock**\n"
            "**1. Will ASICs displace GPUs?**\n"
            "**Bull Case:** Partial migration is large.\n"
            "**Bear Case:** GPUs stay flexible.\n"
        )
        blocks = parse(text)
        assert kinds(blocks) == [
            BlockKind.HEADING, BlockKind.PARAGRAPH, BlockKind.HEADING, BlockKind.DEBATE_ITEM,
        ]
        assert blocks[0].title == "Overview"
        debate = blocks[3]
        assert debate.title == "Will ASICs displace GPUs?"
        assert debate.bull_case == "Partial migration is large."
        assert debate.bear_case == "GPUs stay flexible."

    def test_bolded_key_sentence_stays_in_its_section(self):
        text = (
            "**Broadcom Inc. (AVGO) Initiation of Coverage**\n\n"
            "**Investment Thesis**\nCustom silicon compounds.\n\n"
            "**Competitive Positioning**\n"
            "Broadcom competes with Marvell and in-house teams.\n\n"
            "**Hyperscalers rarely dual-source early-stage AI ASICs.**\n\n"
            "Switching costs rise with every generation.\n\n"
            "**Valuation**\nShares trade at 31x forward earnings.\n"
        )
        titles = [s.title for s in split_sections(clean_text(text))]
        assert titles == ["Investment Thesis", "Competitive Positioning", "Valuation"]
        competitive = split_sections(clean_text(text))[1]
        assert "**Hyperscalers rarely dual-source early-stage AI ASICs.**" in competitive.body
        assert "Switching costs rise with every generation." in competitive.body

    @pytest.mark.parametrize("line", [
        "**Demand is durable!**",
        "**Margins expand; leverage falls**",
        "**" + "Custom accelerator revenue grows faster than the merchant GPU market " * 2 + "**",
    ])
    def test_sentence_like_bold_lines_are_not_headings(self, line):
        text = "**Overview**\nBody.\n\n" + line + "\n\nMore body."
        assert [s.title for s in split_sections(text)] == ["Overview"]

    def test_plain_text_only(self):
        blocks = parse("Just one paragraph.\n\nAnd another.")
        assert kinds(blocks) == [BlockKind.PARAGRAPH, BlockKind.PARAGRAPH]


class TestDebates:

    def test_bull_and_bear_extracted(self):
        text = ("## Key Debates\n### 1. Is growth sustainable?\n"
                "**Bull Case:** Yes because X.\n**Bear Case:** No because Y.")
        blocks = parse(text)
        debates = [b for b in blocks if b.kind is BlockKind.DEBATE_ITEM]
        assert len(debates) == 1
        assert debates[0].title == "Is growth sustainable?"
        assert debates[0].bull_case == "Yes because X."
        assert debates[0].bear_case == "No because Y."
        assert debates[0].number == 1
        assert "context" not in debates[0].metadata

    def test_missing_bear_is_omitted_and_context_kept(self):
        text = ("## Key Debates\n### 2. Is it priced in?\nThe stock trades at 30x.\n"
                "**Bull Case:** Cheap on 2027.\n\nExtra note.")
        debate = parse(text)[1]
        assert debate.bull_case == "Cheap on 2027."
        assert debate.bear_case is None
        assert "bear_case" not in debate.metadata
        assert debate.metadata["context"] == "The stock trades at 30x.\n\nExtra note."

    def test_unlabelled_debates_fall_back_to_generic(self):
        blocks = parse("## Key Debates\nInvestors argue about margins.")
        assert kinds(blocks) == [BlockKind.HEADING, BlockKind.PARAGRAPH]


class TestNumberedItems:

    def test_customers_without_markers_is_single_paragraph(self):
        body = "Apple and Google are the two largest customers.\n\nTogether they are 40% of revenue."
        blocks = parse(f"## Key Customers\n{body}")
        assert kinds(blocks) == [BlockKind.HEADING, BlockKind.PARAGRAPH]
        assert blocks[1].text == body

    def test_risks_sub_heading_form(self):
        blocks = parse("## Key Risks\n### 1. Supply\nTSMC dependence.\n### 2. China\nExport controls.")
        risks = blocks[1:]
        assert kinds(risks) == [BlockKind.RISK_ITEM, BlockKind.RISK_ITEM]
        assert [r.title for r in risks] == ["Supply", "China"]
        assert [r.number for r in risks] == [1, 2]
        assert risks[0].children[0].text == "TSMC dependence."

    def test_risks_inline_bold_form(self):
        text = ("## Key Risks\n**1. Customer concentration:** Top five customers are 40% of sales.\n"
                "**2. China exposure** Export controls could bite.")
        risks = parse(text)[1:]
        assert kinds(risks) == [BlockKind.RISK_ITEM, BlockKind.RISK_ITEM]
        assert risks[0].title == "Customer concentration"
        assert risks[0].children[0].text == "Top five customers are 40% of sales."
        assert risks[1].title == "China exposure"
        assert risks[1].children[0].text == "Export controls could bite."

    def test_sub_heading_tried_before_inline_bold(self):
        text = ("## Key Customers & Partnerships\n### 1. Apple\n**2. Wireless** modem deal.\n"
                "### 2. Google\nTPU partner.")
        items = parse(text)[1:]
        assert [b.kind for b in items] == [BlockKind.CUSTOMER_ITEM, BlockKind.CUSTOMER_ITEM]
        assert [b.title for b in items] == ["Apple", "Google"]
        assert items[0].children[0].text == "**2. Wireless** modem deal."

    def test_competitors(self):
        items = parse("## Competitive Landscape\n### 1. Marvell\nCustom ASIC rival.")[1:]
        assert kinds(items) == [BlockKind.COMPETITOR_ITEM]

    def test_intro_before_first_item_kept(self):
        blocks = parse("## Key Risks\nThree risks stand out.\n### 1. Supply\nTSMC.")
        assert kinds(blocks) == [BlockKind.HEADING, BlockKind.PARAGRAPH, BlockKind.RISK_ITEM]


class TestGenericSections:

    def test_key_insight_callout(self):
        blocks = parse("## Business Overview\nBroadcom sells chips.\n\n"
                       "**Key Insight:** AI networking is the real story.")
        assert kinds(blocks) == [BlockKind.HEADING, BlockKind.PARAGRAPH, BlockKind.INSIGHT_CALLOUT]
        assert blocks[2].text == "AI networking is the real story."

    def test_numbered_subsections(self):
        blocks = parse("## Business Overview\nIntro.\n### 1. Networking\nTomahawk switches.\n"
                       "### Software\nVMware.")
        assert kinds(blocks) == [
            BlockKind.HEADING, BlockKind.PARAGRAPH,
            BlockKind.NUMBERED_SUBSECTION, BlockKind.NUMBERED_SUBSECTION,
        ]
        assert (blocks[2].number, blocks[2].title) == (1, "Networking")
        assert (blocks[3].number, blocks[3].title) == (None, "Software")
        assert blocks[3].children[0].text == "VMware."

    def test_horizontal_rules_dropped(self):
        blocks = parse("## Overview\nText.\n\n---\n\nMore.")
        assert [b.text for b in blocks[1:]] == ["Text.", "More."]

    def test_bold_markers_preserved(self):
        blocks = parse("## Overview\nRevenue is **up 20%** this year.")
        assert blocks[1].text == "Revenue is **up 20%** this year."
        assert blocks[1].plain_text() == "Revenue is up 20% this year."

    def test_thesis_becomes_callout(self):
        blocks = parse("## Investment Thesis\nAI is the driver.")
        assert kinds(blocks) == [BlockKind.THESIS_CALLOUT]
        assert blocks[0].children[0].text == "AI is the driver."

    def test_valuation_callout(self):
        blocks = parse("## Valuation\nWe value at 30x.")
        assert kinds(blocks) == [BlockKind.HEADING, BlockKind.VALUATION_CALLOUT]
        assert blocks[1].children[0].text == "We value at 30x."


class TestTablesAndQA:

    def test_financial_table(self):
        blocks = parse("## Financial Summary\nIn billions.\n\n| Metric | FY2025 | FY2026E |\n"
                       "|---|---|---|\n| Revenue Growth | 24% | -3% |")
        assert kinds(blocks) == [BlockKind.HEADING, BlockKind.PARAGRAPH, BlockKind.DATA_TABLE]
        table = blocks[2].table
        assert table.estimate_columns == [False, False, True]
        assert [c.text for c in table.rows[0].cells] == ["Revenue Growth", "+24%", "(3%)"]

    def test_financial_without_table_is_generic(self):
        blocks = parse("## Financial Summary\nRevenue grew 20%.")
        assert kinds(blocks) == [BlockKind.HEADING, BlockKind.PARAGRAPH]

    def test_table_in_generic_section(self):
        blocks = parse("## Segments\n| Segment | Share |\n|---|---|\n| Semis | 58% |")
        assert kinds(blocks) == [BlockKind.HEADING, BlockKind.DATA_TABLE]

    def test_qa_pairs(self):
        text = ("## Appendix: Earnings Call Q&A\nQ: How durable is AI demand?\n"
                "A: Visibility extends into 2027.\n\n**Q:** What about margins?\n**A:** Stable.")
        qa = parse(text)[1:]
        assert kinds(qa) == [BlockKind.QA_ITEM, BlockKind.QA_ITEM]
        assert (qa[0].question, qa[0].answer) == ("How durable is AI demand?", "Visibility extends into 2027.")
        assert (qa[1].question, qa[1].answer) == ("What about margins?", "Stable.")

    def test_answer_label_inside_question_is_not_split(self):
        text = ("## Appendix: Earnings Call Q&A\n"
                "Q: What about Class A: shares and the buyback?\n"
                "A: The buyback continues.")
        qa = parse(text)[1:]
        assert kinds(qa) == [BlockKind.QA_ITEM]
        assert qa[0].question == "What about Class A: shares and the buyback?"
        assert qa[0].answer == "The buyback continues."

    def test_inline_bold_answer_label(self):
        qa = parse("## Appendix\n**Q:** Is supply tight? **A:** Yes, through 2026.")[1:]
        assert (qa[0].question, qa[0].answer) == ("Is supply tight?", "Yes, through 2026.")

    def test_qa_without_answers_is_generic(self):
        blocks = parse("## Appendix\nQ: Only a question?")
        assert kinds(blocks) == [BlockKind.HEADING, BlockKind.PARAGRAPH]
        assert blocks[1].text == "Q: Only a question?"

    def test_attempts_are_tagged(self):
        assert qa_attempt("no labels here") is NO_MATCH
        assert table_attempt("plain text") is NO_MATCH
        assert isinstance(table_attempt("| a | b |\n|---|---|\n| 1 | 2 |"), Matched)

    def test_run_chain_exhausted_uses_fallback(self):
        body = "No numbers anywhere."
        blocks = run_chain(SectionKind.COMPETITORS, body)
        assert kinds(blocks) == [BlockKind.PARAGRAPH]
        assert blocks[0].text == body


class TestTotality:

    @pytest.mark.parametrize("text", [
        "", None, "   \n\n  ", "##", "###", "**", "**1.**", "|---|", "| a |\n|---|\n|",
        "## Key Debates\n### 1.\n**Bull Case:**", "## Appendix\nQ:\nA:", "```", "# Only a title",
        "## Key Risks\n**1. ** \n**2.**", "\x00\x01 binary �",
    ])
    def test_never_raises(self, text):
        blocks = parse(text)
        assert isinstance(blocks, list)

    def test_full_memo_block_order(self):
        blocks = parse(MEMO)
        assert kinds(blocks) == [
            BlockKind.HEADING, BlockKind.PARAGRAPH, BlockKind.INSIGHT_CALLOUT,
            BlockKind.THESIS_CALLOUT,
            BlockKind.HEADING, BlockKind.DEBATE_ITEM, BlockKind.DEBATE_ITEM,
            BlockKind.HEADING, BlockKind.RISK_ITEM,
            BlockKind.HEADING, BlockKind.DATA_TABLE,
            BlockKind.HEADING, BlockKind.VALUATION_CALLOUT,
            BlockKind.HEADING, BlockKind.QA_ITEM,
        ]

    def test_no_content_dropped(self):
        labels = {"Bull", "Bear", "Case", "Key", "Insight"}
        body = MEMO.split("\n", 1)[1]
        expected = set(re.findall(r"[A-Za-z]{3,}", body)) - labels
        visible = "\n".join(b.plain_text() for b in parse(MEMO))
        missing = {w for w in expected if w not in visible}
        assert missing == set()
