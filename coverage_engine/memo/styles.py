"""
Coverage Desk — Memo Stylesheet
─────────────────────────────────
CSS roles used by renderer.py, plus the standalone page shell used for
HTML downloads and PDF export.
"""

STYLESHEET = """
:root {
  --ink: #1a1a1a;
  --muted: #5f6b7a;
  --accent: #0b3d91;
  --bull: #13795b;
  --bear: #b42318;
  --rule: #d9dee5;
  --panel: #f5f7fa;
}
* { box-sizing: border-box; }
body { margin: 0; background: #eef1f5; color: var(--ink);
       font: 15px/1.6 Georgia, "Times New Roman", serif; }
.page { max-width: 880px; margin: 24px auto; padding: 48px 56px; background: #fff;
        box-shadow: 0 1px 4px rgba(0, 0, 0, .08); }

.report-header { display: flex; justify-content: space-between; align-items: flex-end;
                 border-bottom: 3px solid var(--accent); padding-bottom: 14px; margin-bottom: 24px; }
.company-name { font-size: 28px; font-weight: 700; color: var(--accent); }
.ticker-info { font: 13px/1.4 Helvetica, Arial, sans-serif; color: var(--muted);
               text-transform: uppercase; letter-spacing: .06em; }
.header-right { text-align: right; }
.price { font: 700 22px Helvetica, Arial, sans-serif; }
.rating-badge { display: inline-block; margin-top: 4px; padding: 2px 10px; border-radius: 3px;
                background: var(--accent); color: #fff; font: 700 12px Helvetica, Arial, sans-serif; }

h2 { font: 700 19px Helvetica, Arial, sans-serif; color: var(--accent); margin: 32px 0 10px;
     border-bottom: 1px solid var(--rule); padding-bottom: 4px; }
h3 { font: 700 16px Helvetica, Arial, sans-serif; margin: 20px 0 8px; }
h3 .num { display: inline-block; width: 24px; height: 24px; margin-right: 8px; border-radius: 50%;
          background: var(--accent); color: #fff; text-align: center; font-size: 13px; line-height: 24px; }
p { margin: 0 0 12px; }

.thesis-box { background: var(--panel); border: 1px solid var(--rule); border-top: 4px solid var(--accent);
              padding: 18px 22px; margin-bottom: 28px; }
.thesis-header { display: flex; align-items: center; gap: 8px; margin-bottom: 8px; }
.thesis-icon { color: var(--accent); }
.thesis-label { font: 700 13px Helvetica, Arial, sans-serif; text-transform: uppercase;
                letter-spacing: .08em; color: var(--accent); }
.thesis-text p:last-child { margin-bottom: 0; }

.insight-box { border-left: 4px solid #c9a227; background: #fffbea; padding: 10px 16px; margin: 14px 0; }
.insight-label { font: 700 11px Helvetica, Arial, sans-serif; text-transform: uppercase;
                 letter-spacing: .08em; color: #8a6d00; }

.customer-box, .competitor-box, .risk-box { border-left: 4px solid var(--accent); background: var(--panel);
                                           padding: 12px 16px; margin: 12px 0; }
.competitor-box { border-left-color: var(--muted); }
.risk-box { border-left-color: var(--bear); }
.customer-box strong, .competitor-box strong, .risk-box strong { display: block; margin-bottom: 4px; }

.debate-box { border: 1px solid var(--rule); margin: 16px 0; }
.debate-question { background: var(--panel); padding: 10px 16px; font: 700 15px Helvetica, Arial, sans-serif; }
.debate-context { padding: 8px 16px 0; }
.bull-case, .bear-case { padding: 10px 16px; }
.bull-case { border-left: 4px solid var(--bull); }
.bear-case { border-left: 4px solid var(--bear); border-top: 1px solid var(--rule); }
.case-label { font: 700 11px Helvetica, Arial, sans-serif; text-transform: uppercase; letter-spacing: .08em; }
.bull-case .case-label { color: var(--bull); }
.bear-case .case-label { color: var(--bear); }
.bull-case p, .bear-case p { margin: 4px 0 0; }

.qa-box { border-bottom: 1px solid var(--rule); padding: 10px 0; }
.qa-question { font-weight: 700; margin-bottom: 4px; }

.data-table { width: 100%; border-collapse: collapse; margin: 14px 0 20px;
              font: 13px/1.4 Helvetica, Arial, sans-serif; }
.data-table th { border-bottom: 2px solid var(--ink); padding: 6px 8px; }
.data-table td { border-bottom: 1px solid var(--rule); padding: 5px 8px; }
.data-table .label { text-align: left; }
.data-table .number { text-align: right; font-variant-numeric: tabular-nums; }
.data-table .estimate { background: #f0f4fb; font-style: italic; }
.data-table .negative { color: var(--bear); }
.data-table .positive { color: var(--bull); }
.data-table .metric-sub { padding-left: 22px; color: var(--muted); font-style: italic; }

.valuation-summary { background: var(--panel); border: 1px solid var(--rule); padding: 16px 20px; margin: 12px 0; }

@media print {
  body { background: #fff; }
  .page { box-shadow: none; margin: 0; padding: 0; }
  .thesis-box, .debate-box, .data-table { page-break-inside: avoid; }
}
"""

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
  <style>{styles}</style>
</head>
<body>
  <div class="page">
{body}
  </div>
</body>
</html>
"""
