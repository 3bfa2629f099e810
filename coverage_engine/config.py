"""
Coverage Desk — Configuration
───────────────────────────────
All settings come from the environment (.env supported).
Every API key is optional: a missing key switches that source off,
it never stops the service.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# ── Cache ─────────────────────────────────────────────────────
CACHE_DIR     = Path(os.getenv("CACHE_DIR", "cache"))
CACHE_BACKEND = os.getenv("CACHE_BACKEND", "file").lower()   # file | redis | memory
REDIS_URL     = os.getenv("REDIS_URL", "redis://localhost:6379")

# ── Generation collaborator ───────────────────────────────────
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
MEMO_MODEL        = os.getenv("MEMO_MODEL", "claude-sonnet-4-20250514")
MEMO_MAX_TOKENS   = int(os.getenv("MEMO_MAX_TOKENS", "8000"))

# ── Research sources ──────────────────────────────────────────
SEC_API_KEY       = os.getenv("SEC_API_KEY", "")
API_NINJAS_KEY    = os.getenv("API_NINJAS_KEY", "")
ALPHA_VANTAGE_KEY = os.getenv("ALPHA_VANTAGE_KEY", "")

# ── Timeouts (seconds) ────────────────────────────────────────
REQUEST_TIMEOUT    = float(os.getenv("REQUEST_TIMEOUT", "30"))
SOURCE_TIMEOUT     = float(os.getenv("SOURCE_TIMEOUT", "60"))
GENERATION_TIMEOUT = float(os.getenv("GENERATION_TIMEOUT", "300"))

# ── Service ───────────────────────────────────────────────────
ENABLE_SCHEDULER = os.getenv("ENABLE_SCHEDULER", "false").lower() in ("1", "true", "yes")
PORT             = int(os.getenv("PORT", "8000"))
