# config.py  – environment-driven settings for the lyrics backend

from __future__ import annotations
import logging
import os

# ── LLM ───────────────────────────────────────────────────────────────────
OPENAI_API_KEY   = os.getenv("OPENAI_API_KEY")
MODEL            = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
TEMPERATURE_SAFE = float(os.getenv("TEMPERATURE", "0.4"))
TEMPERATURE_FREE = 0.7                     # when CREATIVE_MODE == "1"
CREATIVE_MODE    = os.getenv("CREATIVE_MODE") == "1"
SEED             = int(os.getenv("SEED")) if os.getenv("SEED") else None
MAX_TOKENS       = int(os.getenv("MAX_TOKENS", "2000"))

# ── storage / server ──────────────────────────────────────────────────────
DATABASE_URL     = os.getenv("DATABASE_URL", "sqlite:///raaag.db")
PORT             = int(os.getenv("PORT", "5000"))
LOG_LEVEL        = os.getenv("LOG_LEVEL", "INFO").upper()


def temperature() -> float:
    return TEMPERATURE_FREE if CREATIVE_MODE else TEMPERATURE_SAFE


def database_url(url: str | None = None) -> str:
    """Return a SQLAlchemy URL, accepting the Heroku-style ``postgres://`` scheme."""
    url = url or DATABASE_URL
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=level or LOG_LEVEL,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )
