"""
Runtime configuration, read from the environment (and a .env file).
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from .generator import DEFAULT_MAX_TOKENS, DEFAULT_MODEL, DEFAULT_TIMEOUT


logger = logging.getLogger(__name__)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return default


@dataclass
class Settings:
    openai_api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout: float = DEFAULT_TIMEOUT
    jwt_secret: str = ""
    jwt_expiry_days: int = 7
    store_path: Optional[str] = None
    corpus_path: Optional[str] = None
    log_dir: Optional[str] = None
    allowed_origins: List[str] = field(default_factory=list)

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()

        settings = cls(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            model=os.getenv("GPT_MODEL", DEFAULT_MODEL),
            max_tokens=_int_env("QURANIQ_MAX_TOKENS", DEFAULT_MAX_TOKENS),
            timeout=_float_env("QURANIQ_TIMEOUT", DEFAULT_TIMEOUT),
            jwt_secret=os.getenv("JWT_SECRET", ""),
            jwt_expiry_days=_int_env("JWT_EXPIRY_DAYS", 7),
            store_path=os.getenv("QURANIQ_STORE_PATH") or None,
            corpus_path=os.getenv("QURANIQ_CORPUS_PATH") or None,
            log_dir=os.getenv("QURANIQ_LOG_DIR") or None,
            allowed_origins=[o.strip() for o in os.getenv("ALLOWED_ORIGINS", "").split(",") if o.strip()],
        )

        if not settings.openai_api_key:
            logger.warning("OPENAI_API_KEY not set! AI features will fail.")
        if not settings.jwt_secret:
            logger.warning("JWT_SECRET not set! Authentication will fail.")
        return settings
