"""
Configuration and logging setup.

Defaults mirror the deployed application: records live under `tool_<id>`,
the index under `tool_keys`, ratings run 1-5 and a disclosure session is
valid for 30 days. Every value can be overridden from the environment.
"""

import logging
import os
from dataclasses import dataclass, field


DEFAULT_CATEGORIES = ("Assessment", "Communication", "Grading", "Analytics", "Other")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True)
class CurationConfig:
    """Settings shared by the adapter, the disclosure protocol and the workflow."""
    index_key: str = "tool_keys"
    record_key_prefix: str = "tool_"
    id_prefix: str = "tool"
    categories: tuple[str, ...] = field(default=DEFAULT_CATEGORIES)
    min_rating: int = 1
    max_rating: int = 5
    max_usage: int = 10_000_000
    chain_id: int = 0
    disclosure_window_days: int = 30
    verify_signatures: bool = True
    cas_retries: int = 5

    def record_key(self, record_id: str) -> str:
        return f"{self.record_key_prefix}{record_id}"

    @classmethod
    def from_env(cls, environ: dict = None) -> "CurationConfig":
        """Build a config from CURATION_* environment variables."""
        env = os.environ if environ is None else environ
        defaults = cls()

        categories = env.get("CURATION_CATEGORIES")
        if categories:
            parsed = tuple(c.strip() for c in categories.split(",") if c.strip())
        else:
            parsed = defaults.categories

        return cls(
            index_key=env.get("CURATION_INDEX_KEY", defaults.index_key),
            record_key_prefix=env.get("CURATION_RECORD_PREFIX", defaults.record_key_prefix),
            id_prefix=env.get("CURATION_ID_PREFIX", defaults.id_prefix),
            categories=parsed,
            min_rating=int(env.get("CURATION_MIN_RATING", defaults.min_rating)),
            max_rating=int(env.get("CURATION_MAX_RATING", defaults.max_rating)),
            max_usage=int(env.get("CURATION_MAX_USAGE", defaults.max_usage)),
            chain_id=int(env.get("CURATION_CHAIN_ID", defaults.chain_id)),
            disclosure_window_days=int(
                env.get("CURATION_DISCLOSURE_DAYS", defaults.disclosure_window_days)
            ),
            verify_signatures=env.get("CURATION_VERIFY_SIGNATURES", "1").lower()
            not in ("0", "false", "no"),
            cas_retries=int(env.get("CURATION_CAS_RETRIES", defaults.cas_retries)),
        )


def configure_logging(level: str | int = None) -> logging.Logger:
    """
    Attach a stream handler to the package logger.

    Level defaults to CURATION_LOG_LEVEL (or INFO). Calling this twice
    does not add a second handler.
    """
    if level is None:
        level = os.environ.get("CURATION_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger("curation")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
