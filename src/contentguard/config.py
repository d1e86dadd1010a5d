"""
Configuration management for contentguard.

Two layers:
- ModerationConfig: thresholds and keyword/pattern lists consumed by the
  spam detector, content filter and reputation service
- Config: application settings (logging, database, feature flags) loaded
  from environment variables and .env files

Both are immutable. Tuning happens by building a new instance, never by
mutating a shared one, so tests and callers can hold isolated configs.
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from contentguard.redaction import PERSONAL_INFO_PATTERNS

DEFAULT_SUSPICIOUS_DOMAINS: tuple[str, ...] = (
    "spam.com",
    "malicious.com",
    "phishing.com",
)

DEFAULT_URL_SHORTENERS: tuple[str, ...] = (
    "bit.ly",
    "tinyurl.com",
    "goo.gl",
    "t.co",
    "buff.ly",
    "ow.ly",
    "is.gd",
    "bit.do",
)

DEFAULT_SPAM_KEYWORDS: tuple[str, ...] = (
    "free money",
    "win prize",
    "click here now",
    "click here!!!",
    "winner!",
    "congratulations!!!",
    "limited time offer",
    "act now",
    "urgent",
    "verified account",
    "bitcoin investment",
    "cryptocurrency giveaway",
    "earn $",
    "make money fast",
    "work from home",
    "easy money",
    "hot deal",
    "best deal",
    "viagra",
    "cialis",
    "casino",
    "poker",
    "lottery",
    "jackpot",
)


@dataclass(frozen=True)
class ModerationConfig:
    """
    Immutable moderation thresholds and pattern lists.

    Score thresholds are on the 0-100 spam scale, reputation cutoffs on the
    0-100 reputation scale, and the trusted/suspicious user scores are
    approval-rate cutoffs in [0, 1].

    Raises:
        ValueError: On construction, if the thresholds are incoherent
    """

    # Spam score thresholds
    auto_reject_threshold: int = 80
    manual_review_threshold: int = 40
    approve_threshold: int = 20

    # Link detection
    max_links: int = 5
    max_shortened_links: int = 2
    suspicious_domains: tuple[str, ...] = DEFAULT_SUSPICIOUS_DOMAINS
    url_shortener_domains: tuple[str, ...] = DEFAULT_URL_SHORTENERS

    # Content shape
    max_caps_ratio: float = 0.7
    max_repeated_characters: int = 10
    max_repeated_words: int = 5
    min_content_length: int = 10
    max_content_length: int = 50000

    # Keyword and pattern lists
    spam_keywords: tuple[str, ...] = DEFAULT_SPAM_KEYWORDS
    profanity_keywords: tuple[str, ...] = ()
    hate_speech_patterns: tuple[str, ...] = ()
    personal_info_patterns: tuple[str, ...] = PERSONAL_INFO_PATTERNS

    # Reputation thresholds
    trusted_user_score: float = 0.85
    suspicious_user_score: float = 0.5
    auto_approve_reputation: int = 80
    auto_flag_reputation: int = 30

    def __post_init__(self) -> None:
        # Lists may arrive as lists from callers; store them as tuples
        for name in (
            "suspicious_domains",
            "url_shortener_domains",
            "spam_keywords",
            "profanity_keywords",
            "hate_speech_patterns",
            "personal_info_patterns",
        ):
            object.__setattr__(self, name, tuple(getattr(self, name)))

        errors = self.validate()
        if errors:
            raise ValueError(
                "Configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            )

    def validate(self) -> list[str]:
        """
        Check that the thresholds form a coherent decision table.

        Returns:
            list: Human-readable problems, empty when the config is valid
        """
        errors: list[str] = []

        if not (
            0
            <= self.approve_threshold
            <= self.manual_review_threshold
            <= self.auto_reject_threshold
            <= 100
        ):
            errors.append(
                "thresholds must satisfy 0 <= approve_threshold "
                f"({self.approve_threshold}) <= manual_review_threshold "
                f"({self.manual_review_threshold}) <= auto_reject_threshold "
                f"({self.auto_reject_threshold}) <= 100"
            )
        if self.max_links < 0 or self.max_shortened_links < 0:
            errors.append("link limits must not be negative")
        if not 0 <= self.max_caps_ratio <= 1:
            errors.append(f"max_caps_ratio must be in [0, 1], got {self.max_caps_ratio}")
        if self.max_repeated_characters < 2:
            errors.append("max_repeated_characters must be at least 2")
        if self.max_repeated_words < 1:
            errors.append("max_repeated_words must be at least 1")
        if not 0 <= self.min_content_length <= self.max_content_length:
            errors.append(
                "content length limits must satisfy "
                "0 <= min_content_length <= max_content_length"
            )
        for name in ("trusted_user_score", "suspicious_user_score"):
            value = getattr(self, name)
            if not 0 <= value <= 1:
                errors.append(f"{name} must be an approval rate in [0, 1], got {value}")
        if not 0 <= self.auto_flag_reputation <= self.auto_approve_reputation <= 100:
            errors.append(
                "reputation cutoffs must satisfy 0 <= auto_flag_reputation "
                "<= auto_approve_reputation <= 100"
            )

        return errors

    def with_updates(self, **changes: Any) -> ModerationConfig:
        """
        Return a copy with some fields replaced.

        The copy is validated like any new instance; the receiver is left
        untouched.

        Args:
            **changes: Field names and their new values

        Returns:
            ModerationConfig: The updated configuration
        """
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class Config:
    """
    Immutable application configuration.

    Attributes:
        log_level: Logging level (default: INFO)
        log_file: Optional log file path
        database_path: SQLite file holding users and submission history
        reputation_enabled: Reputation scoring feature flag
        reputation_timeout: Seconds to wait for a reputation lookup
        moderation: Moderation thresholds and pattern lists
    """

    log_level: str = "INFO"
    log_file: str | None = None
    database_path: str = "data/contentguard.db"
    reputation_enabled: bool = True
    reputation_timeout: float | None = 5.0
    moderation: ModerationConfig = field(default_factory=ModerationConfig)


def _parse_bool(value: str | None, default: bool = True) -> bool:
    """Feature flags are on unless explicitly set to 'false'."""
    if value is None:
        return default
    return value.strip().lower() != "false"


def _parse_int(value: str | None, default: int) -> int:
    """Parse an integer from environment variable string."""
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _parse_float(value: str | None, default: float | None) -> float | None:
    """Parse a float from environment variable string."""
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _parse_list(value: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    """Parse a comma-separated list, keeping the default when unset."""
    if value is None:
        return default
    items = [item.strip() for item in value.split(",")]
    return tuple(item for item in items if item)


_INT_OVERRIDES = {
    "MODERATION_AUTO_REJECT_THRESHOLD": "auto_reject_threshold",
    "MODERATION_MANUAL_REVIEW_THRESHOLD": "manual_review_threshold",
    "MODERATION_APPROVE_THRESHOLD": "approve_threshold",
    "MODERATION_MAX_LINKS": "max_links",
    "MODERATION_MAX_SHORTENED_LINKS": "max_shortened_links",
    "MODERATION_MAX_REPEATED_CHARACTERS": "max_repeated_characters",
    "MODERATION_MAX_REPEATED_WORDS": "max_repeated_words",
    "MODERATION_MIN_CONTENT_LENGTH": "min_content_length",
    "MODERATION_MAX_CONTENT_LENGTH": "max_content_length",
    "MODERATION_AUTO_APPROVE_REPUTATION": "auto_approve_reputation",
    "MODERATION_AUTO_FLAG_REPUTATION": "auto_flag_reputation",
}

_FLOAT_OVERRIDES = {
    "MODERATION_MAX_CAPS_RATIO": "max_caps_ratio",
    "MODERATION_TRUSTED_USER_SCORE": "trusted_user_score",
    "MODERATION_SUSPICIOUS_USER_SCORE": "suspicious_user_score",
}

_LIST_OVERRIDES = {
    "MODERATION_SUSPICIOUS_DOMAINS": "suspicious_domains",
    "MODERATION_URL_SHORTENER_DOMAINS": "url_shortener_domains",
    "MODERATION_SPAM_KEYWORDS": "spam_keywords",
    "MODERATION_PROFANITY_KEYWORDS": "profanity_keywords",
}


def _load_moderation_config() -> ModerationConfig:
    """Build a ModerationConfig from MODERATION_* environment overrides."""
    defaults = ModerationConfig()
    values: dict[str, Any] = {}

    for env_name, field_name in _INT_OVERRIDES.items():
        values[field_name] = _parse_int(os.getenv(env_name), getattr(defaults, field_name))
    for env_name, field_name in _FLOAT_OVERRIDES.items():
        values[field_name] = _parse_float(os.getenv(env_name), getattr(defaults, field_name))
    for env_name, field_name in _LIST_OVERRIDES.items():
        values[field_name] = _parse_list(os.getenv(env_name), getattr(defaults, field_name))

    return ModerationConfig(**values)


def load_config(env_file: str | Path | None = None) -> Config:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Optional path to .env file. If not provided,
                  looks for .env in current directory and parent directories.

    Returns:
        Config: Validated configuration object

    Raises:
        ValueError: If the moderation thresholds are incoherent
    """
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    if log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        log_level = "INFO"

    timeout = _parse_float(os.getenv("REPUTATION_TIMEOUT"), 5.0)
    if timeout is not None and timeout <= 0:
        timeout = None

    return Config(
        log_level=log_level,
        log_file=os.getenv("LOG_FILE") or None,
        database_path=os.getenv("DATABASE_PATH", "data/contentguard.db"),
        reputation_enabled=_parse_bool(os.getenv("FEATURE_REPUTATION_SYSTEM")),
        reputation_timeout=timeout,
        moderation=_load_moderation_config(),
    )
