"""Enumerations shared across the moderation pipeline."""

from __future__ import annotations

from enum import Enum


class Severity(str, Enum):
    """How serious a spam signal or policy violation is."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ViolationType(str, Enum):
    """Kinds of policy breach found by the content filter."""
    PROFANITY = "profanity"
    HATE_SPEECH = "hate_speech"
    PERSONAL_INFO = "personal_info"
    BLOCKED_DOMAIN = "blocked_domain"


class RiskLevel(str, Enum):
    """Three-tier bucket derived from the reputation score alone."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ModerationAction(str, Enum):
    """Final decision emitted by the moderator."""
    APPROVE = "approve"
    REJECT = "reject"
    FLAG = "flag"
    MONITOR = "monitor"


class ContentType(str, Enum):
    """Where the content is being submitted. Informational only."""
    WIKI = "wiki"
    COMMENT = "comment"
    USER = "user"
    PERSON = "person"
