"""
Policy filtering for submitted text.

Checks content for profanity, hate speech, personal information and links
to blocked domains, and always returns a sanitized copy restricted to a
small allow-list of formatting tags.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

import bleach

from contentguard.config import ModerationConfig
from contentguard.moderation.models import Severity, ViolationType
from contentguard.moderation.spam_detector import TAG_PATTERN, extract_urls
from contentguard.redaction import mask_personal_info
from contentguard.utils.logging import get_logger

logger = get_logger(__name__)

ALLOWED_TAGS = frozenset({"p", "br", "b", "i", "u", "strong", "em", "a", "ul", "ol", "li"})
ALLOWED_ATTRIBUTES = ["href", "title", "target"]

# Personal information is never stored in full on a violation record
MATCH_PREVIEW_LENGTH = 20

__all__ = [
    "ContentFilter",
    "FilterResult",
    "FilterViolation",
    "ValidationResult",
    "filter_content",
    "get_content_summary",
    "mask_personal_info",
    "sanitize_content",
    "validate_content",
]


@dataclass(frozen=True)
class FilterViolation:
    """A discrete policy breach."""
    type: ViolationType
    severity: Severity
    message: str
    matched_content: Optional[str] = None


@dataclass(frozen=True)
class FilterResult:
    """Violations found plus the sanitized content."""
    passed: bool
    violations: tuple[FilterViolation, ...] = ()
    filtered_content: str = ""


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)


def sanitize_content(content: str) -> str:
    """
    Strip all markup outside the formatting allow-list, keeping text.

    Running it on its own output returns the output unchanged.
    """
    return bleach.clean(
        content or "",
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        strip=True,
        strip_comments=True,
    )


def _compile_patterns(patterns: tuple[str, ...], flags: int, kind: str) -> list[re.Pattern[str]]:
    """Compile operator-supplied patterns, skipping the ones that are invalid."""
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern, flags))
        except re.error as e:
            logger.warning("Invalid %s pattern %r skipped: %s", kind, pattern, e)
    return compiled


class ContentFilter:
    """
    Stateless policy filter bound to one ModerationConfig.

    Patterns are compiled once at construction; a bad pattern is logged and
    left out instead of failing the pipeline.
    """

    def __init__(self, config: ModerationConfig | None = None) -> None:
        self.config = config or ModerationConfig()
        self._profanity = tuple(
            dict.fromkeys(k for k in self.config.profanity_keywords if k)
        )
        self._hate_speech = _compile_patterns(
            self.config.hate_speech_patterns, re.IGNORECASE, "hate speech"
        )
        self._personal_info = _compile_patterns(
            self.config.personal_info_patterns, 0, "personal info"
        )

    def check_profanity(self, content: str) -> list[FilterViolation]:
        """Case-insensitive substring match against the profanity list."""
        lowered = content.lower()
        return [
            FilterViolation(
                type=ViolationType.PROFANITY,
                severity=Severity.MEDIUM,
                message="Profanity detected",
                matched_content=keyword,
            )
            for keyword in self._profanity
            if keyword.lower() in lowered
        ]

    def check_hate_speech(self, content: str) -> list[FilterViolation]:
        """One violation per hate-speech pattern that matches."""
        violations = []
        for pattern in self._hate_speech:
            match = pattern.search(content)
            if match:
                violations.append(FilterViolation(
                    type=ViolationType.HATE_SPEECH,
                    severity=Severity.HIGH,
                    message="Hate speech detected",
                    matched_content=match.group(0),
                ))
        return violations

    def check_personal_info(self, content: str) -> list[FilterViolation]:
        """One violation per matching pattern, with only a short preview kept."""
        violations = []
        for pattern in self._personal_info:
            match = pattern.search(content)
            if match:
                violations.append(FilterViolation(
                    type=ViolationType.PERSONAL_INFO,
                    severity=Severity.HIGH,
                    message="Personal information detected (email, phone, etc.)",
                    matched_content=match.group(0)[:MATCH_PREVIEW_LENGTH] + "...",
                ))
        return violations

    def check_blocked_domains(self, content: str) -> list[FilterViolation]:
        """Flag links whose URL contains a suspicious domain."""
        violations = []
        for url in extract_urls(content):
            lowered = url.lower()
            for domain in self.config.suspicious_domains:
                if domain and domain.lower() in lowered:
                    violations.append(FilterViolation(
                        type=ViolationType.BLOCKED_DOMAIN,
                        severity=Severity.HIGH,
                        message="Blocked domain detected",
                        matched_content=domain,
                    ))
        return violations

    def filter(self, content: str) -> FilterResult:
        """
        Run every policy check and sanitize the content.

        Args:
            content: Raw or pre-sanitized text

        Returns:
            FilterResult: passed is True only when no violation was found;
                          filtered_content is always the sanitized text
        """
        content = content or ""
        violations = (
            self.check_profanity(content)
            + self.check_hate_speech(content)
            + self.check_personal_info(content)
            + self.check_blocked_domains(content)
        )
        return FilterResult(
            passed=not violations,
            violations=tuple(violations),
            filtered_content=sanitize_content(content),
        )

    def validate(self, content: str) -> ValidationResult:
        """Reduce the filter result to pass/fail plus violation messages."""
        result = self.filter(content)
        return ValidationResult(
            valid=result.passed,
            errors=[v.message for v in result.violations],
        )


def filter_content(content: str, config: ModerationConfig | None = None) -> FilterResult:
    """Filter content with a one-off filter."""
    return ContentFilter(config).filter(content)


def validate_content(content: str, config: ModerationConfig | None = None) -> ValidationResult:
    """Pass/fail view of filter_content for call sites that need no detail."""
    return ContentFilter(config).validate(content)


def get_content_summary(content: str, max_length: int = 200) -> str:
    """
    Plain-text preview of content.

    Args:
        content: Content to summarize
        max_length: Maximum characters before truncation

    Returns:
        str: Tag-free text with whitespace collapsed, "..." appended when cut
    """
    text = " ".join(TAG_PATTERN.sub("", sanitize_content(content)).split())
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."
