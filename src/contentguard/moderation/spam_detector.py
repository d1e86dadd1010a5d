"""
Spam scoring for submitted text.

Independent additive checks, each contributing points and a human-readable
reason:
- Link density (too many links, URL shorteners, suspicious domains)
- Shouting (uppercase ratio, short text exempt)
- Repetition (character flooding, repeated words)
- Spam keywords
- Suspicious markup (hidden text, tiny fonts, obfuscation, tag stuffing,
  inline event handlers)

The final score is clamped to 0-100 and compared against the configured
thresholds to produce the auto-reject / manual-review / auto-approve flags.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from contentguard.config import ModerationConfig
from contentguard.moderation.models import Severity
from contentguard.utils.logging import get_logger

logger = get_logger(__name__)

URL_PATTERN = re.compile(r"https?://[^\s<>\"{}|\\^`\[\]]+", re.IGNORECASE)
TAG_PATTERN = re.compile(r"<[^<>]+>")
WORD_PATTERN = re.compile(r"\b\w+\b")

HIDDEN_TEXT_PATTERN = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)
ZERO_FONT_PATTERN = re.compile(
    r"font-size\s*:\s*0+(?:\.0+)?(?:px|pt|em|rem|%)?(?![\d.])", re.IGNORECASE
)
LETTER_SPACING_PATTERN = re.compile(
    r"letter-spacing\s*:\s*(-?(?:\d+(?:\.\d+)?|\.\d+))\s*(px|pt|em|rem)?", re.IGNORECASE
)
# Searched within single tags found by TAG_PATTERN
EVENT_HANDLER_PATTERN = re.compile(r"\son\w+\s*=", re.IGNORECASE)

# Letters needed before the caps ratio is evaluated; acronyms stay exempt
CAPS_MIN_LETTERS = 20
# Below this many visible characters per tag the markup counts as stuffing
MIN_TEXT_PER_TAG = 3
# letter-spacing magnitudes treated as obfuscation, per unit family
RELATIVE_SPACING_LIMIT = 1.0
ABSOLUTE_SPACING_LIMIT = 10.0

LINK_COUNT_SCORE = 20
SHORTENER_SCORE = 15
SUSPICIOUS_DOMAIN_SCORE = 30
CAPS_SCORE = 15
CHAR_FLOOD_SCORE = 10
WORD_REPEAT_SCORE = 10
KEYWORD_SCORE = 10
KEYWORD_SCORE_CAP = 40
MARKUP_SCORE = 25


@dataclass(frozen=True)
class SpamSignal:
    """One triggered check: its points, message and severity."""
    check: str
    score: int
    reason: str
    severity: Severity


@dataclass(frozen=True)
class LinkFindings:
    link_count: int = 0
    shortened_links: int = 0
    suspicious_links: tuple[str, ...] = ()


@dataclass(frozen=True)
class CapsFindings:
    letter_count: int = 0
    caps_ratio: float = 0.0
    evaluated: bool = False


@dataclass(frozen=True)
class RepetitionFindings:
    repeated_chars: tuple[str, ...] = ()
    repeated_words: tuple[str, ...] = ()


@dataclass(frozen=True)
class KeywordFindings:
    keywords: tuple[str, ...] = ()


@dataclass(frozen=True)
class MarkupFindings:
    issues: tuple[str, ...] = ()

    @property
    def suspicious(self) -> bool:
        return bool(self.issues)


@dataclass(frozen=True)
class SpamDetails:
    """Per-check evidence behind a spam score."""
    links: LinkFindings = field(default_factory=LinkFindings)
    caps: CapsFindings = field(default_factory=CapsFindings)
    repetition: RepetitionFindings = field(default_factory=RepetitionFindings)
    keywords: KeywordFindings = field(default_factory=KeywordFindings)
    markup: MarkupFindings = field(default_factory=MarkupFindings)


@dataclass(frozen=True)
class SpamAnalysis:
    """Result of spam detection analysis."""
    score: int
    reasons: tuple[str, ...]
    should_auto_reject: bool
    should_auto_approve: bool
    requires_manual_review: bool
    details: SpamDetails = field(default_factory=SpamDetails)
    signals: tuple[SpamSignal, ...] = ()

    @property
    def passed(self) -> bool:
        """Content is not bad enough to reject automatically."""
        return not self.should_auto_reject


def extract_urls(content: str) -> list[str]:
    """Extract every http(s) URL in order of appearance."""
    return URL_PATTERN.findall(content or "")


def _url_host(url: str) -> str:
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def _host_matches(host: str, domain: str) -> bool:
    domain = domain.lower()
    return host == domain or host.endswith("." + domain)


class SpamDetector:
    """
    Stateless spam scorer bound to one ModerationConfig.

    Safe to share between concurrent callers: nothing is mutated after
    construction.
    """

    def __init__(self, config: ModerationConfig | None = None) -> None:
        """
        Initialize spam detector.

        Args:
            config: Thresholds and keyword lists (defaults if omitted)
        """
        self.config = config or ModerationConfig()
        run = self.config.max_repeated_characters
        self._flood_pattern = re.compile(r"(.)\1{%d,}" % (run - 1))
        self._keywords = tuple(dict.fromkeys(k.lower() for k in self.config.spam_keywords if k))

    # ==================== Checks ====================

    def check_links(self, content: str) -> tuple[LinkFindings, list[SpamSignal]]:
        """Count links, shortened links and links to suspicious domains."""
        config = self.config
        urls = extract_urls(content)
        signals: list[SpamSignal] = []

        if len(urls) > config.max_links:
            signals.append(SpamSignal(
                "links",
                LINK_COUNT_SCORE,
                f"Too many links ({len(urls)}, max: {config.max_links})",
                Severity.MEDIUM,
            ))

        shortened = [
            url for url in urls
            if any(_host_matches(_url_host(url), d) for d in config.url_shortener_domains)
        ]
        if len(shortened) > config.max_shortened_links:
            signals.append(SpamSignal(
                "links",
                SHORTENER_SCORE,
                f"Too many shortened URLs ({len(shortened)}, max: {config.max_shortened_links})",
                Severity.MEDIUM,
            ))

        suspicious = [
            url for url in urls
            if any(d.lower() in url.lower() for d in config.suspicious_domains)
        ]
        if suspicious:
            signals.append(SpamSignal(
                "links",
                SUSPICIOUS_DOMAIN_SCORE,
                "Links to suspicious/blacklisted domains",
                Severity.HIGH,
            ))

        findings = LinkFindings(
            link_count=len(urls),
            shortened_links=len(shortened),
            suspicious_links=tuple(suspicious),
        )
        return findings, signals

    def check_caps(self, content: str) -> tuple[CapsFindings, list[SpamSignal]]:
        """Check for shouting once there are enough letters to judge."""
        text = TAG_PATTERN.sub("", content)
        letters = [c for c in text if c.isalpha()]

        if len(letters) <= CAPS_MIN_LETTERS:
            return CapsFindings(letter_count=len(letters)), []

        ratio = sum(1 for c in letters if c.isupper()) / len(letters)
        findings = CapsFindings(letter_count=len(letters), caps_ratio=ratio, evaluated=True)
        if ratio > self.config.max_caps_ratio:
            return findings, [SpamSignal(
                "caps",
                CAPS_SCORE,
                f"Excessive CAPS usage ({ratio * 100:.0f}%)",
                Severity.LOW,
            )]
        return findings, []

    def check_repetition(self, content: str) -> tuple[RepetitionFindings, list[SpamSignal]]:
        """Check for character flooding and words repeated too often."""
        signals: list[SpamSignal] = []

        runs = tuple(m.group(0)[:50] for m in self._flood_pattern.finditer(content))
        if runs:
            signals.append(SpamSignal(
                "repetition", CHAR_FLOOD_SCORE, "Character flooding detected", Severity.LOW
            ))

        # URLs are link checks' business; their tokens would otherwise
        # count as repeated words ("https", hostnames)
        prose = URL_PATTERN.sub(" ", content).lower()
        counts = Counter(w for w in WORD_PATTERN.findall(prose) if len(w) > 3)
        repeated = tuple(w for w, n in counts.items() if n >= self.config.max_repeated_words)
        if repeated:
            signals.append(SpamSignal(
                "repetition", WORD_REPEAT_SCORE, "Word repetition detected", Severity.LOW
            ))

        return RepetitionFindings(repeated_chars=runs, repeated_words=repeated), signals

    def check_keywords(self, content: str) -> tuple[KeywordFindings, list[SpamSignal]]:
        """Case-insensitive substring match against the spam keyword list."""
        lowered = content.lower()
        found = tuple(k for k in self._keywords if k in lowered)
        if not found:
            return KeywordFindings(), []

        return KeywordFindings(keywords=found), [SpamSignal(
            "keywords",
            min(len(found) * KEYWORD_SCORE, KEYWORD_SCORE_CAP),
            f"Spam keywords detected: {', '.join(found)}",
            Severity.HIGH if len(found) > 3 else Severity.MEDIUM,
        )]

    def check_markup(self, content: str) -> tuple[MarkupFindings, list[SpamSignal]]:
        """Look for markup tricks that hide or obfuscate text."""
        issues: list[str] = []

        if HIDDEN_TEXT_PATTERN.search(content):
            issues.append("Hidden text detected")

        if ZERO_FONT_PATTERN.search(content):
            issues.append("Tiny font size detected")

        if any(self._is_obfuscating_spacing(m) for m in LETTER_SPACING_PATTERN.finditer(content)):
            issues.append("Obfuscated text detected")

        tags = TAG_PATTERN.findall(content)
        if tags and len(TAG_PATTERN.sub("", content)) / len(tags) < MIN_TEXT_PER_TAG:
            issues.append("Excessive HTML tags")

        if any(EVENT_HANDLER_PATTERN.search(tag) for tag in tags):
            issues.append("Inline event handlers detected")

        if not issues:
            return MarkupFindings(), []

        return MarkupFindings(issues=tuple(issues)), [SpamSignal(
            "markup",
            MARKUP_SCORE,
            f"Suspicious HTML: {', '.join(issues)}",
            Severity.HIGH,
        )]

    @staticmethod
    def _is_obfuscating_spacing(match: re.Match[str]) -> bool:
        value = abs(float(match.group(1)))
        unit = (match.group(2) or "").lower()
        if unit in ("em", "rem"):
            return value >= RELATIVE_SPACING_LIMIT
        return value >= ABSOLUTE_SPACING_LIMIT

    # ==================== Analysis ====================

    def detect(self, content: str) -> SpamAnalysis:
        """
        Score content for spam.

        Never raises: empty or odd input simply scores 0.

        Args:
            content: Raw or pre-sanitized text to analyze

        Returns:
            SpamAnalysis: Clamped score, ordered reasons and decision flags
        """
        content = content or ""

        links, link_signals = self.check_links(content)
        caps, caps_signals = self.check_caps(content)
        repetition, repetition_signals = self.check_repetition(content)
        keywords, keyword_signals = self.check_keywords(content)
        markup, markup_signals = self.check_markup(content)

        signals = tuple(
            link_signals + caps_signals + repetition_signals + keyword_signals + markup_signals
        )
        score = max(0, min(100, sum(s.score for s in signals)))

        config = self.config
        analysis = SpamAnalysis(
            score=score,
            reasons=tuple(s.reason for s in signals),
            should_auto_reject=score >= config.auto_reject_threshold,
            should_auto_approve=score <= config.approve_threshold,
            requires_manual_review=(
                config.manual_review_threshold <= score < config.auto_reject_threshold
            ),
            details=SpamDetails(
                links=links,
                caps=caps,
                repetition=repetition,
                keywords=keywords,
                markup=markup,
            ),
            signals=signals,
        )

        if analysis.should_auto_reject:
            logger.warning(
                "Auto-rejecting spam content: score=%d reasons=%s length=%d",
                analysis.score, "; ".join(analysis.reasons), len(content),
            )

        return analysis


def detect_spam(content: str, config: ModerationConfig | None = None) -> SpamAnalysis:
    """Score content with a one-off detector."""
    return SpamDetector(config).detect(content)


def levenshtein_distance(first: str, second: str) -> int:
    """Edit distance between two strings (insert, delete, substitute)."""
    if len(first) < len(second):
        first, second = second, first
    previous = list(range(len(second) + 1))
    for i, a in enumerate(first, start=1):
        current = [i]
        for j, b in enumerate(second, start=1):
            current.append(min(
                previous[j - 1] + (a != b),
                previous[j] + 1,
                current[j - 1] + 1,
            ))
        previous = current
    return previous[-1]


def calculate_similarity(first: str, second: str) -> float:
    """
    Similarity of two texts in [0, 1], based on edit distance.

    Identical texts (including two empty ones) score 1.0.
    """
    if first == second:
        return 1.0
    longer = max(len(first), len(second))
    return (longer - levenshtein_distance(first, second)) / longer
