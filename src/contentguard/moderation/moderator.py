"""
Moderation orchestrator.

Combines spam detection, content filtering and user reputation into one
decision. All three checks always run so the result carries full detail
whatever the outcome. The decision table, first match wins:

1. reject   spam score at or above the auto-reject threshold
2. reject   any content-filter violation
3. flag     spam score in the manual-review band, or a suspicious user
4. flag     high-risk user
5. approve  trusted user, auto-approvable spam score, clean filter result
6. monitor  otherwise
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Optional

from contentguard.config import ModerationConfig
from contentguard.moderation.content_filter import ContentFilter, FilterResult, FilterViolation
from contentguard.moderation.models import ContentType, ModerationAction, RiskLevel
from contentguard.moderation.reputation import ReputationService, ReputationSummary
from contentguard.moderation.spam_detector import SpamAnalysis, SpamDetector
from contentguard.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ModerationResult:
    """The single decision record callers persist and act on."""
    action: ModerationAction
    spam_score: int
    filter_violations: tuple[FilterViolation, ...]
    reputation: ReputationSummary
    needs_review: bool = False
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            "reason": self.reason,
            "spam_score": self.spam_score,
            "filter_violations": [
                {
                    "type": v.type.value,
                    "severity": v.severity.value,
                    "message": v.message,
                    "matched_content": v.matched_content,
                }
                for v in self.filter_violations
            ],
            "reputation": {
                "score": self.reputation.score,
                "level": self.reputation.level.value,
                "can_auto_approve": self.reputation.can_auto_approve,
                "requires_extra_review": self.reputation.requires_extra_review,
            },
            "needs_review": self.needs_review,
        }


def decide(
    spam: SpamAnalysis,
    filtered: FilterResult,
    reputation: ReputationSummary,
) -> tuple[ModerationAction, Optional[str], bool]:
    """
    Apply the decision table.

    Returns:
        tuple: (action, reason, needs_review)
    """
    if spam.should_auto_reject:
        return (
            ModerationAction.REJECT,
            f"Spam detected (Score: {spam.score}). {', '.join(spam.reasons)}",
            False,
        )

    if not filtered.passed:
        messages = ", ".join(v.message for v in filtered.violations)
        return ModerationAction.REJECT, f"Content violations: {messages}", False

    if spam.requires_manual_review or reputation.requires_extra_review:
        reason = (
            f"Potential spam (Score: {spam.score})"
            if spam.requires_manual_review
            else "Suspicious user reputation"
        )
        return ModerationAction.FLAG, reason, True

    if reputation.level is RiskLevel.HIGH:
        return ModerationAction.FLAG, "High risk user", True

    if reputation.can_auto_approve and spam.should_auto_approve and filtered.passed:
        return ModerationAction.APPROVE, None, False

    return ModerationAction.MONITOR, None, False


class Moderator:
    """
    Runs the full moderation pipeline for one piece of content.

    Holds no per-call state; one instance can serve concurrent requests.
    """

    def __init__(
        self,
        reputation: ReputationService,
        config: ModerationConfig | None = None,
        spam_detector: SpamDetector | None = None,
        content_filter: ContentFilter | None = None,
    ) -> None:
        """
        Initialize the moderator.

        Args:
            reputation: Source of user reputations
            config: Thresholds shared by the default detector and filter
            spam_detector: Custom spam detector (built from config if omitted)
            content_filter: Custom content filter (built from config if omitted)
        """
        self.config = config or reputation.config
        self.reputation = reputation
        self.spam_detector = spam_detector or SpamDetector(self.config)
        self.content_filter = content_filter or ContentFilter(self.config)

    async def moderate_content(
        self,
        content: str,
        user_id: str,
        title: str | None = None,
        content_type: ContentType | str | None = None,
        timeout: float | None = None,
    ) -> ModerationResult:
        """
        Moderate content submitted by a user.

        The title, when given, is inspected together with the content; only
        the content itself is what callers store.

        Args:
            content: Text to judge
            user_id: Submitting user
            title: Optional title inspected with the content
            content_type: wiki, comment, user or person (informational)
            timeout: Seconds to wait for the reputation lookup

        Returns:
            ModerationResult: The decision with spam, filter and reputation detail
        """
        try:
            content_type = ContentType(content_type) if content_type else ContentType.WIKI
        except ValueError:
            logger.warning("Unknown content type %r, moderating as wiki content", content_type)
            content_type = ContentType.WIKI
        inspected = f"{title}\n\n{content}" if title else (content or "")

        # Reputation is the only check touching the store; start it first and
        # yield once so its read is in a worker thread while we score
        lookup = asyncio.ensure_future(self.reputation.calculate_reputation(user_id, timeout))
        try:
            await asyncio.sleep(0)
            spam = self.spam_detector.detect(inspected)
            filtered = self.content_filter.filter(inspected)
        except BaseException:
            lookup.cancel()
            raise
        reputation = await lookup

        action, reason, needs_review = decide(spam, filtered, reputation)

        logger.info(
            "Moderation decision: user=%s type=%s action=%s spam_score=%d violations=%d",
            user_id, content_type.value, action.value, spam.score, len(filtered.violations),
        )

        return ModerationResult(
            action=action,
            reason=reason,
            spam_score=spam.score,
            filter_violations=filtered.violations,
            reputation=reputation,
            needs_review=needs_review,
        )
