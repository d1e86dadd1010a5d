"""
Tests for the moderation orchestrator.

Tests:
- Decision table precedence (reject > flag > approve > monitor)
- Title handling
- Degraded operation when reputation lookups fail or time out
- Result serialization and logging
"""

from __future__ import annotations

import asyncio
import json
import logging
import time

import pytest

from conftest import CLEAN_PARAGRAPH, STUFFED_SPAM, add_rejected_burst_user, add_trusted_user
from contentguard.config import ModerationConfig
from contentguard.moderation.content_filter import FilterResult
from contentguard.moderation.models import ModerationAction, RiskLevel
from contentguard.moderation.moderator import Moderator, decide
from contentguard.moderation.reputation import ReputationService, ReputationSummary
from contentguard.moderation.spam_detector import SpamAnalysis
from contentguard.utils.database import StoreError

REVIEW_BAND_SPAM = (
    "Click here now!!! http://bit.ly/a http://bit.ly/b http://bit.ly/c "
    "FREE MONEY WIN PRIZE"
)


class BrokenStore:
    def get_user(self, user_id):
        raise StoreError("database is locked")

    def get_submissions(self, user_id):
        raise StoreError("database is locked")


class HungStore:
    def get_user(self, user_id):
        time.sleep(3)
        return None

    def get_submissions(self, user_id):
        return []


@pytest.fixture
def moderator(store, clock) -> Moderator:
    add_trusted_user(store)
    add_rejected_burst_user(store)
    return Moderator(ReputationService(store, clock=clock))


def moderate(moderator: Moderator, content: str, user_id: str, **kwargs):
    return asyncio.run(moderator.moderate_content(content, user_id, **kwargs))


class TestDecisionTable:
    """End-to-end decisions against a real history store."""

    def test_trusted_user_clean_content_is_approved(self, moderator: Moderator) -> None:
        result = moderate(moderator, CLEAN_PARAGRAPH, "trusted")
        assert result.action is ModerationAction.APPROVE
        assert result.spam_score == 0
        assert result.filter_violations == ()
        assert result.reputation.can_auto_approve
        assert result.reason is None
        assert not result.needs_review

    def test_auto_reject_wins_over_trust(self, moderator: Moderator) -> None:
        result = moderate(moderator, STUFFED_SPAM, "trusted")
        assert result.action is ModerationAction.REJECT
        assert result.spam_score == 100
        assert result.reason.startswith("Spam detected (Score: 100). Too many links (7, max: 5)")
        assert result.reputation.can_auto_approve

    def test_filter_violation_vetoes_approval(self, moderator: Moderator) -> None:
        content = CLEAN_PARAGRAPH + " Questions go to jane.doe@example.com please."
        result = moderate(moderator, content, "trusted")
        assert result.action is ModerationAction.REJECT
        assert result.spam_score == 0
        assert result.reason == (
            "Content violations: Personal information detected (email, phone, etc.)"
        )
        assert len(result.filter_violations) == 1

    def test_review_band_spam_is_flagged(self, moderator: Moderator) -> None:
        result = moderate(moderator, REVIEW_BAND_SPAM, "newcomer")
        assert result.action is ModerationAction.FLAG
        assert result.spam_score == 45
        assert result.reason == "Potential spam (Score: 45)"
        assert result.needs_review

    def test_suspicious_user_is_flagged(self, store, clock) -> None:
        add_rejected_burst_user(store)
        config = ModerationConfig(auto_flag_reputation=45)
        moderator = Moderator(ReputationService(store, config, clock=clock))

        result = moderate(moderator, CLEAN_PARAGRAPH, "burst")

        assert result.action is ModerationAction.FLAG
        assert result.reason == "Suspicious user reputation"
        assert result.reputation.requires_extra_review

    def test_spam_reason_takes_precedence_over_reputation(self, store, clock) -> None:
        add_rejected_burst_user(store)
        config = ModerationConfig(auto_flag_reputation=45)
        moderator = Moderator(ReputationService(store, config, clock=clock))

        result = moderate(moderator, REVIEW_BAND_SPAM, "burst")

        assert result.action is ModerationAction.FLAG
        assert result.reason == "Potential spam (Score: 45)"

    def test_unknown_user_is_monitored(self, moderator: Moderator) -> None:
        result = moderate(moderator, CLEAN_PARAGRAPH, "newcomer")
        assert result.action is ModerationAction.MONITOR
        assert result.reputation.score == 50.0
        assert result.reputation.level is RiskLevel.MEDIUM

    def test_burst_user_with_default_config_is_monitored(self, moderator: Moderator) -> None:
        result = moderate(moderator, CLEAN_PARAGRAPH, "burst")
        assert result.action is ModerationAction.MONITOR
        assert result.reputation.score == 40.0

    def test_approve_threshold_is_inclusive(self, moderator: Moderator) -> None:
        result = moderate(moderator, "casino and poker night " + CLEAN_PARAGRAPH, "trusted")
        assert result.spam_score == 20
        assert result.action is ModerationAction.APPROVE

        result = moderate(moderator, "casino, poker and lottery " + CLEAN_PARAGRAPH, "trusted")
        assert result.spam_score == 30
        assert result.action is ModerationAction.MONITOR

    def test_link_boundary(self, moderator: Moderator) -> None:
        links = " ".join(f"https://site{i}.org/page" for i in range(5))
        assert moderate(moderator, links, "trusted").action is ModerationAction.APPROVE

        result = moderate(moderator, links + " https://site5.org/page", "trusted")
        assert result.spam_score == 20
        assert result.action is ModerationAction.APPROVE

        result = moderate(moderator, links + " https://site5.org/page http://bit.ly/a", "trusted")
        assert result.spam_score == 20
        assert result.action is ModerationAction.APPROVE


class TestDecide:
    """The decision table in isolation."""

    @staticmethod
    def clean_spam() -> SpamAnalysis:
        return SpamAnalysis(
            score=0,
            reasons=(),
            should_auto_reject=False,
            should_auto_approve=True,
            requires_manual_review=False,
        )

    def test_high_risk_user_is_flagged(self) -> None:
        reputation = ReputationSummary(20.0, RiskLevel.HIGH, False, False)
        action, reason, needs_review = decide(self.clean_spam(), FilterResult(passed=True), reputation)
        assert action is ModerationAction.FLAG
        assert reason == "High risk user"
        assert needs_review

    def test_approve_requires_trust(self) -> None:
        trusted = ReputationSummary(95.0, RiskLevel.LOW, True, False)
        neutral = ReputationSummary(95.0, RiskLevel.LOW, False, False)
        assert decide(self.clean_spam(), FilterResult(passed=True), trusted)[0] is ModerationAction.APPROVE
        assert decide(self.clean_spam(), FilterResult(passed=True), neutral)[0] is ModerationAction.MONITOR


class TestTitle:
    """Titles are inspected with the content."""

    def test_title_contributes_to_score(self, moderator: Moderator) -> None:
        plain = moderate(moderator, CLEAN_PARAGRAPH, "trusted")
        titled = moderate(
            moderator, CLEAN_PARAGRAPH, "trusted", title="Casino poker lottery jackpot"
        )
        assert plain.action is ModerationAction.APPROVE
        assert titled.spam_score == 40
        assert titled.action is ModerationAction.FLAG

    def test_title_personal_info_is_a_violation(self, moderator: Moderator) -> None:
        result = moderate(moderator, CLEAN_PARAGRAPH, "trusted", title="Ask jane.doe@example.com")
        assert result.action is ModerationAction.REJECT

    def test_content_type_is_informational(self, moderator: Moderator) -> None:
        wiki = moderate(moderator, CLEAN_PARAGRAPH, "trusted", content_type="wiki")
        comment = moderate(moderator, CLEAN_PARAGRAPH, "trusted", content_type="comment")
        assert wiki == comment

    def test_unknown_content_type_is_logged_not_raised(self, moderator: Moderator, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="contentguard"):
            result = moderate(moderator, CLEAN_PARAGRAPH, "trusted", content_type="blog")
        assert result == moderate(moderator, CLEAN_PARAGRAPH, "trusted")
        assert "Unknown content type 'blog'" in caplog.text


class TestDegradedOperation:
    """Reputation failures never block moderation."""

    def test_store_outage_scores_everyone_neutral(self, caplog) -> None:
        moderator = Moderator(ReputationService(BrokenStore()))

        with caplog.at_level(logging.ERROR, logger="contentguard"):
            result = moderate(moderator, CLEAN_PARAGRAPH, "trusted")

        assert result.action is ModerationAction.MONITOR
        assert result.reputation.score == 50.0
        assert "lookup_failed" in caplog.text

    def test_outage_still_rejects_spam(self) -> None:
        moderator = Moderator(ReputationService(BrokenStore()))
        assert moderate(moderator, STUFFED_SPAM, "anyone").action is ModerationAction.REJECT

    def test_hung_store_does_not_outlive_timeout(self) -> None:
        service = ReputationService(HungStore())
        moderator = Moderator(service)
        started = time.monotonic()
        try:
            result = asyncio.run(
                moderator.moderate_content(CLEAN_PARAGRAPH, "slowpoke", timeout=0.05)
            )
        finally:
            service.close()
        assert time.monotonic() - started < 1
        assert result.action is ModerationAction.MONITOR
        assert result.reputation.score == 50.0

    def test_disabled_reputation(self, store, clock) -> None:
        add_trusted_user(store)
        moderator = Moderator(ReputationService(store, enabled=False, clock=clock))
        result = moderate(moderator, CLEAN_PARAGRAPH, "trusted")
        assert result.action is ModerationAction.MONITOR


class TestResult:
    """Determinism, serialization and logging."""

    @pytest.mark.parametrize("content, user_id", [
        (CLEAN_PARAGRAPH, "trusted"),
        (STUFFED_SPAM, "trusted"),
        (REVIEW_BAND_SPAM, "burst"),
        ("", "newcomer"),
    ])
    def test_deterministic(self, moderator: Moderator, content: str, user_id: str) -> None:
        assert moderate(moderator, content, user_id) == moderate(moderator, content, user_id)

    def test_concurrent_calls_are_independent(self, moderator: Moderator) -> None:
        async def run_both():
            return await asyncio.gather(
                moderator.moderate_content(CLEAN_PARAGRAPH, "trusted"),
                moderator.moderate_content(STUFFED_SPAM, "newcomer"),
            )

        approved, rejected = asyncio.run(run_both())
        assert approved.action is ModerationAction.APPROVE
        assert rejected.action is ModerationAction.REJECT

    def test_to_dict_is_json_serializable(self, moderator: Moderator) -> None:
        content = CLEAN_PARAGRAPH + " mail jane.doe@example.com"
        data = moderate(moderator, content, "trusted").to_dict()
        assert json.loads(json.dumps(data)) == data
        assert data["action"] == "reject"
        assert data["filter_violations"][0]["type"] == "personal_info"
        assert data["reputation"]["level"] == "low"
        assert data["needs_review"] is False

    def test_decision_is_logged(self, moderator: Moderator, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="contentguard"):
            moderate(moderator, CLEAN_PARAGRAPH, "trusted", content_type="comment")
        assert "user=trusted type=comment action=approve spam_score=0" in caplog.text

    def test_custom_components(self, store, clock) -> None:
        config = ModerationConfig(spam_keywords=("library",))
        moderator = Moderator(ReputationService(store, clock=clock), config)
        assert moderator.spam_detector.config is config
        assert moderator.content_filter.config is config
        assert moderate(moderator, CLEAN_PARAGRAPH, "newcomer").spam_score == 10
