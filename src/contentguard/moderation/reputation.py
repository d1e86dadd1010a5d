"""
User reputation scoring.

Derives a 0-100 trust score from a user's account and submission history:

- Base score: 50
- Account age: up to +15 (age in days / 30)
- Verified email: +10
- Approval history: up to +30 (floor of approval rate * 30), only for users
  with at least one approved or rejected submission
- Recent activity (last 7 days): 1-5 submissions earn +2 each (max +10),
  more than 10 cost -10, anything else is neutral

Lookups never fail: when the feature is off, the user is unknown, the
store errors out or the lookup times out, a neutral reputation is returned
and the cause is logged.
"""

from __future__ import annotations

import asyncio
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from contentguard.config import ModerationConfig
from contentguard.moderation.models import RiskLevel
from contentguard.utils.database import StoreError, SubmissionStatus
from contentguard.utils.logging import get_logger

logger = get_logger(__name__)

BASE_SCORE = 50
MAX_AGE_BONUS = 15
AGE_BONUS_DIVISOR = 30
VERIFIED_BONUS = 10
HISTORY_WEIGHT = 30
RECENT_WINDOW = timedelta(days=7)
RECENT_BONUS_PER_SUBMISSION = 2
MAX_RECENT_BONUS = 10
NORMAL_ACTIVITY_LIMIT = 5
EXCESSIVE_ACTIVITY_LIMIT = 10
EXCESSIVE_ACTIVITY_PENALTY = 10

LOW_RISK_SCORE = 70
MEDIUM_RISK_SCORE = 40

TRUSTED_PRIORITY = 10
SUSPICIOUS_PRIORITY = 80
MIN_PRIORITY = 20

LOOKUP_WORKERS = 4


class HistoryStore(Protocol):
    """Read-only view of users and their past submissions."""

    def get_user(self, user_id: str) -> Optional[dict[str, Any]]:
        ...

    def get_submissions(self, user_id: str) -> list[dict[str, Any]]:
        ...


class FallbackReason(str, Enum):
    """Why a neutral reputation was returned instead of a computed one."""
    DISABLED = "disabled"
    USER_NOT_FOUND = "user_not_found"
    LOOKUP_FAILED = "lookup_failed"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class ReputationFactors:
    """Inputs to the reputation score."""
    account_age_days: int
    is_verified: bool
    approved: int
    rejected: int
    recent_activity: int
    flagged: int = 0


@dataclass(frozen=True)
class UserReputation:
    """
    Reputation of one user, recomputed on every request.

    risk_level is a tier of the score alone, while is_trusted and
    is_suspicious also require an approval-rate condition. A user can
    therefore be suspicious at medium risk, or high risk without being
    suspicious.
    """
    user_id: str
    score: float
    approval_rate: float
    total_submissions: int
    approved_submissions: int
    rejected_submissions: int
    flagged_submissions: int
    is_trusted: bool
    is_suspicious: bool
    risk_level: RiskLevel
    fallback: Optional[FallbackReason] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["risk_level"] = self.risk_level.value
        data["fallback"] = self.fallback.value if self.fallback else None
        return data


@dataclass(frozen=True)
class ReputationSummary:
    """The slice of a reputation embedded in moderation results."""
    score: float
    level: RiskLevel
    can_auto_approve: bool
    requires_extra_review: bool

    @classmethod
    def from_reputation(cls, reputation: UserReputation) -> ReputationSummary:
        return cls(
            score=reputation.score,
            level=reputation.risk_level,
            can_auto_approve=reputation.is_trusted,
            requires_extra_review=reputation.is_suspicious,
        )


def risk_level_for(score: float) -> RiskLevel:
    if score >= LOW_RISK_SCORE:
        return RiskLevel.LOW
    if score >= MEDIUM_RISK_SCORE:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def calculate_reputation_score(
    user_id: str,
    factors: ReputationFactors,
    config: ModerationConfig | None = None,
) -> UserReputation:
    """
    Compute a reputation from its factors.

    Args:
        user_id: User the factors belong to
        factors: Account and history inputs
        config: Trusted/suspicious cutoffs (defaults if omitted)

    Returns:
        UserReputation: Clamped score and derived flags
    """
    config = config or ModerationConfig()
    score: float = BASE_SCORE

    score += min(MAX_AGE_BONUS, factors.account_age_days / AGE_BONUS_DIVISOR)

    if factors.is_verified:
        score += VERIFIED_BONUS

    total = factors.approved + factors.rejected
    if total > 0:
        score += math.floor(factors.approved / total * HISTORY_WEIGHT)

    # 6-10 recent submissions are deliberately neither rewarded nor penalized
    if 0 < factors.recent_activity <= NORMAL_ACTIVITY_LIMIT:
        score += min(MAX_RECENT_BONUS, factors.recent_activity * RECENT_BONUS_PER_SUBMISSION)
    elif factors.recent_activity > EXCESSIVE_ACTIVITY_LIMIT:
        score -= EXCESSIVE_ACTIVITY_PENALTY

    score = float(max(0, min(100, score)))

    # Users without history are shown a clean record, but were not scored as one
    approval_rate = factors.approved / total if total > 0 else 1.0

    return UserReputation(
        user_id=user_id,
        score=score,
        approval_rate=approval_rate,
        total_submissions=total,
        approved_submissions=factors.approved,
        rejected_submissions=factors.rejected,
        flagged_submissions=factors.flagged,
        is_trusted=(
            score >= config.auto_approve_reputation
            and approval_rate >= config.trusted_user_score
        ),
        is_suspicious=(
            score <= config.auto_flag_reputation
            and approval_rate < config.suspicious_user_score
        ),
        risk_level=risk_level_for(score),
    )


def default_reputation(user_id: str, fallback: FallbackReason | None = None) -> UserReputation:
    """Neutral reputation used whenever a real one cannot be computed."""
    return UserReputation(
        user_id=user_id,
        score=float(BASE_SCORE),
        approval_rate=1.0,
        total_submissions=0,
        approved_submissions=0,
        rejected_submissions=0,
        flagged_submissions=0,
        is_trusted=False,
        is_suspicious=False,
        risk_level=RiskLevel.MEDIUM,
        fallback=fallback,
    )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReputationService:
    """
    Computes user reputations from a history store.

    Store reads run in a worker thread so the event loop stays free while
    the spam and content checks run.
    """

    def __init__(
        self,
        store: HistoryStore | None,
        config: ModerationConfig | None = None,
        enabled: bool = True,
        timeout: float | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """
        Initialize the reputation service.

        Args:
            store: User and submission history (None disables lookups)
            config: Trusted/suspicious cutoffs
            enabled: Reputation feature flag
            timeout: Default seconds to wait for a lookup (None waits forever)
            clock: Source of "now", injectable for tests
        """
        self.store = store
        self.config = config or ModerationConfig()
        self.enabled = enabled and store is not None
        self.timeout = timeout
        self.clock = clock
        # Not the loop default executor, which asyncio.run joins on exit
        self._executor = ThreadPoolExecutor(
            max_workers=LOOKUP_WORKERS, thread_name_prefix="reputation-lookup"
        )

    def close(self) -> None:
        """Stop accepting lookups without waiting for reads still in flight."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    def build_factors(
        self,
        user: dict[str, Any],
        submissions: list[dict[str, Any]],
    ) -> ReputationFactors:
        """Turn a user record and its submissions into scoring factors."""
        now = self.clock()
        created_at = user.get("created_at") or now
        statuses = [SubmissionStatus(s["status"]) for s in submissions]

        recent = 0
        for submission in submissions:
            submitted_at = submission.get("created_at")
            if submitted_at is not None and now - submitted_at <= RECENT_WINDOW:
                recent += 1

        return ReputationFactors(
            account_age_days=max(0, (now - created_at).days),
            is_verified=bool(user.get("email_verified")),
            approved=statuses.count(SubmissionStatus.APPROVED),
            rejected=statuses.count(SubmissionStatus.REJECTED),
            recent_activity=recent,
            flagged=statuses.count(SubmissionStatus.PENDING),
        )

    def _load(self, user_id: str) -> Optional[ReputationFactors]:
        user = self.store.get_user(user_id)
        if user is None:
            return None
        return self.build_factors(user, self.store.get_submissions(user_id))

    async def get_user_reputation(
        self,
        user_id: str,
        timeout: float | None = None,
    ) -> UserReputation:
        """
        Compute a user's reputation.

        Args:
            user_id: User to look up
            timeout: Seconds to wait for the store (overrides the default)

        Returns:
            UserReputation: Computed, or neutral with a fallback reason
        """
        if not self.enabled:
            logger.debug("Reputation system disabled; neutral reputation for %s", user_id)
            return default_reputation(user_id, FallbackReason.DISABLED)

        timeout = timeout if timeout is not None else self.timeout
        try:
            loop = asyncio.get_running_loop()
            lookup = loop.run_in_executor(self._executor, self._load, user_id)
            factors = await asyncio.wait_for(lookup, timeout)
        except asyncio.TimeoutError:
            logger.error(
                "Reputation lookup for %s timed out after %ss (cause=%s)",
                user_id, timeout, FallbackReason.TIMEOUT.value,
            )
            return default_reputation(user_id, FallbackReason.TIMEOUT)
        except StoreError as e:
            logger.error(
                "Failed to calculate reputation for %s: %s (cause=%s)",
                user_id, e, FallbackReason.LOOKUP_FAILED.value,
            )
            return default_reputation(user_id, FallbackReason.LOOKUP_FAILED)
        except Exception:
            logger.exception(
                "Unexpected error calculating reputation for %s (cause=%s)",
                user_id, FallbackReason.LOOKUP_FAILED.value,
            )
            return default_reputation(user_id, FallbackReason.LOOKUP_FAILED)

        if factors is None:
            logger.error(
                "User %s not found (cause=%s)", user_id, FallbackReason.USER_NOT_FOUND.value
            )
            return default_reputation(user_id, FallbackReason.USER_NOT_FOUND)

        return calculate_reputation_score(user_id, factors, self.config)

    async def calculate_reputation(
        self,
        user_id: str,
        timeout: float | None = None,
    ) -> ReputationSummary:
        """Summary view used by the moderator."""
        return ReputationSummary.from_reputation(
            await self.get_user_reputation(user_id, timeout)
        )

    async def should_auto_approve(self, user_id: str) -> bool:
        return (await self.get_user_reputation(user_id)).is_trusted

    async def should_auto_flag(self, user_id: str) -> bool:
        return (await self.get_user_reputation(user_id)).is_suspicious

    async def get_moderation_priority(self, user_id: str) -> float:
        """
        Queue priority for manual review: 10 for trusted users, 80 for
        suspicious ones, otherwise 100 - score with a floor of 20.
        """
        reputation = await self.get_user_reputation(user_id)
        if reputation.is_trusted:
            return TRUSTED_PRIORITY
        if reputation.is_suspicious:
            return SUSPICIOUS_PRIORITY
        return max(MIN_PRIORITY, 100 - reputation.score)

    def record_submission_outcome(self, user_id: str, status: SubmissionStatus | str) -> None:
        """
        Note a final submission outcome.

        Only logs: the caller's own submission-status write is what future
        reputation lookups read.
        """
        if not self.enabled:
            return
        logger.info(
            "Submission outcome recorded: user=%s status=%s",
            user_id, SubmissionStatus(status).value,
        )

    def update_reputation_after_moderation(self, user_id: str, action: str) -> None:
        """Record an "approved" or "rejected" moderation outcome."""
        status = SubmissionStatus.APPROVED if action == "approved" else SubmissionStatus.REJECTED
        self.record_submission_outcome(user_id, status)
