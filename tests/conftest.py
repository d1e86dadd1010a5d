"""Shared fixtures for the contentguard test suite."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from contentguard.config import ModerationConfig  # noqa: E402
from contentguard.utils.database import SubmissionStatus, SubmissionStore  # noqa: E402

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

CLEAN_PARAGRAPH = (
    "The university library extends its opening hours during the examination "
    "period. Students can reserve group study rooms through the online portal, "
    "and quiet reading areas are available on the second and third floors. "
    "Librarians offer short workshops on citation management, database searching "
    "and academic writing every week. Printed course materials may be borrowed "
    "for two days at a time, while electronic journals remain accessible from "
    "home through the campus proxy. Feedback about these services is always "
    "welcome at the information desk."
)

# Seven links (six shortened, one blacklisted) and seven spam keywords
STUFFED_SPAM = (
    "FREE MONEY! WIN PRIZE! CASINO POKER LOTTERY JACKPOT ACT NOW "
    + " ".join(f"http://bit.ly/x{i}" for i in range(6))
    + " http://spam.com/win"
)


@pytest.fixture
def config() -> ModerationConfig:
    return ModerationConfig()


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def store(tmp_path) -> SubmissionStore:
    return SubmissionStore(tmp_path / "contentguard.db")


def add_trusted_user(store: SubmissionStore, user_id: str = "trusted") -> str:
    """400-day-old verified account with 15 approved and 1 rejected submission."""
    store.add_user(user_id, "Trusted", created_at=NOW - timedelta(days=400), email_verified=True)
    for i in range(15):
        store.record_submission(user_id, SubmissionStatus.APPROVED, created_at=NOW - timedelta(days=30 + i))
    store.record_submission(user_id, SubmissionStatus.REJECTED, created_at=NOW - timedelta(days=60))
    return user_id


def add_rejected_burst_user(store: SubmissionStore, user_id: str = "burst") -> str:
    """Brand-new unverified account with 11 rejected submissions this week."""
    store.add_user(user_id, "Burst", created_at=NOW)
    for i in range(11):
        store.record_submission(user_id, SubmissionStatus.REJECTED, created_at=NOW - timedelta(hours=i))
    return user_id
