"""
Utility modules for contentguard.

Provides:
- logging: Logging setup with personal-information redaction
- database: SQLite store for users and submission history
"""

from contentguard.utils.logging import get_logger, setup_logging
from contentguard.utils.database import (
    get_database,
    StoreError,
    SubmissionStatus,
    SubmissionStore,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "get_database",
    "StoreError",
    "SubmissionStatus",
    "SubmissionStore",
]
