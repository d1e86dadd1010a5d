"""
Content moderation pipeline.

Provides:
- spam_detector: Spam scoring
- content_filter: Policy violations and sanitization
- reputation: User trust scoring
- moderator: The combined approve / flag / reject / monitor decision
"""

from contentguard.moderation.models import (
    ContentType,
    ModerationAction,
    RiskLevel,
    Severity,
    ViolationType,
)
from contentguard.moderation.spam_detector import (
    SpamAnalysis,
    SpamDetector,
    calculate_similarity,
    detect_spam,
)
from contentguard.moderation.content_filter import (
    ContentFilter,
    FilterResult,
    FilterViolation,
    filter_content,
    get_content_summary,
    mask_personal_info,
    validate_content,
)
from contentguard.moderation.reputation import (
    FallbackReason,
    ReputationService,
    ReputationSummary,
    UserReputation,
    calculate_reputation_score,
)
from contentguard.moderation.moderator import ModerationResult, Moderator

__all__ = [
    "ContentType",
    "ModerationAction",
    "RiskLevel",
    "Severity",
    "ViolationType",
    "SpamAnalysis",
    "SpamDetector",
    "calculate_similarity",
    "detect_spam",
    "ContentFilter",
    "FilterResult",
    "FilterViolation",
    "filter_content",
    "get_content_summary",
    "mask_personal_info",
    "validate_content",
    "FallbackReason",
    "ReputationService",
    "ReputationSummary",
    "UserReputation",
    "calculate_reputation_score",
    "ModerationResult",
    "Moderator",
]
