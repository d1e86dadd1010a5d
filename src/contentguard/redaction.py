"""
Personal-information patterns and display masking.

The regexes here are shared by the content filter (which judges content)
and the logging redaction filter (which keeps moderated text out of logs).
"""

from __future__ import annotations

import re

EMAIL_PATTERN = r"\b[A-Za-z0-9._%+-]{1,64}@[A-Za-z0-9.-]{1,253}\.[A-Za-z]{2,63}\b"
PHONE_PATTERN = r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b"
INTL_PHONE_PATTERN = r"(?<!\w)\+?\d{1,3}[-. ]?\(\d{3}\)[-./ ]?\d{3}[-./ ]?\d{4}\b"
CARD_PATTERN = r"\b\d{4}[ -]?\d{4}[ -]?\d{4}[ -]?\d{4}\b"
ACCOUNT_PATTERN = r"\b\d{3}-\d{2}-\d{4}\b"

PERSONAL_INFO_PATTERNS: tuple[str, ...] = (
    EMAIL_PATTERN,
    PHONE_PATTERN,
    INTL_PHONE_PATTERN,
    CARD_PATTERN,
    ACCOUNT_PATTERN,
)

_EMAIL_RE = re.compile(EMAIL_PATTERN)
_INTL_PHONE_RE = re.compile(
    r"(?<!\w)\+?(\d{1,3})[-. ]?\((\d{3})\)[-./ ]?(\d{3})[-./ ]?(\d{4})\b"
)
_CARD_RE = re.compile(r"\b(\d{4})[ -]?(\d{4})[ -]?(\d{4})[ -]?(\d{4})\b")
_PHONE_RE = re.compile(r"\b(\d{3})[-.]?(\d{3})[-.]?(\d{4})\b")
_ACCOUNT_RE = re.compile(ACCOUNT_PATTERN)


def _mask_email(match: re.Match[str]) -> str:
    local, _, domain = match.group(0).partition("@")
    return f"{local[:2]}***@{domain}"


def mask_personal_info(content: str) -> str:
    """
    Partially redact emails, phone numbers and card/account numbers.

    Meant for *showing* content safely, not for judging it: the output keeps
    enough of each value (first two characters of an email, the area code,
    the first card group) to stay recognizable to its owner.

    Args:
        content: Text to mask

    Returns:
        str: Masked copy of the text
    """
    if not content:
        return content

    masked = _EMAIL_RE.sub(_mask_email, content)
    # Longer groupings first so a card number is not eaten by the phone rule
    masked = _INTL_PHONE_RE.sub(r"+\1 (\2) ***-****", masked)
    masked = _CARD_RE.sub(r"\1-****-****-****", masked)
    masked = _ACCOUNT_RE.sub("***-**-****", masked)
    masked = _PHONE_RE.sub(r"\1-***-****", masked)
    return masked
