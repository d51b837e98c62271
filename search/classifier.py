"""
Canonical error taxonomy for engine failures.

``classify_error`` maps an ``EngineResponse`` to ``{PREFIX}_{REASON}``.
Rules are checked in a fixed order and status checks always precede
message checks, so a 429 whose body mentions a timeout is still
``RATE_LIMITED``.
"""

from __future__ import annotations

import re
from typing import Optional

from models.enums import ErrorReason
from models.schema import EngineResponse

AUTH_RE = re.compile(r"auth|api[_ ]key|\bkey\b|credential|unauthori[sz]ed", re.IGNORECASE)
CAPTCHA_RE = re.compile(r"captcha", re.IGNORECASE)
BOT_RE = re.compile(r"\bbot\b|automated|unusual traffic|\bvqd\b", re.IGNORECASE)
RATE_LIMIT_RE = re.compile(r"rate.?limit|too many requests", re.IGNORECASE)
TIMEOUT_RE = re.compile(r"time.?out|timed out|abort|cancel|deadline", re.IGNORECASE)
UNAVAILABLE_RE = re.compile(r"not configured|unavailable", re.IGNORECASE)

NON_RETRYABLE = {ErrorReason.UNAVAILABLE, ErrorReason.AUTH_FAILED}


def _reason(response: EngineResponse) -> ErrorReason:
    status = response.status
    message = response.error or ""

    if status in (401, 403):
        if AUTH_RE.search(message):
            return ErrorReason.AUTH_FAILED
        if CAPTCHA_RE.search(message):
            return ErrorReason.CAPTCHA
        if status == 403 or BOT_RE.search(message):
            return ErrorReason.BOT_DETECTION
        return ErrorReason.HTTP_ERROR
    if status == 429:
        return ErrorReason.RATE_LIMITED
    if status == 408:
        return ErrorReason.TIMEOUT
    if status == 200 and not response.results:
        return ErrorReason.EMPTY_RESULTS
    if status != 0 and not 200 <= status < 300:
        return ErrorReason.HTTP_ERROR

    if RATE_LIMIT_RE.search(message):
        return ErrorReason.RATE_LIMITED
    if TIMEOUT_RE.search(message):
        return ErrorReason.TIMEOUT
    if CAPTCHA_RE.search(message):
        return ErrorReason.CAPTCHA
    if BOT_RE.search(message):
        return ErrorReason.BOT_DETECTION
    if UNAVAILABLE_RE.search(message):
        return ErrorReason.UNAVAILABLE
    return ErrorReason.UNKNOWN_ERROR


def classify_error(response: EngineResponse, prefix: str) -> str:
    """
    Classify a failed engine response.

    >>> classify_error(EngineResponse(status=200), "SERPER")
    'SERPER_EMPTY_RESULTS'
    """
    return f"{prefix}_{_reason(response).value}"


def reason_of(code: str) -> Optional[ErrorReason]:
    """Recover the reason from a ``PREFIX_REASON`` code (prefixes may contain ``_``)."""
    for reason in ErrorReason:
        if code.endswith("_" + reason.value) or code == reason.value:
            return reason
    return None


def is_retryable(code: str) -> bool:
    """Missing configuration and rejected credentials never recover by retrying."""
    return reason_of(code) not in NON_RETRYABLE
