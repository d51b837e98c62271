"""
Tests for the engine error taxonomy.
"""

import pytest

from models.enums import ErrorReason
from models.schema import EngineResponse, SearchResult
from search.classifier import classify_error, is_retryable, reason_of


def response(status: int, error: str = None) -> EngineResponse:
    return EngineResponse(status=status, error=error)


class TestClassifyError:

    @pytest.mark.parametrize("status,error,expected", [
        (401, "Serper API authentication failed (HTTP 401), check SERPER_API_KEY", "SERPER_AUTH_FAILED"),
        (403, "Invalid API key", "SERPER_AUTH_FAILED"),
        (403, "Captcha required", "SERPER_CAPTCHA"),
        (403, "Forbidden", "SERPER_BOT_DETECTION"),
        (401, "Unusual traffic from your network", "SERPER_BOT_DETECTION"),
        (401, "nope", "SERPER_HTTP_ERROR"),
        (429, "request timed out while rate limited", "SERPER_RATE_LIMITED"),
        (408, None, "SERPER_TIMEOUT"),
        (200, "no organic results", "SERPER_EMPTY_RESULTS"),
        (500, "Internal Server Error", "SERPER_HTTP_ERROR"),
        (404, None, "SERPER_HTTP_ERROR"),
        (0, "serper network error: connection reset", "SERPER_UNKNOWN_ERROR"),
        (0, "Too many requests", "SERPER_RATE_LIMITED"),
        (0, "The operation was aborted due to timeout", "SERPER_TIMEOUT"),
        (0, "captcha page", "SERPER_CAPTCHA"),
        (0, "automated queries detected", "SERPER_BOT_DETECTION"),
        (0, "SERPER_API_KEY not configured, skipping Serper", "SERPER_UNAVAILABLE"),
        (0, None, "SERPER_UNKNOWN_ERROR"),
    ])
    def test_rules(self, status, error, expected):
        assert classify_error(response(status, error), "SERPER") == expected

    def test_empty_success_is_empty_results(self):
        for prefix in ("DDG", "GOOGLE", "BING", "RENDER", "BROWSER"):
            assert classify_error(EngineResponse(status=200), prefix) == f"{prefix}_EMPTY_RESULTS"

    def test_status_checks_precede_message(self):
        assert classify_error(response(408, "rate limit"), "DDG") == "DDG_TIMEOUT"


class TestRetryability:

    def test_reason_of_multi_word_prefix(self):
        assert reason_of("RENDER_API_RATE_LIMITED") == ErrorReason.RATE_LIMITED
        assert reason_of("DDG_AUTH_FAILED") == ErrorReason.AUTH_FAILED
        assert reason_of("nonsense") is None

    @pytest.mark.parametrize("code,retryable", [
        ("SERPER_UNAVAILABLE", False),
        ("SERPER_AUTH_FAILED", False),
        ("DDG_TIMEOUT", True),
        ("DDG_EMPTY_RESULTS", True),
        ("GOOGLE_RATE_LIMITED", True),
        ("BROWSER_UNKNOWN_ERROR", True),
    ])
    def test_is_retryable(self, code, retryable):
        assert is_retryable(code) == retryable

    def test_results_not_needed_for_classification(self):
        hit = SearchResult(title="A", url="https://a.com")
        # a 200 with results is not an error; classification still terminates
        assert classify_error(EngineResponse(results=[hit], status=200), "X") == "X_UNKNOWN_ERROR"
