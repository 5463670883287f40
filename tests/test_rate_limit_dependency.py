"""Tests for client key extraction and rate limit header building."""

from starlette.requests import Request

from ratelimit_api.adapters.rate_limit import RateLimitResult, RateLimitStatus
from ratelimit_api.core.rate_limit import (
    build_rate_limit_headers,
    get_client_identifier,
    hash_client_id,
)


def _request(headers: dict[str, str] | None = None, client: tuple | None = ("10.0.0.9", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
    }
    if client is not None:
        scope["client"] = client
    return Request(scope)


class TestGetClientIdentifier:
    def test_uses_first_forwarded_entry_trimmed(self) -> None:
        request = _request({"X-Forwarded-For": "  203.0.113.7 , 10.0.0.1"})
        assert get_client_identifier(request) == "203.0.113.7"

    def test_falls_back_to_connection_host(self) -> None:
        assert get_client_identifier(_request()) == "10.0.0.9"

    def test_ignores_forwarded_header_when_untrusted(self) -> None:
        request = _request({"X-Forwarded-For": "203.0.113.7"})
        assert get_client_identifier(request, trust_forwarded_for=False) == "10.0.0.9"

    def test_blank_forwarded_entry_falls_back(self) -> None:
        request = _request({"X-Forwarded-For": " , 10.0.0.1"})
        assert get_client_identifier(request) == "10.0.0.9"

    def test_unknown_without_any_address(self) -> None:
        assert get_client_identifier(_request(client=None)) == "unknown"


class TestBuildRateLimitHeaders:
    def test_allowed_result_iso_reset(self) -> None:
        result = RateLimitResult(
            allowed=True, limit=10, remaining=9, reset_at_ms=1_700_000_000_500
        )

        headers = build_rate_limit_headers(result)

        assert headers == {
            "X-RateLimit-Limit": "10",
            "X-RateLimit-Remaining": "9",
            "X-RateLimit-Reset": "2023-11-14T22:13:20.500000Z",
        }

    def test_blocked_result_epoch_reset_and_retry_after(self) -> None:
        result = RateLimitResult(
            allowed=False,
            limit=3,
            remaining=0,
            reset_at_ms=1_700_000_000_500,
            retry_after_seconds=2,
        )

        headers = build_rate_limit_headers(result, reset_format="epoch")

        assert headers["X-RateLimit-Reset"] == "1700000001"
        assert headers["Retry-After"] == "2"
        assert headers["X-RateLimit-Remaining"] == "0"

    def test_status_snapshot_has_no_retry_after(self) -> None:
        status = RateLimitStatus(
            request_count=1, limit=5, remaining=4, reset_at_ms=1_700_000_000_000
        )

        headers = build_rate_limit_headers(status, reset_format="epoch")

        assert "Retry-After" not in headers
        assert headers["X-RateLimit-Reset"] == "1700000000"


def test_hash_client_id_is_stable_and_opaque() -> None:
    hashed = hash_client_id("203.0.113.7")

    assert hashed == hash_client_id("203.0.113.7")
    assert hashed != hash_client_id("203.0.113.8")
    assert len(hashed) == 16
