"""
Property-based tests for the premium upstream client.
"""

import asyncio

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from domain_availability.config import PremiumConfig
from domain_availability.enums import AvailabilityStatus
from domain_availability.exceptions import UpstreamError
from domain_availability.premium_client import (
    STATUS_PATH,
    PremiumClient,
    map_status_tokens,
    parse_premium_response,
)


def run_async(coro):
    """Helper to run async code in tests."""
    return asyncio.run(coro)


CONFIG = PremiumConfig(api_token="test-token", base_url="https://premium.test")

filler_tokens = st.lists(st.sampled_from(["undelegated", "claimed", "reserved", "dpml", "tld"]), max_size=3)


def lookup_with(handler, domain: str = "example.com"):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await PremiumClient(config=CONFIG, client=client).lookup(domain)

    return run_async(run())


class TestStatusMapping:
    """Tokens map in priority order regardless of their position."""

    @given(extra=filler_tokens, token=st.sampled_from(["marketed", "forsale"]))
    @settings(max_examples=50)
    def test_sale_tokens_win_over_everything(self, extra: list[str], token: str) -> None:
        status = " ".join(extra + ["active", "parked", "priced", token])

        assert map_status_tokens(status) is AvailabilityStatus.FOR_SALE

    def test_for_sale_phrase(self) -> None:
        assert map_status_tokens("active for sale") is AvailabilityStatus.FOR_SALE

    @given(extra=filler_tokens)
    @settings(max_examples=30)
    def test_priced_beats_parked_and_active(self, extra: list[str]) -> None:
        assert map_status_tokens(" ".join(extra + ["active", "parked", "priced"])) is AvailabilityStatus.PREMIUM

    def test_parked_beats_active(self) -> None:
        assert map_status_tokens("active parked") is AvailabilityStatus.PARKED

    def test_active_is_taken(self) -> None:
        assert map_status_tokens("active") is AvailabilityStatus.TAKEN

    @given(extra=filler_tokens)
    @settings(max_examples=30)
    def test_inactive_is_available(self, extra: list[str]) -> None:
        assert map_status_tokens(" ".join(extra + ["inactive"])) is AvailabilityStatus.AVAILABLE

    @given(value=st.one_of(st.none(), st.just(""), st.integers(), st.sampled_from(["reserved", "claimed tld"])))
    @settings(max_examples=30)
    def test_anything_else_is_unknown(self, value) -> None:
        assert map_status_tokens(value) is AvailabilityStatus.UNKNOWN

    def test_mapping_is_case_insensitive(self) -> None:
        assert map_status_tokens("UNDELEGATED INACTIVE") is AvailabilityStatus.AVAILABLE


class TestResponseParsing:
    def test_matching_entry_is_preferred(self) -> None:
        data = {
            "status": [
                {"domain": "other.com", "status": "active"},
                {"domain": "Example.com", "status": "undelegated inactive"},
            ]
        }

        assert parse_premium_response(data, "example.com") is AvailabilityStatus.AVAILABLE

    def test_first_entry_is_fallback(self) -> None:
        data = {"status": [{"domain": "other.com", "status": "active parked"}]}

        assert parse_premium_response(data, "example.com") is AvailabilityStatus.PARKED

    def test_summary_used_when_status_missing(self) -> None:
        data = {"status": [{"domain": "example.com", "summary": "marketed"}]}

        assert parse_premium_response(data, "example.com") is AvailabilityStatus.FOR_SALE

    @given(data=st.one_of(st.none(), st.just({}), st.just({"status": []}), st.just({"status": "x"}), st.just([1])))
    @settings(max_examples=20)
    def test_malformed_bodies_are_unknown(self, data) -> None:
        assert parse_premium_response(data, "example.com") is AvailabilityStatus.UNKNOWN


class TestUpstreamExchange:
    """HTTP failures become UpstreamError; 2xx bodies are mapped."""

    def test_request_shape(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"status": [{"domain": "example.com", "status": "active"}]})

        assert lookup_with(handler) is AvailabilityStatus.TAKEN
        request = seen[0]
        assert request.url.path == STATUS_PATH
        assert request.url.params["domain"] == "example.com"
        assert request.headers["Fastly-Key"] == "test-token"

    def test_upstream_429_is_quota_exceeded(self) -> None:
        with pytest.raises(UpstreamError) as exc_info:
            lookup_with(lambda request: httpx.Response(429))

        assert exc_info.value.code == "quota_exceeded"
        assert exc_info.value.http_status == 429

    @given(status=st.sampled_from([400, 401, 403, 404, 500, 502, 503]))
    @settings(max_examples=20)
    def test_other_errors_are_service_unavailable(self, status: int) -> None:
        with pytest.raises(UpstreamError) as exc_info:
            lookup_with(lambda request: httpx.Response(status))

        assert exc_info.value.code == "service_unavailable"
        assert exc_info.value.http_status == 503
        assert exc_info.value.message == ""

    def test_network_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(UpstreamError) as exc_info:
            lookup_with(handler)

        assert exc_info.value.details["reason"] == "network failure"

    def test_unparsable_body(self) -> None:
        with pytest.raises(UpstreamError):
            lookup_with(lambda request: httpx.Response(200, content=b"<html>"))

    def test_configured_requires_token(self) -> None:
        assert PremiumClient(config=CONFIG).configured
        assert not PremiumClient(config=PremiumConfig()).configured
