"""
Property-based tests for the RDAP resolver.

HTTP traffic is served by httpx.MockTransport; retry delays are recorded by an
injected sleep instead of elapsing.
"""

import asyncio
from typing import Optional

import httpx
from hypothesis import given, settings
from hypothesis import strategies as st

from domain_availability.enums import AvailabilityStatus
from domain_availability.rdap_client import (
    RDAP_ACCEPT,
    RdapAttempt,
    RdapResolver,
    classify_attempt,
    is_transient_attempt,
)
from domain_availability.retry_manager import RetryManager


def run_async(coro):
    """Helper to run async code in tests."""
    return asyncio.run(coro)


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


TIMEOUT = object()


class ScriptedRegistry:
    """MockTransport handler answering with scripted statuses (or a timeout)."""

    def __init__(self, responses: list) -> None:
        self.responses = responses
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        answer = self.responses[min(len(self.requests), len(self.responses)) - 1]
        if answer is TIMEOUT:
            raise httpx.ReadTimeout("timed out", request=request)
        return httpx.Response(answer, json={})


def resolve_with(responses: list, domain: str = "example.com") -> tuple:
    registry = ScriptedRegistry(responses)
    sleep = SleepRecorder()

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(registry)) as client:
            resolver = RdapResolver(client=client, retry_manager=RetryManager(sleep=sleep))
            return await resolver.resolve(domain, domain.rsplit(".", 1)[-1])

    return run_async(run()), registry, sleep


transient_status = st.one_of(st.just(429), st.integers(min_value=500, max_value=599))
definitive_other_4xx = st.integers(min_value=400, max_value=499).filter(
    lambda s: s not in (404, 429)
)


class TestTransientClassification:
    """No response, 429 and 5xx are transient; everything else is definitive."""

    def test_no_response_is_transient(self) -> None:
        assert is_transient_attempt(RdapAttempt(http_status=None))

    @given(status=transient_status)
    @settings(max_examples=50)
    def test_429_and_5xx_are_transient(self, status: int) -> None:
        assert is_transient_attempt(RdapAttempt(http_status=status))

    @given(status=st.one_of(st.sampled_from([200, 404]), definitive_other_4xx))
    @settings(max_examples=50)
    def test_found_not_found_and_4xx_are_definitive(self, status: int) -> None:
        assert not is_transient_attempt(RdapAttempt(http_status=status))

    @given(status=st.integers(min_value=100, max_value=599).filter(lambda s: s not in (200, 404)))
    @settings(max_examples=50)
    def test_unmapped_codes_become_http_reason(self, status: int) -> None:
        result = classify_attempt(RdapAttempt(http_status=status))

        assert result.status is AvailabilityStatus.UNKNOWN
        assert result.reason == f"http_{status}"


class TestDefinitiveResponses:
    """200 and 404 classify immediately with no retry."""

    def test_200_is_taken_without_retry(self) -> None:
        result, registry, sleep = resolve_with([200])

        assert result.status is AvailabilityStatus.TAKEN
        assert result.reason is None
        assert len(registry.requests) == 1
        assert sleep.delays == []

    def test_404_is_available_without_retry(self) -> None:
        result, registry, sleep = resolve_with([404])

        assert result.status is AvailabilityStatus.AVAILABLE
        assert len(registry.requests) == 1
        assert sleep.delays == []

    @given(status=definitive_other_4xx)
    @settings(max_examples=30)
    def test_other_4xx_is_unknown_without_retry(self, status: int) -> None:
        result, registry, _ = resolve_with([status])

        assert result.status is AvailabilityStatus.UNKNOWN
        assert result.reason == f"http_{status}"
        assert len(registry.requests) == 1

    def test_request_carries_rdap_accept_header(self) -> None:
        _, registry, _ = resolve_with([404])

        request = registry.requests[0]
        assert request.headers["Accept"] == RDAP_ACCEPT
        assert str(request.url) == "https://rdap.verisign.com/com/v1/domain/example.com"


class TestRetryOnTransientFailure:
    """Exactly one retry after a fixed 2 second delay."""

    @given(first=st.one_of(transient_status, st.just(TIMEOUT)), second=st.sampled_from([200, 404]))
    @settings(max_examples=50)
    def test_transient_then_definitive_uses_retry_result(self, first, second: int) -> None:
        result, registry, sleep = resolve_with([first, second])

        expected = AvailabilityStatus.TAKEN if second == 200 else AvailabilityStatus.AVAILABLE
        assert result.status is expected
        assert len(registry.requests) == 2
        assert sleep.delays == [2.0]

    def test_two_timeouts_give_timeout_reason(self) -> None:
        result, registry, sleep = resolve_with([TIMEOUT, TIMEOUT])

        assert result.status is AvailabilityStatus.UNKNOWN
        assert result.reason == "timeout"
        assert len(registry.requests) == 2
        assert sleep.delays == [2.0]

    @given(first=st.one_of(transient_status, st.just(TIMEOUT)), second=transient_status)
    @settings(max_examples=50)
    def test_final_code_is_reported_after_retry(self, first, second: int) -> None:
        result, registry, _ = resolve_with([first, second])

        assert result.reason == f"http_{second}"
        assert len(registry.requests) == 2

    def test_timeout_after_response_reports_timeout(self) -> None:
        result, _, _ = resolve_with([503, TIMEOUT])

        assert result.reason == "timeout"


class TestResolverNeverRaises:
    def test_connection_error_is_folded_into_timeout(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async def run():
            async with httpx.AsyncClient(transport=httpx.MockTransport(refuse)) as client:
                resolver = RdapResolver(client=client, retry_manager=RetryManager(sleep=SleepRecorder()))
                return await resolver.resolve("example.com", "com")

        result = run_async(run())

        assert result.status is AvailabilityStatus.UNKNOWN
        assert result.reason == "timeout"

    def test_non_rdap_tld_is_not_supported(self) -> None:
        calls: list[Optional[httpx.Request]] = []

        def record(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        async def run():
            async with httpx.AsyncClient(transport=httpx.MockTransport(record)) as client:
                return await RdapResolver(client=client).resolve("example.de", "de")

        result = run_async(run())

        assert result.reason == "tld_not_supported"
        assert calls == []
