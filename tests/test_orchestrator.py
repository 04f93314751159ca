from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest
from factories import FakeClock

from kita_advisor.ai.orchestrator import AIRequestOrchestrator
from kita_advisor.ai.rate_limiter import RateLimiter
from kita_advisor.ai.retry import RetryPolicy
from kita_advisor.core.settings import AdvisorConfig
from kita_advisor.errors import (
    ConfigError,
    MalformedResponseError,
    NetworkError,
    QuotaExceededError,
    RateLimitError,
    SafetyBlockedError,
)
from kita_advisor.models import GenerationOptions


def _success(text: str = "Save 20% of your income.") -> httpx.Response:
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def _mock_client(*responses: Any) -> AsyncMock:
    client = AsyncMock()
    client.is_closed = False
    client.post = AsyncMock(side_effect=list(responses))
    return client


def _orchestrator(
    client: AsyncMock,
    *,
    api_key: str | None = "AIza-test",
    model: str | None = "gemini-test",
    limiter: RateLimiter | None = None,
    max_retries: int = 3,
) -> AIRequestOrchestrator:
    return AIRequestOrchestrator(
        api_key=api_key,
        model=model,
        base_url="https://ai.test/",
        rate_limiter=limiter or RateLimiter(max_requests=10, window=60.0),
        retry_policy=RetryPolicy(max_retries=max_retries, base_delay=0.0),
        client=client,
    )


@pytest.mark.anyio
async def test_generate_returns_candidate_text() -> None:
    client = _mock_client(_success("Hello"))
    orchestrator = _orchestrator(client)

    text = await orchestrator.generate("Give me advice", GenerationOptions(temperature=0.3, top_k=1))

    assert text == "Hello"
    client.post.assert_awaited_once()
    args, kwargs = client.post.call_args
    assert args[0] == "https://ai.test/v1beta/models/gemini-test:generateContent"
    assert kwargs["params"] == {"key": "AIza-test"}
    body = kwargs["json"]
    assert body["contents"] == [{"parts": [{"text": "Give me advice"}]}]
    assert body["generationConfig"]["temperature"] == 0.3
    assert body["generationConfig"]["topK"] == 1
    assert body["generationConfig"]["maxOutputTokens"] == 2048
    assert len(body["safetySettings"]) == 4


@pytest.mark.anyio
@pytest.mark.parametrize("api_key,model", [(None, "gemini-test"), ("AIza-test", None), ("", "")])
async def test_missing_configuration_fails_before_network(api_key: str | None, model: str | None) -> None:
    client = _mock_client(_success())
    limiter = RateLimiter(max_requests=1, window=60.0)
    orchestrator = _orchestrator(client, api_key=api_key, model=model, limiter=limiter)

    with pytest.raises(ConfigError):
        await orchestrator.generate("prompt")

    client.post.assert_not_awaited()
    assert limiter.in_flight == 0


@pytest.mark.anyio
async def test_rate_limit_rejection_carries_wait_and_skips_network() -> None:
    client = _mock_client(_success(), _success())
    orchestrator = _orchestrator(client, limiter=RateLimiter(max_requests=1, window=30.0))

    await orchestrator.generate("first")
    with pytest.raises(RateLimitError) as exc_info:
        await orchestrator.generate("second")

    assert 0 < exc_info.value.wait_seconds <= 30.0
    assert "wait" in exc_info.value.user_message
    assert client.post.await_count == 1


@pytest.mark.anyio
async def test_failed_calls_still_consume_rate_budget() -> None:
    client = _mock_client(httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}}))
    limiter = RateLimiter(max_requests=1, window=60.0)
    orchestrator = _orchestrator(client, limiter=limiter)

    with pytest.raises(SafetyBlockedError):
        await orchestrator.generate("blocked")

    assert limiter.in_flight == 1
    with pytest.raises(RateLimitError):
        await orchestrator.generate("again")


@pytest.mark.anyio
async def test_network_errors_are_retried_then_succeed() -> None:
    request = httpx.Request("POST", "https://ai.test")
    client = _mock_client(
        httpx.ConnectError("connection refused", request=request),
        httpx.Response(503, json={"error": {"message": "Backend overloaded"}}),
        _success("Recovered"),
    )
    limiter = RateLimiter(max_requests=5, window=60.0)
    orchestrator = _orchestrator(client, limiter=limiter)

    assert await orchestrator.generate("prompt") == "Recovered"
    assert client.post.await_count == 3
    # One admission per generate call, not per attempt
    assert limiter.in_flight == 1


@pytest.mark.anyio
async def test_network_error_surfaces_backend_message_after_retries() -> None:
    client = _mock_client(*[httpx.Response(500, json={"error": {"message": "API key not valid"}})] * 3)
    orchestrator = _orchestrator(client)

    with pytest.raises(NetworkError) as exc_info:
        await orchestrator.generate("prompt")

    assert exc_info.value.status_code == 500
    assert "API key not valid" in str(exc_info.value)
    assert client.post.await_count == 3


@pytest.mark.anyio
async def test_http_429_maps_to_quota_exceeded() -> None:
    client = _mock_client(httpx.Response(429, json={"error": {"message": "Resource exhausted"}}))
    orchestrator = _orchestrator(client, max_retries=1)

    with pytest.raises(QuotaExceededError) as exc_info:
        await orchestrator.generate("prompt")

    assert not isinstance(exc_info.value, RateLimitError)
    assert "try again later" in exc_info.value.user_message


@pytest.mark.anyio
async def test_quota_exceeded_is_retried_until_success() -> None:
    client = _mock_client(
        httpx.Response(429, json={"error": {"message": "Resource exhausted"}}),
        httpx.Response(429, json={"error": {"message": "Resource exhausted"}}),
        _success("Third time lucky"),
    )
    orchestrator = _orchestrator(client)

    assert await orchestrator.generate("prompt") == "Third time lucky"
    assert client.post.await_count == 3


@pytest.mark.anyio
async def test_quota_exceeded_surfaces_after_all_attempts() -> None:
    client = _mock_client(*[httpx.Response(429, json={"error": {"message": "Resource exhausted"}})] * 3)
    orchestrator = _orchestrator(client)

    with pytest.raises(QuotaExceededError):
        await orchestrator.generate("prompt")

    assert client.post.await_count == 3


@pytest.mark.anyio
async def test_rate_limit_wait_matches_window_state() -> None:
    clock = FakeClock()
    limiter = RateLimiter(max_requests=1, window=30.0, clock=clock)
    orchestrator = _orchestrator(_mock_client(_success()), limiter=limiter)

    await orchestrator.generate("first")
    clock.advance(12.0)
    with pytest.raises(RateLimitError) as exc_info:
        await orchestrator.generate("second")

    assert exc_info.value.wait_seconds == pytest.approx(18.0)
    assert limiter.in_flight == 1


@pytest.mark.anyio
async def test_safety_block_is_not_retried() -> None:
    client = _mock_client(httpx.Response(200, json={"promptFeedback": {"blockReason": "OTHER"}}))
    orchestrator = _orchestrator(client)

    with pytest.raises(SafetyBlockedError) as exc_info:
        await orchestrator.generate("prompt")

    assert exc_info.value.block_reason == "OTHER"
    assert "rephrase" in exc_info.value.user_message
    assert client.post.await_count == 1


@pytest.mark.anyio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json={"candidates": []}),
        httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "   "}]}}]}),
        httpx.Response(200, json=["unexpected"]),
    ],
)
async def test_unusable_success_payload_is_malformed(response: httpx.Response) -> None:
    client = _mock_client(response)
    orchestrator = _orchestrator(client)

    with pytest.raises(MalformedResponseError):
        await orchestrator.generate("prompt")

    assert client.post.await_count == 1


def test_decode_response_keeps_malformed_distinct_from_network() -> None:
    with pytest.raises(NetworkError):
        AIRequestOrchestrator.decode_response(httpx.Response(502, text="Bad gateway"))
    with pytest.raises(MalformedResponseError):
        AIRequestOrchestrator.decode_response(httpx.Response(200, text=""))


def test_from_config_applies_limits() -> None:
    config = AdvisorConfig(
        api_key="AIza-test",
        model="gemini-test",
        base_url="https://ai.test",
        rate_limit_max_requests=7,
        rate_limit_window=15.0,
        max_retries=4,
        retry_base_delay=0.5,
        request_timeout=10.0,
    )
    orchestrator = AIRequestOrchestrator.from_config(config)

    assert orchestrator.configured
    assert orchestrator.rate_limiter.max_requests == 7
    assert orchestrator.rate_limiter.window == 15.0
    assert orchestrator.retry_policy.max_retries == 4
    assert orchestrator.retry_policy.base_delay == 0.5
    assert orchestrator.timeout == 10.0


@pytest.mark.anyio
async def test_aclose_closes_lazily_created_client() -> None:
    orchestrator = AIRequestOrchestrator(api_key="AIza-test", model="gemini-test")
    client = await orchestrator._get_client()
    assert not client.is_closed

    await orchestrator.aclose()

    assert client.is_closed
