import asyncio
from typing import Any

import httpx

from kita_advisor.ai.rate_limiter import RateLimiter
from kita_advisor.ai.retry import RetryPolicy
from kita_advisor.core.settings import (
    DEFAULT_GEMINI_BASE_URL,
    DEFAULT_RATE_LIMIT_MAX_REQUESTS,
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    AdvisorConfig,
)
from kita_advisor.errors import (
    ConfigError,
    MalformedResponseError,
    NetworkError,
    QuotaExceededError,
    RateLimitError,
    SafetyBlockedError,
)
from kita_advisor.logger import get_logger
from kita_advisor.models import GenerationOptions

logger = get_logger(__name__)

SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)
SAFETY_THRESHOLD = "BLOCK_MEDIUM_AND_ABOVE"


def _error_message(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if message:
            return str(message)
    return None


def _block_reason(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    feedback = payload.get("promptFeedback")
    if isinstance(feedback, dict):
        reason = feedback.get("blockReason")
        if reason:
            return str(reason)
    return None


def _candidate_text(payload: dict[str, Any]) -> str | None:
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    first = candidates[0]
    if not isinstance(first, dict):
        return None
    content = first.get("content")
    if not isinstance(content, dict):
        return None
    parts = content.get("parts")
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        return None
    text = parts[0].get("text")
    if isinstance(text, str) and text.strip():
        return text
    return None


class AIRequestOrchestrator:
    """
    Issues one text-generation request against a Gemini-style
    ``generateContent`` endpoint, behind a shared rate limiter and a retry
    policy. Backend failures are translated into the ``AdvisorError``
    taxonomy here and nowhere else.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str = DEFAULT_GEMINI_BASE_URL,
        rate_limiter: RateLimiter | None = None,
        retry_policy: RetryPolicy | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.rate_limiter = rate_limiter or RateLimiter(
            DEFAULT_RATE_LIMIT_MAX_REQUESTS,
            DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
        )
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout = timeout
        self._client = client
        self._client_lock = asyncio.Lock()

    @classmethod
    def from_config(
        cls,
        config: AdvisorConfig,
        *,
        rate_limiter: RateLimiter | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> "AIRequestOrchestrator":
        return cls(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            rate_limiter=rate_limiter or RateLimiter(
                config.rate_limit_max_requests,
                config.rate_limit_window,
            ),
            retry_policy=RetryPolicy(
                max_retries=config.max_retries,
                base_delay=config.retry_base_delay,
            ),
            client=client,
            timeout=config.request_timeout,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.model)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/v1beta/models/{self.model}:generateContent"

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _get_client(self) -> httpx.AsyncClient:
        client = self._client
        if client is not None and not client.is_closed:
            return client

        async with self._client_lock:
            # Another task may have created it while we waited
            client = self._client
            if client is None or client.is_closed:
                client = httpx.AsyncClient()
                self._client = client
            return client

    def _check_config(self) -> None:
        if not self.api_key:
            raise ConfigError("AI API key is not configured (GEMINI_API_KEY).")
        if not self.model:
            raise ConfigError("AI model is not configured (GEMINI_MODEL).")

    def build_body(self, prompt: str, options: GenerationOptions) -> dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "maxOutputTokens": options.max_output_tokens,
                "temperature": options.temperature,
                "topP": options.top_p,
                "topK": options.top_k,
                "candidateCount": 1,
            },
            "safetySettings": [
                {"category": category, "threshold": SAFETY_THRESHOLD}
                for category in SAFETY_CATEGORIES
            ],
        }

    async def generate(self, prompt: str, options: GenerationOptions | None = None) -> str:
        self._check_config()

        wait_seconds = self.rate_limiter.acquire()
        if wait_seconds > 0:
            logger.warning("[AI] Rate limit reached; next slot in %.1f s.", wait_seconds)
            raise RateLimitError(wait_seconds)

        options = options or GenerationOptions()
        body = self.build_body(prompt, options)
        logger.debug("[AI] Sending prompt to %s: %s...", self.model, prompt[:150])

        async def send() -> str:
            return await self._send(body)

        text = await self.retry_policy.execute(send)
        logger.debug("[AI] Response preview: %s...", text[:100])
        return text

    async def _send(self, body: dict[str, Any]) -> str:
        client = await self._get_client()
        try:
            response = await client.post(
                self.endpoint,
                params={"key": self.api_key},
                json=body,
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            logger.warning("[AI] Network failure calling backend: %s", exc)
            raise NetworkError(f"AI backend request failed: {exc}") from exc
        return self.decode_response(response)

    @staticmethod
    def decode_response(response: httpx.Response) -> str:
        status = response.status_code
        try:
            payload: Any = response.json()
        except ValueError:
            payload = None

        message = _error_message(payload)

        if status == 429:
            logger.warning("[AI] Backend quota exceeded: %s", message or "HTTP 429")
            raise QuotaExceededError(f"AI backend quota exceeded: {message or 'HTTP 429'}")

        block_reason = _block_reason(payload)
        if block_reason:
            logger.warning("[AI] Prompt blocked by safety filters: %s", block_reason)
            raise SafetyBlockedError(block_reason)

        if not 200 <= status < 300:
            detail = message or response.text[:200]
            logger.warning("[AI] Network error: HTTP %s: %s", status, detail)
            raise NetworkError(f"AI backend HTTP error {status}: {detail}", status_code=status)

        if message:
            logger.warning("[AI] Network error: backend reported %s", message)
            raise NetworkError(f"AI backend error: {message}", status_code=status)

        if not isinstance(payload, dict):
            logger.error("[AI] Malformed response: body is not a JSON object (HTTP %s).", status)
            raise MalformedResponseError("AI backend returned an undecodable response body.")

        text = _candidate_text(payload)
        if text is None:
            logger.error("[AI] Malformed response: no candidate text in %s", list(payload.keys()))
            raise MalformedResponseError("AI backend returned an unexpected or empty response.")
        return text
