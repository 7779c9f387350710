"""
LLM client for prompt → completion calls.

Two providers, both over ``httpx.AsyncClient``:

- ``OllamaLLMClient`` — Ollama ``/api/generate`` (non-streaming)
- ``GeminiLLMClient`` — Google Generative Language ``generateContent``

Unlike a best-effort extractor, callers here need to know when a call failed,
so transport errors and non-200 responses raise ``UpstreamFailureError``.
No retries are attempted; the caller re-triggers the whole operation.

Public API
----------
LLMClient.invoke(prompt)    -> LLMResponse
LLMClient.check_health()    -> bool
get_llm_client()            -> LLMClient   (FastAPI dependency)
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.exceptions import UpstreamFailureError

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class LLMResponse:
    """Completion text returned by a provider."""

    content: str
    model: str = ""


class LLMClient:
    """
    Base class holding the shared timeout and concurrency cap.

    Subclasses implement ``_generate`` (one HTTP round-trip) and
    ``check_health``.
    """

    provider: str = "base"

    def __init__(
        self,
        model: str,
        timeout: Optional[float] = None,
        max_concurrent: Optional[int] = None,
    ) -> None:
        self.model = model
        self.timeout = httpx.Timeout(float(timeout or settings.LLM_TIMEOUT), connect=10.0)
        self._semaphore = asyncio.Semaphore(max_concurrent or settings.LLM_MAX_CONCURRENT)

    async def invoke(self, prompt: str) -> LLMResponse:
        """
        Send *prompt* to the model and return its completion.

        Raises:
            UpstreamFailureError: timeout, connection failure, or non-200 reply.
        """
        async with self._semaphore:
            try:
                content = await self._generate(prompt)
            except UpstreamFailureError:
                raise
            except httpx.TimeoutException as exc:
                logger.error("%s: request timed out after %s", self.provider, self.timeout.read)
                raise UpstreamFailureError(f"LLM request timed out: {exc}") from exc
            except httpx.HTTPError as exc:
                logger.error("%s: transport error — %s", self.provider, exc)
                raise UpstreamFailureError(f"LLM transport error: {exc}") from exc

        logger.debug("%s: %d chars returned", self.provider, len(content))
        return LLMResponse(content=content, model=self.model)

    async def _generate(self, prompt: str) -> str:
        raise NotImplementedError

    async def check_health(self) -> bool:
        raise NotImplementedError

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.status_code != 200:
            logger.error(
                "%s: provider returned HTTP %d: %s",
                self.provider,
                resp.status_code,
                resp.text[:300],
            )
            raise UpstreamFailureError(
                f"LLM provider returned HTTP {resp.status_code}"
            )


class OllamaLLMClient(LLMClient):
    """Ollama ``/api/generate`` client."""

    provider = "ollama"

    def __init__(self, base_url: Optional[str] = None, model: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(model or settings.OLLAMA_LLM_MODEL, **kwargs)
        self.base_url = (base_url or settings.OLLAMA_BASE_URL).rstrip("/")

    async def _generate(self, prompt: str) -> str:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(
                f"{self.base_url}/api/generate",
                json={
                    "model": self.model,
                    "prompt": prompt,
                    "stream": False,
                    "options": {
                        "num_predict": settings.LLM_MAX_TOKENS,
                        "temperature": 0.2,
                    },
                },
            )
        self._raise_for_status(resp)
        return resp.json().get("response", "")

    async def check_health(self) -> bool:
        """Return ``True`` if Ollama is reachable and returns HTTP 200."""
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(f"{self.base_url}/api/tags")
                return resp.status_code == 200
        except Exception as exc:
            logger.error("Ollama health check failed: %s", exc)
            return False


class GeminiLLMClient(LLMClient):
    """Google Gemini ``models/{model}:generateContent`` client."""

    provider = "gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(model or settings.GEMINI_MODEL, **kwargs)
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.base_url = (base_url or settings.GEMINI_BASE_URL).rstrip("/")

    async def _generate(self, prompt: str) -> str:
        if not self.api_key:
            raise UpstreamFailureError("GEMINI_API_KEY is not configured")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(
                f"{self.base_url}/models/{self.model}:generateContent",
                headers={"x-goog-api-key": self.api_key},
                json={
                    "contents": [{"role": "user", "parts": [{"text": prompt}]}],
                    "generationConfig": {"maxOutputTokens": settings.LLM_MAX_TOKENS},
                },
            )
        self._raise_for_status(resp)
        return self._extract_text(resp.json())

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        """Concatenate the text parts of the first candidate."""
        candidates = data.get("candidates") or []
        if not candidates:
            feedback = data.get("promptFeedback", {})
            raise UpstreamFailureError(f"Gemini returned no candidates: {feedback}")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(p.get("text", "") for p in parts if isinstance(p, dict))

    async def check_health(self) -> bool:
        """Return ``True`` if the model metadata endpoint answers HTTP 200."""
        if not self.api_key:
            return False
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(
                    f"{self.base_url}/models/{self.model}",
                    headers={"x-goog-api-key": self.api_key},
                )
                return resp.status_code == 200
        except Exception as exc:
            logger.error("Gemini health check failed: %s", exc)
            return False


_PROVIDERS = {
    OllamaLLMClient.provider: OllamaLLMClient,
    GeminiLLMClient.provider: GeminiLLMClient,
}

_client: Optional[LLMClient] = None


def create_llm_client(provider: Optional[str] = None) -> LLMClient:
    """Instantiate the client for *provider* (defaults to ``LLM_PROVIDER``)."""
    name = (provider or settings.LLM_PROVIDER).lower()
    try:
        return _PROVIDERS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown LLM provider {name!r}. Available: {', '.join(sorted(_PROVIDERS))}"
        )


def get_llm_client() -> LLMClient:
    """
    FastAPI dependency returning the process-wide client.

    One instance is shared so its semaphore caps concurrency across requests.
    """
    global _client
    if _client is None:
        _client = create_llm_client()
    return _client
