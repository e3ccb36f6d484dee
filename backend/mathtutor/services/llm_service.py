import asyncio
import logging
import time
from typing import Any, Dict, Optional, Tuple

import httpx

from mathtutor.core.config import Settings
from mathtutor.core.errors import (
    ConfigurationError,
    UpstreamAuthError,
    UpstreamError,
    UpstreamMalformedResponse,
    UpstreamRateLimited,
    UpstreamTimeout,
)
from mathtutor.core.prompts import TUTOR_SYSTEM_PROMPT, build_single_prompt
from mathtutor.models.schemas import LLMResult, UpstreamCallParameters

logger = logging.getLogger(__name__)

HARM_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


def estimate_tokens(text: str) -> int:
    """Rough token count when the provider does not report usage"""
    return len(text) // 4


class BaseLLMProvider:
    """Builds the provider-specific request and reads its response"""

    name = "base"

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def api_key(self) -> str:
        raise NotImplementedError

    @property
    def params(self) -> UpstreamCallParameters:
        raise NotImplementedError

    @property
    def model_label(self) -> str:
        return self.params.model

    def build_request(self, prompt: str) -> Tuple[str, Dict[str, str], Dict[str, Any], Dict[str, str]]:
        """Return (url, headers, json body, query params) for the call"""
        raise NotImplementedError

    def extract_text(self, data: Dict[str, Any]) -> Tuple[str, Optional[int], Optional[int]]:
        """Return (text, total tokens, completion tokens) from the response body"""
        raise NotImplementedError

    def parse_response(self, data: Any) -> LLMResult:
        if not isinstance(data, dict):
            raise UpstreamMalformedResponse()
        try:
            text, total_tokens, completion_tokens = self.extract_text(data)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            logger.error(f"Unexpected {self.name} response shape: {e!r}")
            raise UpstreamMalformedResponse()

        text = (text or "").strip()
        if not text:
            logger.error(f"Empty answer from {self.name}")
            raise UpstreamMalformedResponse()

        return LLMResult(
            text=text,
            tokens=total_tokens or estimate_tokens(text),
            model_label=self.model_label,
            completion_tokens=completion_tokens,
        )


class DeepSeekProvider(BaseLLMProvider):
    """Chat Completions API with bearer auth"""

    name = "deepseek"

    @property
    def api_key(self) -> str:
        return self.settings.DEEPSEEK_API_KEY

    @property
    def params(self) -> UpstreamCallParameters:
        return UpstreamCallParameters(
            model=self.settings.DEEPSEEK_MODEL,
            temperature=self.settings.LLM_TEMPERATURE,
            max_tokens=self.settings.MAX_TOKENS,
            system_prompt=TUTOR_SYSTEM_PROMPT,
        )

    @property
    def model_label(self) -> str:
        return "DeepSeek V3"

    def build_request(self, prompt: str):
        params = self.params
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        body = {
            "model": params.model,
            "messages": [
                {"role": "system", "content": params.system_prompt},
                {"role": "user", "content": prompt},
            ],
            "temperature": params.temperature,
            "max_tokens": params.max_tokens,
            "stream": False,
        }
        return self.settings.DEEPSEEK_API_URL, headers, body, {}

    def extract_text(self, data):
        text = data["choices"][0]["message"]["content"]
        usage = data.get("usage") or {}
        return text, usage.get("total_tokens"), usage.get("completion_tokens")


class GeminiProvider(BaseLLMProvider):
    """generateContent API with the key as query parameter"""

    name = "gemini"

    @property
    def api_key(self) -> str:
        return self.settings.GEMINI_API_KEY

    @property
    def params(self) -> UpstreamCallParameters:
        return UpstreamCallParameters(
            model=self.settings.GEMINI_MODEL,
            temperature=self.settings.LLM_TEMPERATURE,
            max_tokens=self.settings.MAX_TOKENS,
            system_prompt=TUTOR_SYSTEM_PROMPT,
            top_p=self.settings.GEMINI_TOP_P,
            top_k=self.settings.GEMINI_TOP_K,
        )

    @property
    def model_label(self) -> str:
        return f"Gemini {self.settings.GEMINI_MODEL}"

    def build_request(self, prompt: str):
        params = self.params
        url = f"{self.settings.GEMINI_API_URL.rstrip('/')}/{params.model}:generateContent"
        body = {
            "contents": [
                {"parts": [{"text": build_single_prompt(params.system_prompt, prompt)}]}
            ],
            "generationConfig": {
                "temperature": params.temperature,
                "maxOutputTokens": params.max_tokens,
                "topP": params.top_p,
                "topK": params.top_k,
            },
            "safetySettings": [
                {"category": category, "threshold": "BLOCK_NONE"}
                for category in HARM_CATEGORIES
            ],
        }
        return url, {"Content-Type": "application/json"}, body, {"key": self.api_key}

    def extract_text(self, data):
        parts = data["candidates"][0]["content"]["parts"]
        text = "".join(part.get("text", "") for part in parts)
        usage = data.get("usageMetadata") or {}
        return text, usage.get("totalTokenCount"), usage.get("candidatesTokenCount")


PROVIDERS = {
    DeepSeekProvider.name: DeepSeekProvider,
    GeminiProvider.name: GeminiProvider,
}


def get_provider(settings: Settings) -> BaseLLMProvider:
    return PROVIDERS[settings.LLM_PROVIDER](settings)


class MathLLMService:
    """Sends one prompt upstream, bounded by the configured deadline"""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.provider = get_provider(settings)
        self.transport = transport

    async def generate(self, prompt: str) -> LLMResult:
        """Race the upstream call against UPSTREAM_TIMEOUT.

        Raises UpstreamTimeout when the deadline wins; the pending request is
        cancelled by ``asyncio.wait_for`` in that case.
        """
        if not self.provider.api_key.strip():
            logger.error(f"API key for provider '{self.provider.name}' is not configured")
            raise ConfigurationError()

        start_time = time.time()
        try:
            result = await asyncio.wait_for(
                self._dispatch(prompt), timeout=self.settings.UPSTREAM_TIMEOUT
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"⏱️ {self.provider.name} did not answer within {self.settings.UPSTREAM_TIMEOUT}s"
            )
            raise UpstreamTimeout()

        logger.info(
            f"✅ {self.provider.name} answered in {time.time() - start_time:.2f}s "
            f"(tokens: {result.tokens})"
        )
        return result

    async def _dispatch(self, prompt: str) -> LLMResult:
        url, headers, body, query = self.provider.build_request(prompt)

        async with httpx.AsyncClient(
            timeout=self.settings.UPSTREAM_TIMEOUT, transport=self.transport
        ) as client:
            try:
                response = await client.post(url, headers=headers, json=body, params=query)
            except httpx.TimeoutException:
                raise UpstreamTimeout()
            except httpx.HTTPError as e:
                logger.error(f"💥 Transport error calling {self.provider.name}: {e!r}")
                raise UpstreamError()

        self._check_status(response)

        try:
            data = response.json()
        except ValueError:
            logger.error(f"Non-JSON body from {self.provider.name}: {response.text[:200]}")
            raise UpstreamMalformedResponse()

        return self.provider.parse_response(data)

    def _check_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return

        logger.error(f"❌ {self.provider.name} API error: {response.status_code} - {response.text}")

        if response.status_code == 429:
            raise UpstreamRateLimited()
        if response.status_code == 401:
            raise UpstreamAuthError(status_code=500)
        if response.status_code == 403:
            raise UpstreamAuthError(status_code=403)
        raise UpstreamError()
