"""AI gateway: provider backends behind one retrying, error-classifying client.

Two backends implement the same narrow capability set (text completion,
vision completion, image generation). ``AIGateway`` owns retry policy and
turns every provider failure into a ``PipelineError`` with an explicit kind.
"""
import asyncio
import base64
from enum import Enum
from typing import Any, Optional

import google.generativeai as genai
import openai
from langchain_core.messages import HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI
from openai import AsyncOpenAI

from posterkit.app.config import Settings
from posterkit.app.errors import ErrorKind, PipelineError
from posterkit.app.logger import logger
from posterkit.app.retry import (
    NETWORK_ERROR_MARKERS,
    NETWORK_ERROR_PHRASES,
    RetryConfig,
    execute,
)

TEXT_RETRY = RetryConfig(max_retries=3, initial_delay_ms=1000)
VISION_RETRY = RetryConfig(max_retries=2, initial_delay_ms=1000)
IMAGE_RETRY = RetryConfig(max_retries=2, initial_delay_ms=2000)

VISION_MAX_TOKENS = 2000
IMAGE_SIZE = "1024x1792"


class ProviderType(str, Enum):
    """Supported AI providers."""
    OPENAI = "openai"
    GEMINI = "gemini"


def _content_text(response: Any) -> str:
    """Flatten a LangChain message's content into plain text."""
    content = response.content if hasattr(response, 'content') else response
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get('type') == 'text':
                parts.append(part.get('text', ''))
        return ''.join(parts)
    return str(content or '')


# ============================================================================
# BACKENDS
# ============================================================================

class OpenAIBackend:
    """OpenAI chat (via LangChain) and image generation (via the SDK)."""

    provider = ProviderType.OPENAI

    def __init__(self, settings: Settings):
        self.settings = settings
        # Retry policy lives in AIGateway, so SDK retries are off
        self.llm = ChatOpenAI(
            model=settings.openai_model,
            temperature=settings.temperature,
            api_key=settings.openai_api_key,
            max_tokens=settings.openai_max_tokens,
            timeout=settings.request_timeout,
            max_retries=0,
        )
        self.vision_llm = ChatOpenAI(
            model=settings.openai_vision_model,
            temperature=settings.temperature,
            api_key=settings.openai_api_key,
            max_tokens=VISION_MAX_TOKENS,
            timeout=settings.request_timeout,
            max_retries=0,
        )
        self.client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.request_timeout,
            max_retries=0,
        )

    async def complete_text(self, prompt: str, json_mode: bool = False) -> str:
        llm = self.llm.bind(response_format={"type": "json_object"}) if json_mode else self.llm
        response = await llm.ainvoke([HumanMessage(content=prompt)])
        return _content_text(response)

    async def complete_vision(self, prompt: str, image_b64: str) -> str:
        message = HumanMessage(content=[
            {"type": "text", "text": prompt},
            {
                "type": "image_url",
                "image_url": {"url": f"data:image/png;base64,{image_b64}", "detail": "low"},
            },
        ])
        llm = self.vision_llm.bind(response_format={"type": "json_object"})
        response = await llm.ainvoke([message])
        return _content_text(response)

    async def generate_image(self, prompt: str) -> str:
        result = await self.client.images.generate(
            model=self.settings.openai_image_model,
            prompt=prompt,
            n=1,
            size=IMAGE_SIZE,
            quality="standard",
            response_format="b64_json",
        )
        b64 = result.data[0].b64_json if result.data else None
        if not b64:
            raise PipelineError(ErrorKind.PARSING, "Image response carried no image data")
        logger.info("DALL-E generated image successfully")
        return f"data:image/png;base64,{b64}"


class GeminiBackend:
    """Gemini chat (via LangChain) and Gemini image generation."""

    provider = ProviderType.GEMINI

    def __init__(self, settings: Settings):
        self.settings = settings
        common = dict(
            model=settings.gemini_model,
            temperature=settings.temperature,
            google_api_key=settings.gemini_api_key,
            timeout=settings.request_timeout,
            max_retries=0,
        )
        self.llm = ChatGoogleGenerativeAI(**common)
        self.json_llm = ChatGoogleGenerativeAI(response_mime_type="application/json", **common)

        genai.configure(api_key=settings.gemini_api_key)
        self.image_model = genai.GenerativeModel(
            model_name=settings.gemini_image_model,
            generation_config={
                'response_modalities': ['IMAGE']  # Only generate images
            },
        )

    async def complete_text(self, prompt: str, json_mode: bool = False) -> str:
        llm = self.json_llm if json_mode else self.llm
        response = await llm.ainvoke([HumanMessage(content=prompt)])
        return _content_text(response)

    async def complete_vision(self, prompt: str, image_b64: str) -> str:
        message = HumanMessage(content=[
            {"type": "text", "text": prompt},
            {"type": "image_url", "image_url": f"data:image/png;base64,{image_b64}"},
        ])
        response = await self.json_llm.ainvoke([message])
        return _content_text(response)

    async def generate_image(self, prompt: str) -> str:
        response = await self.image_model.generate_content_async(prompt)
        image_url = self._process_response(response)
        if not image_url:
            raise PipelineError(ErrorKind.PARSING, "Image response carried no image data")
        logger.info("Gemini generated image successfully")
        return image_url

    @staticmethod
    def _process_response(response) -> Optional[str]:
        """Return the first inline image of the response as a data URL."""
        for candidate in getattr(response, 'candidates', None) or []:
            content = getattr(candidate, 'content', None)
            for part in getattr(content, 'parts', None) or []:
                inline_data = getattr(part, 'inline_data', None)
                data = getattr(inline_data, 'data', None)
                if not data:
                    continue
                mime_type = getattr(inline_data, 'mime_type', None) or 'image/png'
                if isinstance(data, bytes):
                    data = base64.b64encode(data).decode('ascii')
                return f"data:{mime_type};base64,{data}"
        return None


BACKENDS = {
    ProviderType.OPENAI: OpenAIBackend,
    ProviderType.GEMINI: GeminiBackend,
}


def create_backend(settings: Settings):
    """Instantiate the configured backend, or None when it has no credential."""
    provider = ProviderType(settings.ai_provider)
    if not settings.has_credential:
        logger.warning(f"{provider.value} API key not configured, AI features will use mock data")
        return None
    logger.info(f"✓ {provider.value} AI backend initialized")
    return BACKENDS[provider](settings)


# ============================================================================
# FAILURE CLASSIFICATION
# ============================================================================

def _error_chain(error: BaseException):
    seen = set()
    while error is not None and id(error) not in seen:
        seen.add(id(error))
        yield error
        error = error.__cause__ or error.__context__


def _status_code(error: BaseException) -> Optional[int]:
    """HTTP status carried by the error or anything it wraps."""
    for err in _error_chain(error):
        for attr in ('status_code', 'code', 'status'):
            value = getattr(err, attr, None)
            if isinstance(value, int) and not isinstance(value, bool) and 100 <= value <= 599:
                return value
        response = getattr(err, 'response', None)
        value = getattr(response, 'status_code', None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    return None


def _retry_after(error: BaseException) -> Optional[float]:
    for err in _error_chain(error):
        headers = getattr(getattr(err, 'response', None), 'headers', None)
        if not headers:
            continue
        value = headers.get('retry-after')
        if value is None:
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            return None
    return None


def _is_network_failure(error: BaseException) -> bool:
    for err in _error_chain(error):
        if isinstance(err, (openai.APIConnectionError, ConnectionError, TimeoutError, asyncio.TimeoutError)):
            return True
    message = str(error)
    if any(marker in message for marker in NETWORK_ERROR_MARKERS):
        return True
    lowered = message.lower()
    return any(phrase in lowered for phrase in NETWORK_ERROR_PHRASES)


def classify_failure(error: BaseException) -> PipelineError:
    """Map a provider exception onto the pipeline's error kinds."""
    if isinstance(error, PipelineError):
        return error

    detail = str(error) or error.__class__.__name__
    status = _status_code(error)

    if status == 401:
        return PipelineError(ErrorKind.CONFIGURATION, f"AI provider returned 401: {detail}", status_code=401)
    if status == 429:
        return PipelineError(
            ErrorKind.RATE_LIMIT,
            f"AI provider returned 429: {detail}",
            status_code=429,
            retry_after=_retry_after(error),
        )
    if status is not None:
        return PipelineError(
            ErrorKind.SERVICE_UNAVAILABLE,
            f"AI provider returned {status}: {detail}",
            status_code=status,
        )
    if _is_network_failure(error):
        return PipelineError(ErrorKind.TRANSIENT_NETWORK, detail)
    # No status and no network symptom: the provider answered with something
    # this client could not read (missing field, SDK shape change)
    return PipelineError(ErrorKind.PARSING, f"Unreadable AI provider response: {detail}")


# ============================================================================
# GATEWAY
# ============================================================================

class AIGateway:
    """Retrying front door to one backend."""

    def __init__(
        self,
        backend,
        text_retry: RetryConfig = TEXT_RETRY,
        vision_retry: RetryConfig = VISION_RETRY,
        image_retry: RetryConfig = IMAGE_RETRY,
    ):
        self.backend = backend
        self.text_retry = text_retry
        self.vision_retry = vision_retry
        self.image_retry = image_retry

    @property
    def provider(self) -> ProviderType:
        return self.backend.provider

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["AIGateway"]:
        backend = create_backend(settings)
        return cls(backend) if backend is not None else None

    async def _call(self, method, *args) -> str:
        try:
            result = await method(*args)
        except PipelineError:
            raise
        except Exception as e:
            error = classify_failure(e)
            logger.debug(f"{self.provider.value} call failed ({error.kind.value}): {e}")
            raise error from e

        if not result or not result.strip():
            raise PipelineError(ErrorKind.PARSING, f"{self.provider.value} returned an empty response")
        return result

    async def complete_text(self, prompt: str, json_mode: bool = True) -> str:
        return await execute(
            lambda: self._call(self.backend.complete_text, prompt, json_mode),
            self.text_retry,
            context=f"{self.provider.value} text",
        )

    async def complete_vision(self, prompt: str, image_b64: str) -> str:
        return await execute(
            lambda: self._call(self.backend.complete_vision, prompt, image_b64),
            self.vision_retry,
            context=f"{self.provider.value} vision",
        )

    async def generate_image(self, prompt: str) -> str:
        return await execute(
            lambda: self._call(self.backend.generate_image, prompt),
            self.image_retry,
            context=f"{self.provider.value} image",
        )
