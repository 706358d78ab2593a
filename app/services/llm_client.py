# --------------------------------------------------
# LLM Client - Generation backends for quiz questions
#
# Features:
# - One contract for every vendor: complete(prompt) -> text
# - OpenAI and Groq (chat completions envelope) and Gemini (generateContent)
# - Explicit request deadline, expiry reported as GenerationUnavailable
# - Strips markdown code fences the model wraps around its answer
# - No retries: a failed call is the terminal error for the request
# --------------------------------------------------

import re
import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple

import requests

from app.core.config import (
    LLM_PROVIDER, LLM_TIMEOUT_SECONDS, LLM_TEMPERATURE,
    OPENAI_API_KEY, OPENAI_MODEL, OPENAI_BASE_URL,
    GROQ_API_KEY, GROQ_MODEL,
    GEMINI_API_KEY, GEMINI_MODEL,
)
from app.core.errors import ErrorKind, QuizServiceError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a quiz generator. Return only valid JSON."

_FENCE_OPEN = re.compile(r"^```[\w-]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?[ \t]*```$")


def strip_code_fences(text: str) -> str:
    text = text.strip()
    text = _FENCE_OPEN.sub("", text, count=1)
    text = _FENCE_CLOSE.sub("", text, count=1)
    return text.strip()


class GenerationClient(ABC):
    """Base class for text generation backends.

    Subclasses describe their wire format through build_request() and
    extract_text(); transport, status handling and cleanup live here so
    every vendor fails the same way.
    """

    provider = "base"

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        base_url: str,
        timeout: float = LLM_TIMEOUT_SECONDS,
        temperature: float = LLM_TEMPERATURE,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.temperature = temperature
        self.session = session or requests.Session()

    @abstractmethod
    def build_request(self, prompt: str) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        """Return (url, headers, json body) for one completion call."""

    @abstractmethod
    def extract_text(self, data: Dict[str, Any]) -> str:
        """Pull the completion text out of the decoded response envelope."""

    def _unavailable(self, message: str, **context: Any) -> QuizServiceError:
        return QuizServiceError(ErrorKind.generation_unavailable, message, provider=self.provider, **context)

    def _empty(self, message: str) -> QuizServiceError:
        return QuizServiceError(ErrorKind.generation_empty, message, provider=self.provider)

    def complete(self, prompt: str) -> str:
        if not self.api_key:
            raise self._unavailable(f"{self.provider} API key is not configured")

        url, headers, payload = self.build_request(prompt)
        logger.info(f"Calling {self.provider} model {self.model}")

        try:
            response = self.session.post(url, headers=headers, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise self._unavailable("Request timeout - generation API took too long to respond")
        except requests.exceptions.ConnectionError:
            raise self._unavailable("Connection error - unable to reach generation API")
        except requests.exceptions.RequestException as e:
            raise self._unavailable(f"Generation request failed: {type(e).__name__}")

        if response.status_code == 401:
            raise self._unavailable("Generation API rejected the API key", status_code=401)
        elif response.status_code == 429:
            retry_after = response.headers.get("Retry-After", "60")
            raise self._unavailable(f"Generation API rate limit exceeded. Retry after {retry_after} seconds", status_code=429)
        elif not 200 <= response.status_code < 300:
            logger.error(f"{self.provider} API {response.status_code}: {response.text[:200]}")
            raise self._unavailable(
                f"Generation API request failed with status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            raise self._empty("Invalid JSON envelope from generation API")

        try:
            content = self.extract_text(data)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            logger.error(f"{self.provider} response missing completion field: {e!r}")
            raise self._empty("Generation API response did not contain a completion")

        if not isinstance(content, str) or not content.strip():
            raise self._empty("Generation API returned an empty completion")

        cleaned = strip_code_fences(content)
        if not cleaned:
            raise self._empty("Generation API returned an empty completion")

        logger.debug(f"Raw {self.provider} output: {cleaned[:200]}")
        return cleaned


class OpenAIGenerationClient(GenerationClient):
    provider = "openai"

    def __init__(self, api_key: Optional[str] = OPENAI_API_KEY, model: str = OPENAI_MODEL,
                 base_url: str = OPENAI_BASE_URL, **kwargs: Any):
        super().__init__(api_key, model, base_url, **kwargs)

    def build_request(self, prompt):
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        data = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.temperature,
            "stream": False,
        }
        return f"{self.base_url}/chat/completions", headers, data

    def extract_text(self, data):
        return data["choices"][0]["message"]["content"]


class GroqGenerationClient(OpenAIGenerationClient):
    """Groq speaks the OpenAI chat completions dialect."""

    provider = "groq"

    def __init__(self, api_key: Optional[str] = GROQ_API_KEY, model: str = GROQ_MODEL,
                 base_url: str = "https://api.groq.com/openai/v1", **kwargs: Any):
        super().__init__(api_key=api_key, model=model, base_url=base_url, **kwargs)


class GeminiGenerationClient(GenerationClient):
    provider = "gemini"

    def __init__(self, api_key: Optional[str] = GEMINI_API_KEY, model: str = GEMINI_MODEL,
                 base_url: str = "https://generativelanguage.googleapis.com/v1beta", **kwargs: Any):
        super().__init__(api_key, model, base_url, **kwargs)

    def build_request(self, prompt):
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        data = {
            "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": self.temperature},
        }
        return f"{self.base_url}/models/{self.model}:generateContent", headers, data

    def extract_text(self, data):
        parts = data["candidates"][0]["content"]["parts"]
        return "".join(part.get("text", "") for part in parts)


GENERATION_CLIENTS = {
    "openai": OpenAIGenerationClient,
    "groq": GroqGenerationClient,
    "gemini": GeminiGenerationClient,
}


def build_generation_client(provider: str = LLM_PROVIDER, **kwargs: Any) -> GenerationClient:
    try:
        client_cls = GENERATION_CLIENTS[provider]
    except KeyError:
        raise ValueError(f"Unsupported LLM provider: {provider}")
    return client_cls(**kwargs)


@lru_cache
def get_generation_client() -> GenerationClient:
    return build_generation_client()
