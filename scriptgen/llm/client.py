from __future__ import annotations

import http.client
import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from typing import Any
from urllib import error, request

from scriptgen.config.schema import AISettings
from scriptgen.core.exceptions import ConfigurationError, GenerationCancelled, ProviderError
from scriptgen.core.metadata import Completion
from scriptgen.llm.prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class TextGenerationClient(ABC):
    """Provider-neutral interface for code generation."""

    provider_name = "unknown"
    default_base_url = ""
    default_model = ""

    def __init__(self, settings: AISettings, api_key: str | None = None) -> None:
        self.settings = settings
        self.api_key = api_key or settings.api_key
        self.base_url = settings.base_url or self.default_base_url
        self.model = settings.model or self.default_model

    def generate(self, prompt: str, cancel_event: threading.Event | None = None) -> Completion:
        _raise_if_cancelled(cancel_event)
        completion = self._complete(prompt)
        _raise_if_cancelled(cancel_event)
        logger.info(
            "%s response: %d characters, %d tokens, finish=%s",
            self.provider_name,
            len(completion.content),
            completion.total_tokens_used,
            completion.finish_reason,
        )
        return completion

    def health_check(self) -> bool:
        try:
            self._probe()
        except ProviderError as exc:
            logger.warning("%s health check failed: %s", self.provider_name, exc)
            return False
        return True

    @abstractmethod
    def _complete(self, prompt: str) -> Completion:
        raise NotImplementedError

    @abstractmethod
    def _probe(self) -> None:
        raise NotImplementedError


class OpenAITextGenerationClient(TextGenerationClient):
    provider_name = "openai"
    default_base_url = "https://api.openai.com/v1"
    default_model = "gpt-4o-mini"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _complete(self, prompt: str) -> Completion:
        body = {
            "model": self.model,
            "temperature": self.settings.temperature,
            "max_tokens": self.settings.max_tokens,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        response = _post_json(
            f"{self.base_url}/chat/completions",
            body,
            headers=self._headers(),
            timeout=self.settings.timeout_seconds,
        )
        try:
            choice = response["choices"][0]
            content = choice["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(f"{self.provider_name} returned an unexpected payload") from exc
        usage = response.get("usage") or {}
        return Completion(
            content=content,
            total_tokens_used=_token_count(usage, "total_tokens"),
            finish_reason=choice.get("finish_reason") or "stop",
        )

    def _probe(self) -> None:
        _get_json(
            f"{self.base_url}/models",
            headers=self._headers(),
            timeout=self.settings.health_check_timeout_seconds,
        )


class GroqTextGenerationClient(OpenAITextGenerationClient):
    provider_name = "groq"
    default_base_url = "https://api.groq.com/openai/v1"
    default_model = "llama-3.3-70b-versatile"


class OllamaTextGenerationClient(TextGenerationClient):
    provider_name = "ollama"
    default_base_url = "http://localhost:11434"
    default_model = "llama3"

    def _complete(self, prompt: str) -> Completion:
        body = {
            "model": self.model,
            "system": SYSTEM_PROMPT,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self.settings.temperature,
                "num_predict": self.settings.max_tokens,
            },
        }
        response = _post_json(
            f"{self.base_url}/api/generate",
            body,
            headers={"Content-Type": "application/json"},
            timeout=self.settings.timeout_seconds,
        )
        if "response" not in response:
            raise ProviderError("ollama returned no response text")
        tokens = _token_count(response, "prompt_eval_count", "eval_count")
        return Completion(
            content=response["response"] or "",
            total_tokens_used=tokens,
            finish_reason=response.get("done_reason") or "stop",
        )

    def _probe(self) -> None:
        _get_json(
            f"{self.base_url}/api/tags",
            headers={},
            timeout=self.settings.health_check_timeout_seconds,
        )


class AnthropicTextGenerationClient(TextGenerationClient):
    provider_name = "anthropic"
    default_base_url = "https://api.anthropic.com/v1"
    default_model = "claude-3-5-sonnet-latest"

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.api_key or "",
            "anthropic-version": "2023-06-01",
            "Content-Type": "application/json",
        }

    def _complete(self, prompt: str) -> Completion:
        body = {
            "model": self.model,
            "max_tokens": self.settings.max_tokens,
            "temperature": self.settings.temperature,
            "system": SYSTEM_PROMPT,
            "messages": [
                {"role": "user", "content": prompt},
            ],
        }
        response = _post_json(
            f"{self.base_url}/messages",
            body,
            headers=self._headers(),
            timeout=self.settings.timeout_seconds,
        )
        blocks = response.get("content") or []
        text_parts = [block.get("text", "") for block in blocks if isinstance(block, dict) and block.get("type", "text") == "text"]
        if not text_parts:
            raise ProviderError("anthropic returned no text content")
        usage = response.get("usage") or {}
        return Completion(
            content="".join(text_parts),
            total_tokens_used=_token_count(usage, "input_tokens", "output_tokens"),
            finish_reason=response.get("stop_reason") or "stop",
        )

    def _probe(self) -> None:
        _get_json(
            f"{self.base_url}/models",
            headers=self._headers(),
            timeout=self.settings.health_check_timeout_seconds,
        )


class GeminiTextGenerationClient(TextGenerationClient):
    provider_name = "gemini"
    default_base_url = "https://generativelanguage.googleapis.com/v1beta"
    default_model = "gemini-2.5-flash"

    def _headers(self) -> dict[str, str]:
        return {
            "x-goog-api-key": self.api_key or "",
            "x-goog-api-client": "scriptgen/0.1.0",
            "Content-Type": "application/json",
        }

    def _complete(self, prompt: str) -> Completion:
        body = {
            "system_instruction": {
                "parts": [
                    {"text": SYSTEM_PROMPT},
                ]
            },
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": prompt},
                    ],
                }
            ],
            "generationConfig": {
                "temperature": self.settings.temperature,
                "maxOutputTokens": self.settings.max_tokens,
            },
        }
        response = _post_json(
            f"{self.base_url}/models/{self.model}:generateContent",
            body,
            headers=self._headers(),
            timeout=self.settings.timeout_seconds,
        )
        candidates = response.get("candidates", [])
        if not candidates:
            raise ProviderError("gemini returned no candidates")
        parts = candidates[0].get("content", {}).get("parts", [])
        text_parts = [part.get("text", "") for part in parts if isinstance(part, dict)]
        content = "".join(text_parts).strip()
        if not content:
            raise ProviderError("gemini returned an empty response")
        usage = response.get("usageMetadata") or {}
        return Completion(
            content=content,
            total_tokens_used=_token_count(usage, "totalTokenCount"),
            finish_reason=str(candidates[0].get("finishReason", "STOP")).lower(),
        )

    def _probe(self) -> None:
        _get_json(
            f"{self.base_url}/models/{self.model}",
            headers=self._headers(),
            timeout=self.settings.health_check_timeout_seconds,
        )


PROVIDERS: dict[str, type[TextGenerationClient]] = {
    "openai": OpenAITextGenerationClient,
    "groq": GroqTextGenerationClient,
    "ollama": OllamaTextGenerationClient,
    "anthropic": AnthropicTextGenerationClient,
    "gemini": GeminiTextGenerationClient,
}

API_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "groq": "GROQ_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


def create_text_generation_client(settings: AISettings) -> TextGenerationClient:
    provider = settings.provider.lower()
    client_class = PROVIDERS.get(provider)
    if client_class is None:
        raise ConfigurationError(f"Unsupported LLM provider: {provider}")
    env_name = API_KEY_ENV.get(provider)
    if env_name is None:
        return client_class(settings)
    api_key = settings.api_key or os.getenv(env_name)
    if not api_key:
        raise ConfigurationError(f"{env_name} is required when provider={provider}")
    return client_class(settings, api_key=api_key)


def _raise_if_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise GenerationCancelled("Generation cancelled by user")


def _post_json(url: str, payload: dict[str, Any], headers: dict[str, str], timeout: float) -> dict[str, Any]:
    encoded = json.dumps(payload).encode("utf-8")
    req = request.Request(url, data=encoded, headers=headers, method="POST")
    return _send(req, timeout)


def _get_json(url: str, headers: dict[str, str], timeout: float) -> dict[str, Any]:
    req = request.Request(url, headers=headers, method="GET")
    return _send(req, timeout)


def _send(req: request.Request, timeout: float) -> dict[str, Any]:
    try:
        with request.urlopen(req, timeout=timeout) as response:
            raw = response.read().decode("utf-8")
    except error.HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="replace")
        raise ProviderError(f"LLM request failed with status {exc.code}: {detail}") from exc
    except error.URLError as exc:
        raise ProviderError(f"LLM request could not be completed: {exc.reason}") from exc
    except TimeoutError as exc:
        raise ProviderError(f"LLM request timed out after {timeout}s") from exc
    except (OSError, http.client.HTTPException) as exc:
        raise ProviderError(f"LLM connection failed: {exc!r}") from exc
    except UnicodeDecodeError as exc:
        raise ProviderError("LLM response was not valid UTF-8") from exc
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ProviderError("LLM response was not valid JSON") from exc
    if not isinstance(payload, dict):
        raise ProviderError(f"LLM response was a JSON {type(payload).__name__}, expected an object")
    return payload


def _token_count(usage: dict[str, Any], *keys: str) -> int:
    if not isinstance(usage, dict):
        return 0
    total = 0
    for key in keys:
        try:
            total += int(usage.get(key) or 0)
        except (TypeError, ValueError):
            logger.debug("Ignoring non-numeric token count %s=%r", key, usage.get(key))
    return total
