from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import requests
from google import genai
from google.genai import types
from loguru import logger

from config import Configuration


class AIProviderError(RuntimeError):
    """The text generator could not produce a usable answer."""


@dataclass
class _RetryPolicy:
    retries: int = 1
    base_delay: float = 0.5


class TextGenerator(ABC):
    name: str = "base"

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Return the generated text for ``prompt`` or raise AIProviderError."""

    def test_connection(self) -> bool:
        try:
            self.generate("Test prompt")
            return True
        except AIProviderError as exc:
            logger.warning("{} connection test failed: {}", self.name, exc)
            return False


class GeminiGenerator(TextGenerator):
    name = "gemini"

    def __init__(self, cfg: Configuration) -> None:
        self.api_key = cfg.gemini_api_key
        self.model = cfg.gemini_model
        self.timeout_ms = int(cfg.ai_timeout_sec * 1000)
        self._client: Optional[genai.Client] = None

    def _ensure_client(self) -> genai.Client:
        if not self.api_key:
            raise AIProviderError("Gemini API key is missing; set GEMINI_API_KEY")
        if self._client is None:
            self._client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(timeout=self.timeout_ms),
            )
        return self._client

    def generate(self, prompt: str) -> str:
        client = self._ensure_client()
        logger.debug("sending prompt to Gemini model={} chars={}", self.model, len(prompt))
        try:
            response = client.models.generate_content(model=self.model, contents=prompt)
        except Exception as exc:
            raise AIProviderError(f"Gemini API error: {exc}") from exc

        reply = (getattr(response, "text", None) or "").strip()
        if not reply:
            raise AIProviderError("Gemini returned an empty response")
        logger.debug("Gemini reply (first 100 chars): {}", reply[:100])
        return reply


class MistralGenerator(TextGenerator):
    name = "mistral"
    _clock = staticmethod(time.monotonic)

    def __init__(self, cfg: Configuration, session: Optional[requests.Session] = None) -> None:
        self.api_key = cfg.mistral_api_key
        self.url = f"{cfg.mistral_base_url.rstrip('/')}/chat/completions"
        self.model = cfg.mistral_model
        self.temperature = cfg.mistral_temperature
        self.max_tokens = cfg.mistral_max_tokens
        self.timeout = cfg.ai_timeout_sec
        self.session = session or requests.Session()

    def _may_retry(self, policy: _RetryPolicy, attempt: int, deadline: float) -> bool:
        return attempt <= policy.retries and self._clock() + policy.base_delay * attempt < deadline

    def _post(self, payload: dict) -> dict:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        policy = _RetryPolicy()
        # every attempt and back-off shares one ai_timeout_sec budget
        deadline = self._clock() + self.timeout
        attempt = 0
        while True:
            attempt += 1
            remaining = deadline - self._clock()
            if remaining <= 0:
                raise AIProviderError(f"Mistral request budget of {self.timeout}s exhausted")
            try:
                resp = self.session.post(self.url, json=payload, headers=headers, timeout=remaining)
            except requests.RequestException as exc:  # network error
                if self._may_retry(policy, attempt, deadline):
                    time.sleep(policy.base_delay * attempt)
                    continue
                raise AIProviderError(f"Mistral request error: {exc}") from exc

            if resp.status_code in (429, 500, 502, 503, 504) and self._may_retry(policy, attempt, deadline):
                time.sleep(policy.base_delay * attempt)
                continue

            if not resp.ok:
                snippet = resp.text[:300]
                raise AIProviderError(f"Mistral upstream {resp.status_code}: {snippet}")

            try:
                return resp.json()
            except ValueError as exc:
                raise AIProviderError("Mistral returned invalid json") from exc

    def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise AIProviderError("Mistral API key is missing; set MISTRAL_API_KEY")
        logger.debug("sending prompt to Mistral model={} chars={}", self.model, len(prompt))
        data = self._post(
            {
                "model": self.model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": self.temperature,
                "max_tokens": self.max_tokens,
            }
        )
        choices = data.get("choices") or []
        message = (choices[0].get("message") or {}) if choices else {}
        reply = (message.get("content") or "").strip()
        if not reply:
            raise AIProviderError("Mistral returned an empty response")
        logger.debug("Mistral reply (first 100 chars): {}", reply[:100])
        return reply


def build_generator(cfg: Configuration) -> TextGenerator:
    provider = (cfg.ai_provider or "").lower()
    if provider == "gemini":
        generator: TextGenerator = GeminiGenerator(cfg)
    elif provider == "mistral":
        generator = MistralGenerator(cfg)
    else:
        raise ValueError(f"Invalid AI provider: {cfg.ai_provider}. Choose 'gemini' or 'mistral'.")
    logger.info("using AI provider: {}", generator.name)
    return generator
