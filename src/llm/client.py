"""HTTP client for the model endpoint behind the analysis oracle."""

from __future__ import annotations

import json
from typing import Dict, List, Optional

import requests

from src.config.llm_config import LLMConfig


class LLMClient:
    """Client for OpenAI-compatible chat completion endpoints."""

    def __init__(self, config: LLMConfig, timeout: float = 600.0):
        self.config = config
        self.timeout = timeout
        self.session = requests.Session()

    # ------------------------------------------------------------------#
    # Public API
    # ------------------------------------------------------------------#
    def generate_chat_completion(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: float = 0.0,
        **kwargs,
    ) -> str:
        """Send a non-streaming chat completion request and return the text.

        Raises:
            RuntimeError: On HTTP failure or an empty response
        """
        payload = self._build_payload(messages, model, temperature, **kwargs)
        response = self.session.post(
            self._build_url("chat/completions"),
            headers=self._headers(),
            json=payload,
            timeout=self.timeout,
        )
        self._raise_for_status(response)
        data = response.json()
        choices = data.get("choices") or []
        if not choices:
            raise RuntimeError("No choices returned from LLM response")
        return choices[0].get("message", {}).get("content", "")

    def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        model: Optional[str] = None,
        temperature: float = 0.0,
        **kwargs,
    ) -> str:
        """Single-turn generation with an optional system instruction."""
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return self.generate_chat_completion(messages, model, temperature, **kwargs)

    # ------------------------------------------------------------------#
    # Helpers
    # ------------------------------------------------------------------#
    def _build_payload(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str],
        temperature: float,
        **kwargs,
    ) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "model": model or self.config.model_name,
            "messages": messages,
            "temperature": temperature,
            "stream": False,
        }
        payload.update(kwargs)
        return payload

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def _build_url(self, path: str) -> str:
        base = self.config.base_url.rstrip("/")
        relative = path.lstrip("/")
        return f"{base}/{relative}"

    @staticmethod
    def _raise_for_status(response: requests.Response) -> None:
        try:
            response.raise_for_status()
        except requests.RequestException as exc:
            detail = ""
            try:
                detail = response.json().get("error", "")
            except (json.JSONDecodeError, ValueError, AttributeError):
                pass
            raise RuntimeError(f"LLM HTTP request failed: {exc} {detail}".strip()) from exc


class OllamaClient(LLMClient):
    """Ollama native chat API (/api/chat)."""

    def generate_chat_completion(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: float = 0.0,
        **kwargs,
    ) -> str:
        # Native endpoint lives beside the OpenAI-compatible /v1 prefix
        base = self.config.base_url.replace("/v1", "").rstrip("/")
        payload = {
            "model": model or self.config.model_name,
            "messages": messages,
            "stream": False,
            "options": {"temperature": temperature, "num_ctx": 16384},
        }
        if "max_tokens" in kwargs:
            payload["options"]["num_predict"] = kwargs["max_tokens"]

        response = self.session.post(f"{base}/api/chat", json=payload, timeout=self.timeout)
        self._raise_for_status(response)
        return response.json().get("message", {}).get("content", "")


def get_llm_client(config: LLMConfig, timeout: float = 600.0) -> LLMClient:
    """Factory that returns the correct client for the configured provider."""
    if config.normalized_provider() == "ollama":
        return OllamaClient(config, timeout=timeout)
    return LLMClient(config, timeout=timeout)
