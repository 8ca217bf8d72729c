"""Provider configuration for the analysis oracle.

Runtime overrides (config/oracle_runtime.json) win over environment
variables (ORACLE_PROVIDER, ORACLE_BASE_URL, ORACLE_API_KEY,
ORACLE_MODEL_NAME), which win over provider defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from src.config.runtime_store import DEFAULT_STATE, load_runtime_state, save_runtime_state


load_dotenv()


DEFAULT_PROVIDER = "openai_compatible"
DEFAULT_MODEL_NAME = "qwen2.5:32b"
DEFAULTS_BY_PROVIDER = {
    "openai_compatible": {
        "base_url": "http://127.0.0.1:8000/v1",
        "api_key": "",
    },
    "ollama": {
        "base_url": "http://localhost:11434/v1",
        "api_key": "ollama",
    },
}


@dataclass(slots=True)
class LLMConfig:
    """Runtime configuration for the active oracle provider."""

    provider: str
    base_url: str
    api_key: str
    model_name: str

    def normalized_provider(self) -> str:
        """Return normalized provider key."""
        return self.provider.lower()


def _pick(runtime_value: str, default_value: str, env_name: str) -> str:
    """Runtime override if it differs from the shipped default, else env."""
    if runtime_value and runtime_value != default_value:
        return runtime_value.strip()
    return os.getenv(env_name, "").strip()


def load_llm_config() -> LLMConfig:
    """Load oracle configuration from runtime overrides and environment."""
    state = load_runtime_state()

    provider = (
        _pick(state.get("provider", ""), DEFAULT_STATE["provider"], "ORACLE_PROVIDER")
        or DEFAULT_PROVIDER
    ).lower()
    if provider not in DEFAULTS_BY_PROVIDER:
        provider = DEFAULT_PROVIDER
    provider_defaults = DEFAULTS_BY_PROVIDER[provider]

    base_url = _pick(state.get("base_url", ""), DEFAULT_STATE["base_url"], "ORACLE_BASE_URL")
    # A URL that is another provider's default is not a real override
    if any(
        other != provider and base_url == values["base_url"]
        for other, values in DEFAULTS_BY_PROVIDER.items()
    ):
        base_url = ""
    api_key = _pick(state.get("api_key", ""), DEFAULT_STATE["api_key"], "ORACLE_API_KEY")
    model_name = _pick(
        state.get("model_name", ""), DEFAULT_STATE["model_name"], "ORACLE_MODEL_NAME"
    )

    return LLMConfig(
        provider=provider,
        base_url=(base_url or provider_defaults["base_url"]).rstrip("/"),
        api_key=api_key or provider_defaults["api_key"],
        model_name=model_name or DEFAULT_MODEL_NAME,
    )


def save_llm_config(config: LLMConfig) -> None:
    """Save oracle configuration to runtime state."""
    state = load_runtime_state()
    state["provider"] = config.provider
    state["base_url"] = config.base_url
    state["api_key"] = config.api_key
    state["model_name"] = config.model_name
    save_runtime_state(state)
