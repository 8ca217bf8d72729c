"""LLM client abstractions."""

from .client import (
    LLMClient,
    OllamaClient,
    get_llm_client,
)

__all__ = [
    "LLMClient",
    "OllamaClient",
    "get_llm_client",
]
