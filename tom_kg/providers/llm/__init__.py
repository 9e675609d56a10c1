"""LLM provider implementations."""

from tom_kg.providers.llm.openai import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
