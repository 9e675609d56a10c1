"""
OpenAI LLM Provider (LangChain-based)

Implements LLMProvider interface using LangChain's ChatOpenAI.

Supports:
    - Structured output with Pydantic schemas (generate_structured)
    - Switching models per extraction tier (with_model)

Example:
    >>> from pydantic import BaseModel
    >>> class Answer(BaseModel):
    ...     value: int
    >>> provider = OpenAILLMProvider(model="gpt-4o")
    >>> result = await provider.generate_structured("What is 2+2?", Answer)
    >>> print(result.value)
    4
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, TypeVar

from tom_kg.providers.base import LLMProvider

if TYPE_CHECKING:
    from langchain_openai import ChatOpenAI
    from pydantic import BaseModel

T = TypeVar("T", bound="BaseModel")

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"


def _get_chat_openai(
    api_key: str | None = None,
    model: str = DEFAULT_MODEL,
    temperature: float = 0.0,
) -> "ChatOpenAI":
    """
    Get a ChatOpenAI instance.

    Uses lazy import to avoid requiring langchain-openai unless actually used.

    Args:
        api_key: Optional API key. If not provided, uses OPENAI_API_KEY env var.
        model: Model name to use.
        temperature: Sampling temperature.

    Returns:
        ChatOpenAI instance

    Raises:
        ImportError: If langchain-openai package is not installed
    """
    try:
        from langchain_openai import ChatOpenAI
    except ImportError:
        raise ImportError(
            "OpenAI provider requires the 'langchain-openai' package. "
            "Install with: pip install langchain-openai"
        )

    kwargs: dict[str, Any] = {"model": model, "temperature": temperature}
    if api_key:
        kwargs["api_key"] = api_key

    return ChatOpenAI(**kwargs)


class OpenAILLMProvider(LLMProvider):
    """
    OpenAI LLM provider implementation using LangChain.

    Args:
        api_key: OpenAI API key. If None, uses OPENAI_API_KEY environment variable.
        model: Model to use (default: "gpt-4o")
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
    ) -> None:
        self._api_key = api_key
        self._model = model
        # Lazy initialization - create client on first use
        self._client: ChatOpenAI | None = None

    def _get_client(self) -> "ChatOpenAI":
        """Get or create the ChatOpenAI client."""
        if self._client is None:
            self._client = _get_chat_openai(
                api_key=self._api_key,
                model=self._model,
                temperature=0.0,  # Deterministic for structured output
            )
        return self._client

    @property
    def model_name(self) -> str:
        """Current model name."""
        return self._model

    async def generate_structured(
        self,
        prompt: str,
        schema: type[T],
        *,
        system: str | None = None,
    ) -> T:
        """
        Generate a structured response matching a Pydantic schema.

        Uses LangChain's with_structured_output so the response is parsed
        and validated against the schema.

        Args:
            prompt: User prompt
            schema: Pydantic model class defining expected structure
            system: Optional system message

        Returns:
            Instance of schema class populated with generated values
        """
        from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

        start = time.perf_counter_ns()

        messages: list[BaseMessage] = []
        if system:
            messages.append(SystemMessage(content=system))
        messages.append(HumanMessage(content=prompt))

        structured_client = self._get_client().with_structured_output(schema)
        result = await structured_client.ainvoke(messages)

        elapsed_ms = (time.perf_counter_ns() - start) // 1_000_000
        logger.debug(
            f"generate_structured model={self._model} "
            f"schema={getattr(schema, '__name__', schema)} took {elapsed_ms}ms"
        )
        return result  # type: ignore[return-value]

    def with_model(self, model: str) -> "OpenAILLMProvider":
        """
        Return a new provider instance with a different model.

        Used to switch between extraction tiers (top / fast / cheap).

        Args:
            model: New model name to use

        Returns:
            New OpenAILLMProvider with the specified model
        """
        return OpenAILLMProvider(api_key=self._api_key, model=model)
