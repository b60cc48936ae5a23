"""Abstract base class for LLM providers and shared response parsing."""

import json
import re
from abc import ABC, abstractmethod
from typing import Any

DEFAULT_MAX_TOKENS = 2048


def parse_json_response(raw_text: str) -> Any:
    """Parse an LLM response text as JSON.

    Handles markdown-wrapped JSON (```json ... ```), plain JSON, and a JSON
    object preceded or followed by stray prose.
    """
    cleaned = re.sub(r"^```(?:json)?\s*\n?", "", raw_text.strip())
    cleaned = re.sub(r"\n?```\s*$", "", cleaned)

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if 0 <= start < end:
            try:
                return json.loads(cleaned[start:end + 1])
            except json.JSONDecodeError:
                pass
        msg = f"Failed to parse LLM response as JSON: {e}"
        raise ValueError(msg) from e


class LLMProvider(ABC):
    """Base class that every LLM provider must implement."""

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique identifier for this provider (e.g. 'anthropic')."""

    @abstractmethod
    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        """Send a prompt to the LLM and return raw response text.

        Args:
            prompt: User message content.
            model: Override the provider's default model. None uses default.
            system: Optional system prompt.
            max_tokens: Upper bound on response length.

        Returns:
            Raw text response from the LLM (expected to be JSON).
        """

    @property
    @abstractmethod
    def default_model(self) -> str:
        """The default model ID used when no override is specified."""

    @property
    @abstractmethod
    def env_var(self) -> str | None:
        """Environment variable name for the API key, or None if not needed."""
