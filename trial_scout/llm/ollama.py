"""Local Ollama backend, so criteria parsing and extraction can run offline."""

import logging
import os

from trial_scout.llm.base import DEFAULT_MAX_TOKENS, LLMProvider
from trial_scout.llm.openai import chat_messages

logger = logging.getLogger(__name__)

_OLLAMA_BASE_URL = "http://localhost:11434/v1"


class OllamaProvider(LLMProvider):
    """Runs trial-scout prompts against Ollama's OpenAI-compatible endpoint.

    OLLAMA_BASE_URL overrides the default localhost address. No API key is needed.
    """

    @property
    def provider_id(self) -> str:
        return "ollama"

    @property
    def default_model(self) -> str:
        return "llama3"

    @property
    def env_var(self) -> None:
        return None

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        try:
            import openai
        except ImportError:
            msg = (
                "openai is required for Ollama (OpenAI-compatible API). "
                "Install with: pip install 'trial-scout[openai]'"
            )
            raise ImportError(msg) from None

        base_url = os.environ.get("OLLAMA_BASE_URL", _OLLAMA_BASE_URL)
        client = openai.OpenAI(base_url=base_url, api_key="ollama")
        use_model = model or self.default_model

        logger.debug(
            "Ollama %s at %s: %d-char trial-scout prompt", use_model, base_url, len(prompt),
        )
        response = client.chat.completions.create(
            model=use_model,
            max_tokens=max_tokens,
            messages=chat_messages(prompt, system),  # type: ignore[arg-type]
        )

        return response.choices[0].message.content  # type: ignore[no-any-return]
