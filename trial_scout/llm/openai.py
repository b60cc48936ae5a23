"""OpenAI chat-completions backend for trial-scout prompts."""

import logging
import os

from trial_scout.llm.base import DEFAULT_MAX_TOKENS, LLMProvider

logger = logging.getLogger(__name__)


def chat_messages(prompt: str, system: str | None) -> list[dict[str, str]]:
    """Build the system and user messages shared by the OpenAI and Ollama backends."""
    messages = []
    if system is not None:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})
    return messages


class OpenAIProvider(LLMProvider):
    """Runs trial-scout prompts through OpenAI chat completions."""

    @property
    def provider_id(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return "gpt-4o-mini"

    @property
    def env_var(self) -> str:
        return "OPENAI_API_KEY"

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        api_key = os.environ.get("OPENAI_API_KEY")
        if not api_key:
            msg = "OPENAI_API_KEY environment variable is required"
            raise ValueError(msg)

        try:
            import openai
        except ImportError:
            msg = (
                "openai is required for the OpenAI provider. "
                "Install with: pip install 'trial-scout[openai]'"
            )
            raise ImportError(msg) from None

        client = openai.OpenAI(api_key=api_key)
        use_model = model or self.default_model

        logger.debug("OpenAI %s: %d-char trial-scout prompt", use_model, len(prompt))
        response = client.chat.completions.create(
            model=use_model,
            max_tokens=max_tokens,
            messages=chat_messages(prompt, system),  # type: ignore[arg-type]
        )

        return response.choices[0].message.content  # type: ignore[no-any-return]
