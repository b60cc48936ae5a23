"""Anthropic Claude backend for criteria parsing, query writing and profile extraction."""

import logging
import os

from trial_scout.llm.base import DEFAULT_MAX_TOKENS, LLMProvider

logger = logging.getLogger(__name__)


class AnthropicProvider(LLMProvider):
    """Runs trial-scout prompts through the Anthropic Messages API.

    Reads ANTHROPIC_API_KEY on every call so a key exported after start-up
    is picked up.
    """

    @property
    def provider_id(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return "claude-3-5-haiku-20241022"

    @property
    def env_var(self) -> str:
        return "ANTHROPIC_API_KEY"

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        api_key = os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            msg = "ANTHROPIC_API_KEY environment variable is required"
            raise ValueError(msg)

        try:
            import anthropic
        except ImportError:
            msg = (
                "anthropic is required for the Anthropic provider. "
                "Install with: pip install 'trial-scout[anthropic]'"
            )
            raise ImportError(msg) from None

        client = anthropic.Anthropic(api_key=api_key)
        use_model = model or self.default_model

        logger.debug("Anthropic %s: %d-char trial-scout prompt", use_model, len(prompt))
        kwargs: dict[str, object] = {}
        if system is not None:
            kwargs["system"] = system
        message = client.messages.create(
            model=use_model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
            **kwargs,
        )

        return message.content[0].text  # type: ignore[union-attr]
