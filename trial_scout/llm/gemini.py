"""Google Gemini backend for trial-scout prompts (google-genai SDK)."""

import logging
import os

from trial_scout.llm.base import DEFAULT_MAX_TOKENS, LLMProvider

logger = logging.getLogger(__name__)


class GeminiProvider(LLMProvider):
    """Runs trial-scout prompts through Gemini generate_content.

    The system prompt travels as `system_instruction`.
    """

    @property
    def provider_id(self) -> str:
        return "gemini"

    @property
    def default_model(self) -> str:
        return "gemini-2.5-flash"

    @property
    def env_var(self) -> str:
        return "GOOGLE_API_KEY"

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        api_key = os.environ.get("GOOGLE_API_KEY")
        if not api_key:
            msg = "GOOGLE_API_KEY environment variable is required"
            raise ValueError(msg)

        try:
            from google import genai
            from google.genai import types as genai_types
        except ImportError:
            msg = (
                "google-genai is required for the Gemini provider. "
                "Install with: pip install 'trial-scout[gemini]'"
            )
            raise ImportError(msg) from None

        use_model = model or self.default_model

        logger.debug("Gemini %s: %d-char trial-scout prompt", use_model, len(prompt))
        client = genai.Client(api_key=api_key)
        response = client.models.generate_content(
            model=use_model,
            contents=prompt,
            config=genai_types.GenerateContentConfig(
                system_instruction=system,
                max_output_tokens=max_tokens,
            ),
        )

        return response.text  # type: ignore[no-any-return]
