from __future__ import annotations

from prtriage_core.providers.base import BaseCompleter


class AnthropicCompleter(BaseCompleter):
    MODEL = "claude-sonnet-4-20250514"
    # Low temperature: reviews are parsed by a line-oriented state machine, so
    # consistent headings matter more than varied phrasing.
    TEMPERATURE = 0.2

    def __init__(self, api_key: str, model: str | None = None, timeout: float = 300.0):
        super().__init__(model=model, timeout=timeout)
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. "
                "Install it with: pip install 'prtriage[anthropic]'"
            )
        # The SDK enforces the wall-clock timeout per request; retries are ours.
        self.client = Anthropic(api_key=api_key, timeout=timeout, max_retries=0)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        # Imported inside the method because the anthropic package is optional;
        # __init__ already validated it is installed before we reach here.
        from anthropic.types import TextBlock

        kwargs = {}
        if system_prompt:
            kwargs["system"] = system_prompt
        response = self.client.messages.create(
            model=self.model,
            messages=[{"role": "user", "content": user_prompt}],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
            **kwargs,
        )
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        return "".join(text_blocks).strip()
