"""Base LLM completer implementing the Template Method pattern.

Every consumer (local review generation, documentation assessment,
documentation rewrite) treats the model as prompt-in / text-out:

    complete() → _call_with_retry() → _call_api()   ← only this differs per provider
               → _clean()

Subclasses implement two things only:
  - __init__: validate and store the SDK client (with the wall-clock timeout)
  - _call_api: make one raw call and return the text response

Retry, timeout propagation and fence stripping live here and are
inherited by every provider.
"""

from __future__ import annotations

import logging
import re
import time
from abc import ABC, abstractmethod

from prtriage_core.errors import CompletionError

logger = logging.getLogger(__name__)

# Shared defaults: subclasses may override as class attributes if needed.
_MAX_RETRIES = 3
_MAX_TOKENS = 8192
_DEFAULT_TIMEOUT = 300.0


class BaseCompleter(ABC):
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS
    MODEL: str = ""

    def __init__(self, model: str | None = None, timeout: float = _DEFAULT_TIMEOUT):
        self.model = model or self.MODEL
        self.timeout = timeout

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def complete(self, prompt: str, system: str = "") -> str:
        """Return the model's text response for ``prompt``.

        Raises CompletionError when every attempt fails or the model returns
        nothing; the original exception is chained as __cause__.
        """
        raw = self._call_with_retry(system, prompt)
        text = self._clean(raw)
        if not text:
            raise CompletionError(f"{self.__class__.__name__} returned an empty response")
        return text

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                               #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single call and return the raw text response.

        Must raise on failure (including timeout); _call_with_retry handles
        retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _call_with_retry(self, system_prompt: str, user_prompt: str) -> str:
        """Retry _call_api up to MAX_RETRIES times with exponential backoff."""
        for attempt in range(self.MAX_RETRIES):
            try:
                return self._call_api(system_prompt, user_prompt)
            except Exception as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s call failed after %d attempts: %s",
                        self.__class__.__name__,
                        self.MAX_RETRIES,
                        e,
                    )
                    raise CompletionError(
                        f"{self.__class__.__name__} failed after {self.MAX_RETRIES} attempts: {e}"
                    ) from e
                delay = 2**attempt
                logger.warning(
                    "%s error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                time.sleep(delay)
        raise CompletionError(f"{self.__class__.__name__} was configured with MAX_RETRIES=0")

    @staticmethod
    def _clean(raw: str | None) -> str:
        """Strip the outer ```markdown fence some models wrap whole documents in.

        Only a fence that opens the response and closes it is removed; fences
        inside the document are left alone.
        """
        if not raw:
            return ""
        text = raw.strip()
        if text.startswith("```") and text.endswith("```") and text.count("\n") >= 1:
            text = re.sub(r"^```[\w-]*\s*\n", "", text)
            text = re.sub(r"\n?```$", "", text)
        return text.strip()
