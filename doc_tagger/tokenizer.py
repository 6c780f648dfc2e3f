"""Token counting for prompt budgets.

Counts must match the tokenization of the target model family. A mismatch
does not fail anything here, it only makes the budget less accurate.
"""

from __future__ import annotations

import logging
from typing import Protocol

import tiktoken

logger = logging.getLogger(__name__)

# Encoding used when tiktoken does not know the model name
# (custom endpoints serve arbitrary model names).
DEFAULT_ENCODING = "o200k_base"


class TokenCounter(Protocol):
    """Anything that can count tokens in a string."""

    def count(self, text: str) -> int: ...


class Tokenizer:
    """Exact token counter backed by a tiktoken encoding.

    Usage:
        tokenizer = Tokenizer.for_model("gpt-4o-mini")
        tokenizer.count("Invoice 2024-001")

    tiktoken encodings are immutable after loading, so one instance can be
    shared by concurrent analysis calls.
    """

    def __init__(self, encoding: tiktoken.Encoding):
        self._encoding = encoding

    @property
    def name(self) -> str:
        return self._encoding.name

    @classmethod
    def for_model(cls, model: str, fallback_encoding: str = DEFAULT_ENCODING) -> "Tokenizer":
        """Resolve the encoding for a model name.

        Unknown model names fall back to ``fallback_encoding``.
        """
        try:
            encoding = tiktoken.encoding_for_model(model)
        except KeyError:
            logger.debug(
                "No tiktoken encoding registered for %r, using %s",
                model, fallback_encoding,
            )
            encoding = tiktoken.get_encoding(fallback_encoding)
        return cls(encoding)

    def count(self, text: str) -> int:
        """Return the number of tokens ``text`` encodes to."""
        if not text:
            return 0
        # Documents are untrusted: text that looks like a special token is
        # counted as plain text instead of raising.
        return len(self._encoding.encode(text, disallowed_special=()))
