"""Token budget computation and content truncation for analysis prompts.

The fixed prompt fragments are counted first; whatever the context window
has left after reserving room for the response goes to the document body.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from .errors import BudgetInfeasible
from .tokenizer import TokenCounter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenBudget:
    """Token accounting for a single model call.

    ``available_tokens`` is not clamped: a negative value means the fixed
    prompt plus the reserved response already exceed the context window.
    """

    max_tokens: int
    reserved_tokens: int  # sum of all fixed prompt fragments
    response_tokens: int  # room kept free for the model's reply
    available_tokens: int  # left over for document content

    @property
    def is_feasible(self) -> bool:
        return self.available_tokens > 0

    def require_feasible(self) -> "TokenBudget":
        """Return self, or raise BudgetInfeasible if no tokens are left."""
        if not self.is_feasible:
            raise BudgetInfeasible(
                f"Prompt needs {self.reserved_tokens} tokens plus "
                f"{self.response_tokens} reserved for the response, "
                f"but the context window is {self.max_tokens}",
                budget=self,
            )
        return self


@dataclass(frozen=True)
class TruncationResult:
    """Document content after fitting it into the budget."""

    content: str
    was_truncated: bool


def compute_budget(
    fragments: Iterable[str],
    max_tokens: int,
    response_tokens: int,
    tokenizer: TokenCounter,
) -> TokenBudget:
    """Compute how many tokens are left for content.

    Every fragment is counted separately and summed, repeats included, so
    the list passed here must be exactly the list sent to the model.

    Args:
        fragments: Fixed prompt pieces (instructions, tag list, ...).
        max_tokens: Model context window size.
        response_tokens: Tokens reserved for the model's output.
        tokenizer: Token counter matching the target model.

    Returns:
        TokenBudget with ``available_tokens`` possibly negative.
    """
    if response_tokens < 0:
        raise ValueError(f"response_tokens must be >= 0, got {response_tokens}")

    reserved = sum(tokenizer.count(fragment) for fragment in fragments)
    available = max_tokens - reserved - response_tokens

    logger.debug(
        "Token budget: max=%d reserved=%d response=%d available=%d",
        max_tokens, reserved, response_tokens, available,
    )
    return TokenBudget(
        max_tokens=max_tokens,
        reserved_tokens=reserved,
        response_tokens=response_tokens,
        available_tokens=available,
    )


def truncate_to_budget(
    content: str,
    available_tokens: int,
    tokenizer: TokenCounter,
) -> TruncationResult:
    """Return the longest prefix of content that fits in available_tokens.

    Token boundaries do not line up with characters, so the cut point is
    found by binary search over prefix length, using the tokenizer as the
    oracle. Token count never decreases as a prefix grows, which makes the
    search converge on the maximal feasible prefix.

    Args:
        content: Raw document text.
        available_tokens: Budget from compute_budget (may be <= 0).
        tokenizer: Token counter matching the target model.

    Returns:
        TruncationResult. ``was_truncated`` compares string lengths.
    """
    if not content:
        return TruncationResult(content="", was_truncated=False)

    if available_tokens <= 0:
        return TruncationResult(content="", was_truncated=True)

    if tokenizer.count(content) <= available_tokens:
        return TruncationResult(content=content, was_truncated=False)

    # Invariant: content[:low] fits, content[:high] does not.
    low, high = 0, len(content)
    while high - low > 1:
        mid = (low + high) // 2
        if tokenizer.count(content[:mid]) <= available_tokens:
            low = mid
        else:
            high = mid

    truncated = content[:low]
    logger.debug("Truncated content from %d to %d chars", len(content), len(truncated))
    return TruncationResult(
        content=truncated,
        was_truncated=len(truncated) < len(content),
    )
