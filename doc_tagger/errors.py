"""Custom exceptions and shared constants for the document analyzer."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .token_budget import TokenBudget

# Timeout for model API calls (seconds)
DEFAULT_REQUEST_TIMEOUT = 120.0


class AnalysisError(Exception):
    """Base exception for document analysis errors."""
    pass


class ClientUnavailable(AnalysisError):
    """Raised when the model client is not configured."""
    pass


class ParseError(AnalysisError):
    """Raised when a model reply is not decodable or has the wrong shape."""
    pass


class BudgetInfeasible(AnalysisError):
    """Raised when the fixed prompt leaves no room for content.

    Carries the budget that failed so callers can report the numbers.
    """

    def __init__(self, message: str = "", *, budget: TokenBudget | None = None) -> None:
        super().__init__(message)
        self.budget = budget


class ConfigError(AnalysisError):
    """Configuration parse or validation failure.

    Carries a list of validation errors so callers see all problems at once.
    """

    def __init__(self, message: str = "", *, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors: list[str] = errors if errors is not None else []


class StateError(AnalysisError):
    """Cache file write failure."""
    pass
