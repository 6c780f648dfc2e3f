"""Structured result types for the document analyzer public API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def empty_document() -> dict[str, Any]:
    """Document returned when analysis produced nothing usable."""
    return {"tags": [], "correspondent": None}


@dataclass(frozen=True)
class UsageMetrics:
    """Token usage reported by the model provider for one call."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int

    def to_dict(self) -> dict[str, int]:
        return {
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "totalTokens": self.total_tokens,
        }


@dataclass(frozen=True)
class AnalysisOutcome:
    """Result from analyzing one document.

    Attributes:
        document: Parsed model reply. Always has ``tags`` and
            ``correspondent``; ``title``, ``document_date`` and ``language``
            pass through when the model returned them.
        metrics: Token usage, or None when no usable response was obtained.
        error: Failure message, or None on success.
        truncated: True if the document body was cut to fit the budget.
    """

    document: dict[str, Any] = field(default_factory=empty_document)
    metrics: UsageMetrics | None = None
    error: str | None = None
    truncated: bool = False

    @classmethod
    def failure(cls, message: str) -> "AnalysisOutcome":
        return cls(document=empty_document(), metrics=None, error=message)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        """Wire representation (camelCase metrics, ``error`` only on failure)."""
        result: dict[str, Any] = {
            "document": self.document,
            "metrics": self.metrics.to_dict() if self.metrics is not None else None,
            "truncated": self.truncated,
        }
        if self.error is not None:
            result["error"] = self.error
        return result
