"""Document tagger: classify documents with an LLM inside a token budget."""

__version__ = "0.1.0"

import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .analyzer import DocumentAnalyzer
from .config import AnalyzerConfig, load_config
from .errors import AnalysisError, BudgetInfeasible, ClientUnavailable, ConfigError, ParseError
from .prompts import PromptContext, PromptMode
from .results import AnalysisOutcome, UsageMetrics
from .token_budget import TokenBudget, TruncationResult, compute_budget, truncate_to_budget

logger = logging.getLogger(__name__)

__all__ = [
    "AnalysisError",
    "AnalysisOutcome",
    "AnalyzerConfig",
    "BudgetInfeasible",
    "ClientUnavailable",
    "ConfigError",
    "DocumentAnalyzer",
    "ParseError",
    "PromptContext",
    "PromptMode",
    "TokenBudget",
    "TruncationResult",
    "UsageMetrics",
    "analyze_document",
    "analyze_document_async",
    "compute_budget",
    "load_config",
    "truncate_to_budget",
]


def analyze_document(
    content: str,
    existing_tags: Iterable[str | Mapping[str, Any]] = (),
    existing_correspondents: Iterable[str | Mapping[str, Any]] = (),
    config: AnalyzerConfig | None = None,
) -> AnalysisOutcome:
    """Analyze a document and return a structured outcome.

    Args:
        content: Document text.
        existing_tags: Known tags (names or {"name": ...} objects), used
            when the config enables existing-data mode.
        existing_correspondents: Known correspondents.
        config: Analyzer config. Defaults to ``AnalyzerConfig.from_env()``.

    Returns:
        AnalysisOutcome. Analysis failures are reported in ``error``.

    An invalid environment (when no config is given) is reported as a
    failure outcome too.

    Raises:
        AnalysisError: If called from a running event loop.
    """
    try:
        return asyncio.run(analyze_document_async(
            content,
            existing_tags=existing_tags,
            existing_correspondents=existing_correspondents,
            config=config,
        ))
    except RuntimeError as e:
        if "cannot be called from a running event loop" in str(e):
            raise AnalysisError(
                "analyze_document() cannot be called from async context. "
                "Use 'await analyze_document_async()' instead."
            ) from e
        raise


async def analyze_document_async(
    content: str,
    existing_tags: Iterable[str | Mapping[str, Any]] = (),
    existing_correspondents: Iterable[str | Mapping[str, Any]] = (),
    config: AnalyzerConfig | None = None,
) -> AnalysisOutcome:
    """Async version of analyze_document for use in async contexts.

    Same interface as analyze_document(). Use this when calling from an
    event loop (MCP servers, web frameworks, Jupyter) where asyncio.run()
    would fail.
    """
    if config is None:
        try:
            config = AnalyzerConfig.from_env()
        except ConfigError as e:
            logger.error("Cannot analyze document: %s", e)
            return AnalysisOutcome.failure(str(e))
    analyzer = DocumentAnalyzer(config)
    return await analyzer.analyze_document(
        content,
        existing_tags=existing_tags,
        existing_correspondents=existing_correspondents,
    )
