"""Document analyzer orchestrating prompt, budget, model call and parsing."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

import anthropic
import openai

from .client import ChatClient, create_client
from .config import AnalyzerConfig
from .errors import AnalysisError, StateError
from .prompts import PromptContext, build_playground_context, build_prompt_context
from .response import map_usage, normalize_response
from .results import AnalysisOutcome
from .thumbnails import PaperlessThumbnailFetcher, ThumbnailCache
from .token_budget import compute_budget, truncate_to_budget
from .tokenizer import TokenCounter, Tokenizer

logger = logging.getLogger(__name__)

# Free-text generation is more creative than classification.
GENERATE_TEMPERATURE = 0.7

STATUS_PROMPT = "Ping"
STATUS_MAX_TOKENS = 1000

# SDK errors that end an analysis call without retry.
_CLIENT_ERRORS = (openai.OpenAIError, anthropic.AnthropicError)


def _failure_outcome(error: Exception, activity: str) -> AnalysisOutcome:
    """Log an analysis failure and convert it into a failure outcome.

    Expected failures (our own errors, SDK errors) are logged without a
    traceback; anything else is logged with one.
    """
    if isinstance(error, AnalysisError):
        logger.error("Failed %s: %s", activity, error)
        return AnalysisOutcome.failure(str(error))
    if isinstance(error, _CLIENT_ERRORS):
        logger.error("Failed %s: %s: %s", activity, type(error).__name__, error)
    else:
        logger.exception("Unexpected error %s", activity)
    return AnalysisOutcome.failure(str(error) or type(error).__name__)


class DocumentAnalyzer:
    """
    Classifies documents with an LLM inside a fixed context window.

    Usage:
        analyzer = DocumentAnalyzer(AnalyzerConfig.from_env())
        outcome = await analyzer.analyze_document(text, existing_tags=["Invoice"])
        outcome.document["tags"]

    Each call builds its own prompt, budget and truncation; the analyzer
    holds no per-call state and may be shared between concurrent calls.
    """

    def __init__(
        self,
        config: AnalyzerConfig | None = None,
        client: ChatClient | None = None,
        tokenizer: TokenCounter | None = None,
        thumbnail_cache: ThumbnailCache | None = None,
    ):
        self.config = config or AnalyzerConfig()
        self._client = client
        self._tokenizer = tokenizer
        if thumbnail_cache is None and self.config.has_paperless:
            thumbnail_cache = ThumbnailCache(
                self.config.thumbnail_dir,
                PaperlessThumbnailFetcher(
                    self.config.paperless_api_url, self.config.paperless_api_token,
                ),
            )
        self.thumbnail_cache = thumbnail_cache

    @property
    def client(self) -> ChatClient:
        """The model client, created from config on first use.

        Raises:
            ClientUnavailable: If the provider is not configured.
        """
        if self._client is None:
            self._client = create_client(self.config)
        return self._client

    @property
    def tokenizer(self) -> TokenCounter:
        """The token counter, resolved from config on first use.

        Loading an encoding can fail (unknown name, BPE download error), so
        it happens inside the calls that report failures as outcomes.
        """
        if self._tokenizer is None:
            self._tokenizer = Tokenizer.for_model(
                self.config.model, self.config.tokenizer_encoding,
            )
        return self._tokenizer

    async def analyze_document(
        self,
        content: str,
        existing_tags: Iterable[str | Mapping[str, Any]] = (),
        existing_correspondents: Iterable[str | Mapping[str, Any]] = (),
        document_id: int | None = None,
    ) -> AnalysisOutcome:
        """Analyze a document and return tags, correspondent and metadata.

        Never raises: failures come back as an outcome with empty tags, a
        null correspondent, no metrics and an error message.

        Args:
            content: Full document text (truncated here as needed).
            existing_tags: Tags already in the store, as names or tag objects.
            existing_correspondents: Known correspondents, same formats.
            document_id: Paperless document id, used for thumbnail caching.
        """
        try:
            if document_id is not None:
                await self._cache_thumbnail(document_id)
            context = build_prompt_context(
                self.config, existing_tags, existing_correspondents,
            )
            return await self._run(context, content, self.config.temperature)
        except Exception as e:
            # Public boundary: callers rely on always getting an outcome.
            return _failure_outcome(e, "analyzing document")

    async def analyze_playground(self, content: str, prompt: str) -> AnalysisOutcome:
        """Analyze a document with a caller-supplied prompt.

        The playground schema template is appended to ``prompt``; mode
        flags from the config are ignored. Never raises.
        """
        try:
            context = build_playground_context(prompt)
            return await self._run(context, content, self.config.temperature)
        except Exception as e:
            return _failure_outcome(e, "in playground analysis")

    async def _run(
        self, context: PromptContext, content: str, temperature: float,
    ) -> AnalysisOutcome:
        """Budget, truncate, call the model and normalize the reply."""
        client = self.client
        tokenizer = self.tokenizer

        budget = compute_budget(
            context.fragments(),
            max_tokens=self.config.token_limit,
            response_tokens=self.config.response_tokens,
            tokenizer=tokenizer,
        )
        if not budget.is_feasible:
            logger.warning(
                "Prompt leaves no room for content (%d reserved, %d for response, "
                "window %d); sending empty document",
                budget.reserved_tokens, budget.response_tokens, budget.max_tokens,
            )
        truncation = truncate_to_budget(content, budget.available_tokens, tokenizer)
        if truncation.was_truncated:
            logger.info(
                "Document truncated to %d of %d chars to fit %d tokens",
                len(truncation.content), len(content), max(budget.available_tokens, 0),
            )

        reply = await client.complete(
            system=context.system_prompt,
            user=truncation.content,
            temperature=temperature,
        )
        document = normalize_response(reply.text)
        metrics = map_usage(reply.usage)
        if metrics is not None:
            logger.debug("Model %s used %s tokens", reply.model, metrics.total_tokens)

        return AnalysisOutcome(
            document=document,
            metrics=metrics,
            truncated=truncation.was_truncated,
        )

    async def _cache_thumbnail(self, document_id: int) -> None:
        if self.thumbnail_cache is None:
            return
        try:
            await self.thumbnail_cache.ensure_cached(document_id)
        except StateError as e:
            logger.warning("Could not cache thumbnail for document %s: %s", document_id, e)

    async def generate_text(self, prompt: str) -> str:
        """Generate free text from a prompt.

        Unlike analysis, errors propagate to the caller.

        Raises:
            BudgetInfeasible: If the prompt does not fit the context window.
            ClientUnavailable: If the provider is not configured.
            ParseError: If the reply is empty.
        """
        budget = compute_budget(
            [prompt],
            max_tokens=self.config.token_limit,
            response_tokens=self.config.response_tokens,
            tokenizer=self.tokenizer,
        )
        budget.require_feasible()
        reply = await self.client.complete(
            system=None,
            user=prompt,
            temperature=GENERATE_TEMPERATURE,
            max_tokens=self.config.response_tokens,
        )
        return reply.text

    async def check_status(self) -> dict[str, str]:
        """Ping the model. Returns {"status": "ok", "model": ...} or {"status": "error"}."""
        try:
            await self.client.complete(
                system=None,
                user=STATUS_PROMPT,
                temperature=GENERATE_TEMPERATURE,
                max_tokens=STATUS_MAX_TOKENS,
            )
        except (AnalysisError, *_CLIENT_ERRORS) as e:
            logger.warning("Model status check failed: %s", e)
            return {"status": "error"}
        return {"status": "ok", "model": self.config.model}
