"""System prompt assembly for document analysis.

Which prompt is built depends on two mode flags from the configuration.
The rendered fragments are used both for the token budget and for the
system message, so nothing is sent that was not counted.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .config import AnalyzerConfig

DEFAULT_SYSTEM_PROMPT = (
    "You are a personalized document analyzer. Your task is to analyze "
    "documents and extract relevant information.\n\n"
    "Analyze the document content and extract the following information "
    "into a structured JSON object:\n"
    "1. title: Create a concise, meaningful title for the document\n"
    "2. correspondent: Identify the sender or institution (not the receiver)\n"
    "3. tags: Select up to 4 relevant thematic tags\n"
    "4. document_date: Extract the document date (format: YYYY-MM-DD)\n"
    "5. language: Determine the document language (e.g. \"de\" or \"en\")"
)

# Schema-enforcing suffix appended to the base instructions.
MUST_HAVE_PROMPT = """Return the result EXCLUSIVELY as a JSON object. The Tags and Title MUST be in the language that is used in the document.:
{
  "title": "xxxxx",
  "correspondent": "xxxxxxxx",
  "tags": ["Tag1", "Tag2", "Tag3", "Tag4"],
  "document_date": "YYYY-MM-DD",
  "language": "en/de/es/..."
}"""

PREDEFINED_TAGS_DIRECTIVE = (
    "Take these tags and try to match one or more to the document content.\n\n"
)

# Replaces base instructions entirely when candidate tags are configured.
PREDEFINED_TAGS_PROMPT = """You are a document analysis AI. You will analyze the document.
You take the main information to associate tags with the document.
You will also find the correspondent of the document (sender, not receiver). Also you find a meaningful and short title for the document.
Only use the tags from the list above and try to find the best fitting tags.
You do not ask for additional information, you only use the information given in the document.

Return the result EXCLUSIVELY as a JSON object. The Tags and Title MUST be in the language that is used in the document.:
{
  "title": "xxxxx",
  "correspondent": "xxxxxxxx",
  "tags": ["Tag1", "Tag2", "Tag3", "Tag4"],
  "document_date": "YYYY-MM-DD",
  "language": "en/de/es/..."
}"""

PLAYGROUND_SCHEMA_PROMPT = """
Return the result EXCLUSIVELY as a JSON object. The Tags and Title MUST be in the language that is used in the document.:
{
  "title": "xxxxx",
  "correspondent": "xxxxxxxx",
  "tags": ["Tag1", "Tag2", "Tag3", "Tag4"],
  "document_date": "YYYY-MM-DD",
  "language": "en/de/es/..."
}"""


class PromptMode(Enum):
    """Which system prompt variant to build."""

    DEFAULT = "default"
    USE_EXISTING_DATA = "use_existing_data"
    USE_PREDEFINED_TAGS = "use_predefined_tags"


def resolve_mode(use_existing_data: bool, use_prompt_tags: bool) -> PromptMode:
    """Pick the prompt mode from the configuration flags.

    Predefined tags take precedence: with both flags set the existing-data
    prompt is discarded, not combined.
    """
    if use_prompt_tags:
        return PromptMode.USE_PREDEFINED_TAGS
    if use_existing_data:
        return PromptMode.USE_EXISTING_DATA
    return PromptMode.DEFAULT


@dataclass(frozen=True)
class PromptContext:
    """Everything that goes into the system message for one analysis call."""

    system_instructions: str
    tag_context: tuple[str, ...] = ()
    correspondent_context: tuple[str, ...] = ()
    mode: PromptMode = PromptMode.DEFAULT

    def fragments(self) -> tuple[str, ...]:
        """Rendered prompt fragments, in the order they are sent."""
        tags = ", ".join(self.tag_context)

        if self.mode is PromptMode.USE_PREDEFINED_TAGS:
            return (
                PREDEFINED_TAGS_DIRECTIVE,
                f"Predefined tags: {tags}\n\n",
                self.system_instructions,
            )

        if self.mode is PromptMode.USE_EXISTING_DATA:
            correspondents = ", ".join(self.correspondent_context)
            return (
                f"Preexisting tags: {tags}\n\n",
                f"Preexisting correspondent: {correspondents}\n\n",
                self.system_instructions,
            )

        return (self.system_instructions,)

    @property
    def system_prompt(self) -> str:
        return "".join(self.fragments())

    def messages(self, content: str) -> list[dict[str, str]]:
        """Build the system + user message pair for a chat completion."""
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": content},
        ]


def _tag_names(tags: Iterable[str | Mapping[str, Any]]) -> tuple[str, ...]:
    """Accept plain names or Paperless tag objects ({"id": .., "name": ..})."""
    names = []
    for tag in tags:
        if isinstance(tag, Mapping):
            name = tag.get("name")
            if name:
                names.append(str(name))
        elif tag:
            names.append(str(tag))
    return tuple(names)


def build_prompt_context(
    config: AnalyzerConfig,
    existing_tags: Iterable[str | Mapping[str, Any]] = (),
    existing_correspondents: Iterable[str | Mapping[str, Any]] = (),
) -> PromptContext:
    """Build the prompt context for a document analysis call.

    Args:
        config: Analyzer configuration (mode flags, base prompt, candidate tags).
        existing_tags: Tags already known to the document store.
        existing_correspondents: Correspondents already known to the store.

    Returns:
        Immutable PromptContext for this call.
    """
    mode = resolve_mode(config.use_existing_data, config.use_prompt_tags)

    if mode is PromptMode.USE_PREDEFINED_TAGS:
        return PromptContext(
            system_instructions=config.predefined_tags_prompt,
            tag_context=tuple(config.prompt_tags),
            mode=mode,
        )

    instructions = f"{config.system_prompt}\n\n{config.must_have_prompt}"
    if mode is PromptMode.USE_EXISTING_DATA:
        return PromptContext(
            system_instructions=instructions,
            tag_context=_tag_names(existing_tags),
            correspondent_context=_tag_names(existing_correspondents),
            mode=mode,
        )
    return PromptContext(system_instructions=instructions, mode=mode)


def build_playground_context(prompt: str) -> PromptContext:
    """Prompt context for trying out a custom prompt on a single document."""
    return PromptContext(
        system_instructions=prompt + PLAYGROUND_SCHEMA_PROMPT,
        mode=PromptMode.DEFAULT,
    )
