"""Tests for system prompt assembly."""

import dataclasses
from dataclasses import FrozenInstanceError

import pytest

from doc_tagger.prompts import (
    MUST_HAVE_PROMPT,
    PLAYGROUND_SCHEMA_PROMPT,
    PREDEFINED_TAGS_DIRECTIVE,
    PREDEFINED_TAGS_PROMPT,
    PromptContext,
    PromptMode,
    build_playground_context,
    build_prompt_context,
    resolve_mode,
)


class TestResolveMode:
    @pytest.mark.parametrize("existing,tags,expected", [
        (False, False, PromptMode.DEFAULT),
        (True, False, PromptMode.USE_EXISTING_DATA),
        (False, True, PromptMode.USE_PREDEFINED_TAGS),
        (True, True, PromptMode.USE_PREDEFINED_TAGS),
    ])
    def test_flag_combinations(self, existing, tags, expected):
        assert resolve_mode(existing, tags) is expected


class TestBuildPromptContext:
    def test_default_mode(self, config):
        context = build_prompt_context(config, ["Invoice"], ["ACME"])

        assert context.mode is PromptMode.DEFAULT
        assert context.system_prompt == f"{config.system_prompt}\n\n{MUST_HAVE_PROMPT}"
        assert "Invoice" not in context.system_prompt
        assert context.fragments() == (context.system_prompt,)

    def test_existing_data_mode_prefixes_lists(self, config):
        config = dataclasses.replace(config, use_existing_data=True, system_prompt="Classify it.")
        context = build_prompt_context(config, ["Invoice", "Tax"], ["ACME", "City Hall"])

        assert context.mode is PromptMode.USE_EXISTING_DATA
        assert context.tag_context == ("Invoice", "Tax")
        assert context.correspondent_context == ("ACME", "City Hall")
        prompt = context.system_prompt
        assert prompt.startswith("Preexisting tags: Invoice, Tax\n\n")
        assert "Preexisting correspondent: ACME, City Hall\n\n" in prompt
        assert prompt.endswith(f"Classify it.\n\n{MUST_HAVE_PROMPT}")

    def test_existing_data_accepts_tag_objects(self, config):
        config = dataclasses.replace(config, use_existing_data=True)
        context = build_prompt_context(
            config,
            [{"id": 1, "name": "Invoice"}, {"id": 2, "name": ""}, "Tax"],
            [{"id": 7, "name": "ACME"}],
        )
        assert context.tag_context == ("Invoice", "Tax")
        assert context.correspondent_context == ("ACME",)

    def test_predefined_tags_mode(self, config):
        config = dataclasses.replace(
            config, use_prompt_tags=True, prompt_tags=("Invoice", "Contract"),
        )
        context = build_prompt_context(config, ["Ignored"], ["Ignored Corp"])

        assert context.mode is PromptMode.USE_PREDEFINED_TAGS
        assert context.fragments() == (
            PREDEFINED_TAGS_DIRECTIVE,
            "Predefined tags: Invoice, Contract\n\n",
            PREDEFINED_TAGS_PROMPT,
        )
        assert config.system_prompt not in context.system_prompt

    def test_predefined_tags_override_existing_data(self, config):
        """Both flags set: predefined-tags template only, nothing composed."""
        config = dataclasses.replace(
            config,
            use_existing_data=True,
            use_prompt_tags=True,
            prompt_tags=("Invoice",),
            system_prompt="BASE INSTRUCTIONS",
        )
        context = build_prompt_context(config, ["Existing"], ["Existing Corp"])

        prompt = context.system_prompt
        assert context.mode is PromptMode.USE_PREDEFINED_TAGS
        assert prompt.startswith(PREDEFINED_TAGS_DIRECTIVE)
        assert prompt.endswith(PREDEFINED_TAGS_PROMPT)
        assert "Preexisting" not in prompt
        assert "BASE INSTRUCTIONS" not in prompt
        assert "Existing Corp" not in prompt

    def test_candidate_tags_are_sent(self, config):
        """Candidate tags counted for the budget also reach the model."""
        config = dataclasses.replace(config, use_prompt_tags=True, prompt_tags=("Bank", "Health"))
        context = build_prompt_context(config)
        assert "Bank, Health" in context.system_prompt


class TestPromptContext:
    def test_is_frozen(self):
        context = PromptContext(system_instructions="x")
        with pytest.raises(FrozenInstanceError):
            context.system_instructions = "y"

    def test_system_prompt_joins_fragments(self):
        context = PromptContext(
            system_instructions="Do it.",
            tag_context=("A",),
            correspondent_context=("B",),
            mode=PromptMode.USE_EXISTING_DATA,
        )
        assert context.system_prompt == "".join(context.fragments())

    def test_messages_pair(self):
        context = PromptContext(system_instructions="Do it.")
        assert context.messages("document body") == [
            {"role": "system", "content": "Do it."},
            {"role": "user", "content": "document body"},
        ]


class TestPlaygroundContext:
    def test_appends_schema_template(self):
        context = build_playground_context("Find the sender.")
        assert context.system_prompt == "Find the sender." + PLAYGROUND_SCHEMA_PROMPT
        assert context.mode is PromptMode.DEFAULT
        assert len(context.fragments()) == 1
