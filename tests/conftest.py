"""Shared fixtures for doc_tagger tests."""

import json
import re

import pytest
from unittest.mock import AsyncMock

from doc_tagger.client import ChatClient, ChatReply
from doc_tagger.config import AnalyzerConfig


class ChunkTokenizer:
    """Deterministic tokenizer whose boundaries do not follow characters.

    Every run of up to three word characters is one token, and every other
    character is a token of its own. Token count never decreases as a
    prefix grows, like a real BPE tokenizer.
    """

    _TOKEN = re.compile(r"\w{1,3}|\W", re.UNICODE)

    def count(self, text: str) -> int:
        return len(self._TOKEN.findall(text))


@pytest.fixture
def tokenizer():
    return ChunkTokenizer()


@pytest.fixture
def config():
    """Custom-endpoint config with default prompt mode."""
    return AnalyzerConfig(
        provider="custom",
        api_url="http://localhost:11434/v1",
        model="llama3",
        token_limit=8000,
        response_tokens=1000,
    )


@pytest.fixture
def valid_reply_text():
    return json.dumps({
        "title": "Electricity bill March 2024",
        "correspondent": "Stadtwerke Musterstadt",
        "tags": ["Invoice", "Utilities"],
        "document_date": "2024-03-31",
        "language": "en",
    })


@pytest.fixture
def usage():
    return {"prompt_tokens": 812, "completion_tokens": 64, "total_tokens": 876}


@pytest.fixture
def mock_client(valid_reply_text, usage):
    """ChatClient whose complete() returns a valid fenced JSON reply."""
    client = AsyncMock(spec=ChatClient)
    client.model = "llama3"
    client.complete.return_value = ChatReply(
        text=f"```json\n{valid_reply_text}\n```",
        model="llama3",
        usage=usage,
    )
    return client
