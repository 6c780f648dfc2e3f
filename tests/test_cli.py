"""Tests for the command-line interface."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from doc_tagger import cli
from doc_tagger.results import AnalysisOutcome, UsageMetrics

SUCCESS = AnalysisOutcome(
    document={"tags": ["Invoice"], "correspondent": "ACME", "title": "Bill"},
    metrics=UsageMetrics(10, 5, 15),
)

ENV = {"AI_PROVIDER": "custom", "CUSTOM_BASE_URL": "http://localhost:11434/v1"}


@pytest.fixture
def mock_analyzer():
    with patch("doc_tagger.cli.DocumentAnalyzer") as mock_cls, \
         patch("doc_tagger.cli.load_dotenv"):
        instance = mock_cls.return_value
        instance.analyze_document = AsyncMock(return_value=SUCCESS)
        instance.analyze_playground = AsyncMock(return_value=SUCCESS)
        instance.check_status = AsyncMock(return_value={"status": "ok", "model": "llama3"})
        yield instance


class TestSplitNames:
    def test_splits_and_strips(self):
        assert cli._split_names(" Invoice, Tax ,,") == ["Invoice", "Tax"]

    def test_none(self):
        assert cli._split_names(None) == []


class TestMain:
    @patch.dict("os.environ", ENV, clear=True)
    def test_prints_outcome_json(self, mock_analyzer, tmp_path, capsys):
        doc = tmp_path / "doc.txt"
        doc.write_text("Invoice from ACME", encoding="utf-8")

        cli.main([str(doc), "--tags", "Invoice,Tax", "--correspondents", "ACME"])

        output = json.loads(capsys.readouterr().out)
        assert output["document"]["correspondent"] == "ACME"
        assert output["metrics"] == {"promptTokens": 10, "completionTokens": 5, "totalTokens": 15}
        mock_analyzer.analyze_document.assert_awaited_once_with(
            "Invoice from ACME",
            existing_tags=["Invoice", "Tax"],
            existing_correspondents=["ACME"],
        )

    @patch.dict("os.environ", ENV, clear=True)
    def test_failure_exits_1(self, mock_analyzer, tmp_path, capsys):
        mock_analyzer.analyze_document.return_value = AnalysisOutcome.failure("bad reply")
        doc = tmp_path / "doc.txt"
        doc.write_text("x")

        with pytest.raises(SystemExit) as exc_info:
            cli.main([str(doc)])

        assert exc_info.value.code == 1
        assert json.loads(capsys.readouterr().out)["error"] == "bad reply"

    @patch.dict("os.environ", ENV, clear=True)
    def test_playground(self, mock_analyzer, tmp_path):
        doc = tmp_path / "doc.txt"
        doc.write_text("letter")
        cli.main([str(doc), "--playground", "Find the sender."])
        mock_analyzer.analyze_playground.assert_awaited_once_with("letter", "Find the sender.")

    @patch.dict("os.environ", ENV, clear=True)
    def test_status(self, mock_analyzer, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--status"])
        assert exc_info.value.code == 0
        assert json.loads(capsys.readouterr().out) == {"status": "ok", "model": "llama3"}

    @patch.dict("os.environ", ENV, clear=True)
    def test_missing_file(self, mock_analyzer, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main([str(tmp_path / "absent.txt")])
        assert exc_info.value.code == 1
        assert "File error" in capsys.readouterr().err

    @patch.dict("os.environ", {"TOKEN_LIMIT": "huge"}, clear=True)
    def test_bad_config_exits_1(self, mock_analyzer, tmp_path, capsys):
        doc = tmp_path / "doc.txt"
        doc.write_text("x")
        with pytest.raises(SystemExit) as exc_info:
            cli.main([str(doc)])
        assert exc_info.value.code == 1
        assert "TOKEN_LIMIT" in capsys.readouterr().err

    def test_no_arguments_prints_help(self, mock_analyzer):
        with pytest.raises(SystemExit) as exc_info:
            cli.main([])
        assert exc_info.value.code == 2
