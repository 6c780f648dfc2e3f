#!/usr/bin/env python3
"""CLI for the document tagger."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from doc_tagger.analyzer import DocumentAnalyzer
from doc_tagger.config import AnalyzerConfig, load_config
from doc_tagger.errors import ConfigError
from doc_tagger.results import AnalysisOutcome


def _split_names(value: str | None) -> list[str]:
    if not value:
        return []
    return [name.strip() for name in value.split(",") if name.strip()]


def configure_logging(verbose: bool) -> None:
    """Send doc_tagger logs to stderr.

    Default: INFO with a clean format. --verbose: DEBUG with
    module-prefixed format for diagnostics.
    """
    handler = logging.StreamHandler(sys.stderr)
    logger = logging.getLogger("doc_tagger")
    if verbose:
        handler.setFormatter(logging.Formatter("%(levelname)s: %(name)s: %(message)s"))
        logger.setLevel(logging.DEBUG)
    else:
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.setLevel(logging.INFO)
    logger.addHandler(handler)


def read_content(source: str) -> str:
    """Read document text from a file path, or stdin for "-"."""
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def print_outcome(outcome: AnalysisOutcome) -> None:
    print(json.dumps(outcome.to_dict(), indent=2, ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Analyze a document with an LLM and print tags, correspondent and title as JSON.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Configuration comes from the environment (and .env): AI_PROVIDER,
CUSTOM_BASE_URL, CUSTOM_API_KEY, CUSTOM_MODEL, TOKEN_LIMIT, RESPONSE_TOKENS,
USE_EXISTING_DATA, USE_PROMPT_TAGS, SYSTEM_PROMPT, PROMPT_TAGS.

Examples:
  doc-tagger invoice.txt
  doc-tagger invoice.txt --tags "Invoice,Insurance" --correspondents "ACME"
  cat letter.txt | doc-tagger - --playground "Extract the sender and topic."
  doc-tagger --status
        """,
    )
    parser.add_argument(
        "file",
        nargs="?",
        default=None,
        help='Text file to analyze ("-" reads stdin)',
    )
    parser.add_argument(
        "--tags",
        type=str,
        default=None,
        help="Comma-separated existing tags (used with USE_EXISTING_DATA)",
    )
    parser.add_argument(
        "--correspondents",
        type=str,
        default=None,
        help="Comma-separated existing correspondents (used with USE_EXISTING_DATA)",
    )
    parser.add_argument(
        "--playground",
        type=str,
        default=None,
        metavar="PROMPT",
        help="Analyze with a custom prompt instead of the configured one",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="YAML config file layered over the environment",
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="Ping the configured model and exit",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    # Load environment variables from .env file
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.file is None and not args.status:
        parser.print_help()
        sys.exit(2)

    configure_logging(args.verbose)

    try:
        config = AnalyzerConfig.from_env()
        if args.config is not None:
            config = load_config(args.config, base=config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        for err in e.errors:
            print(f"  - {err}", file=sys.stderr)
        sys.exit(1)

    analyzer = DocumentAnalyzer(config)

    if args.status:
        status = asyncio.run(analyzer.check_status())
        print(json.dumps(status))
        sys.exit(0 if status["status"] == "ok" else 1)

    try:
        content = read_content(args.file)
    except OSError as e:
        print(f"File error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.playground is not None:
            outcome = asyncio.run(analyzer.analyze_playground(content, args.playground))
        else:
            outcome = asyncio.run(analyzer.analyze_document(
                content,
                existing_tags=_split_names(args.tags),
                existing_correspondents=_split_names(args.correspondents),
            ))
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)

    print_outcome(outcome)
    if not outcome.ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
