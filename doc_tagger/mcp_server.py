"""MCP server for the document tagger."""

import logging
import os
import sys

from fastmcp import FastMCP

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 2_000_000

mcp = FastMCP(
    "Document Tagger",
    instructions=(
        "Classifies document text with an LLM: returns title, correspondent, "
        "tags, document date and language as JSON. Long documents are "
        "truncated to fit the configured model context window."
    ),
)


@mcp.tool
async def analyze_document(
    content: str,
    existing_tags: list[str] | None = None,
    existing_correspondents: list[str] | None = None,
) -> dict:
    """Analyze document text and return the structured classification.

    Args:
        content: Full document text.
        existing_tags: Tags already in use; offered to the model when the
            server runs with USE_EXISTING_DATA=yes.
        existing_correspondents: Correspondents already in use.

    Returns:
        {"document": {...}, "metrics": {...} | null, "truncated": bool,
        "error": "..." (only on failure)}
    """
    from fastmcp.exceptions import ToolError

    from doc_tagger import analyze_document_async

    if len(content) > MAX_CONTENT_LENGTH:
        raise ToolError(
            f"Content too long ({len(content)} chars, max {MAX_CONTENT_LENGTH})."
        )

    outcome = await analyze_document_async(
        content,
        existing_tags=existing_tags or (),
        existing_correspondents=existing_correspondents or (),
    )
    return outcome.to_dict()


@mcp.tool
async def check_status() -> dict:
    """Ping the configured model. Returns {"status": "ok", "model": ...} or {"status": "error"}."""
    from fastmcp.exceptions import ToolError

    from doc_tagger import AnalyzerConfig, ConfigError, DocumentAnalyzer

    try:
        analyzer = DocumentAnalyzer(AnalyzerConfig.from_env())
    except ConfigError as e:
        raise ToolError(f"Server misconfigured: {e}")
    return await analyzer.check_status()


def main() -> None:
    """Run the MCP server (stdio by default, MCP_TRANSPORT=http for HTTP)."""
    from dotenv import load_dotenv

    load_dotenv()
    transport = os.environ.get("MCP_TRANSPORT", "stdio").lower()

    if transport == "stdio":
        mcp.run(transport="stdio")
    elif transport == "http":
        host = os.environ.get("MCP_HOST", "127.0.0.1")
        try:
            port = int(os.environ.get("MCP_PORT", "8000"))
        except ValueError:
            sys.exit(f"MCP_PORT must be an integer, got: {os.environ['MCP_PORT']!r}")

        if host not in ("127.0.0.1", "localhost"):
            logger.warning(
                "MCP server binding to %s:%d, accessible on the network. "
                "No authentication is configured.", host, port,
            )

        mcp.settings.host = host
        mcp.settings.port = port
        mcp.run(transport="http")
    else:
        sys.exit(f"Unknown MCP_TRANSPORT: {transport!r}. Use 'stdio' or 'http'.")


if __name__ == "__main__":
    main()
