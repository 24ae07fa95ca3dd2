# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
MCP Server factory – creates a FastMCP instance with tools that share the
search engine, index cache and monitor with the web app.

Tools:
  - search_legislation: Ranked, citable passages for a compliance question
  - search_sector: Search restricted to one sector, with sector vocabulary
  - get_index_stats: Index statistics
  - check_sources: Recent freshness checks of monitored legislation
  - list_sources: Ingested sources with version and freshness state
"""
from mcp.server.fastmcp import FastMCP

from .config import Config
from .errors import LexiciteError
from .health import HealthTracker
from .index import IndexCache
from .monitor import LegislationMonitor
from .search import SearchEngine, confidence
from .synonyms import SECTORS


def _cite(r: dict) -> str:
    src = r["source"]
    loc = src.get("name") or "unknown source"
    if r.get("section_title"):
        loc += f" > {r['section_title']}"
    return loc


def _format_results(results: list[dict]) -> str:
    output = [f"Confidence: {confidence(results)}\n"]
    for r in results:
        output.append(
            f"**{_cite(r)}** "
            f"(Score: {round(r['score'], 2)}, Sector: {r['source'].get('sector') or '-'}, "
            f"Method: {r['method']})\n\n"
            f"{r['content']}\n\n---"
        )
    return "\n".join(output)


def create_mcp_server(
    config: Config,
    engine: SearchEngine,
    cache: IndexCache,
    monitor: LegislationMonitor,
    health: HealthTracker | None = None,
) -> FastMCP:
    """Factory: returns a configured FastMCP server that shares state with web.py."""

    mcp = FastMCP(
        "lexicite",
        instructions=(
            "Citable retrieval over ingested legislation and standards.\n\n"
            "WORKFLOW for the agent:\n"
            "1. search_legislation() before answering any compliance question\n"
            "2. search_sector() when the organisation's sector is known\n"
            "3. Quote the cited source and section, never paraphrase obligations\n"
            "4. If confidence is 'none' or 'low', say so instead of guessing"
        ),
    )

    @mcp.tool()
    def search_legislation(
        query: str, top_k: int = 5, sector: str = "", method: str = "bm25",
    ) -> str:
        """Search ingested legislation for passages relevant to a question.

        Args:
            query: The compliance question (natural language, be specific)
            top_k: Number of results (default: 5)
            sector: Optional sector filter (e.g. "ndis", "transport")
            method: "bm25" (default, falls back to hybrid) or "hybrid"

        Returns:
            Ranked passages with source, section and score
        """
        try:
            options = engine.default_options(
                top_k=top_k, sector=sector or None, method=method,
            )
            results = engine.search(query, options)
        except LexiciteError as e:
            return f"Search failed: {e}"

        if not results:
            return (
                "No relevant legislation found. "
                "Try a more specific query or a different sector."
            )
        return _format_results(results)

    @mcp.tool()
    def search_sector(query: str, sector: str, top_k: int = 5) -> str:
        """Search legislation for one sector, adding that sector's key terms.

        Args:
            query: The compliance question
            sector: One of the known sectors
            top_k: Number of results (default: 5)
        """
        if sector not in SECTORS:
            return f"Unknown sector '{sector}'. Known sectors: {', '.join(SECTORS)}"
        try:
            results = engine.search_sector(query, sector, top_k=top_k)
        except LexiciteError as e:
            return f"Search failed: {e}"

        if not results:
            return f"No legislation found for sector '{sector}'."
        return _format_results(results)

    @mcp.tool()
    def get_index_stats() -> str:
        """Show statistics about the current search index."""
        try:
            stats = cache.stats()
        except LexiciteError as e:
            return f"Index unavailable: {e}"
        return (
            f"**Index Statistics**\n\n"
            f"- **Sources:** {stats['total_sources']}\n"
            f"- **Chunks:** {stats['total_chunks']}\n"
            f"- **Indexed terms:** {stats['indexed_terms']}\n"
            f"- **Avg chunk length:** {stats['avg_doc_length']} tokens\n"
            f"- **Generation:** {stats['generation']}\n"
            f"- **BM25:** k1={config.bm25_k1}, b={config.bm25_b}"
        )

    @mcp.tool()
    def check_sources(limit: int = 20) -> str:
        """Report the most recent freshness checks of monitored legislation.

        Read-only. Sweeps run through the secret-protected cron trigger.
        """
        logs = monitor.check_logs(limit)
        if not logs:
            return "No freshness checks recorded yet."
        lines = [f"**Last {len(logs)} checks** (newest first)\n"]
        for entry in logs:
            line = f"- {entry['source_name']}: {entry['status']} at {entry['checked_at']}"
            if entry.get("details"):
                line += f" ({entry['details']})"
            lines.append(line)
        return "\n".join(lines)

    @mcp.tool()
    def list_sources() -> str:
        """List ingested sources with version and freshness state."""
        sources = monitor.source_status()
        if not sources:
            return "No sources ingested yet."
        lines = [f"**{len(sources)} sources**\n"]
        for s in sources:
            lines.append(
                f"- {s['name']} [{s['sector']}] "
                f"version {s.get('version') or '-'}, {s['freshness']}"
            )
        return "\n".join(lines)

    return mcp
