# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""Tests for MCP server tools (search, stats, sources)."""
import asyncio

import httpx
import pytest

from lexicite.server import create_mcp_server


@pytest.fixture
def mcp(config, engine, cache, monitor, health):
    return create_mcp_server(config, engine, cache, monitor, health)


def _call_tool(mcp, name, **kwargs):
    """Call an MCP tool by name, passing kwargs as arguments."""
    tool = None
    for t in mcp._tool_manager._tools.values():
        if t.name == name:
            tool = t
            break
    assert tool is not None, f"Tool {name} not found"
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(tool.run(kwargs))
    finally:
        loop.close()


class TestToolRegistry:
    def test_all_tools_registered(self, mcp):
        names = {t.name for t in mcp._tool_manager._tools.values()}
        assert names == {
            "search_legislation", "search_sector", "get_index_stats",
            "check_sources", "list_sources",
        }


class TestSearchLegislation:
    def test_cites_source_and_section(self, mcp, corpus):
        out = _call_tool(mcp, "search_legislation", query="incident")
        assert "NDIS Practice Standards > Standard 2 Incident Management" in out
        assert out.startswith("Confidence:")

    def test_no_results(self, mcp, corpus):
        out = _call_tool(mcp, "search_legislation", query="zzzzqqq")
        assert "No relevant legislation found" in out

    def test_empty_query_is_readable(self, mcp, corpus):
        out = _call_tool(mcp, "search_legislation", query="")
        assert out.startswith("Search failed:")

    def test_sector_filter(self, mcp, corpus):
        out = _call_tool(mcp, "search_legislation", query="safety", sector="transport")
        assert "Heavy Vehicle National Law" in out
        assert "Work Health and Safety Act" not in out


class TestSearchSector:
    def test_known_sector(self, mcp, corpus):
        out = _call_tool(mcp, "search_sector", query="worker screening clearance", sector="ndis")
        assert "Standard 3 Worker Screening" in out

    def test_unknown_sector(self, mcp, corpus):
        out = _call_tool(mcp, "search_sector", query="anything", sector="mining")
        assert out.startswith("Unknown sector 'mining'")


class TestStatsAndSources:
    def test_index_stats(self, mcp, corpus):
        out = _call_tool(mcp, "get_index_stats")
        assert "**Sources:** 3" in out
        assert "**Chunks:** 6" in out

    def test_list_sources_empty(self, mcp):
        assert _call_tool(mcp, "list_sources") == "No sources ingested yet."

    def test_list_sources(self, mcp, corpus):
        out = _call_tool(mcp, "list_sources")
        assert "**3 sources**" in out
        assert "Heavy Vehicle National Law [transport] version -, unchecked" in out

    def test_check_sources_without_history(self, mcp):
        assert _call_tool(mcp, "check_sources") == "No freshness checks recorded yet."

    def test_check_sources_reports_without_sweeping(self, mcp, corpus, monitor, monkeypatch):
        monitor.sources = [{
            "name": "Heavy Vehicle National Law",
            "sector": "transport",
            "check_url": "https://example.org/hvnl",
        }]
        calls = []

        def fake_get(url, **kwargs):
            calls.append(url)
            raise httpx.ConnectError("unreachable")

        monkeypatch.setattr("lexicite.monitor.httpx.get", fake_get)
        monitor.run_sweep()
        assert len(calls) == 1

        out = _call_tool(mcp, "check_sources")
        assert "**Last 1 checks**" in out
        assert "- Heavy Vehicle National Law: error at " in out
        assert "unreachable" in out
        # the tool only reads the log
        assert len(calls) == 1
        assert len(monitor.check_logs()) == 1
