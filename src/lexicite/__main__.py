# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Unified entry point: python -m lexicite

Runs Web API + MCP Server in a single process with shared state.
Web API in a background thread, MCP server in the main thread.
"""
import threading
from pathlib import Path

import uvicorn

from .auth import SecretAuth
from .config import Config
from .errors import LexiciteError
from .health import HealthTracker
from .index import IndexCache
from .ingest import Ingestor
from .monitor import LegislationMonitor
from .ratelimit import RateLimiter
from .search import SearchEngine
from .server import create_mcp_server
from .store import ChunkStore
from .web import create_web_app


def _run_mcp_sse(mcp_server, host: str, port: int):
    mcp_server.settings.host = host
    mcp_server.settings.port = port
    uvicorn.run(mcp_server.sse_app(), host=host, port=port, log_level="warning")


def main():
    config = Config.load()

    index_lock = threading.Lock()
    health = HealthTracker()

    store = ChunkStore(config.store_file)
    cache = IndexCache(
        store.load_all, index_lock=index_lock, health=health,
        k1=config.bm25_k1, b=config.bm25_b,
    )
    engine = SearchEngine(cache, config, health)
    ingestor = Ingestor(config, store, cache, index_lock, health)
    monitor = LegislationMonitor(config, store, cache, ingestor, health)
    limiter = RateLimiter()
    auth = SecretAuth(config)

    if config.docs_path and Path(config.docs_path).is_dir():
        print(f"Ingesting {config.docs_path} ...")
        result = ingestor.ingest_directory(Path(config.docs_path))
        print(
            f"Done: {result['total_success']} ingested, "
            f"{result['total_errors']} errors"
        )

    try:
        stats = cache.stats()
        print(f"Index ready: {stats['total_sources']} sources, {stats['total_chunks']} chunks")
    except LexiciteError as e:
        print(f"Warning: Initial index build failed: {e}")

    web_app = create_web_app(
        config, engine, cache, monitor, ingestor, limiter, auth, health,
    )
    mcp_server = create_mcp_server(config, engine, cache, monitor, health)

    def run_web():
        uvicorn.run(
            web_app, host="0.0.0.0", port=config.web_port,
            log_level="warning",
        )

    web_thread = threading.Thread(target=run_web, daemon=True)
    web_thread.start()
    print(f"Web API running on http://0.0.0.0:{config.web_port}")

    print(f"MCP server starting ({config.transport} transport)...")
    if config.transport == "sse":
        _run_mcp_sse(mcp_server, "0.0.0.0", config.sse_port)
    else:
        mcp_server.run(transport="stdio")


if __name__ == "__main__":
    main()
