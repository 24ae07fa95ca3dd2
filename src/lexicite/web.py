# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Web backend (FastAPI) – search API, ingestion, freshness triggers, status.
Runs in a background thread alongside the MCP server.

All state (config, engine, cache, monitor, ingestor, limiter, auth) is
injected via create_web_app().
"""
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .auth import SecretAuth
from .config import Config
from .errors import (
    AuthError,
    IndexBuildError,
    LexiciteError,
    NotFoundError,
    PersistenceError,
    RateLimitExceeded,
    UpstreamFetchError,
    ValidationError,
)
from .health import HealthTracker
from .index import IndexCache
from .ingest import Ingestor
from .monitor import LegislationMonitor
from .ratelimit import RateLimiter, rate_limit_headers, rate_limit_key
from .search import SearchEngine, confidence

ERROR_STATUS = {
    ValidationError: 400,
    AuthError: 401,
    NotFoundError: 404,
    RateLimitExceeded: 429,
    PersistenceError: 500,
    UpstreamFetchError: 502,
    IndexBuildError: 503,
}


class SearchRequest(BaseModel):
    query: str = ""
    sector: Optional[str] = None
    top_k: Optional[int] = None
    method: str = "bm25"
    expand_query: bool = True
    min_score: Optional[float] = None


class IngestRequest(BaseModel):
    name: str = ""
    sector: str = ""
    source_type: str = "legislation"
    content: str = ""
    source_url: Optional[str] = None
    version: Optional[str] = None
    effective_date: Optional[str] = None


class IngestAllRequest(BaseModel):
    documents: list[IngestRequest] = []
    skip_existing: bool = True


class LegislationUpdate(BaseModel):
    sourceName: Optional[str] = None
    content: Optional[str] = None
    version: Optional[str] = None


def status_for(exc: LexiciteError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500


def create_web_app(
    config: Config,
    engine: SearchEngine,
    cache: IndexCache,
    monitor: LegislationMonitor,
    ingestor: Ingestor,
    limiter: RateLimiter,
    auth: SecretAuth,
    health: HealthTracker | None = None,
) -> FastAPI:
    """Factory: returns a FastAPI app that shares state with the MCP server."""

    app = FastAPI(
        title="Lexicite",
        description="Citable legislation retrieval for compliance assistants",
    )

    @app.exception_handler(LexiciteError)
    async def lexicite_error(request: Request, exc: LexiciteError):
        headers = None
        limited = exc.result if isinstance(exc, RateLimitExceeded) else getattr(request.state, "rate_limit", None)
        if limited is not None:
            headers = rate_limit_headers(limited)
        return JSONResponse({"error": str(exc)}, status_code=status_for(exc), headers=headers)

    def enforce_limit(request: Request, response: Response, endpoint: str):
        key = rate_limit_key(
            user_id=getattr(request.state, "user_id", None),
            forwarded_for=request.headers.get("x-forwarded-for"),
            real_ip=request.headers.get("x-real-ip"),
            client_host=request.client.host if request.client else None,
        )
        result = limiter.check_endpoint(key, endpoint)
        request.state.rate_limit = result
        if not result.allowed:
            if health:
                health.record_rate_limited()
            raise RateLimitExceeded(result)
        response.headers.update(rate_limit_headers(result))

    # ── Health (unauthenticated, polled by container healthchecks) ──

    @app.get("/health")
    async def health_check():
        from . import __version__
        status = health.status if health else {}
        snapshot = cache.peek()
        return {
            "status": "ok" if (not health or health.is_healthy) else "degraded",
            "version": __version__,
            "chunks": snapshot.n_docs if snapshot else None,
            "generation": cache.generation,
            "last_index_at": status.get("last_index_at"),
            "last_index_ok": status.get("last_index_ok"),
            "last_sweep_at": status.get("last_sweep_at"),
        }

    @app.get("/api/health")
    async def health_detail():
        return health.status if health else {}

    # ── Search ───────────────────────────────────────

    @app.post("/api/search")
    def search(req: SearchRequest, request: Request, response: Response):
        enforce_limit(request, response, "search")
        overrides = {
            "sector": req.sector,
            "method": req.method,
            "expand_query": req.expand_query,
        }
        if req.top_k is not None:
            overrides["top_k"] = req.top_k
        if req.min_score is not None:
            overrides["min_score"] = req.min_score
        results = engine.search(req.query, engine.default_options(**overrides))
        return {
            "query": req.query,
            "count": len(results),
            "confidence": confidence(results),
            "results": results,
        }

    @app.get("/api/config")
    async def get_config():
        return config.to_safe_dict()

    @app.get("/api/stats")
    def get_stats():
        return cache.stats()

    @app.post("/api/cache/invalidate")
    async def invalidate_cache(request: Request):
        auth.require_cron(request.headers.get("authorization"))
        cache.invalidate()
        return {"status": "success", "generation": cache.generation}

    # ── Sources ──────────────────────────────────────

    @app.post("/api/ingest")
    def ingest(req: IngestRequest, request: Request, response: Response):
        auth.require_webhook(request.headers.get("authorization"))
        enforce_limit(request, response, "ingest")
        return ingestor.ingest_source(
            name=req.name,
            sector=req.sector,
            source_type=req.source_type,
            content=req.content,
            source_url=req.source_url,
            version=req.version,
            effective_date=req.effective_date,
        )

    @app.post("/api/ingest-all")
    def ingest_all(req: IngestAllRequest, request: Request, response: Response):
        """Bulk ingest; by default sources that already exist are skipped."""
        auth.require_webhook(request.headers.get("authorization"))
        enforce_limit(request, response, "ingest")
        if not req.documents:
            raise ValidationError("No documents provided")
        return ingestor.ingest_all(
            [doc.model_dump() for doc in req.documents],
            skip_existing=req.skip_existing,
        )

    @app.get("/api/sources")
    def list_sources(limit: int = 50):
        return {
            "sources": monitor.source_status(),
            "check_logs": monitor.check_logs(limit),
        }

    @app.delete("/api/sources")
    def delete_source(request: Request, name: str = ""):
        auth.require_webhook(request.headers.get("authorization"))
        if not name:
            raise ValidationError("Missing required field: name")
        return ingestor.delete_source(name)

    # ── Freshness triggers (shared-secret bearer auth) ──

    @app.post("/webhooks/legislation-update")
    def legislation_update(req: LegislationUpdate, request: Request):
        auth.require_webhook(request.headers.get("authorization"))
        if not req.sourceName or not req.content:
            raise ValidationError("Missing required fields: sourceName, content")
        result = monitor.apply_update(req.sourceName, req.content, req.version)
        print(f"Webhook: legislation update received for {req.sourceName}")
        return result.to_dict()

    @app.get("/cron/check-legislation")
    def check_legislation(request: Request):
        auth.require_cron(request.headers.get("authorization"))
        return monitor.run_sweep()

    return app
