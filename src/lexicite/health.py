# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Centralized health/status tracker – shared across index cache, search,
monitor, web UI and MCP tools.
Thread-safe, no external dependencies.
"""
import threading
from datetime import datetime, timezone


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class HealthTracker:
    def __init__(self):
        self._lock = threading.Lock()
        self._data = {
            "last_index_at": None,
            "last_index_ok": False,
            "last_index_chunks": 0,
            "last_index_sources": 0,
            "last_index_generation": None,
            "last_index_error": None,

            "last_sweep_at": None,
            "last_sweep_checked": 0,
            "last_sweep_changed": 0,
            "last_sweep_errors": 0,

            "last_update_at": None,
            "last_update_source": None,
            "last_update_ok": False,
            "last_update_error": None,

            "started_at": _now(),

            "searches_total": 0,
            "searches_hits": 0,
            "searches_misses": 0,
            "searches_by_method": {
                "bm25": 0,
                "hybrid": 0,
            },
            "last_search_at": None,

            "rate_limited_total": 0,
        }

    def record_index(
        self, ok: bool, chunks: int = 0, sources: int = 0,
        generation: int | None = None, error: str | None = None,
    ):
        with self._lock:
            self._data["last_index_at"] = _now()
            self._data["last_index_ok"] = ok
            self._data["last_index_error"] = error
            if ok:
                self._data["last_index_chunks"] = chunks
                self._data["last_index_sources"] = sources
                self._data["last_index_generation"] = generation

    def record_search(self, method: str, hit: bool):
        with self._lock:
            self._data["searches_total"] += 1
            if hit:
                self._data["searches_hits"] += 1
            else:
                self._data["searches_misses"] += 1
            by_method = self._data["searches_by_method"]
            if method in by_method:
                by_method[method] += 1
            self._data["last_search_at"] = _now()

    def record_sweep(self, checked: int, changed: int = 0, errors: int = 0):
        with self._lock:
            self._data["last_sweep_at"] = _now()
            self._data["last_sweep_checked"] = checked
            self._data["last_sweep_changed"] = changed
            self._data["last_sweep_errors"] = errors

    def record_update(self, source: str, ok: bool, error: str | None = None):
        with self._lock:
            self._data["last_update_at"] = _now()
            self._data["last_update_source"] = source
            self._data["last_update_ok"] = ok
            self._data["last_update_error"] = error

    def record_rate_limited(self):
        with self._lock:
            self._data["rate_limited_total"] += 1

    @property
    def status(self) -> dict:
        with self._lock:
            data = dict(self._data)
            data["searches_by_method"] = dict(self._data["searches_by_method"])
            return data

    @property
    def is_healthy(self) -> bool:
        with self._lock:
            return self._data["last_index_ok"]
