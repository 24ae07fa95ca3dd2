# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Chunk/source store – thread-safe, in memory, optionally persisted to JSON.

Sources are unique by name. Chunks are only ever inserted or deleted per
source, never edited. The check log is append-only.
"""
import json
import threading
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .errors import PersistenceError
from .models import CheckLogEntry, Chunk, Source, new_id


class ChunkStore:
    def __init__(self, path: Optional[Path] = None):
        self._path = Path(path) if path else None
        self._lock = threading.RLock()
        self._sources: dict[str, Source] = {}
        self._chunks: dict[str, list[Chunk]] = {}
        self._check_logs: list[CheckLogEntry] = []
        if self._path and self._path.exists():
            self._load()

    # ── Persistence ──────────────────────────────────

    def _load(self):
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Could not read store {self._path}: {e}") from e
        for raw in data.get("sources", []):
            source = Source.from_dict(raw)
            self._sources[source.id] = source
        for raw in data.get("chunks", []):
            chunk = Chunk.from_dict(raw)
            self._chunks.setdefault(chunk.source_id, []).append(chunk)
        for raw in data.get("check_logs", []):
            self._check_logs.append(CheckLogEntry(**raw))

    def _save(self):
        if not self._path:
            return
        payload = {
            "sources": [s.to_dict() for s in self._sources.values()],
            "chunks": [c.to_dict() for chunks in self._chunks.values() for c in chunks],
            "check_logs": [e.to_dict() for e in self._check_logs],
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            tmp.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
            tmp.replace(self._path)
        except OSError as e:
            raise PersistenceError(f"Could not write store {self._path}: {e}") from e

    # ── Sources ──────────────────────────────────────

    def get_source_by_name(self, name: str) -> Optional[Source]:
        with self._lock:
            for source in self._sources.values():
                if source.name == name:
                    return replace(source, metadata=dict(source.metadata))
        return None

    def create_source(self, source: Source) -> Source:
        with self._lock:
            if self.get_source_by_name(source.name) is not None:
                raise PersistenceError(f"Source already exists: {source.name}")
            self._sources[source.id] = source
            try:
                self._save()
            except PersistenceError:
                del self._sources[source.id]
                raise
        return source

    def update_source(self, source_id: str, **fields) -> Source:
        """Set top-level fields; ``metadata`` is merged, not replaced."""
        with self._lock:
            source = self._sources.get(source_id)
            if source is None:
                raise PersistenceError(f"Unknown source id: {source_id}")
            metadata = dict(source.metadata)
            metadata.update(fields.pop("metadata", {}) or {})
            fields.setdefault("updated_at", datetime.now(timezone.utc).isoformat())
            updated = replace(source, metadata=metadata, **fields)
            self._sources[source_id] = updated
            self._save()
        return updated

    def list_sources(self) -> list[Source]:
        with self._lock:
            return sorted(self._sources.values(), key=lambda s: s.name)

    def delete_source(self, source_id: str):
        with self._lock:
            self._chunks.pop(source_id, None)
            self._sources.pop(source_id, None)
            self._save()

    # ── Chunks ───────────────────────────────────────

    def insert_chunks(self, source_id: str, chunks: list[Chunk]) -> list[Chunk]:
        """Append a batch to a source; assigns ids and the source id."""
        with self._lock:
            if source_id not in self._sources:
                raise PersistenceError(f"Unknown source id: {source_id}")
            stored = [replace(c, source_id=source_id, id=c.id or new_id()) for c in chunks]
            self._chunks.setdefault(source_id, []).extend(stored)
            self._save()
        return stored

    def delete_chunks(self, source_id: str) -> int:
        with self._lock:
            removed = self._chunks.pop(source_id, [])
            self._save()
        return len(removed)

    def list_chunks(self, source_id: Optional[str] = None) -> list[Chunk]:
        with self._lock:
            if source_id is not None:
                return list(self._chunks.get(source_id, []))
            return [c for chunks in self._chunks.values() for c in chunks]

    def load_all(self) -> tuple[list[Source], list[Chunk]]:
        """Sources and chunks in one consistent read (index loader)."""
        with self._lock:
            return list(self._sources.values()), self.list_chunks()

    # ── Check log ────────────────────────────────────

    def append_check_log(self, entry: CheckLogEntry):
        with self._lock:
            self._check_logs.append(entry)
            self._save()

    def list_check_logs(self, limit: int = 50) -> list[CheckLogEntry]:
        with self._lock:
            return list(reversed(self._check_logs[-limit:])) if limit > 0 else []
