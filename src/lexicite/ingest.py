# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Ingestion: document text -> chunks -> store -> index cache invalidation.

Re-ingesting a source name replaces its chunk set (delete + recreate), so a
retry after a partial failure is always safe. Batch inserts are not
transactional: a failure leaves earlier batches persisted and is reported.
"""
import hashlib
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .chunker import ChunkingOptions, chunk_document
from .config import Config
from .errors import NotFoundError, PersistenceError, ValidationError
from .index import IndexCache
from .models import Chunk, Source
from .readers import SUPPORTED_EXTENSIONS, extract_text, first_heading
from .store import ChunkStore


def content_hash(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def _iter_docs(docs_path: Path):
    """Yield supported document files under docs_path in a stable order."""
    for p in sorted(docs_path.rglob("*")):
        if p.is_file() and p.suffix.lower() in SUPPORTED_EXTENSIONS:
            yield p


class Ingestor:
    def __init__(
        self,
        config: Config,
        store: ChunkStore,
        cache: IndexCache,
        index_lock: threading.Lock,
        health=None,
    ):
        self.config = config
        self.store = store
        self.cache = cache
        self.index_lock = index_lock
        self.health = health

    @property
    def chunking_options(self) -> ChunkingOptions:
        return ChunkingOptions(
            chunk_size=self.config.chunk_size,
            chunk_overlap=self.config.chunk_overlap,
            preserve_sections=True,
            min_chunk_chars=self.config.min_chunk_chars,
        )

    def chunk(self, content: str) -> list[Chunk]:
        return chunk_document(content, self.chunking_options)

    def replace_chunks(self, source: Source, chunks: list[Chunk], source_fields: dict) -> int:
        """Delete a source's chunks, insert the new set in batches, update its row.

        Runs under the shared index lock so an index build never reads a
        half-replaced source. Raises PersistenceError carrying the number of
        chunks inserted before the failure.
        """
        batch_size = max(self.config.insert_batch_size, 1)
        inserted = 0
        with self.index_lock:
            self.store.delete_chunks(source.id)
            for i in range(0, len(chunks), batch_size):
                batch = chunks[i:i + batch_size]
                try:
                    self.store.insert_chunks(source.id, batch)
                except PersistenceError as e:
                    raise PersistenceError(
                        f"Failed to insert chunks for {source.name}: {e}", inserted=inserted,
                    ) from e
                inserted += len(batch)
            try:
                self.store.update_source(source.id, **source_fields)
            except PersistenceError as e:
                raise PersistenceError(
                    f"Failed to update source {source.name}: {e}", inserted=inserted,
                ) from e
        return inserted

    def ingest_source(
        self,
        name: str,
        sector: str,
        source_type: str,
        content: str,
        source_url: Optional[str] = None,
        version: Optional[str] = None,
        effective_date: Optional[str] = None,
        invalidate: bool = True,
    ) -> dict:
        if not name or not sector or not source_type or not content or not content.strip():
            raise ValidationError("Missing required fields: name, sector, source_type, content")

        chunks = self.chunk(content)
        now = datetime.now(timezone.utc).isoformat()

        source = self.store.get_source_by_name(name)
        if source is None:
            try:
                source = self.store.create_source(Source(
                    name=name, sector=sector, source_type=source_type,
                    source_url=source_url, version=version, effective_date=effective_date,
                ))
            except PersistenceError as e:
                return self._failed(name, None, 0, e, invalidate=False)

        fields = {
            "sector": sector,
            "source_type": source_type,
            "source_url": source_url or source.source_url,
            "version": version or source.version,
            "effective_date": effective_date or source.effective_date,
            "content_hash": content_hash(content),
            "metadata": {"last_updated": now},
        }
        try:
            inserted = self.replace_chunks(source, chunks, fields)
        except PersistenceError as e:
            return self._failed(name, source.id, e.inserted, e, invalidate)

        if invalidate:
            self.cache.invalidate()
        if self.health:
            self.health.record_update(name, ok=True)
        print(f"Ingested {name}: {inserted} chunks")
        return {
            "name": name,
            "status": "success",
            "source_id": source.id,
            "chunks_created": inserted,
            "message": f"Successfully ingested {name} with {inserted} chunks",
        }

    def _failed(
        self, name: str, source_id: Optional[str], inserted: int,
        error: PersistenceError, invalidate: bool,
    ) -> dict:
        print(f"Warning: ingestion of {name} failed after {inserted} chunks: {error}")
        if invalidate:
            self.cache.invalidate()
        if self.health:
            self.health.record_update(name, ok=False, error=str(error))
        return {
            "name": name,
            "status": "error",
            "source_id": source_id,
            "chunks_created": inserted,
            "message": str(error),
        }

    def ingest_all(self, documents: list[dict], skip_existing: bool = False) -> dict:
        """Ingest many documents; failures are reported per document."""
        results: list[dict] = []
        for doc in documents:
            name = doc.get("name", "")
            if skip_existing and name and self.store.get_source_by_name(name) is not None:
                results.append({"name": name, "status": "skipped", "message": "already exists"})
                continue
            try:
                results.append(self.ingest_source(
                    name=name,
                    sector=doc.get("sector", ""),
                    source_type=doc.get("source_type", "legislation"),
                    content=doc.get("content", ""),
                    source_url=doc.get("source_url"),
                    version=doc.get("version"),
                    effective_date=doc.get("effective_date"),
                    invalidate=False,
                ))
            except (ValidationError, PersistenceError) as e:
                print(f"Warning: could not ingest {name or '<unnamed>'}: {e}")
                results.append({"name": name, "status": "error", "message": str(e)})

        self.cache.invalidate()
        return {
            "results": results,
            "total_processed": len(results),
            "total_success": sum(1 for r in results if r["status"] == "success"),
            "total_skipped": sum(1 for r in results if r["status"] == "skipped"),
            "total_errors": sum(1 for r in results if r["status"] == "error"),
        }

    def ingest_directory(self, docs_path: Path, source_type: str = "legislation") -> dict:
        """Ingest <docs_path>/<sector>/<file>; the source name is the first heading."""
        docs_path = Path(docs_path)
        if not docs_path.is_dir():
            raise ValidationError(f"Path does not exist: {docs_path}")

        documents: list[dict] = []
        for doc_file in _iter_docs(docs_path):
            content = extract_text(doc_file)
            if not content:
                continue
            rel = doc_file.relative_to(docs_path)
            sector = rel.parts[0] if len(rel.parts) > 1 else "general"
            documents.append({
                "name": first_heading(content) or doc_file.stem,
                "sector": sector,
                "source_type": source_type,
                "content": content,
                "source_url": doc_file.as_uri(),
            })
        return self.ingest_all(documents)

    def delete_source(self, name: str) -> dict:
        source = self.store.get_source_by_name(name)
        if source is None:
            raise NotFoundError(f"Source not found: {name}")
        with self.index_lock:
            self.store.delete_source(source.id)
        self.cache.invalidate()
        return {"status": "success", "message": f"Deleted {name}"}
