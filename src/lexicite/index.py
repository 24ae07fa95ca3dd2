# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
In-memory BM25 index over the complete chunk set.

Scoring is done by a bm25s retriever (Lucene variant) built over the
tokenize() output; the snapshot keeps its own postings for matched terms,
per-term IDF and stats. IndexSnapshot is built once and never mutated;
IndexCache holds the current snapshot plus a generation counter.
invalidate() bumps the generation and drops the reference, the next
get_snapshot() rebuilds. Concurrent callers of one generation share a
single build (single-flight).
"""
import math
import re
import threading
from collections import Counter
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Callable, Iterable, Optional

import bm25s
from bm25s.tokenization import Tokenized

from .errors import IndexBuildError
from .models import Chunk, Source

MIN_TOKEN_LENGTH = 3

STOPWORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "is", "was", "are", "were", "been",
    "be", "have", "has", "had", "do", "does", "did", "will", "would",
    "could", "should", "may", "might", "must", "shall", "can", "need",
    "this", "that", "these", "those", "it", "its", "they", "them",
    "their", "what", "which", "who", "whom", "when", "where", "why", "how",
    "all", "each", "every", "both", "few", "more", "most", "other", "some",
    "such", "any", "only", "own", "same", "than", "too", "very", "just",
    "not", "into", "under", "also", "there",
})

_NON_WORD = re.compile(r"[^\w]+")


def tokenize(text: str) -> list[str]:
    """Lowercase, split on non-word chars, drop stopwords and short tokens."""
    return [
        token for token in _NON_WORD.split(text.lower())
        if len(token) >= MIN_TOKEN_LENGTH and token not in STOPWORDS
    ]


def idf(n_docs: int, doc_freq: int) -> float:
    """Lucene BM25 IDF, the same weight the bm25s retriever applies."""
    if doc_freq <= 0:
        return 0.0
    return max(0.0, math.log((n_docs - doc_freq + 0.5) / (doc_freq + 0.5) + 1))


def _build_retriever(token_lists: list[list[str]], k1: float, b: float):
    vocab: dict[str, int] = {}
    ids = [[vocab.setdefault(t, len(vocab)) for t in tokens] for tokens in token_lists]
    retriever = bm25s.BM25(method="lucene", k1=k1, b=b, dtype="float64")
    retriever.index(Tokenized(ids=ids, vocab=vocab), show_progress=False)
    return retriever


class IndexSnapshot:
    """Read-only BM25 statistics for one consistent version of the chunk set."""

    def __init__(
        self,
        chunks: tuple[Chunk, ...],
        sources: dict[str, dict],
        postings: dict[str, dict[str, int]],
        doc_lengths: dict[str, int],
        generation: int = 0,
        k1: float = 1.5,
        b: float = 0.75,
        retriever=None,
    ):
        self.chunks = chunks
        self.sources = MappingProxyType(sources)
        self.postings = MappingProxyType(
            {term: MappingProxyType(p) for term, p in postings.items()}
        )
        self.doc_lengths = MappingProxyType(doc_lengths)
        self.positions = MappingProxyType({c.id: i for i, c in enumerate(chunks)})
        self.n_docs = len(chunks)
        total = sum(doc_lengths.values())
        self.avg_doc_length = (total / self.n_docs) if self.n_docs and total else 1.0
        self.idf_cache = MappingProxyType({
            term: idf(self.n_docs, len(p)) for term, p in postings.items()
        })
        self.generation = generation
        self.k1 = k1
        self.b = b
        self.built_at = datetime.now(timezone.utc).isoformat()
        self._retriever = retriever

    def idf(self, term: str) -> float:
        return self.idf_cache.get(term, 0.0)

    def term_frequency(self, term: str, chunk_id: str) -> int:
        posting = self.postings.get(term)
        return posting.get(chunk_id, 0) if posting else 0

    def matched_terms(self, chunk_id: str, terms: Iterable[str]) -> list[str]:
        return [t for t in terms if self.term_frequency(t, chunk_id)]

    def bm25(self, terms: Iterable[str]) -> dict[str, float]:
        """BM25 score of every chunk that contains at least one of *terms*.

        bm25s leaves the (k1 + 1) factor out of its Lucene scores, so it is
        applied here to keep scores on the classic BM25 scale.
        """
        known = [t for t in dict.fromkeys(terms) if t in self.postings]
        if not known or self._retriever is None:
            return {}
        raw = self._retriever.get_scores(known)
        scale = self.k1 + 1
        return {
            chunk_id: float(raw[self.positions[chunk_id]]) * scale
            for chunk_id in self.candidate_ids(known)
        }

    def score(self, chunk_id: str, terms: Iterable[str]) -> tuple[float, list[str]]:
        """BM25 score of one chunk and the query terms that occur in it."""
        terms = list(terms)
        return self.bm25(terms).get(chunk_id, 0.0), self.matched_terms(chunk_id, terms)

    def candidate_ids(self, terms: Iterable[str]) -> set[str]:
        ids: set[str] = set()
        for term in terms:
            posting = self.postings.get(term)
            if posting:
                ids.update(posting)
        return ids

    def chunk(self, chunk_id: str) -> Chunk:
        return self.chunks[self.positions[chunk_id]]

    def source_of(self, chunk: Chunk) -> dict:
        return self.sources.get(chunk.source_id, {})

    def stats(self) -> dict:
        return {
            "total_sources": len(self.sources),
            "total_chunks": self.n_docs,
            "indexed_terms": len(self.postings),
            "avg_doc_length": round(self.avg_doc_length, 2),
            "last_build_generation": self.generation,
            "built_at": self.built_at,
        }


def build_index(
    chunks: Iterable[Chunk],
    sources: Iterable[Source],
    generation: int = 0,
    k1: float = 1.5,
    b: float = 0.75,
) -> IndexSnapshot:
    chunk_list = tuple(chunks)
    source_info = {
        s.id: {"name": s.name, "type": s.source_type, "sector": s.sector}
        for s in sources
    }
    token_lists = [tokenize(chunk.content) for chunk in chunk_list]
    postings: dict[str, dict[str, int]] = {}
    doc_lengths: dict[str, int] = {}
    for chunk, tokens in zip(chunk_list, token_lists):
        doc_lengths[chunk.id] = len(tokens)
        for term, tf in Counter(tokens).items():
            postings.setdefault(term, {})[chunk.id] = tf
    # bm25s cannot index a corpus without a single token
    retriever = _build_retriever(token_lists, k1, b) if postings else None
    return IndexSnapshot(
        chunk_list, source_info, postings, doc_lengths,
        generation=generation, k1=k1, b=b, retriever=retriever,
    )


# ── Cache (single-flight rebuild) ────────────────────


class _Flight:
    def __init__(self, generation: int):
        self.generation = generation
        self.done = threading.Event()
        self.snapshot: Optional[IndexSnapshot] = None
        self.error: Optional[IndexBuildError] = None


Loader = Callable[[], tuple[list[Source], list[Chunk]]]


class IndexCache:
    def __init__(
        self,
        loader: Loader,
        index_lock: Optional[threading.Lock] = None,
        health=None,
        k1: float = 1.5,
        b: float = 0.75,
    ):
        self._loader = loader
        self._index_lock = index_lock
        self._health = health
        self._k1 = k1
        self._b = b
        self._lock = threading.Lock()
        self._generation = 0
        self._snapshot: Optional[IndexSnapshot] = None
        self._flight: Optional[_Flight] = None
        self._builds = 0

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def builds(self) -> int:
        """Number of builds started since construction."""
        with self._lock:
            return self._builds

    def invalidate(self):
        with self._lock:
            self._generation += 1
            self._snapshot = None

    def peek(self) -> Optional[IndexSnapshot]:
        """Current snapshot without triggering a build."""
        with self._lock:
            return self._snapshot

    def get_snapshot(self) -> IndexSnapshot:
        with self._lock:
            if self._snapshot is not None:
                return self._snapshot
            flight = self._flight
            leader = flight is None or flight.generation != self._generation
            if leader:
                flight = _Flight(self._generation)
                self._flight = flight
                self._builds += 1

        if leader:
            self._build(flight)
        else:
            flight.done.wait()

        if flight.error is not None:
            raise flight.error
        return flight.snapshot

    def _load(self):
        if self._index_lock is None:
            return self._loader()
        with self._index_lock:
            return self._loader()

    def _build(self, flight: _Flight):
        try:
            sources, chunks = self._load()
            snapshot = build_index(
                chunks, sources, generation=flight.generation, k1=self._k1, b=self._b,
            )
        except Exception as e:
            flight.error = IndexBuildError(f"Index build failed: {e}")
            flight.error.__cause__ = e
            print(f"Warning: index build for generation {flight.generation} failed: {e}")
            if self._health:
                self._health.record_index(ok=False, error=str(e))
        else:
            flight.snapshot = snapshot
            with self._lock:
                if self._generation == flight.generation:
                    self._snapshot = snapshot
            if self._health:
                self._health.record_index(
                    ok=True, chunks=snapshot.n_docs, sources=len(snapshot.sources),
                    generation=flight.generation,
                )
            print(
                f"Index built: {snapshot.n_docs} chunks, {len(snapshot.postings)} terms "
                f"(generation {flight.generation})"
            )
        finally:
            with self._lock:
                if self._flight is flight:
                    self._flight = None
            flight.done.set()

    def stats(self) -> dict:
        snapshot = self.get_snapshot()
        stats = snapshot.stats()
        stats["generation"] = self.generation
        return stats
