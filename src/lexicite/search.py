# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Query -> expanded terms -> BM25 over the current IndexSnapshot -> ranked,
citable passages.

Methods:
- "bm25":   lexical BM25 only; falls back to hybrid when fewer than
            hybrid_fallback_min_results chunks reach min_score
- "hybrid": BM25 plus a weighted phrase/substring/title match signal

Every search works on one snapshot reference, so a concurrent invalidate()
never changes results mid-call.
"""
import re
from dataclasses import dataclass, replace
from typing import Optional

from .config import Config
from .errors import ValidationError
from .index import IndexCache, IndexSnapshot, tokenize
from .synonyms import expand_terms, sector_hints

METHODS = ("bm25", "hybrid")

PHRASE_WEIGHT = 0.5
SUBSTRING_WEIGHT = 0.3
TITLE_WEIGHT = 0.2

_NON_WORD = re.compile(r"[^\w]+")


@dataclass(frozen=True)
class SearchOptions:
    sector: Optional[str] = None
    top_k: int = 5
    expand_query: bool = True
    method: str = "bm25"
    min_score: float = 0.1

    def validate(self):
        if self.method not in METHODS:
            raise ValidationError(f"Unknown search method '{self.method}', expected one of {METHODS}")
        if self.top_k < 1:
            raise ValidationError("top_k must be >= 1")


@dataclass
class _Scored:
    position: int
    chunk_id: str
    score: float
    matched_terms: list[str]


def normalize(text: str) -> str:
    return " ".join(t for t in _NON_WORD.split(text.lower()) if t)


def match_signal(query_phrase: str, base_terms: list[str], content: str, title: str) -> float:
    """Secondary relevance in [0, 1]: exact phrase, term substrings, title hits."""
    norm_content = normalize(content)
    signal = 0.0
    if query_phrase and f" {query_phrase} " in f" {norm_content} ":
        signal += PHRASE_WEIGHT
    if base_terms:
        substr_hits = sum(1 for t in base_terms if t in norm_content)
        signal += SUBSTRING_WEIGHT * substr_hits / len(base_terms)
        norm_title = normalize(title)
        if norm_title:
            title_hits = sum(1 for t in base_terms if t in norm_title)
            signal += TITLE_WEIGHT * title_hits / len(base_terms)
    return signal


def confidence(results: list[dict]) -> str:
    """Caller-facing confidence label; an empty result is not an error."""
    if not results:
        return "none"
    top = results[0]["score"]
    if top >= 8.0:
        return "high"
    if top >= 3.0:
        return "medium"
    return "low"


def sector_query_variants(query: str, sector: Optional[str]) -> list[str]:
    hints = sector_hints(sector)
    if not hints:
        return [query]
    return [query, f"{query} {' '.join(hints)}"]


class SearchEngine:
    def __init__(self, cache: IndexCache, config: Config, health=None):
        self.cache = cache
        self.config = config
        self.health = health

    def default_options(self, **overrides) -> SearchOptions:
        opts = SearchOptions(
            top_k=self.config.default_top_k,
            min_score=self.config.default_min_score,
        )
        return replace(opts, **overrides) if overrides else opts

    def search(self, query: str, options: Optional[SearchOptions] = None) -> list[dict]:
        if not query or not query.strip():
            raise ValidationError("Query is required")
        options = options or self.default_options()
        options.validate()

        base_terms = list(dict.fromkeys(tokenize(query)))
        if not base_terms:
            # only stopwords or short tokens: nothing to cite
            if self.health:
                self.health.record_search(options.method, False)
            return []
        terms = expand_terms(base_terms) if options.expand_query else base_terms

        snapshot = self.cache.get_snapshot()
        scored = self._score_bm25(snapshot, terms, options.sector)

        method = options.method
        if method == "bm25":
            qualifying = sum(1 for s in scored if s.score >= options.min_score)
            if qualifying < self.config.hybrid_fallback_min_results:
                method = "hybrid"
        if method == "hybrid":
            scored = self._blend(snapshot, query, base_terms, scored, options.sector)

        kept = [s for s in scored if s.score > 0 and s.score >= options.min_score]
        kept.sort(key=lambda s: (-s.score, s.position))
        kept = kept[: options.top_k]

        if self.health:
            self.health.record_search(method, bool(kept))
        return [self._to_result(snapshot, s, method) for s in kept]

    def multi_query_search(self, queries: list[str], options: Optional[SearchOptions] = None) -> list[dict]:
        """Run several queries and merge by chunk id, keeping the best score."""
        options = options or self.default_options()
        best: dict[str, dict] = {}
        for query in queries:
            for result in self.search(query, options):
                seen = best.get(result["id"])
                if seen is None or result["score"] > seen["score"]:
                    best[result["id"]] = result
        merged = sorted(best.values(), key=lambda r: r["score"], reverse=True)
        return merged[: options.top_k]

    def search_sector(self, query: str, sector: str, top_k: Optional[int] = None) -> list[dict]:
        options = self.default_options(sector=sector)
        if top_k is not None:
            options = replace(options, top_k=top_k)
        return self.multi_query_search(sector_query_variants(query, sector), options)

    # ── Scoring ──────────────────────────────────────

    @staticmethod
    def _in_sector(snapshot: IndexSnapshot, chunk, sector: Optional[str]) -> bool:
        return sector is None or snapshot.source_of(chunk).get("sector") == sector

    def _score_bm25(self, snapshot: IndexSnapshot, terms: list[str], sector: Optional[str]) -> list[_Scored]:
        scored: list[_Scored] = []
        for chunk_id, score in snapshot.bm25(terms).items():
            chunk = snapshot.chunk(chunk_id)
            if score <= 0 or not self._in_sector(snapshot, chunk, sector):
                continue
            matched = snapshot.matched_terms(chunk_id, terms)
            scored.append(_Scored(snapshot.positions[chunk_id], chunk_id, score, matched))
        return scored

    def _blend(
        self, snapshot: IndexSnapshot, query: str, base_terms: list[str],
        scored: list[_Scored], sector: Optional[str],
    ) -> list[_Scored]:
        by_id = {s.chunk_id: s for s in scored}
        phrase = normalize(query)
        weight = self.config.hybrid_weight
        blended: list[_Scored] = []
        for position, chunk in enumerate(snapshot.chunks):
            if not self._in_sector(snapshot, chunk, sector):
                continue
            signal = match_signal(phrase, base_terms, chunk.content, chunk.section_title or "")
            base = by_id.get(chunk.id)
            if base is None and signal <= 0:
                continue
            bm25 = base.score if base else 0.0
            matched = base.matched_terms if base else []
            blended.append(_Scored(position, chunk.id, bm25 + weight * signal, matched))
        return blended

    @staticmethod
    def _to_result(snapshot: IndexSnapshot, scored: _Scored, method: str) -> dict:
        chunk = snapshot.chunk(scored.chunk_id)
        source = snapshot.source_of(chunk)
        return {
            "id": chunk.id,
            "content": chunk.content,
            "score": scored.score,
            "matched_terms": list(scored.matched_terms),
            "source": {
                "name": source.get("name", ""),
                "type": source.get("type", ""),
                "sector": source.get("sector", ""),
            },
            "section_title": chunk.section_title,
            "section_number": chunk.section_number,
            "chunk_index": chunk.index,
            "method": method,
        }
