# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""Tests for ranked legislation search."""
from dataclasses import replace

import pytest

from lexicite.errors import ValidationError
from lexicite.search import SearchOptions, confidence, match_signal, normalize


class TestHelpers:
    def test_normalize(self):
        assert normalize("  Worker-Screening,  CHECK ") == "worker screening check"

    def test_match_signal_phrase_and_substrings(self):
        signal = match_signal(
            "worker screening", ["worker", "screening"],
            "Worker screening is required.", "",
        )
        assert signal == pytest.approx(0.8)

    def test_match_signal_title(self):
        signal = match_signal("", ["screening"], "nothing relevant", "Standard 3 Worker Screening")
        assert signal == pytest.approx(0.2)

    def test_confidence_labels(self):
        assert confidence([]) == "none"
        assert confidence([{"score": 9.0}]) == "high"
        assert confidence([{"score": 4.0}]) == "medium"
        assert confidence([{"score": 0.5}]) == "low"


class TestSearch:
    def test_returns_citable_passage(self, corpus, engine):
        results = engine.search("incident")
        top = results[0]
        assert top["source"]["name"] == "NDIS Practice Standards"
        assert top["source"]["sector"] == "ndis"
        assert top["section_title"] == "Standard 2 Incident Management"
        assert top["section_number"] == "2"
        assert "incident" in top["matched_terms"]
        assert top["score"] > 0

    def test_empty_query_rejected(self, corpus, engine):
        with pytest.raises(ValidationError):
            engine.search("")
        with pytest.raises(ValidationError):
            engine.search("   ")

    def test_unknown_method_rejected(self, corpus, engine):
        with pytest.raises(ValidationError):
            engine.search("incident", SearchOptions(method="vector"))

    def test_no_match_is_empty_not_error(self, corpus, engine):
        results = engine.search("zzzzqqq")
        assert results == []
        assert confidence(results) == "none"

    def test_empty_index(self, engine):
        assert engine.search("incident") == []

    def test_sector_filter(self, corpus, engine):
        unfiltered = engine.search("safety", engine.default_options(top_k=10))
        assert {r["source"]["sector"] for r in unfiltered} >= {"workplace", "transport"}

        filtered = engine.search("safety", engine.default_options(sector="transport", top_k=10))
        assert filtered
        assert all(r["source"]["sector"] == "transport" for r in filtered)

    def test_min_score_threshold(self, corpus, engine):
        assert engine.search("incident", engine.default_options(min_score=1000.0)) == []

    @pytest.mark.parametrize("method", ["bm25", "hybrid"])
    def test_min_score_drops_lower_scores(self, corpus, engine, config, method):
        config.hybrid_fallback_min_results = 0
        options = engine.default_options(top_k=10, min_score=0.0, method=method)
        unfiltered = engine.search("safety health risk", options)
        scores = sorted({r["score"] for r in unfiltered})
        assert len(scores) >= 2

        cutoff = (scores[0] + scores[1]) / 2
        filtered = engine.search("safety health risk", replace(options, min_score=cutoff))
        assert filtered
        assert len(filtered) < len(unfiltered)
        assert all(r["score"] >= cutoff for r in filtered)
        assert all(r["method"] == method for r in filtered)

    def test_stopword_only_query_returns_nothing(self, corpus, engine, health):
        assert engine.search("the") == []
        assert engine.search("can we", engine.default_options(method="hybrid")) == []
        assert health.status["searches_misses"] == 2

    def test_top_k(self, corpus, engine):
        results = engine.search("provider participant", engine.default_options(top_k=1))
        assert len(results) == 1

    def test_sorted_by_score(self, corpus, engine):
        results = engine.search("safety health risk", engine.default_options(top_k=10))
        scores = [r["score"] for r in results]
        assert scores == sorted(scores, reverse=True)

    def test_acronym_expansion(self, corpus, engine):
        expanded = engine.search("pcbu", engine.default_options(top_k=10))
        titles = {r["section_title"] for r in expanded}
        assert "Section 19 Primary duty of care" in titles
        assert "Part 2 Health and safety duties" in titles

        literal = engine.search("pcbu", engine.default_options(top_k=10, expand_query=False))
        assert [r["section_title"] for r in literal] == ["Section 19 Primary duty of care"]

    def test_falls_back_to_hybrid_on_thin_results(self, corpus, engine, health):
        results = engine.search("incident")
        assert results[0]["method"] == "hybrid"
        assert health.status["searches_by_method"]["hybrid"] == 1

    def test_stays_bm25_with_enough_results(self, ingestor, engine):
        docs = [
            {
                "name": f"Code {i}",
                "sector": "ndis",
                "content": f"# Clause {i}\n\nThe provider must keep complaint records "
                           f"and resolve every complaint fairly within {i + 20} days.",
            }
            for i in range(4)
        ]
        ingestor.ingest_all(docs)
        results = engine.search("complaint records", engine.default_options(top_k=10))
        assert len(results) == 4
        assert all(r["method"] == "bm25" for r in results)

    def test_ties_keep_index_order(self, ingestor, engine):
        content = "# Clause 1\n\nEvery worker must complete screening before any support is delivered."
        ingestor.ingest_all([
            {"name": "A", "sector": "ndis", "content": content},
            {"name": "B", "sector": "ndis", "content": content},
        ])
        results = engine.search("worker screening", engine.default_options(top_k=10))
        assert [r["source"]["name"] for r in results] == ["A", "B"]
        assert results[0]["score"] == results[1]["score"]

    def test_search_records_health(self, corpus, engine, health):
        engine.search("incident")
        engine.search("zzzzqqq")
        s = health.status
        assert s["searches_total"] == 2
        assert s["searches_hits"] == 1
        assert s["searches_misses"] == 1


class TestSectorSearch:
    def test_restricted_to_sector(self, corpus, engine):
        results = engine.search_sector("worker screening clearance", "ndis")
        assert results
        assert all(r["source"]["sector"] == "ndis" for r in results)
        assert results[0]["section_title"] == "Standard 3 Worker Screening"

    def test_top_k(self, corpus, engine):
        assert len(engine.search_sector("participant provider", "ndis", top_k=2)) <= 2

    def test_multi_query_deduplicates(self, corpus, engine):
        results = engine.multi_query_search(["incident", "incident management"])
        ids = [r["id"] for r in results]
        assert len(ids) == len(set(ids))
