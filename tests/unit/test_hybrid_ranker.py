"""Unit tests for BM25 keyword scoring and the hybrid blend."""

from __future__ import annotations

import pytest

from src.providers.vector_store.hybrid_ranker import blend, keyword_scores, tokenize


class TestTokenize:
    def test_lowercases_and_keeps_identifiers(self) -> None:
        assert tokenize("Set row_height on ResourceStore.") == [
            "set",
            "row_height",
            "on",
            "resourcestore",
        ]


class TestKeywordScores:
    def test_best_match_scores_one(self) -> None:
        docs = [
            "configure the column width",
            "dependencies overview",
            "gantt dependencies",
            "calendar views",
            "scheduler resources",
            "export to pdf",
        ]
        scores = keyword_scores("gantt dependencies", docs)

        assert scores[2] == pytest.approx(1.0)
        assert 0.0 < scores[1] < 1.0
        assert scores[0] == scores[3] == scores[4] == scores[5] == 0.0

    def test_no_query_tokens(self) -> None:
        assert keyword_scores("!!!", ["a b", "c d"]) == [0.0, 0.0]

    def test_no_documents(self) -> None:
        assert keyword_scores("anything", []) == []

    def test_no_matches(self) -> None:
        assert keyword_scores("zebra", ["one", "two", "three"]) == [0.0, 0.0, 0.0]


class TestBlend:
    def test_weighted_sum(self) -> None:
        assert blend([1.0, 0.0], [0.0, 1.0], alpha=0.75) == pytest.approx([0.75, 0.25])

    def test_vector_only_when_no_keyword_scores(self) -> None:
        assert blend([0.4, 1.2, -0.1], None, alpha=0.5) == [0.4, 1.0, 0.0]

    def test_alpha_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            blend([0.5], [0.5], alpha=1.5)

    def test_length_mismatch(self) -> None:
        with pytest.raises(ValueError):
            blend([0.5, 0.5], [0.5], alpha=0.5)
