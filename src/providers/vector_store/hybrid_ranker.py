"""Hybrid re-ranking: dense similarity blended with BM25 keyword relevance.

The vector store returns a candidate pool ranked by cosine similarity.
This module scores the same pool with BM25 (``rank_bm25.BM25Okapi``) and
blends the two::

    score = alpha * vector_similarity + (1 - alpha) * keyword_relevance

Both inputs live in ``[0, 1]``: similarity is ``1 - cosine_distance``
clamped, and BM25 scores are divided by the pool's best score.  The blend
therefore also lies in ``[0, 1]`` with 1 best.

Identifiers such as ``ResourceStore`` or ``row_height`` matter in API
docs, so tokens keep underscores and are lower-cased but never stemmed.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from rank_bm25 import BM25Okapi

_TOKEN_PATTERN = re.compile(r"\w+", re.UNICODE)


def tokenize(text: str) -> list[str]:
    """Lower-cased word tokens of *text*."""
    return [token.lower() for token in _TOKEN_PATTERN.findall(text)]


def keyword_scores(query: str, documents: Sequence[str]) -> list[float]:
    """BM25 relevance of each document to *query*, normalized to ``[0, 1]``.

    The best document in the pool scores 1.  Returns all zeros when the
    query has no tokens, or nothing in the pool matches it.
    """
    if not documents:
        return []
    query_tokens = tokenize(query)
    corpus = [tokenize(doc) for doc in documents]
    if not query_tokens or not any(corpus):
        return [0.0] * len(documents)

    raw = BM25Okapi(corpus).get_scores(query_tokens)
    # Terms present in most of a small pool get a negative IDF; those
    # documents count as irrelevant rather than penalized.
    clipped = [max(0.0, float(score)) for score in raw]
    best = max(clipped)
    if best <= 0.0:
        return [0.0] * len(documents)
    return [score / best for score in clipped]


def blend(
    vector_scores: Sequence[float],
    keyword: Sequence[float] | None,
    alpha: float,
) -> list[float]:
    """Combine per-document scores with weight *alpha* on the vector side.

    With no keyword scores the vector similarity is returned unchanged.
    """
    if not 0.0 <= alpha <= 1.0:
        raise ValueError("alpha must be within [0, 1]")
    if keyword is None:
        return [min(1.0, max(0.0, v)) for v in vector_scores]
    return [
        min(1.0, max(0.0, alpha * v + (1.0 - alpha) * k))
        for v, k in zip(vector_scores, keyword, strict=True)
    ]
