"""Scoring, distance and averaging primitives used to rank stores.

The Postgres repository pushes these computations into SQL (ts_rank, a
haversine expression, AVG over a join). The in-memory repository delegates to
`LocalQueryCapability`, which implements the same ordering contracts in Python:

- score_search: term-frequency relevance, higher is better, non-matching
  documents dropped, ties keep input order
- radius_search: great-circle (haversine) distance in meters, points beyond
  the cutoff dropped, nearest first, ties keep input order
- aggregate_average: arithmetic mean, None for no values
"""

from collections import Counter
from collections.abc import Hashable, Iterable
import math
import re
from typing import Protocol, TypeVar

K = TypeVar("K", bound=Hashable)

# Mean Earth radius (IUGG). Haversine on a sphere is within ~0.5% of the
# ellipsoidal distance, well inside the slack of a 10km search radius.
EARTH_RADIUS_M = 6_371_008.8

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)

# Kept small on purpose: common English words that would otherwise dominate scores.
_STOPWORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "in",
        "is", "it", "of", "on", "or", "that", "the", "to", "with",
    }
)


class QueryCapability(Protocol):
    """Relevance, distance and aggregation primitives behind discovery queries."""

    def score_search(self, query: str, documents: Iterable[tuple[K, str]]) -> list[tuple[K, float]]:
        ...

    def radius_search(
        self,
        lng: float,
        lat: float,
        max_distance_m: float,
        points: Iterable[tuple[K, float, float]],
    ) -> list[tuple[K, float]]:
        ...

    def aggregate_average(self, values: Iterable[float]) -> float | None:
        ...


def _stem(token: str) -> str:
    """Very light plural folding so 'shops' matches 'shop'."""
    if len(token) > 4 and token.endswith("ies"):
        return token[:-3] + "y"
    if len(token) > 3 and token.endswith("s") and not token.endswith("ss"):
        return token[:-1]
    return token


def tokenize(text: str) -> list[str]:
    """Lowercase word tokens with stopwords removed and plurals folded."""
    return [
        _stem(tok)
        for tok in _TOKEN_RE.findall(text.lower())
        if tok not in _STOPWORDS
    ]


def haversine_m(lng1: float, lat1: float, lng2: float, lat2: float) -> float:
    """Great-circle distance in meters between two (lng, lat) points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


class LocalQueryCapability:
    """Pure-Python implementation of `QueryCapability`."""

    def score_search(self, query: str, documents: Iterable[tuple[K, str]]) -> list[tuple[K, float]]:
        """Rank documents by the share of their tokens that are query terms.

        Args:
            query: Free text; tokenized the same way as documents.
            documents: (key, text) pairs.

        Returns:
            (key, score) pairs for documents matching at least one term, score desc.
        """
        terms = set(tokenize(query))
        if not terms:
            return []

        scored: list[tuple[K, float]] = []
        for key, text in documents:
            tokens = tokenize(text)
            if not tokens:
                continue
            counts = Counter(tokens)
            hits = sum(counts[t] for t in terms)
            if not hits:
                continue
            # Each distinct matched term adds a full point so documents matching
            # more of the query always outrank repeated single-term matches.
            matched = sum(1 for t in terms if counts[t])
            scored.append((key, matched + hits / len(tokens)))

        # sorted() is stable: equal scores keep document order
        return sorted(scored, key=lambda pair: pair[1], reverse=True)

    def radius_search(
        self,
        lng: float,
        lat: float,
        max_distance_m: float,
        points: Iterable[tuple[K, float, float]],
    ) -> list[tuple[K, float]]:
        """Keep points within `max_distance_m` of (lng, lat), nearest first."""
        hits: list[tuple[K, float]] = []
        for key, p_lng, p_lat in points:
            distance = haversine_m(lng, lat, p_lng, p_lat)
            if distance <= max_distance_m:
                hits.append((key, distance))
        return sorted(hits, key=lambda pair: pair[1])

    def aggregate_average(self, values: Iterable[float]) -> float | None:
        values = list(values)
        if not values:
            return None
        return sum(values) / len(values)
