# lostfound/matching.py
import logging
import math
from typing import Callable

from lostfound.schemas import Flow, ListingView, MatchCandidate
from lostfound.stores import ListingStore
from lostfound.utils.geo import bounding_box, is_finite

logger = logging.getLogger(__name__)

Scorer = Callable[[ListingView, ListingView], float]


class MatchingEngine:
    """Bounding-box shortlist of opposite-type listings, ranked by an external score."""

    def __init__(self, listings: ListingStore, scorer: Scorer, *, radius_km: float = 5.0,
                 min_score: float = 50.0, limit: int = 3, candidate_limit: int = 50):
        self.listings = listings
        self.scorer = scorer
        self.radius_km = radius_km
        self.min_score = min_score
        self.limit = limit
        self.candidate_limit = candidate_limit

    async def find_matches(self, listing: ListingView) -> list[MatchCandidate]:
        if not (is_finite(listing.lat) and is_finite(listing.lng)):
            return []

        opposite = Flow.from_listing_type(listing.type).opposite_type
        box = bounding_box(float(listing.lat), float(listing.lng), self.radius_km)
        rows = await self.listings.query_candidates(opposite, listing.category or None, box, self.candidate_limit)

        scored = []
        for cand in rows:
            # argument order is always (lost, found)
            lost, found = (listing, cand) if listing.type == "LOST" else (cand, listing)
            try:
                value = self.scorer(lost, found)
            except Exception:
                logger.exception("scorer failed for %s vs %s", lost.id, found.id)
                continue
            try:
                value = float(value)
            except (TypeError, ValueError):
                continue
            if not math.isfinite(value):
                continue
            scored.append(MatchCandidate(id=cand.id, title=cand.title or "Untitled", score=value,
                                         created_at=cand.created_at))

        scored.sort(key=lambda m: m.score, reverse=True)
        result = [m for m in scored if m.score >= self.min_score][: self.limit]
        logger.info("matching %s %s: %d candidates, %d matches", listing.type, listing.id, len(rows), len(result))
        return result
