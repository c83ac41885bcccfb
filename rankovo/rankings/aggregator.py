from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Iterable

from .config import DEFAULT_RANKING_CONFIG, RankingConfig
from .models import Ranking, Review

logger = logging.getLogger(__name__)


def round_half_up(value: float, places: int = 2) -> float:
    """Round to ``places`` decimals with ties going up (0.125 -> 0.13)."""
    factor = 10 ** places
    return math.floor(value * factor + 0.5) / factor


def _later(current: datetime | None, candidate: datetime | None) -> datetime | None:
    if candidate is None:
        return current
    if current is None or candidate > current:
        return candidate
    return current


def _most_recent_first(reviews: list[Review]) -> tuple[Review, ...]:
    dated = [r for r in reviews if r.reviewed_at is not None]
    undated = [r for r in reviews if r.reviewed_at is None]
    dated.sort(key=lambda r: r.reviewed_at, reverse=True)
    return tuple(dated + undated)


def aggregate_rankings(
    reviews: Iterable[Review],
    config: RankingConfig = DEFAULT_RANKING_CONFIG,
) -> dict[int, Ranking]:
    """
    Fold reviews into one ranking per product.

    Only current reviews count; a superseded review is history and never
    reaches the average. The average is updated incrementally and rounded
    after every review, so the result depends on input order in the last
    decimal for some inputs. Products are keyed in first-seen order.
    """
    drafts: dict[int, dict[str, Any]] = {}

    for review in reviews:
        if not review.is_current:
            continue

        draft = drafts.get(review.product_id)
        if draft is None:
            drafts[review.product_id] = {
                "first": review,
                "rating_avg": review.rating,
                "num_of_reviews": 1,
                "last_reviewed_at": review.reviewed_at,
                "reviews": [review],
            }
            continue

        count = draft["num_of_reviews"]
        draft["rating_avg"] = round_half_up(
            (draft["rating_avg"] * count + review.rating) / (count + 1),
            config.decimal_places,
        )
        draft["num_of_reviews"] = count + 1
        draft["last_reviewed_at"] = _later(draft["last_reviewed_at"], review.reviewed_at)
        draft["reviews"].append(review)

    rankings: dict[int, Ranking] = {}
    for product_id, draft in drafts.items():
        first: Review = draft["first"]
        rankings[product_id] = Ranking(
            product_id=product_id,
            product_name=first.product_name,
            product_category=first.product_category,
            product_note=first.product_note,
            place_name=first.place_name,
            city=first.city,
            rating_avg=draft["rating_avg"],
            num_of_reviews=draft["num_of_reviews"],
            last_reviewed_at=draft["last_reviewed_at"],
            reviews=_most_recent_first(draft["reviews"]),
        )

    logger.debug("Aggregated %d rankings", len(rankings))
    return rankings
