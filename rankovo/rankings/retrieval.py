from __future__ import annotations

import logging
import time
from typing import Iterable

from ..catalog.static import category_label, extract_review_source
from .aggregator import aggregate_rankings
from .config import DEFAULT_RANKING_CONFIG, RankingConfig
from .filters import matches_filters
from .models import (
    ChampionsResponse,
    Ranking,
    RankingFilters,
    RankingOut,
    RankingReviewOut,
    RankingsResponse,
    Review,
)

logger = logging.getLogger(__name__)


def _to_out(ranking: Ranking, position: int, config: RankingConfig) -> RankingOut:
    reviews = [
        RankingReviewOut(
            id=review.id,
            rating=review.rating,
            note=review.note,
            username=review.author_name,
            reviewed_at=review.reviewed_at,
            url_source=review.url_source,
            source=extract_review_source(review.url_source),
        )
        for review in ranking.reviews[: config.max_reviews_per_ranking]
    ]
    return RankingOut(
        position=position,
        product_id=ranking.product_id,
        product_name=ranking.product_name,
        product_category=ranking.product_category,
        product_category_label=category_label(ranking.product_category),
        product_note=ranking.product_note,
        place_name=ranking.place_name,
        city=ranking.city,
        rating_avg=ranking.rating_avg,
        num_of_reviews=ranking.num_of_reviews,
        last_reviewed_at=ranking.last_reviewed_at,
        reviews=reviews,
    )


def rank(rankings: Iterable[Ranking], filters: RankingFilters) -> list[Ranking]:
    """Filter rankings and order them by average rating, best first.

    ``sorted`` is stable, so equal averages keep their first-seen order.
    """
    passed = [r for r in rankings if matches_filters(r, filters)]
    return sorted(passed, key=lambda r: r.rating_avg, reverse=True)


def get_rankings(
    reviews: Iterable[Review],
    filters: RankingFilters,
    limit: int | None = None,
    config: RankingConfig = DEFAULT_RANKING_CONFIG,
) -> RankingsResponse:
    start_time = time.time()
    limit = limit or config.default_limit

    ordered = rank(aggregate_rankings(reviews, config).values(), filters)
    items = [
        _to_out(ranking, position, config)
        for position, ranking in enumerate(ordered[:limit], start=1)
    ]

    elapsed_ms = round((time.time() - start_time) * 1000, 1)
    logger.debug(
        "Rankings query: %d of %d returned in %sms", len(items), len(ordered), elapsed_ms,
    )
    return RankingsResponse(rankings=items, total=len(ordered))


def get_champions(
    reviews: Iterable[Review],
    config: RankingConfig = DEFAULT_RANKING_CONFIG,
) -> ChampionsResponse:
    """Top rankings for each showcase category, aggregated once."""
    rankings = list(aggregate_rankings(reviews, config).values())

    result: dict[str, list[RankingOut]] = {}
    for category in config.champion_categories:
        ordered = rank(rankings, RankingFilters(categories=frozenset({category})))
        result[category] = [
            _to_out(ranking, position, config)
            for position, ranking in enumerate(ordered[: config.champions_top], start=1)
        ]
    return ChampionsResponse(categories=result)
