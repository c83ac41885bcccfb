from __future__ import annotations

import logging
import math
import unicodedata
from typing import Callable, Iterable, Mapping

from ..catalog.static import (
    CATEGORIES,
    CITIES,
    RATING_HIGHEST,
    RATING_LOWEST,
    category_label,
)
from .models import Ranking, RankingFilters

logger = logging.getLogger(__name__)


class FilterValidationError(ValueError):
    """Raised when raw filter parameters cannot be turned into filters."""


# ── Request parsing ──────────────────────────────────────────────────────


def _split(raw: str | None) -> list[str] | None:
    if raw is None:
        return None
    items = [part.strip() for part in raw.split(",") if part.strip()]
    return items or None


def _members(name: str, raw: str | None, allowed: Iterable[str]) -> frozenset[str] | None:
    items = _split(raw)
    if items is None:
        return None
    allowed_set = set(allowed)
    unknown = [item for item in items if item not in allowed_set]
    if unknown:
        raise FilterValidationError(f"Unknown {name}: {', '.join(unknown)}")
    return frozenset(items)


def _number(name: str, raw: str | None, cast: Callable[[str], float]) -> float | None:
    if raw is None or not raw.strip():
        return None
    try:
        value = cast(raw.strip())
    except ValueError:
        raise FilterValidationError(f"{name} must be a number, got {raw!r}") from None
    if not math.isfinite(value):
        raise FilterValidationError(f"{name} must be finite")
    return value


def parse_filters(
    params: Mapping[str, str | None],
    critics: Iterable[str] = (),
) -> RankingFilters:
    """
    Turn raw query parameters into :class:`RankingFilters`.

    List parameters are comma separated (``categories=burger,pizza``).
    Empty values leave the dimension unconstrained. Unknown members and
    out-of-range numbers raise :class:`FilterValidationError`.
    """
    try:
        rating_min = _number("rating-min", params.get("rating-min"), float)
        rating_max = _number("rating-max", params.get("rating-max"), float)
        reviews_min = _number("reviews-min", params.get("reviews-min"), float)

        for name, rating in (("rating-min", rating_min), ("rating-max", rating_max)):
            if rating is not None and not RATING_LOWEST <= rating <= RATING_HIGHEST:
                raise FilterValidationError(
                    f"{name} must be between {RATING_LOWEST} and {RATING_HIGHEST}"
                )
        if rating_min is not None and rating_max is not None and rating_min > rating_max:
            raise FilterValidationError("rating-min must not be greater than rating-max")
        if reviews_min is not None and not reviews_min.is_integer():
            raise FilterValidationError(f"reviews-min must be an integer, got {reviews_min:g}")
        if reviews_min is not None and reviews_min < 1:
            raise FilterValidationError("reviews-min must be at least 1")

        q = (params.get("q") or "").strip() or None

        return RankingFilters(
            categories=_members("categories", params.get("categories"), CATEGORIES),
            cities=_members("cities", params.get("cities"), CITIES),
            critics=_members("critics", params.get("critics"), critics),
            rating_min=rating_min,
            rating_max=rating_max,
            reviews_min=int(reviews_min) if reviews_min is not None else None,
            q=q,
        )
    except FilterValidationError as exc:
        logger.warning("Rejected ranking filters %s: %s", dict(params), exc)
        raise


# ── Predicate ────────────────────────────────────────────────────────────


def normalize_text(text: str) -> str:
    """Case-fold Unicode text so that ``Döner`` and ``DÖNER`` compare equal."""
    return unicodedata.normalize("NFC", text).casefold()


def matches_query(ranking: Ranking, q: str | None) -> bool:
    if not q:
        return True
    needle = normalize_text(q)
    haystacks = (
        ranking.product_name,
        ranking.place_name,
        category_label(ranking.product_category),
    )
    return any(h is not None and needle in normalize_text(h) for h in haystacks)


def matches_filters(ranking: Ranking, filters: RankingFilters) -> bool:
    """Return ``True`` when the ranking passes every active filter."""
    if filters.categories is not None and ranking.product_category not in filters.categories:
        return False

    if filters.cities is not None and (ranking.city is None or ranking.city not in filters.cities):
        return False

    if filters.critics is not None and not any(
        review.author_name in filters.critics for review in ranking.reviews
    ):
        return False

    if filters.rating_min is not None and ranking.rating_avg < filters.rating_min:
        return False

    if filters.rating_max is not None and ranking.rating_avg > filters.rating_max:
        return False

    if filters.reviews_min is not None and ranking.num_of_reviews < filters.reviews_min:
        return False

    return matches_query(ranking, filters.q)
