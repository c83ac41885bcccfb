from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Review(BaseModel):
    """A review joined with its product, author and (optional) place."""

    model_config = ConfigDict(frozen=True)

    id: int
    rating: float = Field(..., ge=0.0, le=5.0)
    note: str | None = None
    product_id: int
    author_id: str
    author_name: str
    reviewed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None
    is_current: bool = True
    url_source: str | None = None

    product_name: str
    product_category: str
    product_note: str | None = None
    place_name: str | None = None
    city: str | None = None


class Ranking(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: int
    product_name: str
    product_category: str
    product_note: str | None = None
    place_name: str | None = None
    city: str | None = None
    rating_avg: float
    num_of_reviews: int = Field(..., ge=1)
    last_reviewed_at: datetime | None = None
    reviews: tuple[Review, ...] = ()


class RankingFilters(BaseModel):
    """Validated filter options; ``None`` leaves a dimension unconstrained."""

    model_config = ConfigDict(frozen=True)

    categories: frozenset[str] | None = None
    cities: frozenset[str] | None = None
    critics: frozenset[str] | None = None
    rating_min: float | None = None
    rating_max: float | None = None
    reviews_min: int | None = None
    q: str | None = None


# ── API output ───────────────────────────────────────────────────────────


class RankingReviewOut(BaseModel):
    id: int
    rating: float
    note: str | None
    username: str
    reviewed_at: datetime | None
    url_source: str | None
    source: str | None = None


class RankingOut(BaseModel):
    position: int
    product_id: int
    product_name: str
    product_category: str
    product_category_label: str
    product_note: str | None
    place_name: str | None
    city: str | None
    rating_avg: float
    num_of_reviews: int
    last_reviewed_at: datetime | None
    reviews: list[RankingReviewOut]


class RankingsResponse(BaseModel):
    rankings: list[RankingOut]
    total: int


class ChampionsResponse(BaseModel):
    categories: dict[str, list[RankingOut]]
