from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from ..catalog.static import CATEGORIES, CITIES, RATING_HIGHEST, RATING_LOWEST


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


# ── Write requests ───────────────────────────────────────────────────────


class PlaceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    city: str | None = None

    @field_validator("city")
    @classmethod
    def _known_city(cls, value: str | None) -> str | None:
        if value is not None and value not in CITIES:
            raise ValueError(f"unsupported city {value!r}")
        return value


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: str
    note: str | None = Field(default=None, max_length=255)
    place_id: int | None = None

    @field_validator("category")
    @classmethod
    def _known_category(cls, value: str) -> str:
        if value not in CATEGORIES:
            raise ValueError(f"unsupported category {value!r}")
        return value


class ReviewCreate(BaseModel):
    product_id: int
    rating: float = Field(..., ge=RATING_LOWEST, le=RATING_HIGHEST)
    note: str | None = Field(default=None, max_length=255)
    url_source: str | None = Field(default=None, max_length=2048)


class ReviewUpdate(BaseModel):
    rating: float | None = Field(default=None, ge=RATING_LOWEST, le=RATING_HIGHEST)
    note: str | None = Field(default=None, max_length=255)
    url_source: str | None = Field(default=None, max_length=2048)


class UsernameChange(BaseModel):
    name: str = Field(..., min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_-]+$")


# ── Read models ──────────────────────────────────────────────────────────


class PlaceOut(BaseModel):
    id: int
    name: str
    city: str | None


class ProductOut(BaseModel):
    id: int
    name: str
    category: str
    note: str | None
    place_id: int | None
    place_name: str | None
    city: str | None


class ProductSearchResult(ProductOut):
    rating_avg: float


class ReviewOut(BaseModel):
    id: int
    rating: float
    note: str | None
    product_id: int
    product_name: str
    place_name: str | None
    city: str | None
    author_id: str
    username: str
    is_current: bool
    url_source: str | None
    source: str | None
    reviewed_at: datetime | None
    created_at: datetime
    updated_at: datetime | None


class ReviewsPage(BaseModel):
    reviews: list[ReviewOut]
    page: int
    page_size: int


class UserOut(BaseModel):
    id: str
    name: str
    created_at: datetime
    updated_at: datetime | None
    num_of_reviews: int = 0


class CriticOut(BaseModel):
    id: int
    name: str
    url: str | None
