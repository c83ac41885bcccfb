from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from ..catalog.static import extract_review_source
from ..rankings.aggregator import round_half_up
from ..rankings.models import Review
from .config import DEFAULT_STORE_CONFIG, StoreConfig
from .data_store import load_tables
from .errors import ConflictError, NotFoundError
from .models import (
    CriticOut,
    PlaceCreate,
    PlaceOut,
    ProductCreate,
    ProductOut,
    ProductSearchResult,
    ReviewCreate,
    ReviewOut,
    ReviewsPage,
    UserOut,
)

logger = logging.getLogger(__name__)

REVIEW_FIELDS = list(Review.model_fields)
EDITABLE_REVIEW_FIELDS = ("rating", "note", "url_source")


def _clean(value: Any) -> Any:
    """Turn pandas/numpy scalars into plain Python values (NaN/NaT -> None)."""
    if value is None:
        return None
    if not isinstance(value, str) and pd.isna(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.generic):
        return value.item()
    return value


def _record(row: dict[str, Any], fields: list[str]) -> dict[str, Any]:
    return {name: _clean(row[name]) for name in fields}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _contains(series: pd.Series, text: str) -> pd.Series:
    return series.str.contains(text, case=False, regex=False, na=False)


class ReviewRepository:
    """
    Tables held as pandas DataFrames behind a lock.

    Reads build new frames under the lock and return immutable models, so
    callers always work on a consistent snapshot.
    """

    def __init__(
        self,
        tables: dict[str, pd.DataFrame],
        config: StoreConfig = DEFAULT_STORE_CONFIG,
    ) -> None:
        self._tables = {name: df.copy() for name, df in tables.items()}
        self._lock = threading.Lock()
        self.config = config

    @classmethod
    def from_directory(
        cls, directory: Path, config: StoreConfig = DEFAULT_STORE_CONFIG,
    ) -> ReviewRepository:
        return cls(load_tables(directory), config)

    def tables(self) -> dict[str, pd.DataFrame]:
        with self._lock:
            return {name: df.copy() for name, df in self._tables.items()}

    # ── Joins ────────────────────────────────────────────────────────────

    def _places_for_join(self) -> pd.DataFrame:
        return (
            self._tables["places"][["id", "name", "city"]]
            .rename(columns={"id": "place_id", "name": "place_name"})
            .astype({"place_id": "Int64"})
        )

    def _joined_reviews(self) -> pd.DataFrame:
        products = self._tables["products"][["id", "name", "category", "note", "place_id"]].rename(
            columns={
                "id": "product_id",
                "name": "product_name",
                "category": "product_category",
                "note": "product_note",
            }
        )
        users = self._tables["users"][["id", "name"]].rename(
            columns={"id": "author_id", "name": "author_name"}
        )
        return (
            self._tables["reviews"]
            .merge(products, on="product_id", how="inner")
            .merge(users, on="author_id", how="inner")
            .merge(self._places_for_join(), on="place_id", how="left")
        )

    def _joined_products(self) -> pd.DataFrame:
        return self._tables["products"].merge(
            self._places_for_join(), on="place_id", how="left",
        )

    @staticmethod
    def review_out(review: Review) -> ReviewOut:
        return ReviewOut(
            id=review.id,
            rating=review.rating,
            note=review.note,
            product_id=review.product_id,
            product_name=review.product_name,
            place_name=review.place_name,
            city=review.city,
            author_id=review.author_id,
            username=review.author_name,
            is_current=review.is_current,
            url_source=review.url_source,
            source=extract_review_source(review.url_source),
            reviewed_at=review.reviewed_at,
            created_at=review.created_at,
            updated_at=review.updated_at,
        )

    @staticmethod
    def _product_out(row: dict[str, Any]) -> ProductOut:
        return ProductOut(**_record(row, ["id", "name", "category", "note", "place_id", "place_name", "city"]))

    # ── Reads ────────────────────────────────────────────────────────────

    def fetch_reviews(
        self,
        product_id: int | None = None,
        author_id: str | None = None,
    ) -> tuple[Review, ...]:
        """Snapshot of denormalized reviews, optionally for one product or author."""
        logger.debug("QUERY reviews product=%s author=%s", product_id, author_id)
        with self._lock:
            df = self._joined_reviews()

        if product_id is not None:
            df = df[df["product_id"] == product_id]
        if author_id is not None:
            df = df[df["author_id"] == author_id]

        return tuple(Review(**_record(row, REVIEW_FIELDS)) for row in df.to_dict("records"))

    def get_review(self, review_id: int) -> Review:
        with self._lock:
            df = self._joined_reviews()
        rows = df[df["id"] == review_id].to_dict("records")
        if not rows:
            raise NotFoundError("review", review_id)
        return Review(**_record(rows[0], REVIEW_FIELDS))

    def list_reviews(self, page: int = 1, user_id: str | None = None) -> ReviewsPage:
        """Review history, newest first, including superseded reviews."""
        logger.debug("QUERY review history page=%s user=%s", page, user_id)
        page_size = self.config.page_size_reviews
        with self._lock:
            df = self._joined_reviews()

        if user_id is not None:
            df = df[df["author_id"] == user_id]

        df = df.sort_values(
            ["reviewed_at", "updated_at", "id"],
            ascending=[False, False, True],
            na_position="last",
        )
        start = (page - 1) * page_size
        rows = df.iloc[start : start + page_size].to_dict("records")
        return ReviewsPage(
            reviews=[self.review_out(Review(**_record(row, REVIEW_FIELDS))) for row in rows],
            page=page,
            page_size=page_size,
        )

    def list_critics(self) -> list[CriticOut]:
        logger.debug("QUERY critics")
        with self._lock:
            df = self._tables["critics"].merge(
                self._tables["users"][["id", "name"]].rename(columns={"id": "user_id"}),
                on="user_id",
                how="inner",
            )
        return [CriticOut(**_record(row, ["id", "name", "url"])) for row in df.to_dict("records")]

    def critic_names(self) -> frozenset[str]:
        return frozenset(critic.name for critic in self.list_critics())

    def search_products(
        self,
        product_name: str | None = None,
        place_name: str | None = None,
    ) -> list[ProductSearchResult]:
        """
        Products matching name and/or place, best rated first.

        Terms shorter than ``min_chars_search`` are ignored. The rating is
        the mean of the product's most recent current reviews; products
        without any current review are left out.
        """
        logger.debug("QUERY search products product=%r place=%r", product_name, place_name)
        min_chars = self.config.min_chars_search
        with self._lock:
            products = self._joined_products()
            reviews = self._tables["reviews"][["product_id", "rating", "reviewed_at", "is_current"]].copy()

        mask = pd.Series(True, index=products.index)
        if product_name and len(product_name) >= min_chars:
            mask &= _contains(products["name"], product_name)
        if place_name and len(place_name) >= min_chars:
            mask &= _contains(products["place_name"], place_name)
        candidates = products.loc[mask]

        recent = reviews[reviews["is_current"] & reviews["product_id"].isin(candidates["id"])]
        recent = (
            recent.sort_values("reviewed_at", ascending=False, na_position="last")
            .groupby("product_id")
            .head(self.config.search_recent_reviews)
        )
        averages = recent.groupby("product_id")["rating"].mean().rename("rating_avg")

        result = candidates.merge(averages, left_on="id", right_index=True, how="inner")
        result = result.sort_values("rating_avg", ascending=False, kind="stable")

        items: list[ProductSearchResult] = []
        for row in result.to_dict("records"):
            product = self._product_out(row)
            items.append(ProductSearchResult(
                **product.model_dump(),
                rating_avg=round_half_up(float(row["rating_avg"])),
            ))
        return items

    def search_places(self, place_name: str | None = None) -> list[PlaceOut]:
        logger.debug("QUERY search places place=%r", place_name)
        with self._lock:
            places = self._tables["places"].copy()
        if place_name and len(place_name) >= self.config.min_chars_search:
            places = places[_contains(places["name"], place_name)]
        return [PlaceOut(**_record(row, ["id", "name", "city"])) for row in places.to_dict("records")]

    def user_for_id(self, user_id: str) -> UserOut:
        logger.debug("QUERY user %s", user_id)
        with self._lock:
            users = self._tables["users"]
            rows = users[users["id"] == user_id].to_dict("records")
            reviews = self._tables["reviews"]
            num_of_reviews = int(((reviews["author_id"] == user_id) & reviews["is_current"]).sum())
        if not rows:
            raise NotFoundError("user", user_id)
        return UserOut(
            **_record(rows[0], ["id", "name", "created_at", "updated_at"]),
            num_of_reviews=num_of_reviews,
        )

    # ── Writes ───────────────────────────────────────────────────────────

    def _next_id(self, name: str) -> int:
        ids = self._tables[name]["id"]
        return int(ids.max()) + 1 if len(ids) else 1

    def _append(self, name: str, row: dict[str, Any]) -> None:
        table = self._tables[name]
        new = pd.DataFrame([row], columns=table.columns).astype(table.dtypes.to_dict())
        self._tables[name] = pd.concat([table, new], ignore_index=True)

    def create_place(self, place: PlaceCreate) -> PlaceOut:
        logger.info("ACTION create place %r", place.name)
        with self._lock:
            place_id = self._next_id("places")
            self._append("places", {
                "id": place_id,
                "name": place.name,
                "city": place.city,
                "created_at": _now(),
                "updated_at": None,
            })
        return PlaceOut(id=place_id, name=place.name, city=place.city)

    def create_product(self, product: ProductCreate) -> ProductOut:
        logger.info("ACTION create product %r", product.name)
        with self._lock:
            places = self._tables["places"]
            if product.place_id is not None and not (places["id"] == product.place_id).any():
                raise NotFoundError("place", product.place_id)

            product_id = self._next_id("products")
            self._append("products", {
                "id": product_id,
                "name": product.name,
                "category": product.category,
                "note": product.note,
                "place_id": product.place_id,
                "created_at": _now(),
                "updated_at": None,
            })
            rows = self._joined_products()
            row = rows[rows["id"] == product_id].to_dict("records")[0]
        return self._product_out(row)

    def create_review(self, author_id: str, review: ReviewCreate) -> Review:
        """
        Insert a review as the author's current one for the product.

        The author's previous current review for the same product is kept
        but marked as superseded.
        """
        logger.info("ACTION create review product=%s author=%s", review.product_id, author_id)
        with self._lock:
            if not (self._tables["products"]["id"] == review.product_id).any():
                raise NotFoundError("product", review.product_id)
            if not (self._tables["users"]["id"] == author_id).any():
                raise NotFoundError("user", author_id)

            reviews = self._tables["reviews"]
            previous = (
                (reviews["product_id"] == review.product_id)
                & (reviews["author_id"] == author_id)
                & reviews["is_current"]
            )
            if previous.any():
                logger.info("Superseding %d review(s) of %s", int(previous.sum()), author_id)
                reviews.loc[previous, "is_current"] = False

            review_id = self._next_id("reviews")
            now = _now()
            self._append("reviews", {
                "id": review_id,
                "rating": review.rating,
                "note": review.note,
                "product_id": review.product_id,
                "author_id": author_id,
                "reviewed_at": now,
                "created_at": now,
                "updated_at": None,
                "is_current": True,
                "url_source": review.url_source,
            })
        return self.get_review(review_id)

    def update_review(self, review_id: int, changes: dict[str, Any]) -> Review:
        logger.info("ACTION update review %s: %s", review_id, sorted(changes))
        unknown = set(changes) - set(EDITABLE_REVIEW_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update review fields: {', '.join(sorted(unknown))}")

        with self._lock:
            reviews = self._tables["reviews"]
            match = reviews.index[reviews["id"] == review_id]
            if len(match) == 0:
                raise NotFoundError("review", review_id)
            for key, value in changes.items():
                reviews.loc[match, key] = value
            reviews.loc[match, "updated_at"] = pd.Timestamp(_now())
        return self.get_review(review_id)

    def change_username(self, user_id: str, name: str) -> UserOut:
        logger.info("ACTION change username of %s", user_id)
        with self._lock:
            users = self._tables["users"]
            if not (users["id"] == user_id).any():
                raise NotFoundError("user", user_id)
            if ((users["name"] == name) & (users["id"] != user_id)).any():
                raise ConflictError(f"Username {name!r} is already taken")
            match = users["id"] == user_id
            users.loc[match, "name"] = name
            users.loc[match, "updated_at"] = pd.Timestamp(_now())
        return self.user_for_id(user_id)


_repository: ReviewRepository | None = None


def get_repository() -> ReviewRepository:
    """Return the process-wide repository, loading the seed data on first call."""
    global _repository
    if _repository is None:
        _repository = ReviewRepository.from_directory(DEFAULT_STORE_CONFIG.seed_dir)
    return _repository


def set_repository(repository: ReviewRepository | None) -> None:
    global _repository
    _repository = repository


def reset_repository() -> None:
    """Drop all writes by reloading the seed data on next access."""
    set_repository(None)
