from __future__ import annotations

import logging
import os

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from starlette.middleware.sessions import SessionMiddleware

from .auth.dependencies import require_admin, require_author, require_user
from .auth.users import authenticate
from .catalog.static import CATEGORIES, CITIES, RATING_HIGHEST, RATING_LOWEST, category_label
from .rankings.config import DEFAULT_RANKING_CONFIG
from .rankings.filters import FilterValidationError, parse_filters
from .rankings.models import ChampionsResponse, RankingsResponse
from .rankings.retrieval import get_champions, get_rankings
from .store.backup import create_backup
from .store.errors import BackupError, ConflictError, NotFoundError
from .store.models import (
    LoginRequest,
    PlaceCreate,
    PlaceOut,
    ProductCreate,
    ProductOut,
    ProductSearchResult,
    ReviewCreate,
    ReviewOut,
    ReviewsPage,
    ReviewUpdate,
    UserOut,
    UsernameChange,
)
from .store.repository import ReviewRepository, get_repository

logger = logging.getLogger(__name__)

app = FastAPI(title="Rankovo API", version="1.0.0")
app.add_middleware(
    SessionMiddleware,
    secret_key=os.environ.get("SESSION_SECRET", "rankovo-secret-change-in-production"),
    session_cookie="rankovo_session",
)


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metadata")
def metadata(repository: ReviewRepository = Depends(get_repository)) -> dict:
    """Filter option universe for the rankings view."""
    return {
        "categories": [{"tag": c, "label": category_label(c)} for c in CATEGORIES],
        "cities": list(CITIES),
        "critics": [critic.model_dump() for critic in repository.list_critics()],
        "rating": {"min": RATING_LOWEST, "max": RATING_HIGHEST},
    }


@app.get("/rankings", response_model=RankingsResponse)
def rankings(
    categories: str | None = None,
    cities: str | None = None,
    critics: str | None = None,
    rating_min: str | None = Query(default=None, alias="rating-min"),
    rating_max: str | None = Query(default=None, alias="rating-max"),
    reviews_min: str | None = Query(default=None, alias="reviews-min"),
    q: str | None = None,
    limit: int = Query(
        default=DEFAULT_RANKING_CONFIG.default_limit,
        ge=1,
        le=DEFAULT_RANKING_CONFIG.max_limit,
    ),
    repository: ReviewRepository = Depends(get_repository),
) -> RankingsResponse:
    params = {
        "categories": categories,
        "cities": cities,
        "critics": critics,
        "rating-min": rating_min,
        "rating-max": rating_max,
        "reviews-min": reviews_min,
        "q": q,
    }
    try:
        filters = parse_filters(params, critics=repository.critic_names())
    except FilterValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return get_rankings(repository.fetch_reviews(), filters, limit)


@app.get("/rankings/champions", response_model=ChampionsResponse)
def champions(repository: ReviewRepository = Depends(get_repository)) -> ChampionsResponse:
    return get_champions(repository.fetch_reviews())


@app.get("/reviews", response_model=ReviewsPage)
def reviews(
    page: int = Query(default=1, ge=1),
    user_id: str | None = None,
    repository: ReviewRepository = Depends(get_repository),
) -> ReviewsPage:
    return repository.list_reviews(page=page, user_id=user_id)


@app.get("/products/search", response_model=list[ProductSearchResult])
def search_products(
    product_name: str | None = None,
    place_name: str | None = None,
    repository: ReviewRepository = Depends(get_repository),
) -> list[ProductSearchResult]:
    return repository.search_products(product_name=product_name, place_name=place_name)


@app.get("/places/search", response_model=list[PlaceOut])
def search_places(
    place_name: str | None = None,
    repository: ReviewRepository = Depends(get_repository),
) -> list[PlaceOut]:
    return repository.search_places(place_name)


@app.get("/users/{user_id}", response_model=UserOut)
def user_detail(
    user_id: str,
    repository: ReviewRepository = Depends(get_repository),
) -> UserOut:
    try:
        return repository.user_for_id(user_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


# ── Auth endpoints ───────────────────────────────────────────────────────


@app.post("/auth/login")
def login(body: LoginRequest, request: Request) -> dict:
    user = authenticate(body.username, body.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    request.session["user"] = user
    return {"status": "ok", "user": user}


@app.post("/auth/logout")
def logout(request: Request) -> dict:
    request.session.clear()
    return {"status": "logged_out"}


@app.get("/auth/me")
def auth_me(user: dict = Depends(require_user)) -> dict:
    return user


# ── User endpoints ───────────────────────────────────────────────────────


@app.post("/reviews", response_model=ReviewOut)
def create_review(
    body: ReviewCreate,
    user: dict = Depends(require_user),
    repository: ReviewRepository = Depends(get_repository),
) -> ReviewOut:
    try:
        review = repository.create_review(user["id"], body)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return repository.review_out(review)


@app.patch("/reviews/{review_id}", response_model=ReviewOut)
def update_review(
    review_id: int,
    body: ReviewUpdate,
    user: dict = Depends(require_user),
    repository: ReviewRepository = Depends(get_repository),
) -> ReviewOut:
    try:
        review = repository.get_review(review_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    require_author(user, review)

    # A rating can be changed but never removed.
    changes = body.model_dump(exclude_unset=True)
    if changes.get("rating", 0.0) is None:
        del changes["rating"]

    review = repository.update_review(review_id, changes)
    return repository.review_out(review)


@app.post("/products", response_model=ProductOut)
def create_product(
    body: ProductCreate,
    user: dict = Depends(require_user),
    repository: ReviewRepository = Depends(get_repository),
) -> ProductOut:
    try:
        return repository.create_product(body)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.post("/places", response_model=PlaceOut)
def create_place(
    body: PlaceCreate,
    user: dict = Depends(require_user),
    repository: ReviewRepository = Depends(get_repository),
) -> PlaceOut:
    return repository.create_place(body)


@app.put("/users/me/username", response_model=UserOut)
def change_username(
    body: UsernameChange,
    user: dict = Depends(require_user),
    repository: ReviewRepository = Depends(get_repository),
) -> UserOut:
    try:
        return repository.change_username(user["id"], body.name)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


# ── Admin endpoints ──────────────────────────────────────────────────────


@app.post("/admin/backup")
def backup(
    user: dict = Depends(require_admin),
    repository: ReviewRepository = Depends(get_repository),
) -> dict:
    try:
        path = create_backup(repository)
    except BackupError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return {"status": "ok", "path": str(path)}
