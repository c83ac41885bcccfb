from __future__ import annotations

import re

CATEGORIES: tuple[str, ...] = (
    "bread & bakery",
    "breakfast",
    "burger",
    "chicken",
    "dessert",
    "drinks",
    "grill & barbecue",
    "kebab",
    "noodles",
    "pasta",
    "pizza",
    "salad",
    "sandwich",
    "seafood",
    "snack",
    "soup",
    "sushi",
)

# Labels shown to users; the free-text search matches against these.
CATEGORY_LABELS: dict[str, str] = {
    "bread & bakery": "Backwaren",
    "breakfast": "Frühstück",
    "burger": "Burger",
    "chicken": "Hähnchen",
    "dessert": "Dessert",
    "drinks": "Drinks",
    "grill & barbecue": "Grill & Barbecue",
    "kebab": "Döner",
    "noodles": "Nudeln",
    "pasta": "Pasta",
    "pizza": "Pizza",
    "salad": "Salat",
    "sandwich": "Sandwich",
    "seafood": "Seafood",
    "snack": "Snack",
    "soup": "Suppe",
    "sushi": "Sushi",
}

CITIES: tuple[str, ...] = (
    "Berlin",
    "Bremen",
    "Düsseldorf",
    "Frankfurt",
    "Hamburg",
    "Hannover",
    "Köln",
    "München",
    "Stuttgart",
)

RATING_LOWEST = 0.0
RATING_HIGHEST = 5.0

REVIEW_SOURCES: dict[str, str] = {
    "youtube": "youtube.com",
    "instagram": "instagram.com",
    "tiktok": "tiktok.com",
}

_URL_PREFIX = re.compile(r"^https?://")
_WWW_PREFIX = re.compile(r"^www\.")


def category_label(category: str) -> str:
    return CATEGORY_LABELS.get(category, category)


def extract_review_source(url: str | None) -> str | None:
    """
    Return the name of the review source a URL points to, or ``None``.

    ``http(s)://`` and ``www.`` prefixes are ignored, so
    ``https://www.youtube.com/watch?v=x`` resolves to ``"youtube"``.
    """
    if not url:
        return None
    stripped = _WWW_PREFIX.sub("", _URL_PREFIX.sub("", url.strip()))
    for name, host in REVIEW_SOURCES.items():
        if stripped.startswith(host):
            return name
    return None
