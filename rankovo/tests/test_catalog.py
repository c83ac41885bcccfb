import pytest

from rankovo.catalog.static import (
    CATEGORIES,
    CATEGORY_LABELS,
    category_label,
    extract_review_source,
)


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://www.youtube.com/watch?v=NzdoZXEyXMA", "youtube"),
        ("http://youtube.com/watch?v=x", "youtube"),
        ("www.instagram.com/p/abc", "instagram"),
        ("https://www.tiktok.com/@reeze/video/1", "tiktok"),
        ("https://example.com/review", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_review_source(url, expected):
    assert extract_review_source(url) == expected


def test_every_category_has_label():
    assert set(CATEGORY_LABELS) == set(CATEGORIES)


def test_category_label():
    assert category_label("kebab") == "Döner"
    assert category_label("unknown") == "unknown"
