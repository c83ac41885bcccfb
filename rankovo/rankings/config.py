from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RankingConfig:
    decimal_places: int = 2
    max_reviews_per_ranking: int = 20
    default_limit: int = 10
    max_limit: int = 50
    champion_categories: tuple[str, ...] = ("burger", "kebab", "pizza")
    champions_top: int = 5


DEFAULT_RANKING_CONFIG = RankingConfig()
