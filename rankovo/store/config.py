from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

_SEED_DIR = Path(__file__).resolve().parent.parent / "data" / "seed"


@dataclass(frozen=True)
class StoreConfig:
    """
    Configuration for the review store.
    """

    seed_dir: Path = field(
        default_factory=lambda: Path(os.getenv("RANKOVO_DATA_DIR", str(_SEED_DIR)))
    )
    backup_dir: Path = field(
        default_factory=lambda: Path(os.getenv("RANKOVO_BACKUP_DIR", "backups"))
    )
    page_size_reviews: int = 20
    min_chars_search: int = 3
    search_recent_reviews: int = 10


DEFAULT_STORE_CONFIG = StoreConfig()
