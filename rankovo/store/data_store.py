from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from .errors import StoreError

logger = logging.getLogger(__name__)

# Column -> dtype per table. "datetime" columns are parsed as UTC timestamps.
TABLE_COLUMNS: dict[str, dict[str, str]] = {
    "places": {
        "id": "int64",
        "name": "object",
        "city": "object",
        "created_at": "datetime",
        "updated_at": "datetime",
    },
    "products": {
        "id": "int64",
        "name": "object",
        "category": "object",
        "note": "object",
        "place_id": "Int64",
        "created_at": "datetime",
        "updated_at": "datetime",
    },
    "users": {
        "id": "object",
        "name": "object",
        "created_at": "datetime",
        "updated_at": "datetime",
    },
    "critics": {
        "id": "int64",
        "user_id": "object",
        "url": "object",
    },
    "reviews": {
        "id": "int64",
        "rating": "float64",
        "note": "object",
        "product_id": "int64",
        "author_id": "object",
        "reviewed_at": "datetime",
        "created_at": "datetime",
        "updated_at": "datetime",
        "is_current": "bool",
        "url_source": "object",
    },
}


def table_path(directory: Path, name: str) -> Path:
    return directory / f"{name}.csv"


def _load_table(path: Path, name: str) -> pd.DataFrame:
    columns = TABLE_COLUMNS[name]
    # Timestamps are read as text and parsed below.
    dtypes = {col: ("object" if kind == "datetime" else kind) for col, kind in columns.items()}

    header = pd.read_csv(path, nrows=0).columns
    missing = [col for col in columns if col not in header]
    if missing:
        raise StoreError(f"{path.name} is missing columns: {', '.join(missing)}")

    df = pd.read_csv(path, dtype=dtypes)

    for col, kind in columns.items():
        if kind == "datetime":
            # Timestamps are held at microsecond resolution.
            df[col] = pd.to_datetime(df[col], utc=True, format="ISO8601").dt.as_unit("us")

    return df[list(columns)]


def load_tables(directory: Path) -> dict[str, pd.DataFrame]:
    """Read every table CSV from ``directory``."""
    tables = {name: _load_table(table_path(directory, name), name) for name in TABLE_COLUMNS}
    logger.info(
        "Loaded store from %s (%s)",
        directory,
        ", ".join(f"{name}={len(df)}" for name, df in tables.items()),
    )
    return tables


def write_tables(tables: dict[str, pd.DataFrame], directory: Path) -> Path:
    """Write every table as CSV into ``directory``."""
    directory.mkdir(parents=True, exist_ok=True)
    for name in TABLE_COLUMNS:
        tables[name].to_csv(table_path(directory, name), index=False)
    return directory
