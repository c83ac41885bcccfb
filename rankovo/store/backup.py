"""
Back up the review store to CSV and restore it.

Usage:
    python -m rankovo.store.backup create
    python -m rankovo.store.backup restore backups/backup-2025-04-06T12-00-00-000000
"""
from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from .config import DEFAULT_STORE_CONFIG, StoreConfig
from .data_store import TABLE_COLUMNS, table_path, write_tables
from .errors import BackupError
from .repository import ReviewRepository, set_repository

logger = logging.getLogger(__name__)


def _backup_name(prefix: str = "backup") -> str:
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%f")
    return f"{prefix}-{timestamp}"


def validate_backup(directory: Path) -> None:
    """Raise :class:`BackupError` unless every table file exists and is non-empty."""
    if not directory.is_dir():
        raise BackupError(f"Backup directory {directory} does not exist")
    for name in TABLE_COLUMNS:
        path = table_path(directory, name)
        if not path.is_file():
            raise BackupError(f"Backup is missing {path.name}")
        if path.stat().st_size == 0:
            raise BackupError(f"Backup file {path.name} is empty")


def create_backup(
    repository: ReviewRepository,
    config: StoreConfig = DEFAULT_STORE_CONFIG,
) -> Path:
    """
    Write a consistent copy of every table into a new timestamped directory.

    Returns the backup directory.
    """
    directory = config.backup_dir / _backup_name()
    if directory.exists():
        raise BackupError(f"Backup {directory} already exists")

    write_tables(repository.tables(), directory)
    validate_backup(directory)
    logger.info("Backup written to %s", directory)
    return directory


def restore_backup(
    directory: Path,
    config: StoreConfig = DEFAULT_STORE_CONFIG,
) -> ReviewRepository:
    """Load a repository from a backup directory after validating it."""
    validate_backup(directory)
    repository = ReviewRepository.from_directory(directory, config)
    logger.info("Restored store from %s", directory)
    return repository


def main(argv: list[str]) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    config = DEFAULT_STORE_CONFIG

    if not argv or argv[0] not in {"create", "restore"}:
        print(__doc__)
        return 2

    if argv[0] == "create":
        path = create_backup(ReviewRepository.from_directory(config.seed_dir, config), config)
        print(f"Backup complete. Saved to: {path}")
        return 0

    if len(argv) < 2:
        print("restore needs a backup directory")
        return 2
    repository = restore_backup(Path(argv[1]), config)
    current = ReviewRepository.from_directory(config.seed_dir, config)
    safety = create_backup(current, config)
    print(f"Current data saved to: {safety}")
    set_repository(repository)
    # Make the restored data the new seed for the next start.
    write_tables(repository.tables(), config.seed_dir)
    print(f"Restore complete. Seed data replaced from: {argv[1]}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
