from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from rankovo.app import app
from rankovo.store.backup import create_backup, main, restore_backup, validate_backup
from rankovo.store.config import DEFAULT_STORE_CONFIG, StoreConfig
from rankovo.store.data_store import TABLE_COLUMNS, load_tables, write_tables
from rankovo.store.errors import BackupError, StoreError
from rankovo.store.models import ReviewCreate
from rankovo.store.repository import ReviewRepository, get_repository


def _repository() -> ReviewRepository:
    return ReviewRepository.from_directory(DEFAULT_STORE_CONFIG.seed_dir)


# ── Loading ──────────────────────────────────────────────────────────────


def test_seed_tables_load():
    tables = load_tables(DEFAULT_STORE_CONFIG.seed_dir)
    assert set(tables) == set(TABLE_COLUMNS)
    assert len(tables["reviews"]) == 22
    assert tables["reviews"]["is_current"].dtype == bool
    assert str(tables["reviews"]["reviewed_at"].dt.tz) == "UTC"


def test_missing_column_rejected(tmp_path: Path):
    for name, df in load_tables(DEFAULT_STORE_CONFIG.seed_dir).items():
        if name == "critics":
            df = df.drop(columns=["url"])
        df.to_csv(tmp_path / f"{name}.csv", index=False)
    with pytest.raises(StoreError):
        load_tables(tmp_path)


# ── Create / restore ─────────────────────────────────────────────────────


def test_create_backup_writes_every_table(tmp_path: Path):
    config = StoreConfig(backup_dir=tmp_path)
    path = create_backup(_repository(), config)

    assert path.parent == tmp_path
    assert path.name.startswith("backup-")
    for name in TABLE_COLUMNS:
        df = pd.read_csv(path / f"{name}.csv")
        assert list(df.columns) == list(TABLE_COLUMNS[name])


def test_backup_round_trip_keeps_writes(tmp_path: Path):
    config = StoreConfig(backup_dir=tmp_path)
    repository = _repository()
    repository.create_review("usr_demo", ReviewCreate(product_id=14, rating=4.0))

    restored = restore_backup(create_backup(repository, config), config)

    assert len(restored.fetch_reviews()) == 23
    old = restored.get_review(21)
    assert old.is_current is False
    assert old.reviewed_at is not None
    new = restored.get_review(23)
    assert new.is_current is True
    assert new.rating == 4.0


def test_create_backup_refuses_existing_directory(tmp_path: Path):
    config = StoreConfig(backup_dir=tmp_path)
    with patch("rankovo.store.backup._backup_name", return_value="backup-fixed"):
        create_backup(_repository(), config)
        with pytest.raises(BackupError):
            create_backup(_repository(), config)


def test_validate_backup_missing_directory(tmp_path: Path):
    with pytest.raises(BackupError):
        validate_backup(tmp_path / "nope")


def test_validate_backup_missing_file(tmp_path: Path):
    path = create_backup(_repository(), StoreConfig(backup_dir=tmp_path))
    (path / "critics.csv").unlink()
    with pytest.raises(BackupError, match="critics.csv"):
        validate_backup(path)


def test_validate_backup_empty_file(tmp_path: Path):
    path = create_backup(_repository(), StoreConfig(backup_dir=tmp_path))
    (path / "users.csv").write_text("")
    with pytest.raises(BackupError, match="empty"):
        restore_backup(path)


# ── Command line ─────────────────────────────────────────────────────────


def test_main_without_command():
    assert main([]) == 2
    assert main(["restore"]) == 2


def test_main_restore_replaces_repository(tmp_path: Path):
    config = StoreConfig(seed_dir=tmp_path / "seed", backup_dir=tmp_path / "backups")
    write_tables(_repository().tables(), config.seed_dir)
    source = _repository()
    source.change_username("usr_demo", "gourmet_42")
    path = create_backup(source, StoreConfig(backup_dir=tmp_path / "exports"))

    with patch("rankovo.store.backup.DEFAULT_STORE_CONFIG", config):
        assert main(["restore", str(path)]) == 0

    assert get_repository().user_for_id("usr_demo").name == "gourmet_42"
    seed = ReviewRepository.from_directory(config.seed_dir)
    assert seed.user_for_id("usr_demo").name == "gourmet_42"

    # The safety copy is taken from the configured seed, not the packaged one.
    (safety,) = (tmp_path / "backups").iterdir()
    assert ReviewRepository.from_directory(safety).user_for_id("usr_demo").name == "feinschmecker"
    packaged = ReviewRepository.from_directory(DEFAULT_STORE_CONFIG.seed_dir)
    assert packaged.user_for_id("usr_demo").name == "feinschmecker"


def test_main_create_reads_configured_seed(tmp_path: Path):
    config = StoreConfig(seed_dir=tmp_path / "seed", backup_dir=tmp_path / "backups")
    source = _repository()
    source.change_username("usr_demo", "gourmet_42")
    write_tables(source.tables(), config.seed_dir)

    with patch("rankovo.store.backup.DEFAULT_STORE_CONFIG", config):
        assert main(["create"]) == 0

    (backup,) = (tmp_path / "backups").iterdir()
    assert ReviewRepository.from_directory(backup).user_for_id("usr_demo").name == "gourmet_42"


def test_backup_names_are_unique_within_a_second(tmp_path: Path):
    config = StoreConfig(backup_dir=tmp_path)
    repository = _repository()
    first = create_backup(repository, config)
    second = create_backup(repository, config)
    assert first != second


# ── Timestamps ───────────────────────────────────────────────────────────


def test_timestamps_keep_microseconds(tmp_path: Path):
    tables = load_tables(DEFAULT_STORE_CONFIG.seed_dir)
    assert tables["reviews"]["reviewed_at"].dt.unit == "us"
    assert tables["users"]["updated_at"].dt.unit == "us"

    moment = datetime(2025, 5, 1, 12, 30, 15, 123456, tzinfo=timezone.utc)
    repository = _repository()
    with patch("rankovo.store.repository._now", return_value=moment):
        created = repository.create_review("usr_demo", ReviewCreate(product_id=5, rating=4.0))
        updated = repository.update_review(21, {"note": "Mit Pommes"})
        user = repository.change_username("usr_demo", "gourmet_42")

    assert created.reviewed_at == moment
    assert created.created_at == moment
    assert updated.updated_at == moment
    assert updated.note == "Mit Pommes"
    assert user.updated_at == moment

    restored = restore_backup(create_backup(repository, StoreConfig(backup_dir=tmp_path)))
    assert restored.get_review(created.id).created_at == moment


# ── Admin endpoint ───────────────────────────────────────────────────────


def test_admin_backup_endpoint(tmp_path: Path):
    c = TestClient(app)
    c.post("/auth/login", json={"username": "admin", "password": "admin123"})
    with patch("rankovo.app.create_backup", return_value=tmp_path / "backup-x") as mocked:
        resp = c.post("/admin/backup")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "path": str(tmp_path / "backup-x")}
    mocked.assert_called_once()


def test_admin_backup_twice(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    c = TestClient(app)
    c.post("/auth/login", json={"username": "admin", "password": "admin123"})
    first = c.post("/admin/backup")
    second = c.post("/admin/backup")
    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["path"] != second.json()["path"]
    assert len(list((tmp_path / "backups").iterdir())) == 2


def test_admin_backup_existing_directory_conflict(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    c = TestClient(app)
    c.post("/auth/login", json={"username": "admin", "password": "admin123"})
    with patch("rankovo.store.backup._backup_name", return_value="backup-fixed"):
        assert c.post("/admin/backup").status_code == 200
        resp = c.post("/admin/backup")
    assert resp.status_code == 409
    assert "already exists" in resp.json()["detail"]
