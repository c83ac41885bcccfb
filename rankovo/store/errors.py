from __future__ import annotations


class StoreError(Exception):
    """Base class for store failures."""


class NotFoundError(StoreError):
    def __init__(self, entity: str, key: object) -> None:
        super().__init__(f"{entity} {key!r} not found")
        self.entity = entity
        self.key = key


class ConflictError(StoreError):
    pass


class BackupError(StoreError):
    pass
