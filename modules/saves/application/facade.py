from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from modules.saves.adapters.schemas import SaveRecord
from modules.saves.application.errors import (
    ErrorKind,
    SaveStorageError,
    SaveStoreError,
    SaveValidationError,
)
from modules.saves.application.ports import LatestSave, SaveStorage
from modules.saves.application.settings import SaveStoreSettings
from modules.saves.infrastructure.storage.factory import build_save_storage

logger = logging.getLogger("saves.store")

T = TypeVar("T")


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    """Outcome of a store operation: a value, or exactly one typed error."""

    value: T | None = None
    error: SaveStoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> ErrorKind | None:
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


class SaveStore:
    """Public entry point for callers; backed by any SaveStorage implementation."""

    def __init__(self, storage: SaveStorage) -> None:
        self.storage = storage

    @property
    def max_bytes(self) -> int:
        return self.storage.max_bytes

    def save(self, game_id: str, payload: bytes, original_name: str) -> StoreResult[SaveRecord]:
        return self._run("save", game_id, lambda: self.storage.save(game_id, payload, original_name))

    def get_latest(self, game_id: str) -> StoreResult[LatestSave]:
        return self._run("get_latest", game_id, lambda: self.storage.get_latest(game_id))

    def list_saves(self, game_id: str) -> StoreResult[list[SaveRecord]]:
        return self._run("list_saves", game_id, lambda: self.storage.list_saves(game_id))

    def delete(self, game_id: str, file_name: str) -> StoreResult[None]:
        return self._run("delete", game_id, lambda: self.storage.delete(game_id, file_name))

    def purge(self, game_id: str) -> StoreResult[int]:
        return self._run("purge", game_id, lambda: self.storage.purge(game_id))

    def _run(self, operation: str, game_id: str, call: Callable[[], T]) -> StoreResult[T]:
        try:
            return StoreResult(value=call())
        except SaveStoreError as exc:
            error = exc
        except OSError as exc:
            error = SaveStorageError(f"{operation} failed: {exc.strerror or exc}")
            error.__cause__ = exc
        if isinstance(error, SaveValidationError):
            logger.warning("%s rejected for game %r: %s", operation, game_id, error.message)
        elif error.kind is ErrorKind.io:
            logger.error("%s failed for game %r: %s", operation, game_id, error.message)
        return StoreResult(error=error)


def build_save_store(settings: SaveStoreSettings | None = None) -> SaveStore:
    return SaveStore(storage=build_save_storage(settings))
