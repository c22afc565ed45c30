from __future__ import annotations

from pathlib import Path

from modules.saves.application.ports import SaveStorage
from modules.saves.application.settings import SaveStoreSettings, get_save_store_settings
from modules.saves.infrastructure.storage.local_store import LocalSaveStorage
from modules.saves.infrastructure.storage.memory_store import InMemorySaveStorage


def build_save_storage(settings: SaveStoreSettings | None = None) -> SaveStorage:
    settings = settings or get_save_store_settings()
    backend = settings.storage_backend.strip().lower()
    if backend == "local":
        return LocalSaveStorage(
            base_path=Path(settings.storage_path),
            max_bytes=settings.max_bytes,
            fsync=settings.fsync_enabled,
        )
    if backend == "memory":
        return InMemorySaveStorage(max_bytes=settings.max_bytes)
    raise ValueError(f"unsupported save storage backend: {settings.storage_backend}")
