from modules.saves.infrastructure.storage.factory import build_save_storage
from modules.saves.infrastructure.storage.local_store import LocalSaveStorage
from modules.saves.infrastructure.storage.memory_store import InMemorySaveStorage

__all__ = [
    "InMemorySaveStorage",
    "LocalSaveStorage",
    "build_save_storage",
]
