from pathlib import Path

import pytest

from modules.saves.application.errors import (
    ErrorKind,
    SaveNotFoundError,
    SaveStorageError,
    SaveValidationError,
)
from modules.saves.application.facade import SaveStore, build_save_store
from modules.saves.application.settings import SaveStoreSettings
from modules.saves.infrastructure.storage import (
    InMemorySaveStorage,
    LocalSaveStorage,
    build_save_storage,
)


class BrokenDiskStorage:
    max_bytes = 1024

    def save(self, game_id, payload, original_name):  # type: ignore[no-untyped-def]
        raise PermissionError(13, "Permission denied")

    def get_latest(self, game_id):  # type: ignore[no-untyped-def]
        raise SaveStorageError("disk unavailable")

    def list_saves(self, game_id):  # type: ignore[no-untyped-def]
        raise OSError(28, "No space left on device")

    def delete(self, game_id, file_name):  # type: ignore[no-untyped-def]
        raise SaveNotFoundError(f"Save file not found: {file_name}")

    def purge(self, game_id):  # type: ignore[no-untyped-def]
        return 0


def test_store_returns_values_for_successful_operations() -> None:
    store = SaveStore(storage=InMemorySaveStorage())
    saved = store.save("g1", b"payload", "turn.sav")
    assert saved.ok
    assert saved.kind is None

    latest = store.get_latest("g1")
    assert latest.ok
    assert latest.unwrap().read_all() == b"payload"
    assert store.list_saves("g1").unwrap()[0].file_name == saved.unwrap().file_name
    assert store.delete("g1", saved.unwrap().file_name).ok
    assert store.list_saves("g1").unwrap() == []


def test_store_reports_validation_errors_as_values() -> None:
    store = SaveStore(storage=InMemorySaveStorage())
    result = store.save("g1", b"MZ", "save.exe")
    assert not result.ok
    assert result.kind is ErrorKind.validation
    assert isinstance(result.error, SaveValidationError)
    assert "extension" in result.error.message.lower()
    with pytest.raises(SaveValidationError):
        result.unwrap()


def test_store_reports_not_found_distinctly() -> None:
    store = SaveStore(storage=InMemorySaveStorage())
    result = store.get_latest("nonexistent-game")
    assert result.kind is ErrorKind.not_found
    assert isinstance(result.error, SaveNotFoundError)


def test_store_maps_raw_os_errors_to_storage_errors() -> None:
    store = SaveStore(storage=BrokenDiskStorage())

    saved = store.save("g1", b"x", "a.sav")
    assert saved.kind is ErrorKind.io
    assert isinstance(saved.error, SaveStorageError)
    assert isinstance(saved.error.__cause__, PermissionError)

    listed = store.list_saves("g1")
    assert listed.kind is ErrorKind.io

    latest = store.get_latest("g1")
    assert latest.kind is ErrorKind.io
    assert latest.error.message == "disk unavailable"

    assert store.delete("g1", "x.sav").kind is ErrorKind.not_found
    assert store.purge("g1").unwrap() == 0


def test_store_exposes_backend_size_ceiling() -> None:
    assert SaveStore(storage=InMemorySaveStorage(max_bytes=99)).max_bytes == 99


def test_build_save_storage_selects_backend(tmp_path: Path) -> None:
    local = build_save_storage(
        SaveStoreSettings(storage_backend="local", storage_path=str(tmp_path / "saves"))
    )
    assert isinstance(local, LocalSaveStorage)
    assert (tmp_path / "saves").is_dir()

    memory = build_save_storage(SaveStoreSettings(storage_backend="Memory", max_bytes=64))
    assert isinstance(memory, InMemorySaveStorage)
    assert memory.max_bytes == 64


def test_build_save_storage_rejects_unknown_backend() -> None:
    with pytest.raises(ValueError, match="unsupported save storage backend"):
        build_save_storage(SaveStoreSettings(storage_backend="s3"))


def test_build_save_store_wires_storage(tmp_path: Path) -> None:
    store = build_save_store(
        SaveStoreSettings(storage_path=str(tmp_path), fsync_enabled=False, max_bytes=10)
    )
    assert isinstance(store.storage, LocalSaveStorage)
    assert store.storage.fsync is False
    assert store.save("g1", b"x" * 11, "a.sav").kind is ErrorKind.validation


@pytest.mark.parametrize("game_id", ["a\x00b", ".", "g" * 300])
def test_unusable_game_ids_come_back_as_validation_results(tmp_path: Path, game_id: str) -> None:
    store = SaveStore(storage=LocalSaveStorage(base_path=tmp_path, fsync=False))
    for result in (
        store.save(game_id, b"x", "a.sav"),
        store.get_latest(game_id),
        store.list_saves(game_id),
        store.delete(game_id, "0000000000010-0000.sav"),
        store.purge(game_id),
    ):
        assert result.kind is ErrorKind.validation
    assert tmp_path.is_dir()
    assert list(tmp_path.iterdir()) == []
