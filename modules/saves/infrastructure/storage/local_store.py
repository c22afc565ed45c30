from __future__ import annotations

import errno
import logging
import os
import tempfile
from pathlib import Path

from modules.saves.adapters.schemas import SaveExtension, SaveRecord
from modules.saves.application.errors import (
    SaveNotFoundError,
    SaveStorageError,
    SaveValidationError,
)
from modules.saves.application.ports import LatestSave, SaveStorage
from modules.saves.domain.archive import looks_like_zip
from modules.saves.domain.naming import SAVE_SUFFIX, SaveIdentifier, SaveNamer, ordering_key
from modules.saves.domain.validation import (
    MAX_SAVE_BYTES,
    check_file_name,
    check_game_id,
    display_name,
    extension_of,
    validate_upload,
)

logger = logging.getLogger("saves.storage")

_PUBLISH_ATTEMPTS = 64
_TEMP_PREFIX = ".upload-"


def _is_save_object(name: str) -> bool:
    return name.endswith(SAVE_SUFFIX) and not name.startswith(".")


def _fsync_directory(path: Path) -> None:
    if not hasattr(os, "O_DIRECTORY"):
        return
    fd = os.open(path, os.O_RDONLY | os.O_DIRECTORY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def _describe(exc: OSError) -> str:
    return exc.strerror or str(exc)


class LocalSaveStorage(SaveStorage):
    """Save objects on local disk, one directory per game.

    Layout is ``<base_path>/<game_id>/<identifier>.sav``. A payload is written
    to a hidden temp file in the game directory and then hard-linked under its
    final name, so listings only ever see complete objects and a name that is
    already taken (by another process sharing the directory) is never
    overwritten.
    """

    def __init__(
        self,
        base_path: Path,
        namer: SaveNamer | None = None,
        max_bytes: int = MAX_SAVE_BYTES,
        fsync: bool = True,
    ) -> None:
        self.base_path = Path(base_path)
        self.namer = namer or SaveNamer()
        self.max_bytes = max_bytes
        self.fsync = fsync
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SaveStorageError(
                f"Failed to prepare save storage at {self.base_path}: {_describe(exc)}"
            ) from exc

    def save(self, game_id: str, payload: bytes, original_name: str) -> SaveRecord:
        rejection = validate_upload(game_id, original_name, payload, self.max_bytes)
        if rejection is not None:
            logger.info("rejected save for game %r: %s", game_id, rejection.reason)
            raise SaveValidationError.from_rejection(rejection)

        game_dir = self._game_dir(game_id)
        try:
            game_dir.mkdir(parents=True, exist_ok=True)
            temp_path = self._write_temp(game_dir, payload)
            try:
                identifier = self._publish(game_id, game_dir, temp_path)
            finally:
                temp_path.unlink(missing_ok=True)
            if self.fsync:
                _fsync_directory(game_dir)
        except OSError as exc:
            logger.exception("failed to store save for game %s", game_id)
            raise SaveStorageError(f"Failed to save file: {_describe(exc)}") from exc

        record = SaveRecord(
            game_id=game_id,
            file_name=identifier.file_name,
            original_name=display_name(original_name),
            extension=extension_of(original_name),
            size=len(payload),
            timestamp_ms=identifier.timestamp_ms,
            sequence=identifier.sequence,
            accepted_at=identifier.accepted_at,
        )
        logger.info(
            "stored save %s for game %s (%d bytes, from %s)",
            record.file_name,
            game_id,
            record.size,
            record.original_name,
        )
        return record

    def get_latest(self, game_id: str) -> LatestSave:
        self._require_game_id(game_id)
        game_dir = self._game_dir(game_id)
        try:
            names = self._scan(game_dir)
            if not names:
                raise SaveNotFoundError(f"No saves found for game: {game_id}")
            for name in sorted(names, key=ordering_key, reverse=True):
                latest = self._open(game_id, game_dir / name)
                if latest is not None:
                    return latest
        except OSError as exc:
            raise SaveStorageError(f"Failed to get latest save: {_describe(exc)}") from exc
        # Every candidate was deleted between the scan and the open.
        raise SaveNotFoundError(f"No valid save files found for game: {game_id}")

    def list_saves(self, game_id: str) -> list[SaveRecord]:
        self._require_game_id(game_id)
        game_dir = self._game_dir(game_id)
        try:
            names = self._scan(game_dir)
            if names is None:
                return []
            records = []
            for name in names:
                record = self._stat_record(game_id, game_dir / name)
                if record is not None:
                    records.append(record)
        except OSError as exc:
            raise SaveStorageError(f"Failed to list saves: {_describe(exc)}") from exc
        return sorted(records, key=lambda record: record.sort_key, reverse=True)

    def delete(self, game_id: str, file_name: str) -> None:
        self._require_game_id(game_id)
        rejection = check_file_name(file_name)
        if rejection is not None:
            raise SaveValidationError.from_rejection(rejection)
        if not file_name.endswith(SAVE_SUFFIX):
            raise SaveNotFoundError(f"Save file not found: {file_name}")
        try:
            (self._game_dir(game_id) / file_name).unlink()
        except FileNotFoundError as exc:
            raise SaveNotFoundError(f"Save file not found: {file_name}") from exc
        except OSError as exc:
            logger.exception("failed to delete save %s for game %s", file_name, game_id)
            raise SaveStorageError(f"Failed to delete save: {_describe(exc)}") from exc
        logger.info("deleted save %s for game %s", file_name, game_id)

    def purge(self, game_id: str) -> int:
        self._require_game_id(game_id)
        game_dir = self._game_dir(game_id)
        removed = 0
        try:
            names = self._scan(game_dir)
            if names is None:
                return 0
            for name in names:
                try:
                    (game_dir / name).unlink()
                except FileNotFoundError:
                    continue
                removed += 1
            self._remove_namespace(game_dir)
        except OSError as exc:
            logger.exception("failed to purge saves for game %s", game_id)
            raise SaveStorageError(f"Failed to delete saves: {_describe(exc)}") from exc
        self.namer.forget(game_id)
        logger.info("purged %d saves for game %s", removed, game_id)
        return removed

    def _require_game_id(self, game_id: str) -> None:
        rejection = check_game_id(game_id)
        if rejection is not None:
            raise SaveValidationError.from_rejection(rejection)

    def _game_dir(self, game_id: str) -> Path:
        return self.base_path / game_id

    def _scan(self, game_dir: Path) -> list[str] | None:
        """Names of published save objects, or None when the namespace does not exist."""
        try:
            with os.scandir(game_dir) as entries:
                return [
                    entry.name
                    for entry in entries
                    if _is_save_object(entry.name) and entry.is_file(follow_symlinks=False)
                ]
        except FileNotFoundError:
            return None

    def _newest_identifier(self, game_dir: Path) -> SaveIdentifier | None:
        identifiers = [
            identifier
            for identifier in map(SaveIdentifier.parse, self._scan(game_dir) or [])
            if identifier is not None
        ]
        return max(identifiers, default=None)

    def _write_temp(self, game_dir: Path, payload: bytes) -> Path:
        fd, temp_name = tempfile.mkstemp(dir=game_dir, prefix=_TEMP_PREFIX, suffix=".tmp")
        temp_path = Path(temp_name)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
                handle.flush()
                if self.fsync:
                    os.fsync(handle.fileno())
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise
        return temp_path

    def _publish(self, game_id: str, game_dir: Path, temp_path: Path) -> SaveIdentifier:
        for _ in range(_PUBLISH_ATTEMPTS):
            identifier = self.namer.next_identifier(
                game_id, seed=lambda: self._newest_identifier(game_dir)
            )
            try:
                os.link(temp_path, game_dir / identifier.file_name)
            except FileExistsError:
                logger.debug("save name %s already taken in game %s", identifier.file_name, game_id)
                continue
            return identifier
        raise SaveStorageError(f"Could not allocate a unique save name for game: {game_id}")

    def _open(self, game_id: str, path: Path) -> LatestSave | None:
        try:
            handle = path.open("rb")
        except FileNotFoundError:
            return None
        try:
            size = os.fstat(handle.fileno()).st_size
            head = handle.read(4)
            handle.seek(0)
        except BaseException:
            handle.close()
            raise
        return LatestSave(stream=handle, record=self._build_record(game_id, path.name, size, head))

    def _stat_record(self, game_id: str, path: Path) -> SaveRecord | None:
        try:
            with path.open("rb") as handle:
                size = os.fstat(handle.fileno()).st_size
                head = handle.read(4)
        except FileNotFoundError:
            return None
        return self._build_record(game_id, path.name, size, head)

    @staticmethod
    def _build_record(game_id: str, file_name: str, size: int, head: bytes) -> SaveRecord:
        identifier = SaveIdentifier.parse(file_name) or SaveIdentifier(timestamp_ms=0)
        return SaveRecord(
            game_id=game_id,
            file_name=file_name,
            original_name=file_name,
            extension=SaveExtension.zip if looks_like_zip(head) else SaveExtension.sav,
            size=size,
            timestamp_ms=identifier.timestamp_ms,
            sequence=identifier.sequence,
            accepted_at=identifier.accepted_at,
        )

    def _remove_namespace(self, game_dir: Path) -> None:
        try:
            game_dir.rmdir()
        except OSError as exc:
            # A concurrent upload may have repopulated the directory.
            if exc.errno not in (errno.ENOTEMPTY, errno.EEXIST, errno.ENOENT):
                raise
            logger.info("kept namespace %s: %s", game_dir, _describe(exc))
