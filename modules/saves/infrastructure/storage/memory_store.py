from __future__ import annotations

import io
import logging
import threading

from modules.saves.adapters.schemas import SaveRecord
from modules.saves.application.errors import SaveNotFoundError, SaveValidationError
from modules.saves.application.ports import LatestSave, SaveStorage
from modules.saves.domain.naming import SaveIdentifier, SaveNamer
from modules.saves.domain.validation import (
    MAX_SAVE_BYTES,
    check_file_name,
    check_game_id,
    display_name,
    extension_of,
    validate_upload,
)

logger = logging.getLogger("saves.storage")


class InMemorySaveStorage(SaveStorage):
    def __init__(self, namer: SaveNamer | None = None, max_bytes: int = MAX_SAVE_BYTES) -> None:
        self.namer = namer or SaveNamer()
        self.max_bytes = max_bytes
        self._lock = threading.Lock()
        self._games: dict[str, dict[str, tuple[SaveRecord, bytes]]] = {}

    def save(self, game_id: str, payload: bytes, original_name: str) -> SaveRecord:
        rejection = validate_upload(game_id, original_name, payload, self.max_bytes)
        if rejection is not None:
            raise SaveValidationError.from_rejection(rejection)
        identifier = self.namer.next_identifier(game_id, seed=lambda: self._newest(game_id))
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
        with self._lock:
            self._games.setdefault(game_id, {})[record.file_name] = (record, bytes(payload))
        logger.debug("stored save %s for game %s in memory", record.file_name, game_id)
        return record

    def get_latest(self, game_id: str) -> LatestSave:
        self._require_game_id(game_id)
        with self._lock:
            items = list(self._games.get(game_id, {}).values())
        if not items:
            raise SaveNotFoundError(f"No saves found for game: {game_id}")
        record, payload = max(items, key=lambda item: item[0].sort_key)
        return LatestSave(stream=io.BytesIO(payload), record=record)

    def list_saves(self, game_id: str) -> list[SaveRecord]:
        self._require_game_id(game_id)
        with self._lock:
            records = [record for record, _ in self._games.get(game_id, {}).values()]
        return sorted(records, key=lambda record: record.sort_key, reverse=True)

    def delete(self, game_id: str, file_name: str) -> None:
        self._require_game_id(game_id)
        rejection = check_file_name(file_name)
        if rejection is not None:
            raise SaveValidationError.from_rejection(rejection)
        with self._lock:
            saves = self._games.get(game_id, {})
            if file_name not in saves:
                raise SaveNotFoundError(f"Save file not found: {file_name}")
            del saves[file_name]

    def purge(self, game_id: str) -> int:
        self._require_game_id(game_id)
        with self._lock:
            removed = len(self._games.pop(game_id, {}))
        self.namer.forget(game_id)
        return removed

    def _require_game_id(self, game_id: str) -> None:
        rejection = check_game_id(game_id)
        if rejection is not None:
            raise SaveValidationError.from_rejection(rejection)

    def _newest(self, game_id: str) -> SaveIdentifier | None:
        with self._lock:
            records = [record for record, _ in self._games.get(game_id, {}).values()]
        if not records:
            return None
        newest = max(records, key=lambda record: record.sort_key)
        return SaveIdentifier(timestamp_ms=newest.timestamp_ms, sequence=newest.sequence)
