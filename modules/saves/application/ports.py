from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO, Protocol

from modules.saves.adapters.schemas import SaveRecord


@dataclass(frozen=True)
class LatestSave:
    stream: BinaryIO
    record: SaveRecord

    def read_all(self) -> bytes:
        with self.stream:
            return self.stream.read()

    def close(self) -> None:
        self.stream.close()

    def __enter__(self) -> LatestSave:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class SaveStorage(Protocol):
    max_bytes: int

    def save(self, game_id: str, payload: bytes, original_name: str) -> SaveRecord:
        raise NotImplementedError

    def get_latest(self, game_id: str) -> LatestSave:
        raise NotImplementedError

    def list_saves(self, game_id: str) -> list[SaveRecord]:
        raise NotImplementedError

    def delete(self, game_id: str, file_name: str) -> None:
        raise NotImplementedError

    def purge(self, game_id: str) -> int:
        raise NotImplementedError
