from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class SaveExtension(str, Enum):
    sav = ".sav"
    zip = ".zip"


class SaveRecord(BaseModel):
    game_id: str
    file_name: str
    original_name: str
    extension: SaveExtension
    size: int = Field(ge=0)
    timestamp_ms: int = Field(ge=0)
    sequence: int = Field(default=0, ge=0)
    accepted_at: datetime

    model_config = {"extra": "forbid", "frozen": True}

    @property
    def sort_key(self) -> tuple[int, int, str]:
        return (self.timestamp_ms, self.sequence, self.file_name)

    @property
    def is_archive(self) -> bool:
        return self.extension is SaveExtension.zip
