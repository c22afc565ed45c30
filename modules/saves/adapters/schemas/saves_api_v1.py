from datetime import datetime

from pydantic import BaseModel, Field

from modules.saves.adapters.schemas.v1 import SaveRecord


class SaveRecordV1(BaseModel):
    game_id: str
    file_name: str
    original_name: str
    extension: str
    size: int
    timestamp_ms: int
    accepted_at: datetime

    @classmethod
    def from_record(cls, record: SaveRecord) -> "SaveRecordV1":
        return cls(
            game_id=record.game_id,
            file_name=record.file_name,
            original_name=record.original_name,
            extension=record.extension.value,
            size=record.size,
            timestamp_ms=record.timestamp_ms,
            accepted_at=record.accepted_at,
        )


class SaveUploadResponseV1(BaseModel):
    message: str = "save uploaded successfully"
    save: SaveRecordV1


class SaveListResponseV1(BaseModel):
    game_id: str
    items: list[SaveRecordV1] = Field(default_factory=list)


class SaveErrorResponseV1(BaseModel):
    kind: str
    detail: str
    rule: str | None = None
