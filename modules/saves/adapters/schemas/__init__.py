from modules.saves.adapters.schemas.saves_api_v1 import (
    SaveErrorResponseV1,
    SaveListResponseV1,
    SaveRecordV1,
    SaveUploadResponseV1,
)
from modules.saves.adapters.schemas.v1 import SaveExtension, SaveRecord

__all__ = [
    "SaveExtension",
    "SaveRecord",
    "SaveErrorResponseV1",
    "SaveListResponseV1",
    "SaveRecordV1",
    "SaveUploadResponseV1",
]
