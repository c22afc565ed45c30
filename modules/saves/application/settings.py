from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from modules.saves.domain.validation import MAX_SAVE_BYTES


class SaveStoreSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    storage_backend: str = Field(default="local", alias="SAVE_STORE_BACKEND")
    storage_path: str = Field(default="storage/saves", alias="SAVE_STORE_PATH")
    max_bytes: int = Field(default=MAX_SAVE_BYTES, gt=0, alias="SAVE_STORE_MAX_BYTES")
    fsync_enabled: bool = Field(default=True, alias="SAVE_STORE_FSYNC")


def get_save_store_settings() -> SaveStoreSettings:
    return SaveStoreSettings()
