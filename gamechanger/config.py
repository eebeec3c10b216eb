from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


PLACEHOLDER_PREFIX = "YOUR_"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    # Remote document store (Data API). Both url and key must be set to enable it.
    data_api_url: str | None = Field(default=None, validation_alias="DATA_API_URL")
    data_api_key: str | None = Field(default=None, validation_alias="DATA_API_KEY")
    data_api_data_source: str = Field(default="Cluster0", validation_alias="DATA_API_DATA_SOURCE")
    data_api_database: str = Field(default="game_changer", validation_alias="DATA_API_DATABASE")
    data_api_timeout_s: int = Field(default=15, validation_alias="DATA_API_TIMEOUT_S")

    # Local key-value store
    db_path: str = Field(default="data/gamechanger.sqlite3", validation_alias="DB_PATH")
    database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

    log_file: str = Field(default="logs/gamechanger.log", validation_alias="LOG_FILE")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    login_check_timeout_s: float = Field(default=3.0, validation_alias="LOGIN_CHECK_TIMEOUT_S")

    @property
    def remote_configured(self) -> bool:
        url = (self.data_api_url or "").strip()
        key = (self.data_api_key or "").strip()
        if not url or not key:
            return False
        return not url.startswith(PLACEHOLDER_PREFIX) and not key.startswith(PLACEHOLDER_PREFIX)
