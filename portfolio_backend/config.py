from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")
    environment: str = Field(default="development", alias="NODE_ENV")
    instance_id: str = Field(default="unknown", alias="HOSTNAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Reported by /ready only; there is no real database connection.
    db_host: str = Field(default="localhost", alias="DB_HOST")
    db_user: str = Field(default="admin", alias="DB_USER")
    db_password: str = Field(default="secretpassword", alias="DB_PASSWORD")
    db_name: str = Field(default="portfolio_db", alias="DB_NAME")

    data_dir: str = Field(default="/app/data", alias="DATA_DIR")
    log_dir: str = Field(default="", alias="LOG_DIR")
    portfolio_file: str = Field(default="portfolio.json", alias="PORTFOLIO_FILE")

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)

    @property
    def log_path(self) -> Path:
        if self.log_dir:
            return Path(self.log_dir)
        return self.data_path / "logs"

    @property
    def portfolio_path(self) -> Path:
        return self.data_path / self.portfolio_file

    @property
    def kv_path(self) -> Path:
        return self.data_path / "kv"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
