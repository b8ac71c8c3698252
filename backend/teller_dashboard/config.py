import re
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BACKEND_ROOT = Path(__file__).resolve().parents[1]
DATA_DIR = BACKEND_ROOT / "data"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


class Settings(BaseSettings):
    app_name: str = "Teller Dashboard API"
    port: int = 3000
    log_level: str = "INFO"

    # Upstream banking backend; everything under /api we do not serve is proxied here.
    backend_url: str = "https://teller10-15a.onrender.com"
    proxy_timeout_seconds: float = 30.0
    config_timeout_seconds: float = 5.0

    database_url: str = ""
    pg_ssl: bool = Field(default=True, validation_alias=AliasChoices("pgssl", "pg_ssl"))
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    feature_manual_data: bool = False
    feature_static_db: bool = False
    feature_manual_liabilities: bool = False
    feature_manual_assets: bool = False
    manual_data_readonly: bool = False
    manual_data_dry_run: bool = False
    manual_data_migration_secret: str = ""

    # "auto" picks postgres when DATABASE_URL is set.
    manual_data_backend: Literal["auto", "postgres", "file"] = "auto"
    manual_data_file: Path = DATA_DIR / "manual-data.json"
    manual_data_table: str = "manual_data"

    static_db_path: Path = DATA_DIR / "db.json"
    static_dir: Path = BACKEND_ROOT / "static"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("manual_data_table")
    @classmethod
    def check_table_name(cls, value: str) -> str:
        # Interpolated into DDL/DML, so only plain identifiers are allowed.
        if not _IDENTIFIER.match(value):
            raise ValueError("MANUAL_DATA_TABLE must be a plain SQL identifier")
        return value

    @field_validator("backend_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


settings = Settings()
