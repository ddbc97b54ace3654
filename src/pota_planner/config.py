"""Application settings loaded from environment variables."""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_DATA_DIR = '~/.pota'


class Settings(BaseSettings):
    """Runtime settings; every field can be overridden with a POTA_* variable."""

    model_config = SettingsConfigDict(env_prefix='POTA_', env_file='.env', extra='ignore')

    data_dir: str = DEFAULT_DATA_DIR
    database_path: Optional[str] = None

    log_level: str = 'INFO'

    park_stale_days: int = Field(default=30, ge=1)
    sync_interval_hours: float = Field(default=1, ge=0)
    weather_cache_ttl_hours: float = Field(default=1, gt=0)

    request_timeout: float = Field(default=30, gt=0)
    pota_api_url: str = 'https://api.pota.app'
    open_meteo_url: str = 'https://api.open-meteo.com/v1/forecast'

    @field_validator('log_level')
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level == 'WARN':
            level = 'WARNING'
        if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR'):
            raise ValueError(f"Unknown log level: {value}")
        return level

    def resolved_database_path(self) -> str:
        """Database file path, defaulting to pota.db inside data_dir."""
        if self.database_path:
            return self.database_path
        return str(Path(self.data_dir) / 'pota.db')
