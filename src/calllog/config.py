from typing import Dict, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./calllog.db"
    # AGENT_SERVER_URLS='{"Education": "https://...", "Hospital": "https://..."}'
    agent_server_urls: Dict[str, str] = {}
    agent_request_timeout: float = 30.0
    sync_delay_seconds: float = 1.0
    sync_interval_minutes: int = 5
    canonical_log_hash: bool = False  # only for a fresh store or after a hash backfill
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
