import logging
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stderr handler on the root logger."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    database_url: str = "sqlite:///./data/smartdocs.db"
    storage_dir: Path = Path("./storage")
    max_upload_size: int = 524288000  # 500MB
    api_prefix: str = "/api"
    static_prefix: str = "/storage"
    cors_origins: List[str] = ["*"]
    broker_url: str = "redis://localhost:6379/0"
    pipeline_autostart: bool = False
    stage_handler_modules: List[str] = []
    log_level: str = "INFO"

    @property
    def storage_root(self) -> Path:
        return self.storage_dir.expanduser().resolve()
