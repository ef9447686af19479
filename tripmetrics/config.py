from datetime import datetime
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

from .schemas import RollbackWindow


class Settings(BaseSettings):
    data_dir: Path = Path("data/raw")
    output_dir: Path = Path("data/processed")
    file_pattern: str = "*-divvy-tripdata.csv"
    chunk_size: int = Field(default=20_000, ge=1)
    # Local wall-clock instant where clocks fall back one hour.
    rollback_transition: datetime = datetime(2023, 11, 5, 2, 0)
    rollback_offset_seconds: int = Field(default=3600, gt=0)
    anomaly_threshold_seconds: int = 1
    rollback_threshold_seconds: int = -100
    drop_duplicate_rides: bool = False
    log_level: str = "INFO"
    log_dir: Path = Path("logs")

    class Config:
        env_prefix = "TRIPS_"
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def rollback_window(self) -> RollbackWindow:
        return RollbackWindow(
            transition=self.rollback_transition,
            offset_seconds=self.rollback_offset_seconds,
        )


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.output_dir.mkdir(parents=True, exist_ok=True)
    return settings
