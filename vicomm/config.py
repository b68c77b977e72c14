from pathlib import Path

from pydantic_settings import BaseSettings
from pydantic import ConfigDict, field_validator


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./vicomm.db"

    # JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Uploads
    MAX_UPLOAD_SIZE: int = 1024 * 1024 * 3  # 3MB per image file

    # Province -> city table, defaults to the bundled data/cities.json
    CITIES_FILE: Path = Path(__file__).parent / "data" / "cities.json"

    RATE_LIMIT_DEFAULT: str = "120/minute"
    LOG_LEVEL: str = "INFO"

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept lowercase level names from the environment."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    model_config = ConfigDict(env_file=".env")


settings = Settings()
