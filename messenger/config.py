from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    database_url: str
    database_echo: bool = False  # Log every SQL statement

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
