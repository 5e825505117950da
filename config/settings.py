"""Application settings loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Engine configuration from environment variables."""

    simples_catalog_file: str = "simples_catalog.yaml"
    simples_catalog_version: str = "2018"
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
