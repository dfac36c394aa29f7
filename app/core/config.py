"""Application configuration for SNOMED Search.

Configuration is loaded from environment variables (or a local ``.env`` file),
making the service suitable for container-based deployments.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    snomed_db_host: str = "localhost"
    snomed_db_port: int = 5433
    snomed_db_name: str = "niramoy"
    snomed_db_user: str = "niramoy"
    snomed_db_password: str = "niramoy"

    database_url: str | None = None

    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000"]

    # "static" | "openai" | "none"
    suggestion_provider: str = "static"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    suggestion_timeout_seconds: float = 5.0

    @property
    def sqlalchemy_database_uri(self) -> str:
        if self.database_url:
            return self.database_url

        return (
            f"postgresql+asyncpg://{self.snomed_db_user}:{self.snomed_db_password}"
            f"@{self.snomed_db_host}:{self.snomed_db_port}/{self.snomed_db_name}"
        )


settings = Settings()
