"""Pydantic-based settings for the DataLab server."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration settings for the DataLab server."""

    model_config = SettingsConfigDict(
        env_prefix="DATALAB_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Service settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8080, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Database settings
    database_path: str = Field(default="data/datalab.db", description="SQLite database file")

    # Export settings
    export_batch_size: int = Field(default=100, ge=1, description="Records fetched per export query")
    export_filename: str = Field(default="datalab-export.jsonl", description="Download filename for exports")

    @property
    def log_format(self) -> str:
        """Log message format."""
        return "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
