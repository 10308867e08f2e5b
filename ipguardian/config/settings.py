import json
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "ipguardian"
    db_username: str = "ipguardian"
    db_password: str = "secret"

    catalog_backend: str = "postgres"

    max_file_size_bytes: int = 104857600
    max_files_per_batch: int = 10
    temp_dir: str = "./uploads/temp"
    allowed_categories: Annotated[list[str], NoDecode] = [
        "images",
        "documents",
        "audio",
        "video",
        "archives",
        "code",
    ]
    hash_chunk_size_bytes: int = 65536

    object_store_backend: str = "ipfs"
    object_store_api_url: str = "http://127.0.0.1:5001/api/v0"
    object_store_gateway_url: str = "http://127.0.0.1:8080"
    object_store_timeout_seconds: int = 30

    thumbnail_width: int = 300
    thumbnail_height: int = 300
    thumbnail_quality: int = 80

    ingest_concurrency: int = 4

    pdf_engine: str = "pdfplumber"

    @field_validator("allowed_categories", mode="before")
    @classmethod
    def _split_categories(cls, value: object) -> object:
        """Accept either a comma-separated string or a JSON list."""
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                return json.loads(stripped)
            return [part.strip().lower() for part in stripped.split(",") if part.strip()]
        return value
