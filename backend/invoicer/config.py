from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./invoicer.db"

    # Storage Configuration (S3-compatible, local filesystem when no credentials)
    storage_endpoint_url: Optional[str] = None
    storage_access_key_id: Optional[str] = None
    storage_secret_access_key: Optional[str] = None
    storage_bucket_name: str = "invoicer-uploads"
    storage_region: str = "us-east-1"
    local_storage_dir: str = "local_storage/uploads"

    # Upload limits
    max_upload_bytes: int = 5 * 1024 * 1024  # 5MB

    # Logo fetch (PDF rendering)
    logo_fetch_timeout_seconds: float = 5.0
    logo_fetch_retries: int = 1  # one retry before rendering without the logo

    # Invoice defaults
    default_currency: str = "USD"

    # CORS Configuration
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra fields in .env file


settings = Settings()
