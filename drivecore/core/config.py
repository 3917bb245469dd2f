from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        extra="ignore"  # Ignore extra fields in .env
    )

    database_url: str = "sqlite:///./drivecore.db"

    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    environment: str = "development"
    debug: bool = True

    host: str = "0.0.0.0"
    port: int = 8010

    frontend_url: Optional[List[str]] = None

    # Blob storage: "local" keeps bytes on disk, "supabase" uses a storage bucket
    blob_backend: str = "local"
    local_blob_root: str = "uploads"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    supabase_bucket: str = "uploads"

    max_upload_size_mb: int = 100

    # Trash lifecycle
    trash_retention_days: int = 30
    purge_interval_seconds: int = 24 * 60 * 60
    purge_enabled: bool = True

    # Upper bound on parent_id hops when walking a folder's ancestors
    max_ancestor_depth: int = 10_000


settings = Settings()
