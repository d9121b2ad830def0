from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_hours: int = Field(24, alias="ACCESS_TOKEN_EXPIRE_HOURS")

    # Primary photo storage: "supabase" (hosted) or "local" (MEDIA_ROOT on disk)
    storage_backend: str = Field("local", alias="STORAGE_BACKEND")
    supabase_url: Optional[str] = Field(None, alias="SUPABASE_URL")
    supabase_service_key: Optional[str] = Field(None, alias="SUPABASE_SERVICE_KEY")
    storage_bucket: str = Field("photos", alias="STORAGE_BUCKET")
    media_root: str = Field("./media", alias="MEDIA_ROOT")
    max_upload_bytes: int = Field(10 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")

    # Google Drive mirror; mirroring is skipped when the credentials are unset
    google_service_account_email: Optional[str] = Field(None, alias="GOOGLE_SERVICE_ACCOUNT_EMAIL")
    google_private_key: Optional[str] = Field(None, alias="GOOGLE_PRIVATE_KEY")
    google_drive_folder_id: Optional[str] = Field(None, alias="GOOGLE_DRIVE_FOLDER_ID")

    http_timeout_seconds: float = Field(30.0, alias="HTTP_TIMEOUT_SECONDS")
    cors_origins: str = Field("*", alias="CORS_ORIGINS")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    admin_email: Optional[str] = Field(None, alias="ADMIN_EMAIL")
    admin_password: Optional[str] = Field(None, alias="ADMIN_PASSWORD")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def google_private_key_pem(self) -> Optional[str]:
        # Keys pasted into env files usually carry literal "\n" sequences
        if not self.google_private_key:
            return None
        return self.google_private_key.replace("\\n", "\n")

    @property
    def drive_enabled(self) -> bool:
        return bool(self.google_service_account_email and self.google_private_key)


settings = Settings()
