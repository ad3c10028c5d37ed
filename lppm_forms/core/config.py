from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """App settings loaded from environment variables (.env)."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "Surat Tugas LPPM"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # SECURITY
    SECRET_KEY: str
    TOKEN_MAX_AGE_SECONDS: int = 60 * 60  # 1h

    # CORS
    CORS_ALLOW_ORIGINS: str = "http://localhost:5173"  # "*" or "https://a.com,https://b.com"
    CORS_ALLOW_CREDENTIALS: bool = True

    # DATABASE / CACHE
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    REDIS_URL: str = "redis://127.0.0.1:6379/0"  # empty disables the badge cache

    # TEMPLATES
    TEMPLATE_DIR: str = "templates"

    # STORAGE
    STORAGE_BACKEND: str = "local"  # "local" | "s3"
    UPLOAD_DIR: str = "/app/uploads"
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    S3_ENDPOINT_URL: str = ""
    S3_REGION: str = ""
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    S3_PUBLIC_URL: str = ""  # e.g. https://<project>.supabase.co/storage/v1/object/public
    DOCUMENTS_BUCKET: str = "surat-tugas-files"
    UPLOADS_BUCKET: str = "uploads"
    MAX_UPLOAD_MB: int = 10

    # EMAIL
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 465
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    EMAIL_FROM: str = "surattugaslppmsmd@gmail.com"
    EMAIL_FROM_NAME: str = "LPPM UNTAG Samarinda"
    OPS_MAILBOX: str = "surattugaslppmsmd@gmail.com"
    CONFIRMATION_BODY: str = (
        "Terima kasih sudah mengisi form, untuk surat hasil form dapat menghubungi "
        "Admin LPPM - 085117513399 A.n Novi."
    )

    # PDF CONVERSION
    PDF_CONVERTER: str = "none"  # "none" | "cloudconvert" | "local"
    CLOUDCONVERT_API_KEY: str = ""
    CLOUDCONVERT_API_URL: str = "https://api.cloudconvert.com/v2"
    PDF_CONVERT_TIMEOUT_SECONDS: int = 60

    # DEV BOOTSTRAP
    AUTO_CREATE_ADMIN: bool = False
    DEFAULT_ADMIN_USERNAME: str = "admin"
    DEFAULT_ADMIN_PASSWORD: str = ""

    def cors_origins(self) -> list[str]:
        s = (self.CORS_ALLOW_ORIGINS or "").strip()
        if not s or s == "*":
            return ["*"]
        return [x.strip() for x in s.split(",") if x.strip()]

    def missing_integrations(self) -> list[str]:
        """Optional integrations that are not configured (reported at start-up)."""
        missing: list[str] = []
        if self.STORAGE_BACKEND == "s3" and not (self.AWS_ACCESS_KEY_ID and self.AWS_SECRET_ACCESS_KEY):
            missing.append("S3 credentials (AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY)")
        if not (self.SMTP_USER and self.SMTP_PASSWORD):
            missing.append("SMTP credentials (SMTP_USER / SMTP_PASSWORD)")
        if self.PDF_CONVERTER == "cloudconvert" and not self.CLOUDCONVERT_API_KEY:
            missing.append("CLOUDCONVERT_API_KEY")
        return missing


settings = Settings()
