import os


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Settings:
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./dropbin.db")
    DATABASE_ECHO: bool = _env_bool("DATABASE_ECHO", "false")

    MINIO_ENDPOINT: str = os.getenv("MINIO_ENDPOINT", "minio:9000")
    MINIO_ACCESS_KEY: str = os.getenv("MINIO_ACCESS_KEY", "minioadmin")
    MINIO_SECRET_KEY: str = os.getenv("MINIO_SECRET_KEY", "minioadmin")
    MINIO_BUCKET: str = os.getenv("MINIO_BUCKET", "dropbin")
    MINIO_SECURE: bool = _env_bool("MINIO_SECURE", "false")
    MINIO_REGION: str | None = os.getenv("MINIO_REGION") or None

    PIN_LENGTH: int = int(os.getenv("PIN_LENGTH", "4"))
    PIN_MAX_ATTEMPTS: int = int(os.getenv("PIN_MAX_ATTEMPTS", "20"))

    DEFAULT_EXPIRY_HOURS: int = int(os.getenv("DEFAULT_EXPIRY_HOURS", "72"))
    LONG_EXPIRY_TOKEN: str = os.getenv("LONG_EXPIRY_TOKEN", "RDV")
    LONG_EXPIRY_DAYS: int = int(os.getenv("LONG_EXPIRY_DAYS", "90"))
    MEDIUM_EXPIRY_TOKEN: str = os.getenv("MEDIUM_EXPIRY_TOKEN", "RCP")
    MEDIUM_EXPIRY_DAYS: int = int(os.getenv("MEDIUM_EXPIRY_DAYS", "30"))

    MAX_UPLOAD_SIZE: int = int(os.getenv("MAX_UPLOAD_SIZE", str(100 * 1024 * 1024)))
    MAX_PROXY_UPLOAD_SIZE: int = int(os.getenv("MAX_PROXY_UPLOAD_SIZE", str(50 * 1024 * 1024)))
    UPLOAD_URL_EXPIRY_SECONDS: int = int(os.getenv("UPLOAD_URL_EXPIRY_SECONDS", "900"))
    DOWNLOAD_URL_EXPIRY_SECONDS: int = int(os.getenv("DOWNLOAD_URL_EXPIRY_SECONDS", "3600"))

    VERIFY_RATE_LIMIT: str = os.getenv("VERIFY_RATE_LIMIT", "10/minute")
    RATE_LIMIT_STORAGE_URI: str = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")
    # peers whose X-Forwarded-For / X-Real-IP headers are believed
    TRUSTED_PROXIES: list[str] = [
        p.strip() for p in os.getenv("TRUSTED_PROXIES", "").split(",") if p.strip()
    ]

    ADMIN_MASTER_PIN: str = os.getenv("ADMIN_MASTER_PIN", "000000")
    ADMIN_PAGE_SIZE: int = int(os.getenv("ADMIN_PAGE_SIZE", "50"))
    CRON_SECRET: str | None = os.getenv("CRON_SECRET") or None

    CLEANUP_ENABLED: bool = _env_bool("CLEANUP_ENABLED", "true")
    CLEANUP_INTERVAL_SECONDS: int = int(os.getenv("CLEANUP_INTERVAL_SECONDS", "300"))

    CORS_ORIGINS: list[str] = [
        o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
    ]

    def __init__(self):
        if self.PIN_LENGTH not in (4, 6):
            raise RuntimeError(f"PIN_LENGTH must be 4 or 6, got {self.PIN_LENGTH}")


settings = Settings()
