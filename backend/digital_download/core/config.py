import os


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./digital_download.db")
    DATABASE_ECHO: bool = _env_bool("DATABASE_ECHO")

    SECRET_KEY: str = os.getenv("SECRET_KEY", "your-secret-key")
    ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_COOKIE_NAME: str = os.getenv("ACCESS_COOKIE_NAME", "access_token")

    # Where anonymous callers are sent when a link requires a login.
    # Empty means answer 401 instead of redirecting.
    LOGIN_URL: str = os.getenv("LOGIN_URL", "")
    PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "")
    TRUST_PROXY_HEADERS: bool = _env_bool("TRUST_PROXY_HEADERS")

    KEEP_DOWNLOAD_LOG: bool = _env_bool("KEEP_DOWNLOAD_LOG", "true")
    DOWNLOAD_CHUNK_SIZE: int = int(os.getenv("DOWNLOAD_CHUNK_SIZE", str(1024 * 8)))
    REMOTE_CONNECT_TIMEOUT: float = float(os.getenv("REMOTE_CONNECT_TIMEOUT", "10"))

    MINIO_ENDPOINT: str = os.getenv("MINIO_ENDPOINT", "minio:9000")
    MINIO_ACCESS_KEY: str = os.getenv("MINIO_ACCESS_KEY", "minioadmin")
    MINIO_SECRET_KEY: str = os.getenv("MINIO_SECRET_KEY", "minioadmin")
    MINIO_SECURE: bool = _env_bool("MINIO_SECURE")
    MINIO_REGION: str = os.getenv("MINIO_REGION", "us-east-1")
    MINIO_PRESIGN_EXPIRES_SECONDS: int = int(os.getenv("MINIO_PRESIGN_EXPIRES_SECONDS", "300"))

settings = Settings()
