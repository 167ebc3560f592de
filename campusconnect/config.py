import os


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


DEFAULT_SQLITE_URI = "sqlite:///local.db"


class Config:
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-change-me")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    @staticmethod
    def _build_db_uri() -> str:
        conn_name = os.environ.get("CLOUD_SQL_CONNECTION_NAME")
        db_name = os.environ.get("DB_NAME")
        db_user = os.environ.get("DB_USER")
        db_pass = os.environ.get("DB_PASS")

        # App Engine (Cloud SQL unix socket)
        if conn_name and db_name and db_user and db_pass:
            return (
                f"postgresql+psycopg2://{db_user}:{db_pass}@/{db_name}"
                f"?host=/cloudsql/{conn_name}"
            )

        # Local dev (optional DATABASE_URL), otherwise sqlite
        return os.environ.get("DATABASE_URL", DEFAULT_SQLITE_URI)

    SQLALCHEMY_DATABASE_URI = _build_db_uri.__func__()

    # Bearer tokens
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-jwt-change-me")
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
    JWT_EXPIRES_DAYS = int(os.environ.get("JWT_EXPIRES_DAYS", 7))

    # Where the single-page client lives (OAuth + reset-password redirects)
    CLIENT_URL = os.environ.get("CLIENT_URL", "http://localhost:3000").rstrip("/")

    # Email Cloud Function
    EMAIL_FUNCTION_URL = os.environ.get("EMAIL_FUNCTION_URL", "")
    EMAIL_FUNCTION_SECRET = os.environ.get("EMAIL_FUNCTION_SECRET", "")

    # Poster hosting
    S3_BUCKET_NAME = os.environ.get("S3_BUCKET_NAME", "")
    AWS_REGION = os.environ.get("AWS_REGION", "")
    POSTER_KEY_PREFIX = os.environ.get("POSTER_KEY_PREFIX", "campusconnect_events")
    MAX_POSTER_BYTES = 2 * 1024 * 1024
    # Leaves room for the other multipart fields around the poster
    MAX_CONTENT_LENGTH = MAX_POSTER_BYTES + 64 * 1024

    # Google sign-in
    GOOGLE_CLIENT_ID = os.environ.get("GOOGLE_CLIENT_ID", "")
    GOOGLE_CLIENT_SECRET = os.environ.get("GOOGLE_CLIENT_SECRET", "")
    GOOGLE_REDIRECT_URI = os.environ.get("GOOGLE_REDIRECT_URI", "")

    PASSWORD_RESET_TTL_MINUTES = int(os.environ.get("PASSWORD_RESET_TTL_MINUTES", 30))

    # Retention sweep
    CLEANUP_ENABLED = _env_bool("CLEANUP_ENABLED", True)
    CLEANUP_HOUR = int(os.environ.get("CLEANUP_HOUR", 3))
    CLEANUP_MINUTE = int(os.environ.get("CLEANUP_MINUTE", 0))
    RETENTION_DAYS = int(os.environ.get("RETENTION_DAYS", 30))

    # Background jobs (emails, poster cleanup) go through RQ
    REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
    TASK_QUEUE = os.environ.get("TASK_QUEUE", "campusconnect")
    # Off: jobs run inline at enqueue time, no worker needed
    RQ_ASYNC = _env_bool("RQ_ASYNC", True)
