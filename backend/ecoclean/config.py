import os


def _normalize_database_url(url: str) -> str:
    # Render/Heroku sometimes provide postgres:// which SQLAlchemy expects as postgresql://
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def _int_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if raw.isdigit():
        return int(raw)
    return default


_BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))

# Dev fallback; production must configure a real database.
DEFAULT_DATABASE_URI = "sqlite:///" + os.path.join(_BACKEND_DIR, 'instance', 'ecoclean.db').replace('\\', '/')


class Config:
    # Base directory of the backend (one level above this `ecoclean` package)
    BACKEND_DIR = _BACKEND_DIR
    INSTANCE_DIR = os.path.join(BACKEND_DIR, 'instance')

    ECOCLEAN_ENV = (os.getenv("ECOCLEAN_ENV", "dev") or "dev").strip().lower()
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")

    _db_url = os.getenv("SQLALCHEMY_DATABASE_URI") or os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URI
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(_db_url)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CORS: comma-separated origins for web builds (e.g. https://ecoclean.example.com)
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")

    API_PREFIX = os.getenv("API_PREFIX", "/api").rstrip("/")

    # sql | memory
    LEDGER_BACKEND = (os.getenv("LEDGER_BACKEND", "sql") or "sql").strip().lower()

    # local | supabase
    IDENTITY_PROVIDER = (os.getenv("IDENTITY_PROVIDER", "local") or "local").strip().lower()
    SUPABASE_URL = (os.getenv("SUPABASE_URL") or "").rstrip("/")
    SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
    SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
    IDENTITY_TIMEOUT_SECONDS = _int_env("IDENTITY_TIMEOUT_SECONDS", 10)

    ACCESS_TOKEN_TTL_SECONDS = _int_env("ACCESS_TOKEN_TTL_SECONDS", 60 * 60 * 24 * 7)

    STORE_RETRY_ATTEMPTS = _int_env("STORE_RETRY_ATTEMPTS", 3)
    STORE_RETRY_BASE_SECONDS = 0.05
    USER_UPDATE_ATTEMPTS = _int_env("USER_UPDATE_ATTEMPTS", 5)

    QUIZ_SAMPLE_SIZE = _int_env("QUIZ_SAMPLE_SIZE", 3)


def is_production(env: str) -> bool:
    return env in ("prod", "production")


def validate_config(config) -> None:
    """Production safety checks, run once by the app factory."""
    if not is_production(config.get("ECOCLEAN_ENV", "dev")):
        return
    secret = (config.get("SECRET_KEY") or "").strip()
    if not secret or len(secret) < 16:
        raise RuntimeError("SECRET_KEY must be set and at least 16 chars in production")
    database_uri = (config.get("SQLALCHEMY_DATABASE_URI") or "").strip()
    if config.get("LEDGER_BACKEND") == "sql" and database_uri in ("", DEFAULT_DATABASE_URI):
        raise RuntimeError("DATABASE_URL (or SQLALCHEMY_DATABASE_URI) must be set in production")
    if config.get("IDENTITY_PROVIDER") == "supabase":
        if not config.get("SUPABASE_URL") or not config.get("SUPABASE_SERVICE_ROLE_KEY"):
            raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set for the supabase identity provider")
