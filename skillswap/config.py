import os
from datetime import timedelta

from dotenv import load_dotenv
from sqlalchemy.engine import URL


def _environment():
    return os.getenv("FLASK_ENV") or os.getenv("NODE_ENV") or "development"


# Load environment variables from .env (only outside production)
if _environment() != "production":
    load_dotenv()


def _database_uri():
    """Single connection URL in production, discrete settings in development."""
    url = os.getenv("DATABASE_URL")
    if url:
        # Heroku/Render style URLs are not accepted by SQLAlchemy as-is
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        return url

    return URL.create(
        "postgresql+psycopg2",
        username=os.getenv("DB_USER"),
        password=os.getenv("DB_PASSWORD"),
        host=os.getenv("DB_HOST", "localhost"),
        port=int(os.getenv("DB_PORT", "5432")),
        database=os.getenv("DB_NAME", "skillswap"),
    ).render_as_string(hide_password=False)


def _engine_options(production, pool_size, pool_timeout, statement_timeout_ms):
    # TLS to the database is only required in production
    connect_args = {"options": f"-c statement_timeout={statement_timeout_ms}"}
    if production:
        connect_args["sslmode"] = "require"

    return {
        "pool_size": pool_size,
        "max_overflow": 0,
        "pool_timeout": pool_timeout,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
        "connect_args": connect_args,
    }


def _origins():
    raw = os.getenv("FRONTEND_URL", "http://localhost:5173")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


class Config:
    """Base configuration."""

    ENVIRONMENT = _environment()
    PRODUCTION = ENVIRONMENT == "production"
    DEBUG = not PRODUCTION
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    PORT = int(os.getenv("PORT", "3000"))

    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "20"))
    DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "2"))
    DB_STATEMENT_TIMEOUT_MS = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "5000"))
    DB_CHECKOUT_WATCHDOG_SECONDS = float(os.getenv("DB_CHECKOUT_WATCHDOG_SECONDS", "5"))

    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(
        PRODUCTION, DB_POOL_SIZE, DB_POOL_TIMEOUT, DB_STATEMENT_TIMEOUT_MS
    )

    JWT_SECRET_KEY = os.getenv("JWT_SECRET")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=24)
    JWT_TOKEN_LOCATION = ["headers"]

    BCRYPT_LOG_ROUNDS = max(10, int(os.getenv("BCRYPT_LOG_ROUNDS", "10")))

    # CORS configuration
    CORS_ORIGINS = _origins()

    RATELIMIT_ENABLED = os.getenv("RATELIMIT_ENABLED", "true").lower() in ("1", "true", "yes")


class TestingConfig(Config):
    TESTING = True
    ENVIRONMENT = "testing"
    PRODUCTION = False
    DEBUG = False

    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}

    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-bytes-for-hs256"
    RATELIMIT_ENABLED = False
    CORS_ORIGINS = ["http://localhost:5173"]
