
import os
from pathlib import Path
from urllib.parse import quote_plus
from dotenv import load_dotenv
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent  # <project>
INSTANCE_DIR = BASE_DIR / "instance"


def _default_sqlite_uri():
    INSTANCE_DIR.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{(INSTANCE_DIR / 'ilms.db').as_posix()}"


def _database_uri():
    # DB_HOST/DB_USER/DB_PASSWORD/DB_NAME -> MySQL, otherwise DATABASE_URL or local sqlite
    host = os.getenv("DB_HOST")
    if host:
        user = quote_plus(os.getenv("DB_USER", "root"))
        password = quote_plus(os.getenv("DB_PASSWORD", ""))
        name = os.getenv("DB_NAME", "ilms")
        return f"mysql+pymysql://{user}:{password}@{host}/{name}?charset=utf8mb4"
    return os.getenv("DATABASE_URL") or _default_sqlite_uri()


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    JWT_SECRET = os.getenv("JWT_SECRET", "dev-jwt-secret-change-me-in-production")
    JWT_TTL_HOURS = int(os.getenv("JWT_TTL_HOURS", "12"))

    REDIS_HOST = os.getenv("REDIS_HOST")
    REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_PASSWORD = os.getenv("REDIS_PASSWORD")
    CACHE_TTL = int(os.getenv("CACHE_TTL", "3600"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # fallback base fees when no PayrollRate matches a shipment
    DEFAULT_DRIVER_FEE = 600
    DEFAULT_HELPER_FEE = 400


def ensure_instance(app):
    # Flask instance path
    os.makedirs(app.instance_path, exist_ok=True)
