"""Environment-driven configuration for the inventory service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable, Mapping

ENVIRONMENTS = ("development", "testing", "staging", "production")
_BOOLEAN_WORDS = {
    "1": True, "true": True, "yes": True, "on": True,
    "0": False, "false": False, "no": False, "off": False,
}


@dataclass(frozen=True)
class EnvironmentInfo:
    name: str
    source: str
    raw_value: str


class EnvReader:
    """Typed access to environment variables.

    A malformed value falls back to the default and is recorded in
    ``warnings`` so the app can log it once at startup.
    """

    def __init__(self, data: Mapping[str, str] | None = None):
        self._data = dict(os.environ if data is None else data)
        self.warnings: list[str] = []

    def raw(self, key: str) -> str | None:
        return self._data.get(key)

    def str(self, key: str, default: str | None = None) -> str | None:
        text = (self._data.get(key) or "").strip()
        return text or default

    def int(self, key: str, default: int = 0) -> int:
        return self._typed(key, default, int, "integer")

    def float(self, key: str, default: float = 0.0) -> float:
        return self._typed(key, default, float, "float")

    def bool(self, key: str, default: bool = False) -> bool:
        return self._typed(key, default, lambda text: _BOOLEAN_WORDS[text.lower()], "boolean")

    def list(self, key: str, default: tuple[str, ...] = ()) -> tuple[str, ...]:
        """Comma separated, lower-cased values; blanks are dropped."""
        text = self.str(key)
        if text is None:
            return default
        return tuple(part.strip().lower() for part in text.split(",") if part.strip())

    def _typed(self, key: str, default: Any, parse: Callable[[str], Any], kind: str) -> Any:
        text = self.str(key)
        if text is None:
            return default
        try:
            return parse(text)
        except (KeyError, ValueError):
            self.warnings.append(f"{key} expected {kind} but received {text!r}; falling back to {default}.")
            return default


def _normalize_db_url(url: str | None) -> str | None:
    # Heroku-style URLs still use the scheme SQLAlchemy 1.4 dropped
    if url and url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url or None


def _resolve_environment(reader: EnvReader) -> EnvironmentInfo:
    raw_value = reader.str("FLASK_ENV", "development")
    name = raw_value.lower()
    if name not in ENVIRONMENTS:
        raise RuntimeError(f"Invalid FLASK_ENV={raw_value!r}. Expected one of: {', '.join(ENVIRONMENTS)}.")
    return EnvironmentInfo(name=name, source="FLASK_ENV", raw_value=raw_value)


def _ratelimit_storage(reader: EnvReader) -> str:
    return reader.str("RATELIMIT_STORAGE_URI") or reader.str("REDIS_URL") or "memory://"


def _local_sqlite_uri() -> str:
    instance_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "instance"))
    os.makedirs(instance_dir, exist_ok=True)
    return "sqlite:///" + os.path.join(instance_dir, "fortress.db")


env = EnvReader()
ENV_INFO = _resolve_environment(env)


class BaseConfig:
    ENV = ENV_INFO.name
    SECRET_KEY = env.str("FLASK_SECRET_KEY", "dev-only-secret-change-me")

    SQLALCHEMY_DATABASE_URI = _normalize_db_url(env.str("DATABASE_URL"))
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": env.int("SQLALCHEMY_POOL_SIZE", 10),
        "max_overflow": env.int("SQLALCHEMY_MAX_OVERFLOW", 5),
        "pool_recycle": env.int("SQLALCHEMY_POOL_RECYCLE", 1800),
    }

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    WTF_CSRF_ENABLED = True

    # Larger uploads are refused with 413 before the view runs
    MAX_CONTENT_LENGTH = env.int("MAX_UPLOAD_BYTES", 16 * 1024 * 1024)

    RATELIMIT_ENABLED = env.bool("RATELIMIT_ENABLED", True)
    RATELIMIT_STORAGE_URI = _ratelimit_storage(env)
    RATELIMIT_DEFAULT = env.str("RATELIMIT_DEFAULT", "2000 per hour")

    LOG_LEVEL = env.str("LOG_LEVEL", "INFO")
    LOG_REDACT_PII = env.bool("LOG_REDACT_PII", True)

    # Bulk inventory import
    IMPORT_STORAGE_DIR = env.str("IMPORT_STORAGE_DIR")
    IMPORT_MAX_ROWS = env.int("IMPORT_MAX_ROWS", 5000)
    IMPORT_ALLOWED_EXTENSIONS = env.list("IMPORT_ALLOWED_EXTENSIONS", ("csv", "xlsx"))
    IMPORT_RATE_LIMIT = env.str("IMPORT_RATE_LIMIT", "30 per minute")
    IMPORT_API_BASE_URL = env.str("IMPORT_API_BASE_URL", "http://localhost:5000")
    IMPORT_API_TIMEOUT_SECONDS = env.float("IMPORT_API_TIMEOUT_SECONDS", 120.0)


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = env.str("LOG_LEVEL", "DEBUG")
    SQLALCHEMY_DATABASE_URI = BaseConfig.SQLALCHEMY_DATABASE_URI or _local_sqlite_uri()
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}


class TestingConfig(BaseConfig):
    TESTING = True
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = "memory://"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}


class StagingConfig(BaseConfig):
    SESSION_COOKIE_SECURE = True
    PREFERRED_URL_SCHEME = "https"


class ProductionConfig(StagingConfig):
    LOG_LEVEL = env.str("LOG_LEVEL", "WARNING")


CONFIG_CLASSES = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "staging": StagingConfig,
    "production": ProductionConfig,
}

Config = CONFIG_CLASSES[ENV_INFO.name]
ENV_DIAGNOSTICS = {
    "active": ENV_INFO.name,
    "source": ENV_INFO.source,
    "warnings": tuple(env.warnings),
}
