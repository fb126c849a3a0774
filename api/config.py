"""
Environment-aware configuration.
The environment (and .env) is read once, when this module is imported; the
app factory then turns the selected config into an AuthSettings value that is
handed to the token codec and the auth service.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from dotenv import load_dotenv

from utils.tokens import parse_duration

load_dotenv()  # Read .env if present

DEV_ACCESS_SECRET = "dev-access-secret-change-me"
DEV_REFRESH_SECRET = "dev-refresh-secret-change-me"


class ConfigurationError(RuntimeError):
    """Configuration the process must not start with."""


def env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///auth-api.db")
    SQL_ECHO = env_flag("SQL_ECHO")
    STORAGE_TIMEOUT_SECONDS = float(os.getenv("STORAGE_TIMEOUT_SECONDS", "5"))

    # jwt configurations; access and refresh tokens use different secrets
    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", DEV_ACCESS_SECRET)
    JWT_ACCESS_EXPIRES_IN = os.getenv("JWT_ACCESS_EXPIRES_IN", "15m")
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", DEV_REFRESH_SECRET)
    JWT_REFRESH_EXPIRES_IN = os.getenv("JWT_REFRESH_EXPIRES_IN", "7d")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

    # argon2 time cost
    PASSWORD_HASH_COST = int(os.getenv("PASSWORD_HASH_COST", "12"))
    PASSWORD_HASH_MEMORY_KIB = int(os.getenv("PASSWORD_HASH_MEMORY_KIB", "65536"))

    # reject empty, default or shared JWT secrets at startup
    ENFORCE_SECRET_POLICY = env_flag("ENFORCE_SECRET_POLICY")


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class TestingConfig(BaseConfig):
    TESTING = True
    APP_ENV = "test"
    LOG_LEVEL = "WARNING"
    DATABASE_URL = "sqlite://"
    SQL_ECHO = False
    JWT_ACCESS_SECRET = "test-access-secret"
    JWT_REFRESH_SECRET = "test-refresh-secret"
    JWT_ACCESS_EXPIRES_IN = "15m"
    JWT_REFRESH_EXPIRES_IN = "7d"
    # cheap hashing keeps the suite fast
    PASSWORD_HASH_COST = 1
    PASSWORD_HASH_MEMORY_KIB = 1024


class ProductionConfig(BaseConfig):
    DEBUG = False
    # always on in production, whatever the environment says
    ENFORCE_SECRET_POLICY = True


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig


@dataclass(frozen=True)
class AuthSettings:
    """Everything the token codec and auth service need, built once at startup."""

    access_secret: str
    refresh_secret: str
    access_lifetime: str = "15m"
    refresh_lifetime: str = "7d"
    algorithm: str = "HS256"
    password_hash_cost: int = 12
    password_hash_memory_kib: int = 65536

    @classmethod
    def from_config(cls, config: Mapping) -> "AuthSettings":
        return cls(
            access_secret=config["JWT_ACCESS_SECRET"],
            refresh_secret=config["JWT_REFRESH_SECRET"],
            access_lifetime=config.get("JWT_ACCESS_EXPIRES_IN", "15m"),
            refresh_lifetime=config.get("JWT_REFRESH_EXPIRES_IN", "7d"),
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            password_hash_cost=int(config.get("PASSWORD_HASH_COST", 12)),
            password_hash_memory_kib=int(config.get("PASSWORD_HASH_MEMORY_KIB", 65536)),
        )

    def validate(self, enforce_secret_policy: bool = False) -> "AuthSettings":
        """
        Fail fast on settings the process must not run with.
        A malformed lifetime raises AuthError(INVALID_DURATION_FORMAT).
        """
        parse_duration(self.access_lifetime)
        parse_duration(self.refresh_lifetime)
        if enforce_secret_policy:
            if not self.access_secret or not self.refresh_secret:
                raise ConfigurationError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must be set")
            if self.access_secret in (DEV_ACCESS_SECRET, DEV_REFRESH_SECRET) or self.refresh_secret in (
                DEV_ACCESS_SECRET,
                DEV_REFRESH_SECRET,
            ):
                raise ConfigurationError("Development JWT secrets cannot be used in production")
            if self.access_secret == self.refresh_secret:
                raise ConfigurationError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ")
        return self
