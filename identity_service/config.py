"""
Service configuration.

Settings are read once at startup from the process environment layered
over optional `.env` and `.env.<ENVIRONMENT>` files, and passed explicitly
to the components that need them.
"""
import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values

from identity_service.auth.jwt import DEFAULT_TOKEN_TTL
from identity_service.auth.passwords import DEFAULT_WORK_FACTOR

DEV_JWT_SECRET = "development-only-shared-secret-key"
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./identity.db"
DEFAULT_RATE_LIMIT = "100/minute"

_DURATION_PATTERN = re.compile(r"^(\d+)([smhd]?)$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> timedelta:
    """
    Parse a duration such as "3600", "90s", "30m", "24h" or "7d".

    Raises:
        ValueError: If the value is not a positive duration
    """
    match = _DURATION_PATTERN.match(value.strip().lower())
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    seconds = int(match.group(1)) * _DURATION_UNITS[match.group(2)]
    if seconds <= 0:
        raise ValueError(f"Duration must be positive: {value!r}")
    return timedelta(seconds=seconds)


def load_env_files(directory: str = ".") -> Dict[str, str]:
    """
    Merge `.env`, then `.env.<ENVIRONMENT>`, then the process environment.

    Later sources win. ENVIRONMENT itself is taken from the process
    environment or, failing that, from `.env`.
    """
    base = dotenv_values(os.path.join(directory, ".env"))
    environment = os.environ.get("ENVIRONMENT") or base.get("ENVIRONMENT") or "production"
    overlay = dotenv_values(os.path.join(directory, f".env.{environment}"))

    merged = {k: v for k, v in {**base, **overlay}.items() if v is not None}
    merged.update(os.environ)
    return merged


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, fixed for the lifetime of the process."""
    environment: str = "production"
    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = "INFO"
    log_dir: Optional[str] = "log"
    jwt_secret: str = DEV_JWT_SECRET
    jwt_expiry: timedelta = DEFAULT_TOKEN_TTL
    hash_work_factor: int = DEFAULT_WORK_FACTOR
    host: str = "0.0.0.0"
    port: int = 8080
    rate_limit: Optional[str] = DEFAULT_RATE_LIMIT
    bootstrap_app_name: Optional[str] = None
    bootstrap_admin_email: Optional[str] = None
    bootstrap_admin_password: Optional[str] = field(default=None, repr=False)

    @property
    def uses_dev_secret(self) -> bool:
        return self.jwt_secret == DEV_JWT_SECRET

    @property
    def bootstrap_enabled(self) -> bool:
        return bool(
            self.bootstrap_app_name
            and self.bootstrap_admin_email
            and self.bootstrap_admin_password
        )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, env_dir: str = ".") -> "Settings":
        """
        Build settings from environment variables.

        Args:
            env: Mapping to read instead of the environment files and os.environ
            env_dir: Directory holding `.env` and `.env.<ENVIRONMENT>`

        Returns:
            Settings instance

        Raises:
            ValueError: If a variable holds an invalid value
        """
        if env is None:
            env = load_env_files(env_dir)

        expiry_raw = env.get("JWT_EXPIRY")
        try:
            jwt_expiry = parse_duration(expiry_raw) if expiry_raw else DEFAULT_TOKEN_TTL
        except ValueError as e:
            raise ValueError(f"JWT_EXPIRY: {e}") from None

        log_dir = env.get("LOG_DIR", "log")

        return cls(
            environment=env.get("ENVIRONMENT", "production"),
            database_url=env.get("DATABASE_URL", DEFAULT_DATABASE_URL),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            log_dir=log_dir or None,
            jwt_secret=env.get("JWT_SECRET_KEY") or DEV_JWT_SECRET,
            jwt_expiry=jwt_expiry,
            hash_work_factor=_get_int(env, "HASH_WORK_FACTOR", DEFAULT_WORK_FACTOR),
            host=env.get("HOST", "0.0.0.0"),
            port=_get_int(env, "PORT", 8080),
            rate_limit=env.get("RATE_LIMIT", DEFAULT_RATE_LIMIT) or None,
            bootstrap_app_name=env.get("BOOTSTRAP_APP_NAME") or None,
            bootstrap_admin_email=env.get("BOOTSTRAP_ADMIN_EMAIL") or None,
            bootstrap_admin_password=env.get("BOOTSTRAP_ADMIN_PASSWORD") or None,
        )
