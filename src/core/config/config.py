"""
Static configuration for the GeoHunt progress engine.

Purpose
-------
Provides process-wide settings loaded once from environment variables (with
`.env` support) and checked for type and range before use.

Responsibilities
----------------
- Load database, logging, circuit breaker, scanner and GPS settings
- Parse integers, floats and booleans with bounds checking and safe fallback
- Record which values came from the environment versus defaults
- Warn about risky settings in production

Non-Responsibilities
--------------------
- Tunable game data such as badge names or flavor fallbacks (ConfigManager)
- Runtime mutation of settings

Environment Variables
---------------------
- DATABASE_URL: SQLAlchemy async URL (default: local SQLite via aiosqlite)
- DATABASE_POOL_SIZE / DATABASE_MAX_OVERFLOW / DATABASE_POOL_RECYCLE
- DATABASE_ECHO: emit SQL statements to the log
- ENVIRONMENT: development | testing | staging | production
- LOG_LEVEL / LOG_JSON
- CIRCUIT_BREAKER_FAILURE_THRESHOLD / CIRCUIT_BREAKER_RECOVERY_TIMEOUT
- SCANNER_MISMATCH_COOLDOWN_SECONDS / SCANNER_SIMULATION_DELAY_SECONDS
- GPS_FIX_TIMEOUT_SECONDS / GPS_FIX_MAX_AGE_SECONDS
"""

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

load_dotenv()

# Structured logging depends on Config, so bootstrap warnings use stdlib logging.
_bootstrap_logger = logging.getLogger(__name__)


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """Parse an environment name, falling back to development."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            _bootstrap_logger.warning(
                "Unknown environment '%s', defaulting to development", value
            )
            return cls.DEVELOPMENT


class _ConfigLoadMetrics:
    """Tracks where each setting came from and which ones failed validation."""

    def __init__(self) -> None:
        self.sources: Dict[str, str] = {}
        self.validation_errors: Dict[str, str] = {}
        self.last_reload: Optional[str] = None

    def record(self, key: str, from_env: bool) -> None:
        self.sources[key] = "environment" if from_env else "default"

    def record_error(self, key: str, error: str) -> None:
        self.validation_errors[key] = error
        self.sources[key] = "default"

    def get_summary(self) -> Dict[str, Any]:
        from_env = [k for k, v in self.sources.items() if v == "environment"]
        return {
            "total_configs": len(self.sources),
            "from_environment": len(from_env),
            "from_defaults": len(self.sources) - len(from_env),
            "validation_errors": len(self.validation_errors),
            "last_reload": self.last_reload,
        }


class Config:
    """
    Centralized static configuration.

    Values are class attributes so callers read them directly
    (`Config.DATABASE_URL`). `load()` runs on import; tests may override
    attributes or call `load()` again after patching the environment.
    """

    _metrics: _ConfigLoadMetrics = _ConfigLoadMetrics()

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./geohunt.db"
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 5
    DATABASE_POOL_RECYCLE: int = 3600
    DATABASE_ECHO: bool = False

    # Environment & logging
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    PROJECT_ROOT = Path(__file__).resolve().parents[3]
    LOGS_DIR = PROJECT_ROOT / "logs"
    CONFIG_DIR = PROJECT_ROOT / "config"

    # Circuit breaker
    CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = 5
    CIRCUIT_BREAKER_RECOVERY_TIMEOUT: int = 60

    # Scanner session
    SCANNER_MISMATCH_COOLDOWN_SECONDS: float = 2.0
    SCANNER_SIMULATION_DELAY_SECONDS: float = 2.0

    # Location watch
    GPS_FIX_TIMEOUT_SECONDS: float = 30.0
    GPS_FIX_MAX_AGE_SECONDS: float = 0.0

    # =========================================================================
    # Parsing helpers
    # =========================================================================

    @classmethod
    def _reject(cls, key: str, error: str) -> None:
        _bootstrap_logger.warning(error)
        cls._metrics.record_error(key, error)

    @classmethod
    def _safe_int(
        cls,
        key: str,
        default: int,
        min_val: Optional[int] = None,
        max_val: Optional[int] = None,
    ) -> int:
        """
        Parse an integer environment variable within optional bounds.

        Out-of-range or unparsable values log a warning and yield `default`.
        """
        raw = os.getenv(key)
        if raw is None:
            cls._metrics.record(key, False)
            return default

        try:
            value = int(raw)
        except ValueError:
            cls._reject(key, f"{key}='{raw}' is not a valid integer, using default {default}")
            return default

        if min_val is not None and value < min_val:
            cls._reject(key, f"{key}={value} is below minimum {min_val}, using default {default}")
            return default
        if max_val is not None and value > max_val:
            cls._reject(key, f"{key}={value} exceeds maximum {max_val}, using default {default}")
            return default

        cls._metrics.record(key, True)
        return value

    @classmethod
    def _safe_float(
        cls,
        key: str,
        default: float,
        min_val: Optional[float] = None,
        max_val: Optional[float] = None,
    ) -> float:
        """Parse a float environment variable within optional bounds."""
        raw = os.getenv(key)
        if raw is None:
            cls._metrics.record(key, False)
            return default

        try:
            value = float(raw)
        except ValueError:
            cls._reject(key, f"{key}='{raw}' is not a valid number, using default {default}")
            return default

        if (min_val is not None and value < min_val) or (
            max_val is not None and value > max_val
        ):
            cls._reject(key, f"{key}={value} is out of range, using default {default}")
            return default

        cls._metrics.record(key, True)
        return value

    @classmethod
    def _safe_bool(cls, key: str, default: bool) -> bool:
        """Parse true/false, yes/no, 1/0, on/off (case-insensitive)."""
        raw = os.getenv(key)
        if raw is None:
            cls._metrics.record(key, False)
            return default

        normalized = raw.strip().lower()
        if normalized in {"true", "yes", "1", "on"}:
            cls._metrics.record(key, True)
            return True
        if normalized in {"false", "no", "0", "off"}:
            cls._metrics.record(key, True)
            return False

        cls._reject(key, f"{key}='{raw}' is not a valid boolean, using default {default}")
        return default

    @classmethod
    def _safe_str(cls, key: str, default: str) -> str:
        value = os.getenv(key)
        cls._metrics.record(key, value is not None)
        return value if value else default

    # =========================================================================
    # Loading
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """Load every setting from the environment."""
        cls._metrics = _ConfigLoadMetrics()

        cls.DATABASE_URL = cls._safe_str(
            "DATABASE_URL", "sqlite+aiosqlite:///./geohunt.db"
        )
        cls.DATABASE_POOL_SIZE = cls._safe_int("DATABASE_POOL_SIZE", 10, min_val=1, max_val=200)
        cls.DATABASE_MAX_OVERFLOW = cls._safe_int(
            "DATABASE_MAX_OVERFLOW", 5, min_val=0, max_val=200
        )
        cls.DATABASE_POOL_RECYCLE = cls._safe_int("DATABASE_POOL_RECYCLE", 3600, min_val=60)
        cls.DATABASE_ECHO = cls._safe_bool("DATABASE_ECHO", False)

        cls.ENVIRONMENT = Environment.from_string(
            cls._safe_str("ENVIRONMENT", "development")
        ).value
        cls.LOG_LEVEL = cls._safe_str("LOG_LEVEL", "INFO").upper()
        cls.LOG_JSON = cls._safe_bool("LOG_JSON", cls.ENVIRONMENT == "production")

        cls.CIRCUIT_BREAKER_FAILURE_THRESHOLD = cls._safe_int(
            "CIRCUIT_BREAKER_FAILURE_THRESHOLD", 5, min_val=1, max_val=100
        )
        cls.CIRCUIT_BREAKER_RECOVERY_TIMEOUT = cls._safe_int(
            "CIRCUIT_BREAKER_RECOVERY_TIMEOUT", 60, min_val=1
        )

        cls.SCANNER_MISMATCH_COOLDOWN_SECONDS = cls._safe_float(
            "SCANNER_MISMATCH_COOLDOWN_SECONDS", 2.0, min_val=0.0, max_val=60.0
        )
        cls.SCANNER_SIMULATION_DELAY_SECONDS = cls._safe_float(
            "SCANNER_SIMULATION_DELAY_SECONDS", 2.0, min_val=0.0, max_val=60.0
        )

        cls.GPS_FIX_TIMEOUT_SECONDS = cls._safe_float(
            "GPS_FIX_TIMEOUT_SECONDS", 30.0, min_val=0.1, max_val=600.0
        )
        cls.GPS_FIX_MAX_AGE_SECONDS = cls._safe_float(
            "GPS_FIX_MAX_AGE_SECONDS", 0.0, min_val=0.0
        )

        cls._metrics.last_reload = datetime.now(timezone.utc).isoformat()

    @classmethod
    def validate(cls) -> None:
        """
        Load and sanity-check settings.

        Raises
        ------
        ValueError
            If DATABASE_URL is empty while running in production.
        """
        cls.load()

        if cls.LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            cls._reject("LOG_LEVEL", f"Invalid LOG_LEVEL '{cls.LOG_LEVEL}', using INFO")
            cls.LOG_LEVEL = "INFO"

        if cls.is_production():
            if not cls.DATABASE_URL:
                raise ValueError("DATABASE_URL environment variable is required")
            if cls.DATABASE_URL.startswith("sqlite"):
                _bootstrap_logger.warning(
                    "Production environment is using SQLite; concurrent "
                    "writers across processes will be serialized by the file lock"
                )

    # =========================================================================
    # Environment checks
    # =========================================================================

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT == Environment.PRODUCTION.value

    @classmethod
    def is_development(cls) -> bool:
        return cls.ENVIRONMENT == Environment.DEVELOPMENT.value

    @classmethod
    def is_testing(cls) -> bool:
        return cls.ENVIRONMENT == Environment.TESTING.value

    @classmethod
    def uses_sqlite(cls) -> bool:
        return cls.DATABASE_URL.startswith("sqlite")

    # =========================================================================
    # Metrics & summary
    # =========================================================================

    @classmethod
    def get_metrics(cls) -> _ConfigLoadMetrics:
        return cls._metrics

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """Non-sensitive snapshot for startup logs."""
        return {
            "environment": cls.ENVIRONMENT,
            "log_level": cls.LOG_LEVEL,
            "log_json": cls.LOG_JSON,
            "database_backend": cls.DATABASE_URL.split(":", 1)[0],
            "database_pool_size": cls.DATABASE_POOL_SIZE,
            "scanner_cooldown_seconds": cls.SCANNER_MISMATCH_COOLDOWN_SECONDS,
            "gps_fix_timeout_seconds": cls.GPS_FIX_TIMEOUT_SECONDS,
        }


Config.validate()
