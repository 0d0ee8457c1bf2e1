"""
ConfigManager: dotted-key access to tunable game data.

Purpose
-------
- Serve badge display metadata, flavor-text fallbacks and other cosmetic
  tunables from YAML files under `config/`.
- Allow tests and operators to override individual keys at runtime.

Responsibilities
----------------
- Load and deep-merge every `*.yaml` / `*.yml` file in the config directory.
- Resolve `"a.b.c"` paths against overrides first, then YAML defaults.
- Track simple read metrics (hits, misses, fallbacks).

Non-Responsibilities
--------------------
- Scoring rules. Points per level, the QR namespace and the proximity
  threshold are fixed constants in `src.modules.shared.constants` and are
  never read from here.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, MutableMapping, Optional

import yaml

from src.core.logging.logger import get_logger

logger = get_logger(__name__)

_MISSING = object()


class ConfigManagerError(RuntimeError):
    """Raised when YAML configuration cannot be loaded."""


@dataclass
class ConfigMetrics:
    gets: int = 0
    hits: int = 0
    misses: int = 0
    overrides_set: int = 0


class ConfigManager:
    """
    Hierarchical configuration with YAML defaults and in-memory overrides.

    All state is class-level; call `initialize()` once at startup. Reads
    before initialization lazily load the default directory.
    """

    _defaults: Dict[str, Any] = {}
    _overrides: Dict[str, Any] = {}
    _initialized: bool = False
    _config_dir: Optional[Path] = None
    _metrics: ConfigMetrics = ConfigMetrics()

    @staticmethod
    def _deep_merge(target: MutableMapping[str, Any], source: MutableMapping[str, Any]) -> None:
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge(target[key], value)
            else:
                target[key] = value

    @classmethod
    def _load_yaml(cls, config_dir: Path) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        if not config_dir.exists():
            logger.warning(
                "Config directory not found; using empty defaults",
                extra={"config_dir": str(config_dir)},
            )
            return merged

        files = sorted(list(config_dir.rglob("*.yaml")) + list(config_dir.rglob("*.yml")))
        for path in files:
            try:
                with path.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                raise ConfigManagerError(f"Failed to load {path}: {exc}") from exc

            if isinstance(data, dict):
                cls._deep_merge(merged, data)
                logger.debug("Loaded YAML config", extra={"file": str(path)})
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={"file": str(path), "root_type": type(data).__name__},
                )

        logger.info(
            "YAML configs loaded",
            extra={"yaml_file_count": len(files), "top_level_keys": len(merged)},
        )
        return merged

    @classmethod
    def initialize(cls, config_dir: Optional[Path] = None) -> None:
        """
        Load YAML defaults (idempotent unless a different directory is given).

        Raises
        ------
        ConfigManagerError
            If a YAML file exists but cannot be parsed.
        """
        from src.core.config.config import Config

        target = Path(config_dir) if config_dir is not None else Config.CONFIG_DIR
        if cls._initialized and cls._config_dir == target:
            return

        cls._defaults = cls._load_yaml(target)
        cls._config_dir = target
        cls._initialized = True

    @classmethod
    def reset(cls) -> None:
        """Drop all loaded state; used by tests."""
        cls._defaults = {}
        cls._overrides = {}
        cls._initialized = False
        cls._config_dir = None
        cls._metrics = ConfigMetrics()

    @staticmethod
    def _resolve(source: Dict[str, Any], key: str) -> Any:
        value: Any = source
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return _MISSING
            value = value[part]
        return value

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Resolve a dot-notation key.

        Examples
        --------
        >>> ConfigManager.get("badges.first-find.name")
        'Rookie Scout'
        """
        if not cls._initialized:
            cls.initialize()

        cls._metrics.gets += 1
        if key in cls._overrides:
            cls._metrics.hits += 1
            return cls._overrides[key]

        value = cls._resolve(cls._defaults, key)
        if value is _MISSING:
            cls._metrics.misses += 1
            return default

        cls._metrics.hits += 1
        return value

    @classmethod
    def set_override(cls, key: str, value: Any) -> None:
        """Override a single dotted key in memory (not persisted)."""
        cls._overrides[key] = value
        cls._metrics.overrides_set += 1
        logger.info("Config override set", extra={"config_key": key})

    @classmethod
    def clear_overrides(cls) -> None:
        cls._overrides.clear()

    @classmethod
    def get_all_keys(cls) -> List[str]:
        if not cls._initialized:
            cls.initialize()
        return sorted(cls._defaults.keys())

    @classmethod
    def get_metrics(cls) -> Dict[str, Any]:
        return asdict(cls._metrics)


__all__ = ["ConfigManager", "ConfigManagerError", "ConfigMetrics"]
