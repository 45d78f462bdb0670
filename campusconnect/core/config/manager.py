"""
ConfigManager: dynamic, YAML-backed progression configuration for CampusConnect.

Purpose
-------
- Provide hierarchical, dot-notation access to tunable progression values
  (XP rewards, default missions, leaderboard limits).
- Back configuration with YAML defaults from the `config/` directory.
- Allow runtime overrides (tests, admin tooling) without touching YAML.

Responsibilities
----------------
- Load and deep-merge every YAML file under `Config.CONFIG_DIR`.
- Serve reads from an in-memory cache with hit/miss counters.
- Layer explicit overrides on top of YAML defaults.

Non-Responsibilities
--------------------
- Environment/static settings (see `campusconnect.core.config.config.Config`).
- Persisting overrides; overrides live for the process lifetime only.

Key Design Decisions
--------------------
- YAML is the single source for **defaults**; overrides win over YAML.
- Class-level state, no instantiation: services receive the class itself
  as their `config_manager` and call `get()` on it.
- Reads before `initialize()` lazily load YAML and log a warning.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional

import yaml

from campusconnect.core.config.config import Config
from campusconnect.core.exceptions import ConfigurationError
from campusconnect.core.logging.logger import get_logger

logger = get_logger(__name__)

__all__ = ["ConfigManager"]

_MISSING = object()


@dataclass
class ConfigMetrics:
    gets: int = 0
    cache_misses: int = 0
    overrides_set: int = 0
    yaml_files_loaded: int = 0


class ConfigManager:
    """
    Dynamic progression configuration with YAML defaults and overrides.

    Examples
    --------
    >>> ConfigManager.get("progression.rewards.college_viewed", 5)
    5
    >>> ConfigManager.set_override("progression.rewards.session_booked", 20)
    """

    _defaults: Dict[str, Any] = {}
    _overrides: Dict[str, Any] = {}
    _cache: Dict[str, Any] = {}
    _initialized: bool = False
    _metrics: ConfigMetrics = ConfigMetrics()

    # =========================================================================
    # YAML LOADING
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: MutableMapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = copy.deepcopy(value)

    @classmethod
    def _load_yaml_configs(cls, config_dir: Optional[Path] = None) -> None:
        """
        Load all YAML config files from `config_dir` into `_defaults`.

        Raises
        ------
        ConfigurationError
            If a YAML file exists but cannot be parsed.
        """
        config_dir = Path(config_dir or Config.CONFIG_DIR)
        cls._defaults = {}

        if not config_dir.exists():
            logger.warning(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return

        yaml_files = sorted(config_dir.rglob("*.yaml")) + sorted(config_dir.rglob("*.yml"))
        loaded_count = 0

        for yaml_file in yaml_files:
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except yaml.YAMLError as exc:
                raise ConfigurationError(
                    config_key=str(yaml_file.relative_to(config_dir)),
                    reason=f"invalid YAML: {exc}",
                ) from exc

            if isinstance(data, dict):
                cls._deep_merge_dict(cls._defaults, data)
                loaded_count += 1
                logger.debug(
                    "Loaded YAML config",
                    extra={"file": str(yaml_file.relative_to(config_dir))},
                )
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={
                        "file": str(yaml_file.relative_to(config_dir)),
                        "root_type": type(data).__name__,
                    },
                )

        cls._metrics.yaml_files_loaded = loaded_count
        logger.info(
            "YAML configs loaded",
            extra={"yaml_file_count": loaded_count, "config_dir": str(config_dir)},
        )

    @classmethod
    def _rebuild_cache(cls) -> None:
        cache = copy.deepcopy(cls._defaults)
        for key, value in cls._overrides.items():
            cls._set_path(cache, key, value)
        cls._cache = cache

    @staticmethod
    def _set_path(target: Dict[str, Any], key: str, value: Any) -> None:
        parts = key.split(".")
        node = target
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @classmethod
    def initialize(cls, config_dir: Optional[Path] = None) -> None:
        """Load YAML defaults and build the cache (idempotent)."""
        if cls._initialized:
            return

        cls._load_yaml_configs(config_dir)
        cls._rebuild_cache()
        cls._initialized = True

        logger.info(
            "ConfigManager initialized",
            extra={
                "top_level_keys": sorted(cls._cache.keys()),
                "override_count": len(cls._overrides),
            },
        )

    @classmethod
    def reload(cls, config_dir: Optional[Path] = None) -> None:
        """Re-read YAML from disk, keeping overrides."""
        cls._initialized = False
        cls.initialize(config_dir)

    @classmethod
    def reset(cls) -> None:
        """Drop all state, overrides included. Used by tests."""
        cls._defaults = {}
        cls._overrides = {}
        cls._cache = {}
        cls._initialized = False
        cls._metrics = ConfigMetrics()

    # =========================================================================
    # READS / WRITES
    # =========================================================================

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Returns a deep copy for container values so callers cannot mutate
        the cache.

        >>> ConfigManager.get("progression.leaderboard.default_limit", 10)
        10
        """
        cls._metrics.gets += 1

        if not cls._initialized:
            logger.warning(
                "ConfigManager accessed before explicit initialization; "
                "loading YAML defaults lazily"
            )
            cls.initialize()

        value: Any = cls._cache
        for part in key.split("."):
            if not isinstance(value, dict):
                value = _MISSING
                break
            value = value.get(part, _MISSING)
            if value is _MISSING:
                break

        if value is _MISSING or value is None:
            cls._metrics.cache_misses += 1
            return default

        if isinstance(value, (dict, list)):
            return copy.deepcopy(value)
        return value

    @classmethod
    def set_override(cls, key: str, value: Any) -> None:
        """Override a single dot-notation key for the rest of the process."""
        if not key or not isinstance(key, str):
            raise ConfigurationError(config_key=str(key), reason="key must be a non-empty string")

        old_value = cls.get(key)
        cls._overrides[key] = value
        cls._metrics.overrides_set += 1
        cls._rebuild_cache()

        logger.info(
            "Config override applied",
            extra={"config_key": key, "old_value": old_value, "new_value": value},
        )

    @classmethod
    def clear_overrides(cls) -> None:
        cls._overrides = {}
        cls._rebuild_cache()

    @classmethod
    def get_metrics(cls) -> Dict[str, Any]:
        return {
            "gets": cls._metrics.gets,
            "cache_misses": cls._metrics.cache_misses,
            "overrides_set": cls._metrics.overrides_set,
            "yaml_files_loaded": cls._metrics.yaml_files_loaded,
            "initialized": cls._initialized,
        }
