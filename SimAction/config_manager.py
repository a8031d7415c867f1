"""Unified configuration - four-layer priority system.

Priority: CLI arguments > environment variables > config file > defaults

Features:
- Type-safe configuration model (Pydantic validation)
- Layered configuration with per-field source tracking
- Config file hot reload (mtime cache)
- Atomic file writes
- Environment sync (for --reload mode)
"""

import json
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, field_validator

from SimAction.logger import logger


# ==================== Config sources ====================


class ConfigSource(str, Enum):
    """Where a value came from (highest priority first)."""

    CLI = "CLI arguments"
    ENV = "environment variables"
    FILE = "config file (~/.config/simaction/config.json)"
    DEFAULT = "default"


class RefreshPolicy(str, Enum):
    """What a refresh publishes when the simulator query fails."""

    FAIL_FAST = "fail_fast"  # Clear the device set, discard physical results
    BEST_EFFORT = "best_effort"  # Publish whatever the physical query found


# ==================== Type-safe config model ====================


class ConfigModel(BaseModel):
    """Validated effective configuration."""

    xcrun_path: str = "xcrun"
    command_timeout: float = 30.0  # Seconds per external tool call
    log_capacity: int = 20
    refresh_policy: RefreshPolicy = RefreshPolicy.FAIL_FAST
    parallel_dispatch: bool = False

    @field_validator("xcrun_path")
    @classmethod
    def validate_xcrun_path(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("xcrun_path cannot be empty")
        return v.strip()

    @field_validator("command_timeout")
    @classmethod
    def validate_command_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("command_timeout must be positive")
        if v > 600:
            raise ValueError("command_timeout must be <= 600")
        return v

    @field_validator("log_capacity")
    @classmethod
    def validate_log_capacity(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("log_capacity must be positive")
        if v > 1000:
            raise ValueError("log_capacity must be <= 1000")
        return v


_CONFIG_KEYS = [
    "xcrun_path",
    "command_timeout",
    "log_capacity",
    "refresh_policy",
    "parallel_dispatch",
]


def _parse_bool(value: Optional[str]) -> Optional[bool]:
    if value is None or value == "":
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


# ==================== Config layer ====================


@dataclass
class ConfigLayer:
    """One configuration layer with its source."""

    xcrun_path: Optional[str] = None
    command_timeout: Optional[float] = None
    log_capacity: Optional[int] = None
    refresh_policy: Optional[str] = None
    parallel_dispatch: Optional[bool] = None

    source: ConfigSource = ConfigSource.DEFAULT

    def has_value(self, key: str) -> bool:
        return getattr(self, key, None) is not None

    def to_dict(self) -> dict:
        """Non-None values only."""
        return {
            key: getattr(self, key)
            for key in _CONFIG_KEYS
            if getattr(self, key) is not None
        }


# ==================== Unified config manager ====================


class UnifiedConfigManager:
    """
    Unified configuration manager (singleton).

    Priority: CLI > ENV > FILE > DEFAULT
    """

    _instance: Optional["UnifiedConfigManager"] = None
    _config_path: Path = Path.home() / ".config" / "simaction" / "config.json"

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if hasattr(self, "_initialized") and self._initialized:
            return

        self._cli_layer = ConfigLayer(source=ConfigSource.CLI)
        self._env_layer = ConfigLayer(source=ConfigSource.ENV)
        self._file_layer = ConfigLayer(source=ConfigSource.FILE)
        self._default_layer = ConfigLayer(
            xcrun_path="xcrun",
            command_timeout=30.0,
            log_capacity=20,
            refresh_policy=RefreshPolicy.FAIL_FAST.value,
            parallel_dispatch=False,
            source=ConfigSource.DEFAULT,
        )

        # File cache keyed by modification time
        self._file_cache: Optional[dict] = None
        self._file_mtime: Optional[float] = None

        self._effective_config: Optional[ConfigModel] = None

        self._initialized = True
        logger.debug("UnifiedConfigManager initialized")

    # ==================== Loading ====================

    def set_cli_config(
        self,
        xcrun_path: Optional[str] = None,
        command_timeout: Optional[float] = None,
        refresh_policy: Optional[str] = None,
    ) -> None:
        """Set the CLI layer (highest priority)."""
        self._cli_layer = ConfigLayer(
            xcrun_path=xcrun_path,
            command_timeout=command_timeout,
            refresh_policy=refresh_policy,
            source=ConfigSource.CLI,
        )
        self._effective_config = None
        logger.debug(f"CLI config set: {self._cli_layer.to_dict()}")

    def load_env_config(self) -> None:
        """
        Load the environment layer.

        Reads:
        - SIMACTION_XCRUN_PATH
        - SIMACTION_COMMAND_TIMEOUT
        - SIMACTION_LOG_CAPACITY
        - SIMACTION_REFRESH_POLICY
        - SIMACTION_PARALLEL_DISPATCH
        """
        timeout = os.getenv("SIMACTION_COMMAND_TIMEOUT")
        capacity = os.getenv("SIMACTION_LOG_CAPACITY")

        try:
            self._env_layer = ConfigLayer(
                xcrun_path=os.getenv("SIMACTION_XCRUN_PATH") or None,
                command_timeout=float(timeout) if timeout else None,
                log_capacity=int(capacity) if capacity else None,
                refresh_policy=os.getenv("SIMACTION_REFRESH_POLICY") or None,
                parallel_dispatch=_parse_bool(os.getenv("SIMACTION_PARALLEL_DISPATCH")),
                source=ConfigSource.ENV,
            )
        except ValueError as e:
            logger.warning(f"Ignoring malformed SIMACTION_* environment value: {e}")
            self._env_layer = ConfigLayer(source=ConfigSource.ENV)

        self._effective_config = None
        logger.debug(f"Environment config loaded: {self._env_layer.to_dict()}")

    def _reset_file_layer(self) -> None:
        self._file_layer = ConfigLayer(source=ConfigSource.FILE)
        self._file_cache = None
        self._file_mtime = None
        self._effective_config = None

    def load_file_config(self, force_reload: bool = False) -> bool:
        """
        Load the file layer, reusing the cache while the mtime is unchanged.

        Args:
            force_reload: Re-read even if the file did not change

        Returns:
            bool: True if the file was (re)loaded
        """
        if not self._config_path.exists():
            logger.debug(f"Config file not found: {self._config_path}")
            self._reset_file_layer()
            return False

        try:
            current_mtime = self._config_path.stat().st_mtime

            if (
                not force_reload
                and self._file_mtime == current_mtime
                and self._file_cache
            ):
                logger.debug("Using cached config file (file unchanged)")
                return False

            with open(self._config_path, "r", encoding="utf-8") as f:
                config_data = json.load(f)

            if not isinstance(config_data, dict):
                logger.warning(
                    f"Config file must hold a JSON object, got {type(config_data).__name__}"
                )
                self._reset_file_layer()
                return False

            self._file_cache = config_data
            self._file_mtime = current_mtime

            self._file_layer = ConfigLayer(
                xcrun_path=config_data.get("xcrun_path"),
                command_timeout=config_data.get("command_timeout"),
                log_capacity=config_data.get("log_capacity"),
                refresh_policy=config_data.get("refresh_policy"),
                parallel_dispatch=config_data.get("parallel_dispatch"),
                source=ConfigSource.FILE,
            )
            self._effective_config = None

            logger.info(f"Config file loaded from {self._config_path}")
            return True

        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse config file: {e}")
            self._reset_file_layer()
            return False
        except OSError as e:
            logger.error(f"Failed to read config file: {e}")
            self._reset_file_layer()
            return False

    def save_file_config(self, merge_mode: bool = True, **values) -> bool:
        """
        Save configuration values to the config file.

        Args:
            merge_mode: Keep existing keys that are not being overwritten
            **values: Any of the known config keys

        Returns:
            bool: True on success
        """
        unknown = set(values) - set(_CONFIG_KEYS)
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")

        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)

            new_config = {k: v for k, v in values.items() if v is not None}

            if merge_mode and self._config_path.exists():
                try:
                    with open(self._config_path, "r", encoding="utf-8") as f:
                        existing = json.load(f)
                    if not isinstance(existing, dict):
                        existing = {}
                    for key in _CONFIG_KEYS:
                        if key not in new_config and key in existing:
                            new_config[key] = existing[key]
                except (json.JSONDecodeError, OSError) as e:
                    logger.warning(f"Could not merge with existing config: {e}")

            # Atomic write: temp file + rename
            temp_path = self._config_path.with_suffix(".tmp")
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(new_config, f, indent=2, ensure_ascii=False)

            temp_path.replace(self._config_path)

            logger.info(f"Configuration saved to {self._config_path}")
            self.load_file_config(force_reload=True)
            return True

        except OSError as e:
            logger.error(f"Failed to save config: {e}")
            return False

    # ==================== Merging ====================

    def get_effective_config(self, reload_file: bool = False) -> ConfigModel:
        """
        Merge all layers into a validated ConfigModel.

        Args:
            reload_file: Force re-reading the config file

        Returns:
            ConfigModel: Effective configuration (defaults if validation fails)
        """
        if not self._file_layer.to_dict() and self._config_path.exists():
            logger.debug("Auto-loading config file on first access")
            self.load_file_config()

        if reload_file:
            self.load_file_config(force_reload=True)

        if self._effective_config is not None:
            return self._effective_config

        merged = {}
        for key in _CONFIG_KEYS:
            for layer in (
                self._cli_layer,
                self._env_layer,
                self._file_layer,
                self._default_layer,
            ):
                if layer.has_value(key):
                    merged[key] = getattr(layer, key)
                    break

        try:
            self._effective_config = ConfigModel(**merged)
            logger.debug(f"Effective config computed: {merged}")
        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            self._effective_config = ConfigModel()

        return self._effective_config

    def get_config_source(self) -> ConfigSource:
        """Highest-priority layer that holds any value."""
        if self._cli_layer.to_dict():
            return ConfigSource.CLI
        if self._env_layer.to_dict():
            return ConfigSource.ENV
        if self._file_layer.to_dict():
            return ConfigSource.FILE
        return ConfigSource.DEFAULT

    def get_field_source(self, field: str) -> ConfigSource:
        """Layer that supplied one field of the effective config."""
        if self._cli_layer.has_value(field):
            return ConfigSource.CLI
        elif self._env_layer.has_value(field):
            return ConfigSource.ENV
        elif self._file_layer.has_value(field):
            return ConfigSource.FILE
        else:
            return ConfigSource.DEFAULT

    # ==================== Environment sync ====================

    def sync_to_env(self) -> None:
        """
        Export the effective configuration as environment variables.

        uvicorn --reload starts a fresh process that only inherits the
        environment, so CLI values have to travel this way.
        """
        config = self.get_effective_config()

        os.environ["SIMACTION_XCRUN_PATH"] = config.xcrun_path
        os.environ["SIMACTION_COMMAND_TIMEOUT"] = str(config.command_timeout)
        os.environ["SIMACTION_LOG_CAPACITY"] = str(config.log_capacity)
        os.environ["SIMACTION_REFRESH_POLICY"] = config.refresh_policy.value
        os.environ["SIMACTION_PARALLEL_DISPATCH"] = str(config.parallel_dispatch).lower()

        logger.debug("Configuration synced to environment variables")

    # ==================== Helpers ====================

    def get_config_path(self) -> Path:
        return self._config_path

    def to_dict(self) -> dict:
        return self.get_effective_config().model_dump(mode="json")


# ==================== Global singleton ====================


config_manager = UnifiedConfigManager()
