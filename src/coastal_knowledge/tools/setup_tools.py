"""Setup tools for Coastal Knowledge."""

import logging
import os
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib
except ImportError:
    import tomli as tomllib

import tomli_w

from ..config import CONFIG_ENV_VAR, DEFAULT_STORE_PATH
from ..models import ConfigureResult, GetSetupStatusResult, SettingStatus

logger = logging.getLogger(__name__)


# Setting definitions with metadata
SETTINGS_REGISTRY: dict[str, dict[str, Any]] = {
    "services.memory_server_url": {
        "default": "http://localhost:8080",
        "description": "Memory server URL (used when memory_server_type is 'rest')",
        "validator": "url",
    },
    "services.memory_server_type": {
        "default": "local",
        "description": "Storage backend (rest: memory server / local: JSON file)",
        "validator": "choice",
        "allowed_values": ["rest", "local"],
    },
    "services.request_timeout": {
        "default": 10.0,
        "description": "Memory server request timeout in seconds",
        "validator": "positive_float",
    },
    "services.max_retries": {
        "default": 3,
        "description": "Retries for transient memory server errors",
        "validator": "non_negative_int",
    },
    "store.path": {
        "default": DEFAULT_STORE_PATH,
        "description": "Local JSON store path",
        "validator": "non_empty",
    },
    "selection.conflict_min_token_length": {
        "default": 4,
        "description": "Minimum word length counted by conflict detection",
        "validator": "positive_int",
    },
    "selection.conflict_min_shared_tokens": {
        "default": 3,
        "description": "Shared words needed to flag two rules as conflicting",
        "validator": "positive_int",
    },
    "log.level": {
        "default": "INFO",
        "description": "Log level",
        "validator": "log_level",
        "allowed_values": ["DEBUG", "INFO", "WARNING", "ERROR"],
    },
    "session.user_name": {
        "default": "",
        "description": "Editor name recorded on knowledge changes",
        "validator": "non_empty",
    },
    "session.ttl_hours": {
        "default": 24,
        "description": "Assistant session lifetime in hours",
        "validator": "positive_int",
    },
    "session.max_history": {
        "default": 20,
        "description": "Assistant handoffs allowed per session",
        "validator": "positive_int",
    },
}


class SetupTools:
    """Tools for inspecting and editing config.toml."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize setup tools.

        Args:
            config_path: Path to config.toml file
        """
        self.config_path = self._resolve_config_path(config_path)

    def _resolve_config_path(self, config_path: Optional[str]) -> Path:
        """Resolve config file path."""
        if config_path:
            return Path(config_path)

        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            return Path(env_path)

        candidates = [
            Path("config.toml"),
            Path.home() / ".config" / "coastal-knowledge" / "config.toml",
        ]

        for p in candidates:
            if p.exists():
                return p

        return Path("config.toml")

    def _load_toml(self) -> dict:
        """Load current TOML config."""
        if not self.config_path.exists():
            return {}

        with open(self.config_path, "rb") as f:
            return tomllib.load(f)

    def _save_toml(self, data: dict) -> None:
        """Save TOML config."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, "wb") as f:
            tomli_w.dump(data, f)

    def _get_nested_value(self, data: dict, key: str) -> Optional[Any]:
        """Look up a dotted key such as ``log.level``."""
        section, _, name = key.partition(".")
        table = data.get(section)
        if not isinstance(table, dict):
            return None
        return table.get(name)

    def _set_nested_value(self, data: dict, key: str, value: Any) -> dict:
        """Set a dotted key, creating its table when needed."""
        section, _, name = key.partition(".")
        data.setdefault(section, {})[name] = value
        return data

    def _validate_value(self, key: str, value: Any) -> list[str]:
        """Validate a setting value."""
        errors = []
        setting_info = SETTINGS_REGISTRY.get(key, {})
        validator = setting_info.get("validator")

        if validator == "non_empty":
            if not value or (isinstance(value, str) and not value.strip()):
                errors.append(f"'{key}' must not be empty")

        elif validator == "url":
            if value and not (value.startswith("http://") or value.startswith("https://")):
                errors.append(f"URL must start with http:// or https://: {value}")

        elif validator in ("choice", "log_level"):
            allowed = setting_info.get("allowed_values", [])
            candidate = value.upper() if validator == "log_level" and value else value
            if candidate not in allowed:
                errors.append(f"'{key}' must be one of {allowed}")

        elif validator in ("positive_int", "non_negative_int"):
            minimum = 1 if validator == "positive_int" else 0
            try:
                if int(value) < minimum:
                    errors.append(f"'{key}' must be an integer >= {minimum}")
            except (ValueError, TypeError):
                errors.append(f"'{key}' must be an integer")

        elif validator == "positive_float":
            try:
                if float(value) <= 0:
                    errors.append(f"'{key}' must be greater than 0")
            except (ValueError, TypeError):
                errors.append(f"'{key}' must be a number")

        return errors

    def _convert_value(self, key: str, value: str) -> Any:
        validator = SETTINGS_REGISTRY[key].get("validator")
        if validator in ("positive_int", "non_negative_int"):
            return int(value)
        if validator == "positive_float":
            return float(value)
        if validator == "log_level":
            return value.upper()
        return value

    def get_setup_status(self) -> GetSetupStatusResult:
        """Get current setup status."""
        config_data = self._load_toml()

        settings = []
        for key, info in SETTINGS_REGISTRY.items():
            current_value = self._get_nested_value(config_data, key)
            configured = current_value is not None and current_value != ""

            settings.append(
                SettingStatus(
                    name=key,
                    configured=configured,
                    current_value=str(current_value) if current_value is not None else None,
                    default_value=str(info["default"]),
                    description=info["description"],
                )
            )

        configured_count = sum(1 for s in settings if s.configured)
        if self.config_path.exists():
            message = f"{configured_count} of {len(settings)} settings configured in {self.config_path}."
        else:
            message = f"No config file at {self.config_path}; defaults are in use."

        return GetSetupStatusResult(
            success=True,
            settings=settings,
            config_file_path=str(self.config_path.absolute()),
            config_file_exists=self.config_path.exists(),
            message=message,
        )

    def configure(self, setting: str, value: str) -> ConfigureResult:
        """Configure a setting.

        Args:
            setting: Setting name (e.g., "services.memory_server_type")
            value: New value

        Returns:
            ConfigureResult
        """
        if setting not in SETTINGS_REGISTRY:
            available = ", ".join(SETTINGS_REGISTRY.keys())
            return ConfigureResult(
                success=False,
                setting_name=setting,
                message=f"Unknown setting: '{setting}'. Available settings: {available}",
            )

        validation_errors = self._validate_value(setting, value)
        if validation_errors:
            return ConfigureResult(
                success=False,
                setting_name=setting,
                new_value=str(value),
                validation_errors=validation_errors,
                message=f"Validation failed: {'; '.join(validation_errors)}",
            )

        converted_value = self._convert_value(setting, value)

        config_data = self._load_toml()
        old_value = self._get_nested_value(config_data, setting)
        self._set_nested_value(config_data, setting, converted_value)

        try:
            self._save_toml(config_data)
            logger.info(f"Configuration saved: {setting} = {converted_value}")
        except OSError as e:
            logger.error(f"Failed to save configuration: {e}")
            return ConfigureResult(
                success=False,
                setting_name=setting,
                message=f"Failed to save config file: {e}",
            )

        return ConfigureResult(
            success=True,
            setting_name=setting,
            old_value=str(old_value) if old_value is not None else None,
            new_value=str(converted_value),
            message=f"Set '{setting}' to '{converted_value}'. Restart the server to apply.",
        )

    def get_available_settings(self) -> list[str]:
        """Get list of available setting names."""
        return list(SETTINGS_REGISTRY.keys())
