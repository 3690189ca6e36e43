"""
Config Module - Black Box Interface

Purpose: Application configuration management
Interface: get_config(), ConfigModule.get(), set(), get_all()
Hidden: Config sources, validation logic, environment parsing

Can be replaced with different config systems (files, Consul, ConfigMaps).
"""

import os
from typing import Any, Dict, Optional


# Configuration Contract: Required and Optional Keys
# This defines the black box interface - what the config module guarantees to provide

REQUIRED_CONFIG_KEYS = {
    "cli_binary": "Cluster CLI used by the built-in sections (oc or kubectl)",
    "command_timeout": "Per-command timeout in seconds",
    "poll_interval": "Pipe readiness poll interval in seconds (at most 0.2)",
    "kill_process_group": "Kill the whole process group on timeout",
    "report_title": "Heading printed at the top of the report",
    "host": "API server bind address",
    "port": "API server port",
    "log_level": "Logging level (DEBUG, INFO, WARNING, ERROR)",
}

OPTIONAL_CONFIG_KEYS = {
    "sections_file": {
        "description": "YAML file replacing the built-in section catalog",
        "default": None,
    },
    "debug": {
        "description": "Enable debug mode",
        "default": False,
    },
}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean (true/false, yes/no, on/off, 1/0), got {raw!r}")


class ConfigModule:
    """Configuration management module."""

    def __init__(self):
        """Initialize with environment variables."""
        self._config = self._load_from_env()
        self._validate_required_keys()

    def _validate_required_keys(self) -> None:
        """
        Validate that all required configuration keys are present.

        Raises:
            ValueError: If required keys are missing or out of range
        """
        missing_keys = []
        for key in REQUIRED_CONFIG_KEYS:
            if key not in self._config or self._config[key] is None:
                missing_keys.append(key)

        if missing_keys:
            raise ValueError(
                f"Missing required configuration keys: {', '.join(missing_keys)}. "
                f"Check environment variables and deployment configuration."
            )

        if self._config["command_timeout"] <= 0:
            raise ValueError("COMMAND_TIMEOUT must be a positive number of seconds")

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment."""
        # Poll interval is configured in milliseconds and capped at 200ms
        poll_interval_ms = _env_int("POLL_INTERVAL_MS", 100)
        poll_interval_ms = min(max(poll_interval_ms, 10), 200)

        return {
            # Executor settings
            "cli_binary": os.getenv("CLUSTERHEALTH_CLI", "oc"),
            "command_timeout": _env_int("COMMAND_TIMEOUT", 15),
            "poll_interval": poll_interval_ms / 1000,
            "kill_process_group": _env_bool("KILL_PROCESS_GROUP", True),
            # Report settings
            "report_title": os.getenv("REPORT_TITLE", "OpenShift Cluster Health Report"),
            "sections_file": os.getenv("SECTIONS_FILE") or None,
            # API settings
            "host": os.getenv("API_HOST", "0.0.0.0"),
            "port": _env_int("API_PORT", 8080),
            "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
            "debug": _env_bool("DEBUG", False),
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value."""
        self._config[key] = value

    def get_all(self) -> Dict[str, Any]:
        """Get all configuration values."""
        return self._config.copy()

    @staticmethod
    def get_config_schema() -> Dict[str, Any]:
        """
        Get the configuration schema (contract) for this module.

        Returns:
            Dictionary with 'required' and 'optional' key specifications

        Example:
            >>> schema = ConfigModule.get_config_schema()
            >>> print(schema['required']['command_timeout'])
            'Per-command timeout in seconds'
        """
        return {
            "required": REQUIRED_CONFIG_KEYS.copy(),
            "optional": OPTIONAL_CONFIG_KEYS.copy(),
        }


# Singleton instance
_instance: Optional[ConfigModule] = None


def get_config() -> ConfigModule:
    """Get the configuration module singleton."""
    global _instance
    if _instance is None:
        _instance = ConfigModule()
    return _instance


def reset_config() -> None:
    """Drop the singleton so the next get_config() re-reads the environment."""
    global _instance
    _instance = None


__all__ = ["get_config", "reset_config", "ConfigModule"]
