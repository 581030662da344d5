"""
Configuration management for storefront-crypt.

This module provides the process configuration layer: built-in defaults,
an optional YAML configuration file, an optional YAML secrets file, and
environment variable overrides, in that order of precedence.
"""

import os
from pathlib import Path
from copy import deepcopy

import yaml

from .exceptions import ConfigurationError


_TRUE_VALUES = ("1", "true", "True", "yes", "Yes")
_FALSE_VALUES = ("0", "false", "False", "no", "No")


class StorefrontCryptConfig:
    """
    Configuration for storefront-crypt.

    This class provides access to configuration settings, including the
    encryption secret and logging behaviour.
    """

    # Default configuration values
    _default_config: dict[str, object] = {
        "encryption": {
            # Hex-encoded secret; None means "not configured"
            "key": None,
            # Fall back to a per-process random key when no secret is configured
            "allow_ephemeral_key": True,
        },
        "logging": {
            "level": "INFO",
            "mask_secrets": True,
        },
    }

    # Instance configuration values, loaded from file or environment
    _config: dict[str, object] = {}

    # Flag indicating if the configuration has been initialized
    _initialized: bool = False

    @classmethod
    def initialize(cls, config_path: str | None = None) -> None:
        """
        Initialize the configuration.

        Args:
            config_path: Optional path to a YAML configuration file

        Raises:
            ConfigurationError: If the configuration file is missing or invalid
        """
        # Deep copy so nested sections are not shared with the defaults
        cls._config = deepcopy(cls._default_config)

        if config_path:
            cls._load_from_file(config_path)

        cls._load_from_env()

        cls._initialized = True

    @classmethod
    def _read_yaml(cls, path: Path) -> object:
        try:
            with open(path, "r") as f:
                return yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Error loading configuration file: {e}", {"path": str(path)}
            ) from e

    @classmethod
    def _merge(cls, loaded: object, path: Path) -> None:
        """Merge a loaded YAML document into the configuration section by section."""
        if not loaded:
            return
        if not isinstance(loaded, dict):
            raise ConfigurationError(
                "Configuration file must contain a mapping", {"path": str(path)}
            )

        for section, values in loaded.items():
            current = cls._config.get(section)
            if isinstance(current, dict):
                # Known sections must stay mappings; an empty section is a no-op
                if values is None:
                    continue
                if not isinstance(values, dict):
                    raise ConfigurationError(
                        f"Configuration section '{section}' must be a mapping", {"path": str(path)}
                    )
                current.update(values)
            else:
                cls._config[section] = values

    @classmethod
    def _load_from_file(cls, config_path: str) -> None:
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file
        """
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_path}", {"path": config_path}
            )

        cls._merge(cls._read_yaml(path), path)

    @classmethod
    def _load_from_env(cls) -> None:
        """Load configuration from environment variables."""
        encryption = cls._config["encryption"]
        logging_section = cls._config["logging"]

        # Same variable name the storefront has always used for its secret
        env_key = os.environ.get("ENCRYPTION_KEY")
        if env_key:
            encryption["key"] = env_key.strip()

        env_ephemeral = os.environ.get("STOREFRONT_ALLOW_EPHEMERAL_KEY")
        if env_ephemeral in _TRUE_VALUES:
            encryption["allow_ephemeral_key"] = True
        elif env_ephemeral in _FALSE_VALUES:
            encryption["allow_ephemeral_key"] = False

        env_log_level = os.environ.get("STOREFRONT_LOG_LEVEL")
        if env_log_level:
            logging_section["level"] = env_log_level.upper()

    @classmethod
    def _ensure_initialized(cls) -> None:
        """Ensure the configuration is initialized."""
        if not cls._initialized:
            cls.initialize()

    @classmethod
    def get(cls, key: str, default: object = None) -> object:
        """
        Get a configuration value.

        Args:
            key: The configuration key to retrieve, dotted for nested sections
            default: Default value to return if key is not found

        Returns:
            The configuration value, or default if not found
        """
        cls._ensure_initialized()

        if "." in key:
            value = cls._config
            for part in key.split("."):
                if isinstance(value, dict) and part in value:
                    value = value[part]
                else:
                    return default
            return value

        return cls._config.get(key, default)

    @classmethod
    def get_encryption_key(cls) -> str | None:
        """
        Get the configured hex secret.

        Returns:
            The secret, or None when no secret is configured
        """
        key = cls.get("encryption.key")
        if key is None or key == "":
            return None
        return str(key)

    @classmethod
    def allows_ephemeral_key(cls) -> bool:
        """
        Check whether a per-process random key may be used when no secret is set.

        Returns:
            True if the ephemeral fallback is allowed
        """
        return bool(cls.get("encryption.allow_ephemeral_key", True))

    @classmethod
    def get_log_level(cls) -> str:
        """
        Get the configured log level name.

        Returns:
            Log level name such as "INFO" or "DEBUG"
        """
        return str(cls.get("logging.level", "INFO")).upper()

    @classmethod
    def load_from_secrets_file(cls, file_path: str) -> bool:
        """
        Load configuration from a secrets file.

        Secrets files are optional; a missing file is not an error.

        Args:
            file_path: Path to the secrets file

        Returns:
            True if the file existed and was loaded
        """
        cls._ensure_initialized()

        path = Path(file_path)
        if not path.exists():
            return False

        cls._merge(cls._read_yaml(path), path)

        # Environment still wins over anything read from disk
        cls._load_from_env()
        return True
