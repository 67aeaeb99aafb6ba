"""
Configuration validation utilities.

Typed readers for environment variables with helpful error messages.
"""
import os
import warnings
from typing import Optional
from .exceptions import ConfigurationError


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def get_optional_env(key: str, default: Optional[str] = None) -> Optional[str]:
    """
    Get optional environment variable.

    :param key: Environment variable name
    :param default: Default value if not set
    :return: Environment variable value or default
    """
    value = os.getenv(key, default)

    if value and _is_placeholder(value):
        # Warn but don't fail for optional configs
        warnings.warn(
            f"{key} appears to be a placeholder. Using default or None.",
            UserWarning
        )
        return default

    return value


def get_bool_env(key: str, default: bool) -> bool:
    """
    Read a boolean flag from the environment.

    :param key: Environment variable name
    :param default: Value used when the variable is unset
    :return: Parsed boolean
    :raises: ConfigurationError if the value is not a recognised flag
    """
    value = get_optional_env(key)
    if value is None or value.strip() == "":
        return default

    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False

    raise ConfigurationError(
        f"{key} must be a boolean flag (true/false), got: {value!r}"
    )


def get_int_env(key: str, default: int, minimum: Optional[int] = None) -> int:
    """
    Read an integer from the environment.

    :param key: Environment variable name
    :param default: Value used when the variable is unset
    :param minimum: Smallest accepted value (inclusive)
    :return: Parsed integer
    :raises: ConfigurationError if the value is not an integer or is too small
    """
    value = get_optional_env(key)
    if value is None or value.strip() == "":
        parsed = default
    else:
        try:
            parsed = int(value.strip())
        except ValueError:
            raise ConfigurationError(f"{key} must be an integer, got: {value!r}") from None

    if minimum is not None and parsed < minimum:
        raise ConfigurationError(f"{key} must be at least {minimum}, got: {parsed}")

    return parsed


def get_float_env(
    key: str,
    default: Optional[float],
    minimum: Optional[float] = None,
) -> Optional[float]:
    """
    Read a float from the environment.

    The literal values "none" and "off" yield None (feature disabled).

    :param key: Environment variable name
    :param default: Value used when the variable is unset
    :param minimum: Smallest accepted value (exclusive)
    :return: Parsed float or None
    :raises: ConfigurationError if the value is not numeric or too small
    """
    value = get_optional_env(key)
    if value is None or value.strip() == "":
        parsed = default
    elif value.strip().lower() in {"none", "off"}:
        return None
    else:
        try:
            parsed = float(value.strip())
        except ValueError:
            raise ConfigurationError(f"{key} must be a number, got: {value!r}") from None

    if parsed is not None and minimum is not None and parsed <= minimum:
        raise ConfigurationError(f"{key} must be greater than {minimum}, got: {parsed}")

    return parsed


def validate_directory(path: str, path_name: str) -> str:
    """
    Validate that a path can be used as a directory.

    The directory does not need to exist yet, but the path must not point at a file.

    :param path: Path to validate
    :param path_name: Name of the setting (for error messages)
    :return: Validated path
    :raises: ConfigurationError if invalid
    """
    if not path:
        raise ConfigurationError(f"{path_name} is required.")

    if os.path.exists(path) and not os.path.isdir(path):
        raise ConfigurationError(
            f"{path_name} points at a file, expected a directory: {path}"
        )

    return path


def _is_placeholder(value: str) -> bool:
    """Check if value is a placeholder."""
    if not value:
        return False

    placeholder_patterns = [
        "your_",
        "placeholder",
        "changeme",
        "xxx",
        "replace",
        "TODO",
    ]

    value_lower = value.lower()
    return any(pattern.lower() in value_lower for pattern in placeholder_patterns)
