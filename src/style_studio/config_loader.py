"""
Configuration loader with validation.

Builds StudioConfig from environment variables (and a local .env file).
"""
from dotenv import load_dotenv
from .config import StudioConfig, DEFAULT_HISTORY_KEY
from .config_validator import (
    get_optional_env,
    get_bool_env,
    get_int_env,
    get_float_env,
    validate_directory,
)
from .exceptions import ConfigurationError


_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def load_config_from_env(use_dotenv: bool = True) -> StudioConfig:
    """
    Load configuration from environment variables with validation.

    Usage:
        config = load_config_from_env()
        app = StudioApp(config, analysis_backend, bookmark_backend, auth_backend)
        app.initialize()

    :param use_dotenv: Load a .env file first (local development)
    :return: Validated StudioConfig instance
    :raises: ConfigurationError if values are invalid
    """
    if use_dotenv:
        load_dotenv()

    log_level = (get_optional_env("LOG_LEVEL", default="INFO") or "INFO").upper()
    if log_level not in _LOG_LEVELS:
        raise ConfigurationError(
            f"LOG_LEVEL must be one of {', '.join(sorted(_LOG_LEVELS))}, got: {log_level!r}"
        )

    config = StudioConfig(
        history_capacity=get_int_env("STUDIO_HISTORY_CAPACITY", 3, minimum=1),
        history_storage_key=get_optional_env("STUDIO_HISTORY_KEY", default=DEFAULT_HISTORY_KEY),
        history_storage_dir=get_optional_env("STUDIO_HISTORY_DIR"),
        session_ttl_hours=get_float_env("STUDIO_SESSION_TTL_HOURS", 6.0, minimum=0.0),
        remote_session_check=get_bool_env("STUDIO_REMOTE_SESSION_CHECK", True),
        analysis_timeout_seconds=get_float_env("STUDIO_ANALYSIS_TIMEOUT", 30.0, minimum=0.0),
        base_url=get_optional_env("STUDIO_BASE_URL", default="/studio"),
        log_level=log_level,
        logs_dir=get_optional_env("LOGS_DIR"),
        max_log_files=get_int_env("MAX_LOG_FILES", 10, minimum=1),
    )

    if config.session_ttl_hours is None:
        raise ConfigurationError("STUDIO_SESSION_TTL_HOURS cannot be disabled.")

    if config.history_storage_dir:
        validate_directory(config.history_storage_dir, "STUDIO_HISTORY_DIR")
    if config.logs_dir:
        validate_directory(config.logs_dir, "LOGS_DIR")

    return config
