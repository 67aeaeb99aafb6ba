from dataclasses import dataclass
from typing import Optional


DEFAULT_HISTORY_KEY = "wizard_analysis_history"


@dataclass
class StudioConfig:
    # History cache
    history_capacity: int = 3
    history_storage_key: str = DEFAULT_HISTORY_KEY
    history_storage_dir: Optional[str] = None

    # Session
    session_ttl_hours: float = 6.0
    remote_session_check: bool = True

    # Analysis
    analysis_timeout_seconds: Optional[float] = 30.0

    # Navigation
    base_url: str = "/studio"
    result_view_param: str = "view"
    result_view_value: str = "result"

    # Logging
    log_level: str = "INFO"
    logs_dir: Optional[str] = None
    max_log_files: int = 10
