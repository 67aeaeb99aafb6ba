"""
Logging configuration for applications embedding the studio.

Console output always; an optional timestamped log file per run, with old
files pruned by count.
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..config import StudioConfig
from .log_cleanup import cleanup_logs


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(config: StudioConfig, logger_name: str = "style_studio") -> Optional[Path]:
    """
    Attach handlers to the package logger.

    Calling it again replaces the handlers installed by a previous call.

    :param config: StudioConfig with log_level, logs_dir and max_log_files
    :param logger_name: Logger to configure
    :return: Path of the log file, or None when logging to the console only
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_style_studio_handler", False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    console._style_studio_handler = True
    logger.addHandler(console)

    if not config.logs_dir:
        return None

    logs_path = Path(config.logs_dir)
    logs_path.mkdir(parents=True, exist_ok=True)
    log_file = logs_path / f"studio_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}.log"

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(formatter)
    file_handler._style_studio_handler = True
    logger.addHandler(file_handler)

    # Current file is the newest, so it survives the pruning
    cleanup_logs(str(logs_path), max_files=config.max_log_files, pattern="studio_*.log")
    return log_file
