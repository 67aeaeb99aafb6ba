"""
Retention for studio log files.

Two passes, both optional:
1. Age: drop files whose modification time is older than ``max_age_days``
2. Count: keep the ``max_files`` newest files

Files that cannot be removed are logged and skipped.
"""
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


def _modified_at(path: Path) -> datetime:
    return datetime.fromtimestamp(path.stat().st_mtime)


def _remove(path: Path, reason: str) -> bool:
    try:
        path.unlink()
    except OSError as e:
        logger.warning(f"Could not remove log file {path.name}: {e}")
        return False
    logger.debug(f"Removed log file {path.name} ({reason})")
    return True


def cleanup_logs(
    logs_dir: str,
    max_files: int = 10,
    max_age_days: Optional[int] = None,
    pattern: str = "studio_*.log",
) -> int:
    """
    Prune log files in ``logs_dir``.

    :param logs_dir: Directory holding the log files
    :param max_files: Number of newest files to keep
    :param max_age_days: Remove files older than this many days; None skips the age pass
    :param pattern: Glob selecting the files managed here
    :return: Number of files removed
    """
    directory = Path(logs_dir)
    if not directory.is_dir():
        return 0

    candidates: List[Path] = sorted(directory.glob(pattern), key=_modified_at, reverse=True)
    removed = 0

    if max_age_days is not None:
        cutoff = datetime.now() - timedelta(days=max_age_days)
        kept = []
        for path in candidates:
            if _modified_at(path) < cutoff and _remove(path, f"older than {max_age_days} days"):
                removed += 1
            else:
                kept.append(path)
        candidates = kept

    for path in candidates[max(max_files, 0):]:
        if _remove(path, f"over limit of {max_files}"):
            removed += 1

    if removed:
        logger.info(f"Log cleanup removed {removed} file(s) from {logs_dir}")
    return removed
