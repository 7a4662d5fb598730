"""Logging setup for the evidence search service: brief console + detailed rotating file"""
import glob
import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable

SESSION_LOGS_KEPT = 5
MAX_LOG_BYTES = 10 * 1024 * 1024
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def _prune_session_logs(log_path: Path, keep: int) -> None:
    """Delete old session logs so that at most `keep` remain after this session starts"""
    pattern = str(log_path.parent / f"{log_path.stem}_*.log")
    existing = sorted(glob.glob(pattern), reverse=True)  # newest first
    for old_log in existing[max(keep - 1, 0):]:
        try:
            Path(old_log).unlink()
        except OSError:
            pass  # another process may hold it


def setup_logging(
    log_file: str = "logs/evidence-search.log",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    keep_sessions: int = SESSION_LOGS_KEPT,
    quiet_loggers: Iterable[str] = NOISY_LOGGERS,
) -> Path:
    """
    Configure root logging.

    - Console: short `LEVEL: message` lines at console_level
    - File: one timestamped log per process start, rotated at 10MB,
      at file_level (per-result ranking detail is logged at DEBUG)

    Args:
        log_file: Base log path; sessions are written as <stem>_<timestamp>.log
        console_level: Console threshold
        file_level: File threshold
        keep_sessions: Session log files retained (including the new one)
        quiet_loggers: Loggers raised to WARNING (HTTP client chatter)

    Returns:
        Path of this session's log file
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    _prune_session_logs(log_path, keep_sessions)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    session_log = log_path.parent / f"{log_path.stem}_{timestamp}.log"

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # handlers filter
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))

    file_handler = RotatingFileHandler(
        session_log,
        mode='a',
        maxBytes=MAX_LOG_BYTES,
        backupCount=10,
        encoding='utf-8'
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))

    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.info(
        f"Logging configured: console={logging.getLevelName(console_level)}, "
        f"file={session_log} ({logging.getLevelName(file_level)})"
    )
    return session_log
