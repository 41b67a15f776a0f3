# voicetally/LoggingSetup.py
import sys
import logging
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Dict, Optional

LOG_FILE_NAME = "voicetally.log"

# Third-party loggers that are too chatty at DEBUG
_QUIET_LOGGERS: Dict[str, int] = {
    'websockets': logging.INFO,
    'asyncio': logging.WARNING,
}


def setup_logging(logs_dir: Path, verbose: bool = False, is_frozen: bool = False,
                  quiet_loggers: Optional[Dict[str, int]] = None) -> Path:
    """
    Configure the root logger for the tally application.

    Log records go to a rotating file in logs_dir and, when running from a
    terminal, to stdout. Calling it again replaces the previous handlers.

    Args:
        logs_dir: Directory to store log files (created if missing)
        verbose: If True, set DEBUG level; otherwise INFO
        is_frozen: If True, skip console handler (frozen app has no console)
        quiet_loggers: Minimum levels for noisy library loggers

    Returns:
        Path of the log file
    """
    logs_dir.mkdir(parents=True, exist_ok=True)
    level = logging.DEBUG if verbose else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter('[%(asctime)s] [%(levelname)s] %(name)s: %(message)s')

    # 10MB max, keep 5 files
    log_file = logs_dir / LOG_FILE_NAME
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    if not is_frozen:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    for name, min_level in (quiet_loggers if quiet_loggers is not None else _QUIET_LOGGERS).items():
        logging.getLogger(name).setLevel(max(level, min_level))

    logging.info(f"Logging initialized: level={logging.getLevelName(level)}, file={log_file}")
    return log_file
