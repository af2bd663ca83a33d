import logging
from pathlib import Path

def setup_logging(log_file: Path, debug: bool = False) -> logging.Logger:
    """
    Setup diagnostic logging for imgbatch.

    Creates the log file's directory and routes all records there.
    Returns configured logger instance.

    Args:
        log_file: Path to the diagnostic log file
        debug: If True, enable DEBUG level logging with per-step timings
    """
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.FileHandler(log_file, encoding='utf-8')],
        force=True  # Override any existing configuration
    )

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized: {log_file} (debug={'ON' if debug else 'OFF'})")

    return logger
