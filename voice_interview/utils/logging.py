"""
Logging setup for the interview loop.
"""
import os
import logging

NOISY_LOGGERS = ("urllib3", "google", "google.auth", "asyncio")


def setup_logging(log_file_path: str, level: str = "DEBUG") -> str:
    """
    Send detailed logs to a file and keep the console for status lines.

    Args:
        log_file_path: Full path to the log file
        level: Level for the file handler (name, e.g. "INFO")

    Returns:
        Path to the log file
    """
    workdir = os.path.dirname(log_file_path)
    if workdir:
        os.makedirs(workdir, exist_ok=True)

    logging.getLogger().handlers.clear()

    # File handler for detailed logs
    file_handler = logging.FileHandler(log_file_path, mode='w', encoding='utf-8')
    file_handler.setLevel(getattr(logging, str(level).upper(), logging.DEBUG))
    file_handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s - %(message)s'))

    # Console only gets critical messages; the CLI prints its own status
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.CRITICAL)
    console_handler.setFormatter(logging.Formatter('%(message)s'))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_file_path
