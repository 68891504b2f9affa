"""Logging utilities for the BinaryBeast client."""

import logging

LOG_FILE = "/tmp/bracketbeast_debug.log"

# Global state
_console_logging_enabled = False
_file_logger = None


def set_console_logging(enabled: bool):
    """Explicitly enable/disable console logging"""
    global _console_logging_enabled
    _console_logging_enabled = enabled


def log(message: str, level: int = logging.INFO):
    """
    Log a message for debugging:
    - Always logs to file
    - Also echoes to the console when the CLI turned console logging on
    """
    global _file_logger

    # Initialize file logger once
    if _file_logger is None:
        _file_logger = logging.getLogger("bracketbeast")
        _file_logger.setLevel(logging.DEBUG)
        file_handler = logging.FileHandler(LOG_FILE)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
        )
        _file_logger.addHandler(file_handler)
        _file_logger.propagate = False

    _file_logger.log(level, message)

    if _console_logging_enabled:
        print(message)
