"""Logging configuration."""

import logging
import sys
from pathlib import Path
from typing import Optional


class StripNewlinesFilter(logging.Filter):
    """Filter to remove leading/trailing newlines from log messages."""
    def filter(self, record):
        if isinstance(record.msg, str):
            record.msg = record.msg.strip()
        return True


class ImmediateHandler(logging.StreamHandler):
    """Handler that flushes immediately."""
    def emit(self, record):
        super().emit(record)
        self.flush()


def setup_logging(log_dir: str = 'output', verbose: bool = False, command: Optional[str] = None):
    """Configure logging for both console and file output.

    Every run appends to ``<log_dir>/operations.log`` behind a banner naming
    the command, so card sessions can be told apart in one file.
    """
    # Create logs directory if it doesn't exist
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = log_path / 'operations.log'

    # Configure root logger
    logging.root.setLevel(logging.DEBUG)

    # Console handler - INFO level (DEBUG with --verbose), minimal format
    console_handler = ImmediateHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_formatter = logging.Formatter('%(message)s')
    console_handler.setFormatter(console_formatter)

    # File handler - DEBUG level, detailed format
    file_handler = ImmediateHandler(open(log_file, 'a', encoding='utf-8'))
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    file_handler.setFormatter(file_formatter)
    file_handler.addFilter(StripNewlinesFilter())

    # Clear any existing handlers
    logging.root.handlers = []

    # Add handlers
    logging.root.addHandler(console_handler)
    logging.root.addHandler(file_handler)

    # Add session separator to log file
    logging.info("="*80)
    if command:
        logging.info(f"Starting new card reader session: {command}")
    else:
        logging.info("Starting new card reader session")
    logging.debug(f"Console level: {'DEBUG' if verbose else 'INFO'}, log file: {log_file}")
