"""
Logging setup

Design Reference: DESIGN.md (logging)
"""

import logging
from pathlib import Path
from typing import Optional


def setup_logger(log_level: str = "INFO", log_file: Optional[str] = "logs/taskboard.log") -> None:
    """
    Configure root logging once for the process.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_file: log file path; ``None`` or an empty string logs to the console only
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )
