"""
Logging utilities for the ID card scanner.

Library modules log through ``logging.getLogger(__name__)``; entry
points (scripts, services embedding the scanner) call ``setup_logger``
once to attach console and file handlers with a consistent format.
"""

import logging
import sys
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Optional, Union


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(
    name: str = "cardscan",
    level: str = "INFO",
    log_dir: Optional[Union[str, Path]] = None,
    console_output: bool = True
) -> logging.Logger:
    """
    Configure and return a logger.

    Calling this again for the same name replaces the handlers instead
    of stacking duplicates.

    Args:
        name: Logger name (``"cardscan"`` configures the whole package)
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for a timestamped log file, None for no file
        console_output: Whether to output to stdout

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers = []  # Clear existing handlers

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        file_handler = logging.FileHandler(log_path / f"{name}_{timestamp}.log")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


class ScanProgress:
    """
    Track a batch of scans: progress, ETA and outcome counts.

    Progress is logged every 5% of the batch.
    """

    def __init__(self, total: int, logger: Optional[logging.Logger] = None):
        """
        Args:
            total: Number of scans in the batch
            logger: Optional logger for output
        """
        self.total = total
        self.done = 0
        self.outcomes: Counter = Counter()
        self.start_time = datetime.now()
        self.logger = logger

    def update(self, outcome: str = "valid") -> None:
        """
        Record one finished scan.

        Args:
            outcome: ``"valid"`` or the error kind of the scan
        """
        self.done += 1
        self.outcomes[outcome] += 1

        if self.logger and self.done % max(1, self.total // 20) == 0:
            elapsed = (datetime.now() - self.start_time).total_seconds()
            eta = elapsed / self.done * (self.total - self.done)

            self.logger.info(
                f"Scanned {self.done}/{self.total}, "
                f"{self.outcomes['valid']} valid, ETA {eta:.1f}s"
            )

    def finish(self) -> float:
        """
        Log the outcome breakdown of the batch.

        Returns:
            Total elapsed time in seconds
        """
        elapsed = (datetime.now() - self.start_time).total_seconds()
        if self.logger:
            breakdown = ", ".join(f"{k}={v}" for k, v in sorted(self.outcomes.items()))
            self.logger.info(f"Scanned {self.done} image(s) in {elapsed:.2f}s ({breakdown or 'none'})")
        return elapsed
