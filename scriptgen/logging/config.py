from __future__ import annotations

import logging
import sys


def setup_logging(level: str = "INFO", debug: bool = False) -> None:
    """Configures the root logger for command line runs."""

    log_level = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)
    if debug:
        log_format = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
    else:
        log_format = "%(asctime)s | %(levelname)-8s | %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("selenium").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
