# SPDX-License-Identifier: BSD-3-Clause
# Part of the JaxASP project.
"""
Logging configuration for the ``jaxasp`` namespace.
"""

from __future__ import annotations

import logging
import sys

from typing import Optional


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """
    Configures the logger of the 'jaxasp' namespace.

    The library itself never installs handlers, so nothing is printed until
    an application calls this function.

    Parameters
    ----------
    level : int
        Logging level (e.g. ``logging.DEBUG`` to follow Newton iterations).
    log_file : str, optional
        Path of a file that receives a copy of the log.
    """
    logger = logging.getLogger("jaxasp")
    logger.setLevel(level)

    # avoid duplicated records when called twice
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info("Logging initialized.")


__all__ = ["setup_logging"]
