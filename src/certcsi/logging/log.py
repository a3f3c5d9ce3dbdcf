# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/logging/log.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(threadName)s | %(message)s"


def init_logging(
    *,
    log_dir: Optional[Path] = None,
    name: str = "certcsi",
    verbose: bool = False,
) -> tuple[logging.Logger, Optional[Path]]:
    """
    Configure the driver logger once per process.

    Console output goes to stderr, INFO by default and DEBUG with *verbose*.
    A DEBUG file handler writing ``<log_dir>/<name>.log`` is only added when
    *log_dir* is given; inside a pod the console is what gets collected.
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(formatter)
    logger.addHandler(ch)

    log_path: Optional[Path] = None
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / f"{name}.log"
        fh = logging.FileHandler(log_path)
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    logger.debug("logging initialised (verbose=%s, file=%s)", verbose, log_path)
    return logger, log_path
