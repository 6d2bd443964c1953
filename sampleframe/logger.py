"""Logging setup for sampleframe.

The dictConfig is read from the TOML file named by SAMPLEFRAME_LOG_CFG, or
from logging_config.toml at the repository root. Without either, library
loggers stay silent behind a NullHandler.
"""

import logging
import logging.config
import os
from pathlib import Path

import tomli

LOG_APP_NAME = "sampleframe"


def setup_logging(cfg_path=None):
    cfg_path = (
        cfg_path
        or os.getenv("SAMPLEFRAME_LOG_CFG")
        or Path(__file__).parent.parent / "logging_config.toml"
    )

    cfg_path = Path(cfg_path)

    if not cfg_path.exists():
        app_logger = logging.getLogger(LOG_APP_NAME)
        for handler in app_logger.handlers[:]:
            app_logger.removeHandler(handler)
        app_logger.addHandler(logging.NullHandler())
        return

    if not cfg_path.is_file():
        raise FileNotFoundError(f"Logging config not found at {cfg_path}")

    with cfg_path.open("rb") as f:
        cfg = tomli.load(f)

    logging.config.dictConfig(cfg)
    logging.getLogger(f"{LOG_APP_NAME}.config").debug(
        f"Logging configured from {cfg_path}"
    )
