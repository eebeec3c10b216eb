from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from gamechanger.config import Settings


FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logger(cfg: Settings, max_bytes: int = 10_000_000, backup_count: int = 5) -> logging.Logger:
    logger = logging.getLogger("gamechanger")
    logger.setLevel(cfg.log_level.upper())
    if logger.handlers:
        # already configured (e.g. service rebuilt in the same process)
        return logger

    formatter = logging.Formatter(FORMAT)

    if cfg.log_file:
        Path(cfg.log_file).parent.mkdir(exist_ok=True, parents=True)
        fh = RotatingFileHandler(cfg.log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    sh = logging.StreamHandler()
    sh.setFormatter(formatter)
    logger.addHandler(sh)
    return logger
