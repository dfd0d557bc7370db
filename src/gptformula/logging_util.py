"""Logging helpers shared by the formula pipeline and the agent loop.

Each numbered pipeline step (and each agent round, as a sub-step of step 5)
goes through log_step so one formula evaluation reads as a single trace.
The level comes from GPTFORMULA_LOG_LEVEL; handlers already attached by the
host (Lambda, a CLI wrapper) are left alone.
"""
from __future__ import annotations

import logging
import os

_DEFAULT_LEVEL = os.environ.get("GPTFORMULA_LOG_LEVEL", "INFO").upper()

def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    logger.setLevel(_DEFAULT_LEVEL)

    h = logging.StreamHandler()
    h.setFormatter(logging.Formatter("[%(levelname)s] %(name)s:%(lineno)d - %(message)s"))
    logger.addHandler(h)

    return logger

def log_step(logger: logging.Logger, step: str, msg: str, *args):
    logger.info("[STEP %s] " + msg, step, *args)
