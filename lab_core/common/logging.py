# lab_core/common/logging.py
import sys
from datetime import datetime
from pathlib import Path

from django.conf import settings
from loguru import logger


def setup_logging(level: str | None = None, root: str | None = None):
    """
    Configure loguru sinks once per process.

    stderr always; a dated file sink under LOG_DIR when configured.
    """
    level = level or getattr(settings, "LOG_LEVEL", "INFO")
    root = root or getattr(settings, "LOG_DIR", None)

    logger.remove()
    logger.add(sys.stderr, level=level, backtrace=True, diagnose=False)

    if root:
        logdir = Path(root) / datetime.now().strftime("%Y/%m/%d")
        logdir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(logdir / "lab.log"),
            rotation="00:00",
            retention="14 days",
            level=level,
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )
    return logger
