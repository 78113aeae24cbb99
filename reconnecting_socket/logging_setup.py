import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from reconnecting_socket.config import config

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(
    name: Optional[str] = None, level: Optional[str] = None, log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure root logger with console + rotating file handler.
    An empty log_file skips the file handler. Returns a logger for `name`.
    """
    level_name = level or config.LOG_LEVEL
    log_file = config.LOG_FILE if log_file is None else log_file
    numeric = getattr(logging, level_name.upper(), logging.INFO)

    root = logging.getLogger()
    if not root.handlers:
        # console handler
        ch = logging.StreamHandler()
        ch.setLevel(numeric)
        ch.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(ch)

        # rotating file handler
        if log_file:
            path = Path(log_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(str(path), maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8")
            fh.setLevel(numeric)
            fh.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(fh)

    root.setLevel(numeric)
    return logging.getLogger(name)
