"""
Logging for the inventory API.

Records go to stderr and, when ``LOG_FILE`` is set, to that file as well.
The handlers are named so that building several apps in one process (the
test suite does) attaches them only once.  The MongoDB driver and the
uvicorn access log are held at WARNING so request and heartbeat chatter
does not bury the service's own create/update/delete records.
"""

import logging
from typing import Optional

from config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
CONSOLE_HANDLER = "inventory-console"
FILE_HANDLER = "inventory-file"
QUIET_LOGGERS = ("pymongo", "uvicorn.access")


def setup_logging(level: Optional[str] = None, logfile: Optional[str] = None) -> logging.Logger:
    """Attach the inventory handlers to the root logger.

    ``level`` and ``logfile`` default to ``LOG_LEVEL`` and ``LOG_FILE``.
    An unknown level name falls back to INFO.
    """
    root = logging.getLogger()
    numeric_level = logging.getLevelName((level or settings.log_level).upper())
    root.setLevel(numeric_level if isinstance(numeric_level, int) else logging.INFO)

    installed = {h.name for h in root.handlers}
    formatter = logging.Formatter(LOG_FORMAT)

    if CONSOLE_HANDLER not in installed:
        console = logging.StreamHandler()
        console.set_name(CONSOLE_HANDLER)
        console.setFormatter(formatter)
        root.addHandler(console)

    logfile = logfile if logfile is not None else settings.log_file
    if logfile and FILE_HANDLER not in installed:
        file_handler = logging.FileHandler(logfile, encoding="utf-8")
        file_handler.set_name(FILE_HANDLER)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return root
