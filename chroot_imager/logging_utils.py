from __future__ import annotations

import logging
from pathlib import Path

from .lib.env import PATHS

DEFAULT_LOG_PATH = PATHS.log_default
FALLBACK_LOG_NAME = "chroot-imager.log"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"


def _open_log_file(log_path: str) -> tuple[logging.FileHandler, str]:
    p = Path(log_path)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(p), str(p)
    except OSError:
        # /var/log is usually not writable for dry runs as a normal user.
        fallback = Path.cwd() / FALLBACK_LOG_NAME
        return logging.FileHandler(fallback), str(fallback)


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    *,
    console_level: int = logging.INFO,
) -> str:
    """Send the full build log (commands and their output) to ``log_path``.

    The file gets DEBUG, so captured stdout/stderr of every command is kept;
    the console only shows progress at ``console_level``. Returns the path
    actually written, which differs from ``log_path`` when it was not
    writable. Calling this again keeps the first configuration.
    """

    root = logging.getLogger()
    for h in root.handlers:
        if isinstance(h, logging.FileHandler):
            return h.baseFilename

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    root.setLevel(logging.DEBUG)

    file_handler, chosen_path = _open_log_file(log_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(fmt)
    root.addHandler(console)

    if chosen_path != str(Path(log_path)):
        logging.getLogger(__name__).warning("Cannot write %s; logging to %s", log_path, chosen_path)
    return chosen_path
