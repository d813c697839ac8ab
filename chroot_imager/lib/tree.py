from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence

from .command import run_cmd

logger = logging.getLogger(__name__)

# Runtime/virtual trees stay as empty mount points in the image.
VIRTUAL_DIRS = ("dev", "proc", "sys", "tmp", "run", "mnt", "media")


def rsync_excludes(virtual_dirs: Sequence[str] = VIRTUAL_DIRS) -> List[str]:
    args: List[str] = []
    for d in virtual_dirs:
        args += ["--exclude", f"/{d}/*"]
    args += ["--exclude", "/lost+found"]
    return args


def copy_rootfs(src: str | Path, dst: str | Path, *, dry_run: bool = False) -> None:
    """Copy a root tree preserving permissions, ACLs, xattrs and hard links."""

    s = Path(src)
    if not dry_run and not s.is_dir():
        raise FileNotFoundError(str(src))

    argv = [
        "rsync",
        "-aAXH",
        "--numeric-ids",
        *rsync_excludes(),
        f"{str(s).rstrip('/')}/",
        f"{str(dst).rstrip('/')}/",
    ]
    logger.info("Copying %s -> %s (this may take a while)", s, dst)
    run_cmd(argv, capture=False, dry_run=dry_run)
