from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .command import CmdResult, run_cmd

logger = logging.getLogger(__name__)

MOUNTINFO_PATH = "/proc/self/mountinfo"

_OCTAL_ESCAPE = re.compile(r"\\([0-7]{3})")


@dataclass(frozen=True)
class MountPoint:
    """A single mount to perform, relative to a session root.

    ``source`` is a host path (bind) or a filesystem source name (``proc``).
    """

    source: str
    target: str
    fstype: Optional[str] = None
    bind: bool = False

    def target_under(self, root: str | Path) -> Path:
        return Path(root) / self.target.lstrip("/")

    def mount_argv(self, root: str | Path) -> list[str]:
        dst = str(self.target_under(root))
        if self.bind:
            return ["mount", "--bind", self.source, dst]
        argv = ["mount"]
        if self.fstype:
            argv += ["-t", self.fstype]
        return [*argv, self.source, dst]


def _unescape(field: str) -> str:
    return _OCTAL_ESCAPE.sub(lambda m: chr(int(m.group(1), 8)), field)


def parse_mountinfo(text: str) -> List[str]:
    """Return mount points listed in a /proc/<pid>/mountinfo document."""

    points: List[str] = []
    for line in text.splitlines():
        fields = line.split()
        if len(fields) < 5:
            continue
        points.append(_unescape(fields[4]))
    return points


def read_mount_table(path: str = MOUNTINFO_PATH) -> List[str]:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError:
        logger.warning("Unable to read mount table %s", path)
        return []
    return parse_mountinfo(text)


def _norm(path: str | Path) -> str:
    return os.path.normpath(os.path.abspath(str(path)))


def _resolve(path: str | Path) -> str:
    # mountinfo lists paths with symlinks resolved.
    return os.path.realpath(str(path))


def is_mountpoint(path: str | Path, *, table: Optional[List[str]] = None) -> bool:
    mounted = table if table is not None else read_mount_table()
    return _resolve(path) in {_norm(p) for p in mounted}


def mounts_under(root: str | Path, *, table: Optional[List[str]] = None) -> List[str]:
    """Mount points strictly below ``root``, deepest first."""

    mounted = table if table is not None else read_mount_table()
    base = _resolve(root)
    prefix = base.rstrip("/") + "/"
    found = {_norm(p) for p in mounted if _norm(p).startswith(prefix)}
    return sorted(found, key=lambda p: (p.count("/"), p), reverse=True)


def mount(point: MountPoint, root: str | Path, *, dry_run: bool = False) -> CmdResult:
    dst = point.target_under(root)
    if not dry_run:
        dst.mkdir(parents=True, exist_ok=True)
    return run_cmd(point.mount_argv(root), dry_run=dry_run)


def lazy_umount(path: str | Path, *, dry_run: bool = False) -> bool:
    """Lazily unmount ``path``; failures are logged, never raised."""

    r = run_cmd(["umount", "-l", str(path)], check=False, dry_run=dry_run)
    if not r.ok:
        logger.info("umount %s skipped (exit %s): %s", path, r.returncode, r.stderr.strip())
        return False
    return True
