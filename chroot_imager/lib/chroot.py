from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Union

from .command import CmdResult, Policy, WarnFn, run_cmd, run_with_policy
from .mounts import MountPoint, lazy_umount, mount

logger = logging.getLogger(__name__)

# /dev/pts must follow /dev: it is mounted on top of the /dev bind.
BUILD_PLAN: tuple[MountPoint, ...] = (
    MountPoint(source="/dev", target="dev", bind=True),
    MountPoint(source="/dev/pts", target="dev/pts", bind=True),
    MountPoint(source="proc", target="proc", fstype="proc"),
    MountPoint(source="sysfs", target="sys", fstype="sysfs"),
)

IMAGE_PLAN: tuple[MountPoint, ...] = (
    MountPoint(source="/dev", target="dev", bind=True),
    MountPoint(source="/dev/pts", target="dev/pts", bind=True),
    MountPoint(source="/proc", target="proc", bind=True),
    MountPoint(source="/sys", target="sys", bind=True),
    MountPoint(source="/run", target="run", bind=True),
)

HOST_RESOLV_CONF = "/etc/resolv.conf"

BASE_ENV = {
    "PATH": "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin",
    "HOME": "/root",
    "LANG": "C.UTF-8",
    "DEBIAN_FRONTEND": "noninteractive",
}

Command = Union[str, Sequence[str]]


def chroot_env(*, gui: bool = False, host_env: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """Curated environment for processes inside the chroot."""

    env = dict(BASE_ENV)
    if gui:
        src = os.environ if host_env is None else host_env
        env["DISPLAY"] = src.get("DISPLAY") or ":0"
        env["TERM"] = src.get("TERM") or "xterm"
        if src.get("XAUTHORITY"):
            env["XAUTHORITY"] = src["XAUTHORITY"]
    return env


class ChrootSession:
    """Owns the pseudo-filesystem mounts needed to work inside a tree.

    Mounts are recorded in a LIFO stack as they succeed and popped in reverse
    order by end(). begin() is not re-entrant: a second begin() without end()
    mounts everything again and the caller must track that.
    """

    def __init__(
        self,
        root: str | Path,
        *,
        plan: Sequence[MountPoint] = BUILD_PLAN,
        copy_resolv_conf: bool = True,
        warn: Optional[WarnFn] = None,
        dry_run: bool = False,
    ) -> None:
        self.root = Path(root).resolve()
        self.plan = tuple(plan)
        self.copy_resolv_conf = copy_resolv_conf
        self.warn = warn
        self.dry_run = dry_run
        self.mounted: List[MountPoint] = []
        self.active = False

    def __repr__(self) -> str:
        return f"ChrootSession(root={str(self.root)!r}, active={self.active}, mounted={len(self.mounted)})"

    def planned_targets(self) -> List[Path]:
        return [p.target_under(self.root) for p in self.plan]

    def begin(self) -> "ChrootSession":
        if self.active:
            logger.warning("Chroot session %s already active; mounting again", self.root)

        self.active = True
        for point in self.plan:
            mount(point, self.root, dry_run=self.dry_run)
            self.mounted.append(point)

        if self.copy_resolv_conf:
            self._copy_resolv_conf()

        logger.info("Chroot session started at %s (%d mounts)", self.root, len(self.mounted))
        return self

    def _copy_resolv_conf(self) -> None:
        dst = self.root / "etc/resolv.conf"
        if self.dry_run:
            logger.info("Would copy %s -> %s", HOST_RESOLV_CONF, dst)
            return
        dst.parent.mkdir(parents=True, exist_ok=True)
        # A symlinked resolv.conf in the target would point outside the tree.
        if dst.is_symlink():
            dst.unlink()
        shutil.copyfile(HOST_RESOLV_CONF, dst, follow_symlinks=True)

    def run(
        self,
        command: Command,
        *,
        policy: Policy = Policy.MANDATORY,
        gui: bool = False,
        capture: bool = True,
        input_text: Optional[str] = None,
    ) -> int:
        """Run ``command`` inside the tree and return its exit status.

        String commands go through ``/bin/bash -lc`` so shell syntax works.
        """

        if isinstance(command, str):
            inner = ["/bin/bash", "-lc", command]
        else:
            inner = list(command)

        result: CmdResult = run_with_policy(
            ["chroot", str(self.root), *inner],
            policy=policy,
            warn=self.warn,
            env=chroot_env(gui=gui),
            inherit_env=False,
            capture=capture,
            input_text=input_text,
            dry_run=self.dry_run,
        )
        return result.returncode

    def probe(self, command: Command) -> bool:
        """Run a read-only query; a non-zero exit is an answer, not a failure."""

        inner = ["/bin/bash", "-lc", command] if isinstance(command, str) else list(command)
        r = run_cmd(
            ["chroot", str(self.root), *inner],
            check=False,
            env=chroot_env(),
            inherit_env=False,
            dry_run=self.dry_run,
        )
        return r.ok

    def end(self) -> None:
        while self.mounted:
            point = self.mounted.pop()
            lazy_umount(point.target_under(self.root), dry_run=self.dry_run)
        if self.active:
            logger.info("Chroot session ended at %s", self.root)
        self.active = False

    def __enter__(self) -> "ChrootSession":
        try:
            return self.begin()
        except BaseException:
            self.end()
            raise

    def __exit__(self, exc_type, exc, tb) -> None:
        self.end()
