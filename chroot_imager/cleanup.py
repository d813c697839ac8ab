"""Process-wide cleanup of mounts and loop devices.

The handler only keeps references to sessions and images; their owners still
release them through normal scoped teardown. This is the safety net for paths
that teardown did not reach: it unmounts what the mount table still shows and
detaches loop devices still attached. It never deletes files.
"""

from __future__ import annotations

import atexit
import logging
import signal
from typing import Callable, List, Optional

from .lib.chroot import ChrootSession
from .lib.errors import BuildInterrupted
from .lib.image import DiskImage
from .lib.loopdev import detach, is_attached
from .lib.mounts import is_mountpoint, lazy_umount, mounts_under, read_mount_table

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)


class CleanupHandler:
    def __init__(
        self,
        *,
        read_table: Callable[[], List[str]] = read_mount_table,
        dry_run: bool = False,
    ) -> None:
        self.read_table = read_table
        self.dry_run = dry_run
        self.sessions: List[ChrootSession] = []
        self.images: List[DiskImage] = []
        self.registered = False
        self.runs = 0

    def watch_session(self, session: ChrootSession) -> None:
        if session not in self.sessions:
            self.sessions.append(session)

    def watch_image(self, image: DiskImage) -> None:
        if image not in self.images:
            self.images.append(image)

    def register(self) -> None:
        """Hook into interpreter exit and termination signals (once)."""

        if self.registered:
            return
        atexit.register(self.run)
        for sig in HANDLED_SIGNALS:
            signal.signal(sig, self._on_signal)
        self.registered = True

    def _on_signal(self, signum, frame) -> None:
        logger.warning("Received signal %s; unwinding build", signum)
        # Restore defaults so a second signal is not swallowed during unwind.
        for sig in HANDLED_SIGNALS:
            signal.signal(sig, signal.SIG_DFL)
        raise BuildInterrupted(signum)

    def run(self) -> None:
        """Unmount leftovers; each path is attempted independently."""

        self.runs += 1
        table = self.read_table()

        # Newest session first, each in reverse plan order.
        for session in reversed(self.sessions):
            for path in reversed(session.planned_targets()):
                if not is_mountpoint(path, table=table):
                    continue
                logger.info("Cleanup: unmounting %s", path)
                lazy_umount(path, dry_run=self.dry_run)
            session.mounted.clear()
            session.active = False
            self._report_leftovers(session)

        for image in self.images:
            self._release_image(image, table)

    def _report_leftovers(self, session: ChrootSession) -> None:
        leftover = mounts_under(session.root, table=self.read_table())
        if leftover:
            logger.warning(
                "Cleanup: still mounted under %s, unmount by hand: %s", session.root, ", ".join(leftover)
            )

    def _release_image(self, image: DiskImage, table: List[str]) -> None:
        mount_dir = image.mount_dir
        if mount_dir is not None:
            for path in (mount_dir / "boot/efi", mount_dir):
                if is_mountpoint(path, table=table):
                    logger.info("Cleanup: unmounting %s", path)
                    lazy_umount(path, dry_run=self.dry_run)

        loop: Optional[str] = image.loop_device
        if not loop:
            return
        if image.mapper is not None:
            image.mapper.release(loop)
        if is_attached(loop, dry_run=self.dry_run):
            logger.info("Cleanup: detaching %s", loop)
            detach(loop, dry_run=self.dry_run)
        image.loop_device = None
        image.mapper = None
