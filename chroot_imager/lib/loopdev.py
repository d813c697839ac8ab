"""Loop device association and partition device resolution.

Whether the kernel exposes ``/dev/loopNpM`` nodes for a partitioned loop
device depends on the host (loop driver ``max_part``, udev). Two backends sit
behind one interface: DirectNodes uses those nodes when they appear, and
KpartxMapper synthesizes ``/dev/mapper/loopNpM`` with kpartx when they do not.
"""

from __future__ import annotations

import logging
import os
import stat
import time
from pathlib import Path
from typing import Callable, List, Optional, Protocol

from .command import run_cmd
from .errors import CommandError, LoopDeviceError

logger = logging.getLogger(__name__)


def is_block_device(path: str) -> bool:
    try:
        return stat.S_ISBLK(os.stat(path).st_mode)
    except OSError:
        return False


def part_suffix(disk: str, n: int) -> str:
    # loop/nvme/mmcblk devices use p suffix
    if disk.endswith(tuple("0123456789")):
        return f"{disk}p{n}"
    return f"{disk}{n}"


def attach(image_path: str | Path, *, dry_run: bool = False) -> str:
    try:
        r = run_cmd(["losetup", "--find", "--show", "--partscan", str(image_path)], dry_run=dry_run)
    except CommandError as e:
        raise LoopDeviceError(f"Failed to create loop device for {image_path}: {e}") from e
    device = r.stdout.strip()
    if dry_run and not device:
        device = "/dev/loop0"
    if not device:
        raise LoopDeviceError(f"losetup did not return a loop device for {image_path}")
    logger.info("Attached %s to %s", image_path, device)
    return device


def detach(device: str, *, dry_run: bool = False) -> bool:
    r = run_cmd(["losetup", "-d", device], check=False, dry_run=dry_run)
    if not r.ok:
        logger.warning("losetup -d %s failed (exit %s): %s", device, r.returncode, r.stderr.strip())
        return False
    logger.info("Detached %s", device)
    return True


def is_attached(device: str, *, dry_run: bool = False) -> bool:
    r = run_cmd(["losetup", device], check=False, dry_run=dry_run)
    return r.ok and bool(r.stdout.strip())


class PartitionMapper(Protocol):
    name: str

    def map(self, device: str, count: int) -> Optional[List[str]]:
        """Return partition device paths, or None if this backend cannot provide them."""
        ...

    def release(self, device: str) -> None:
        ...


class DirectNodes:
    name = "direct"

    def __init__(
        self,
        *,
        settle_s: float = 1.0,
        exists: Callable[[str], bool] = is_block_device,
        dry_run: bool = False,
    ) -> None:
        self.settle_s = settle_s
        self.exists = exists
        self.dry_run = dry_run

    def map(self, device: str, count: int) -> Optional[List[str]]:
        nodes = [part_suffix(device, i) for i in range(1, count + 1)]
        if self.dry_run:
            return nodes
        run_cmd(["partprobe", device], check=False)
        run_cmd(["udevadm", "settle"], check=False)
        if not all(self.exists(n) for n in nodes) and self.settle_s > 0:
            time.sleep(self.settle_s)
        if all(self.exists(n) for n in nodes):
            return nodes
        logger.info("No direct partition nodes for %s", device)
        return None

    def release(self, device: str) -> None:
        # Nodes go away with the loop device itself.
        return None


class KpartxMapper:
    name = "kpartx"

    def __init__(
        self,
        *,
        settle_s: float = 1.0,
        exists: Callable[[str], bool] = is_block_device,
        dry_run: bool = False,
    ) -> None:
        self.settle_s = settle_s
        self.exists = exists
        self.dry_run = dry_run

    def map(self, device: str, count: int) -> Optional[List[str]]:
        base = os.path.basename(device)
        nodes = [f"/dev/mapper/{base}p{i}" for i in range(1, count + 1)]
        r = run_cmd(["kpartx", "-a", "-s", device], check=False, dry_run=self.dry_run)
        if not r.ok:
            logger.warning("kpartx -a %s failed (exit %s)", device, r.returncode)
            return None
        if self.dry_run:
            return nodes
        if not all(self.exists(n) for n in nodes) and self.settle_s > 0:
            time.sleep(self.settle_s)
        if all(self.exists(n) for n in nodes):
            return nodes
        logger.warning("kpartx mapped %s but %s did not appear", device, ", ".join(nodes))
        # Nobody owns the mapping once we return None.
        self.release(device)
        return None

    def release(self, device: str) -> None:
        r = run_cmd(["kpartx", "-d", device], check=False, dry_run=self.dry_run)
        if not r.ok:
            logger.warning("kpartx -d %s failed (exit %s)", device, r.returncode)


def default_mappers(*, dry_run: bool = False) -> List[PartitionMapper]:
    return [DirectNodes(dry_run=dry_run), KpartxMapper(dry_run=dry_run)]


def map_partitions(
    device: str,
    count: int,
    mappers: List[PartitionMapper],
) -> tuple[PartitionMapper, List[str]]:
    """Resolve partition nodes with the first backend that can provide them."""

    for mapper in mappers:
        nodes = mapper.map(device, count)
        if nodes:
            logger.info("Partition nodes for %s via %s: %s", device, mapper.name, ", ".join(nodes))
            return mapper, nodes
    raise LoopDeviceError(f"No partition device nodes available for {device}")
