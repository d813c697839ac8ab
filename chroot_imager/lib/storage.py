from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List

from .command import run_cmd
from .errors import CommandError, FormatError, ImageError

logger = logging.getLogger(__name__)

_UNITS = {"": 1, "K": 1024, "M": 1024**2, "G": 1024**3, "T": 1024**4}
_SIZE_RE = re.compile(r"^\s*(\d+)\s*([KMGT]?)(?:i?B)?\s*$", re.IGNORECASE)

ESP_LABEL = "EFI"
ROOT_LABEL = "ROOTFS"


def parse_size(text: str | int) -> int:
    """Parse ``4G``, ``512M``, ``4GiB`` or a plain byte count (binary units)."""

    if isinstance(text, int):
        value = text
    else:
        m = _SIZE_RE.match(str(text))
        if not m:
            raise ValueError(f"Invalid size: {text!r}")
        value = int(m.group(1)) * _UNITS[m.group(2).upper()]
    if value <= 0:
        raise ValueError(f"Size must be positive: {text!r}")
    return value


@dataclass(frozen=True)
class PartitionSpec:
    index: int
    name: str
    fstype: str
    start: str
    end: str
    flags: tuple[str, ...] = ()


@dataclass(frozen=True)
class PartitionPlan:
    """GPT layout: an ESP at 1 MiB followed by a root partition filling the disk."""

    esp_start_mib: int = 1
    esp_size_mib: int = 512
    root_fs: str = "ext4"

    @property
    def esp_end_mib(self) -> int:
        return self.esp_start_mib + self.esp_size_mib

    @property
    def min_size_bytes(self) -> int:
        # ESP plus at least 1 MiB for root and the backup GPT.
        return (self.esp_end_mib + 2) * 1024**2

    def partitions(self) -> List[PartitionSpec]:
        return [
            PartitionSpec(
                index=1,
                name="ESP",
                fstype="fat32",
                start=f"{self.esp_start_mib}MiB",
                end=f"{self.esp_end_mib}MiB",
                flags=("boot", "esp"),
            ),
            PartitionSpec(
                index=2,
                name="primary",
                fstype=self.root_fs,
                start=f"{self.esp_end_mib}MiB",
                end="100%",
            ),
        ]


def partition_commands(device: str, plan: PartitionPlan) -> List[List[str]]:
    cmds: List[List[str]] = [["parted", "-s", device, "mklabel", "gpt"]]
    for part in plan.partitions():
        cmds.append(["parted", "-s", device, "mkpart", part.name, part.fstype, part.start, part.end])
        for flag in part.flags:
            cmds.append(["parted", "-s", device, "set", str(part.index), flag, "on"])
    return cmds


def write_partition_table(device: str, plan: PartitionPlan, *, dry_run: bool = False) -> List[PartitionSpec]:
    logger.info("Partitioning %s (GPT, ESP %d MiB + %s root)", device, plan.esp_size_mib, plan.root_fs)
    try:
        for argv in partition_commands(device, plan):
            run_cmd(argv, dry_run=dry_run)
    except CommandError as e:
        raise ImageError(f"Partitioning {device} failed: {e}") from e
    return plan.partitions()


def format_partitions(esp_part: str, root_part: str, *, dry_run: bool = False) -> None:
    """Create filesystems, overwriting any existing signature."""

    try:
        run_cmd(["mkfs.vfat", "-F", "32", "-n", ESP_LABEL, esp_part], dry_run=dry_run)
        run_cmd(["mkfs.ext4", "-F", "-L", ROOT_LABEL, root_part], dry_run=dry_run)
    except CommandError as e:
        raise FormatError(f"Formatting failed: {e}") from e
    logger.info("Formatted %s (vfat %s) and %s (ext4 %s)", esp_part, ESP_LABEL, root_part, ROOT_LABEL)
