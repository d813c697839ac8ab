from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

logger = logging.getLogger(__name__)

ROOT_OPTIONS = "errors=remount-ro"
ESP_OPTIONS = "umask=0077"


@dataclass(frozen=True)
class FstabEntry:
    spec: str
    mountpoint: str
    fstype: str
    options: str = "defaults"
    dump: int = 0
    passno: int = 0

    def render(self) -> str:
        return f"{self.spec}\t{self.mountpoint}\t{self.fstype}\t{self.options}\t{self.dump}\t{self.passno}"


def render_fstab(entries: Sequence[FstabEntry]) -> str:
    lines = ["# /etc/fstab: static file system information.", "# <file system>\t<mount point>\t<type>\t<options>\t<dump>\t<pass>"]
    lines += [e.render() for e in entries]
    return "\n".join(lines) + "\n"


def image_entries(*, root_uuid: str, esp_uuid: str) -> List[FstabEntry]:
    return [
        FstabEntry(spec=f"UUID={root_uuid}", mountpoint="/", fstype="ext4", options=ROOT_OPTIONS, passno=1),
        FstabEntry(spec=f"UUID={esp_uuid}", mountpoint="/boot/efi", fstype="vfat", options=ESP_OPTIONS, passno=1),
    ]


def write_fstab(root: str | Path, entries: Sequence[FstabEntry], *, dry_run: bool = False) -> Path:
    path = Path(root) / "etc/fstab"
    contents = render_fstab(entries)
    if dry_run:
        logger.info("Would write %s:\n%s", path, contents.rstrip())
        return path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents, encoding="utf-8")
    logger.info("Wrote %s", path)
    return path
