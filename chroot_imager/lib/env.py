from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Sequence

from .errors import PreconditionError
from .pkg import HOST_DEPS, install_host_packages

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = [
    "debootstrap",
    "chroot",
    "mount",
    "umount",
    "losetup",
    "parted",
    "mkfs.vfat",
    "mkfs.ext4",
    "rsync",
    "qemu-img",
    "blkid",
]


@dataclass(frozen=True)
class Paths:
    target_dir: str = "./chroot"
    image_path: str = "./usb_image.img"
    image_size: str = "4G"
    log_default: str = "/var/log/chroot-imager.log"
    report_default: str = "/var/lib/chroot-imager/last-build.json"


PATHS = Paths()


def missing_tools(tools: Sequence[str], *, which: Callable[[str], Optional[str]] = shutil.which) -> List[str]:
    return [t for t in tools if which(t) is None]


def probe_environment(
    *,
    install_deps: bool = True,
    need_display: bool = False,
    dry_run: bool = False,
    geteuid: Callable[[], int] = os.geteuid,
    which: Callable[[str], Optional[str]] = shutil.which,
    environ: Mapping[str, str] = os.environ,
) -> None:
    """Fail before any mutation if the host cannot run a build."""

    if dry_run:
        logger.info("Dry run: skipping privilege check and host dependency install")
        return

    if geteuid() != 0:
        raise PreconditionError("This tool must be run as root (sudo).")

    if which("apt-get") is None:
        raise PreconditionError("Host package manager apt-get not found")

    if need_display and not environ.get("DISPLAY"):
        raise PreconditionError("DISPLAY is not set; the package browser needs a graphical session")

    if install_deps:
        logger.info("Installing required host packages: %s", " ".join(HOST_DEPS))
        install_host_packages(HOST_DEPS)

    missing = missing_tools(REQUIRED_TOOLS, which=which)
    if missing:
        raise PreconditionError(f"Missing host tools: {', '.join(missing)}")

    logger.info("Host environment OK")
