from __future__ import annotations

import logging
from typing import List

from .chroot import ChrootSession
from .command import Policy
from .targets import BuildTarget, Family

logger = logging.getLogger(__name__)

GRUB_EFI_TARGET_BY_ARCH = {
    "amd64": "x86_64-efi",
    "arm64": "arm64-efi",
    "i386": "i386-efi",
}


def kernel_package(target: BuildTarget) -> str:
    if target.family is Family.UBUNTU:
        return "linux-image-generic"
    return f"linux-image-{target.architecture}"


def bootloader_package_sets(target: BuildTarget) -> List[List[str]]:
    """Package sets to try in order; the first that installs wins."""

    kernel = kernel_package(target)
    return [
        [f"grub-efi-{target.architecture}", "shim-signed", kernel],
        ["grub-efi", kernel],
    ]


def install_bootloader_packages(session: ChrootSession, target: BuildTarget) -> bool:
    if session.run(["apt-get", "update"], policy=Policy.BEST_EFFORT, capture=False) != 0:
        return False
    for packages in bootloader_package_sets(target):
        rc = session.run(
            ["apt-get", "install", "-y", "--no-install-recommends", *packages],
            policy=Policy.BEST_EFFORT,
            capture=False,
        )
        if rc == 0:
            logger.info("Installed bootloader packages: %s", " ".join(packages))
            return True
    return False


def install_grub_efi(session: ChrootSession, target: BuildTarget) -> bool:
    """Install GRUB for EFI in removable mode (EFI/BOOT/BOOT<arch>.EFI).

    Removable mode avoids depending on an NVRAM entry for this disk.
    """

    efi_target = GRUB_EFI_TARGET_BY_ARCH.get(target.architecture, f"{target.architecture}-efi")
    rc = session.run(
        [
            "grub-install",
            f"--target={efi_target}",
            "--efi-directory=/boot/efi",
            "--boot-directory=/boot",
            "--removable",
            "--recheck",
        ],
        policy=Policy.BEST_EFFORT,
        capture=False,
    )
    menu_rc = session.run(["update-grub"], policy=Policy.BEST_EFFORT, capture=False)
    ok = rc == 0 and menu_rc == 0
    if ok:
        logger.info("GRUB EFI installed (%s, removable)", efi_target)
    return ok
