from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Sequence

from .chroot import ChrootSession
from .command import Policy, run_cmd
from .targets import BuildTarget, render_sources_list

logger = logging.getLogger(__name__)

HOST_DEPS = [
    "debootstrap",
    "qemu-utils",
    "parted",
    "dosfstools",
    "gdisk",
    "mtools",
    "kpartx",
    "rsync",
    "xauth",
    "x11-xserver-utils",
    "wget",
    "curl",
    "apt-transport-https",
]

BASE_PACKAGES = ["apt-utils", "dialog", "locales", "ca-certificates", "gnupg2", "wget", "curl"]
GUI_PACKAGES = ["synaptic", "dbus-x11", "x11-utils", "xauth", "sudo"]

NONINTERACTIVE = {"DEBIAN_FRONTEND": "noninteractive"}


def install_host_packages(packages: Sequence[str] = HOST_DEPS, *, dry_run: bool = False) -> None:
    """Install host-side tooling. Any failure is fatal."""

    run_cmd(["apt-get", "update"], capture=False, dry_run=dry_run)
    run_cmd(["apt-get", "install", "-y", *packages], env=NONINTERACTIVE, capture=False, dry_run=dry_run)


def debootstrap_rootfs(target: BuildTarget, target_dir: str | Path, *, dry_run: bool = False) -> Path:
    """Bootstrap a minbase tree for ``target`` into ``target_dir``.

    An existing ``target_dir`` is removed first. Not resumable: a failed
    bootstrap raises CommandError and leaves whatever debootstrap wrote.
    """

    root = Path(target_dir).absolute()
    if root.exists():
        logger.warning("Removing existing chroot directory %s", root)
        if not dry_run:
            shutil.rmtree(root)
    if not dry_run:
        root.mkdir(parents=True)

    run_cmd(
        [
            "debootstrap",
            f"--arch={target.architecture}",
            "--variant=minbase",
            target.suite,
            str(root),
            target.mirror_url,
        ],
        capture=False,
        dry_run=dry_run,
    )
    logger.info("Bootstrapped %s into %s", target.describe(), root)
    return root


def write_sources_list(root: str | Path, target: BuildTarget, *, dry_run: bool = False) -> Path:
    p = Path(root) / "etc/apt/sources.list"
    contents = render_sources_list(target)
    if dry_run:
        logger.info("Would write %s:\n%s", p, contents.rstrip())
        return p
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(contents, encoding="utf-8")
    logger.info("Configured apt sources for %s", target.suite)
    return p


def apt_update(session: ChrootSession, *, policy: Policy = Policy.MANDATORY) -> int:
    return session.run(["apt-get", "update"], policy=policy, capture=False)


def apt_install(
    session: ChrootSession,
    packages: Sequence[str],
    *,
    with_recommends: bool = False,
    policy: Policy = Policy.MANDATORY,
) -> int:
    if not packages:
        return 0
    argv = ["apt-get", "install", "-y"]
    if not with_recommends:
        argv.append("--no-install-recommends")
    return session.run([*argv, *packages], policy=policy, capture=False)


def apt_has_package(session: ChrootSession, package: str) -> bool:
    """Read-only availability probe (``apt-cache show``)."""

    if session.dry_run:
        # Be permissive in dry-run so planning doesn't fail.
        return True
    return session.probe(["apt-cache", "show", package])


def apt_maintenance(session: ChrootSession) -> None:
    """Refresh, upgrade and tidy the tree; every command is best-effort."""

    for argv in (
        ["apt-get", "update"],
        ["apt-get", "-y", "upgrade"],
        ["apt-get", "-y", "dist-upgrade"],
        ["apt-get", "-y", "autoremove"],
        ["apt-get", "clean"],
    ):
        session.run(argv, policy=Policy.BEST_EFFORT, capture=False)
