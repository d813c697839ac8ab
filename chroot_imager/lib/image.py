from __future__ import annotations

import enum
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

from .block import get_uuid
from .bootloader import install_bootloader_packages, install_grub_efi
from .chroot import IMAGE_PLAN, ChrootSession
from .command import WarnFn, run_cmd
from .errors import CommandError, ImageError
from .fstab import image_entries, write_fstab
from .loopdev import PartitionMapper, attach, default_mappers, detach, map_partitions
from .mounts import lazy_umount
from .storage import PartitionPlan, format_partitions, parse_size, write_partition_table
from .targets import BuildTarget
from .tree import copy_rootfs

logger = logging.getLogger(__name__)

DRY_RUN_MOUNT_DIR = "/tmp/chroot-imager.dry-run"


class ImageState(enum.IntEnum):
    NEW = 0
    CREATED = 1
    PARTITIONED = 2
    FORMATTED = 3
    MOUNTED = 4
    POPULATED = 5
    BOOTLOADER_INSTALLED = 6
    UNMOUNTED = 7
    FINALIZED = 8


@dataclass
class PartitionInfo:
    index: int
    fstype: str
    size_range: tuple[str, str]
    device: Optional[str] = None


@dataclass
class DiskImage:
    file_path: Path
    size_bytes: int
    loop_device: Optional[str] = None
    partitions: List[PartitionInfo] = field(default_factory=list)
    state: ImageState = ImageState.NEW
    mapper: Optional[PartitionMapper] = None
    mount_dir: Optional[Path] = None

    @classmethod
    def from_config(cls, path: str | Path, size: str | int) -> "DiskImage":
        return cls(file_path=Path(path).absolute(), size_bytes=parse_size(size))

    def advance(self, new_state: ImageState) -> None:
        if new_state != self.state + 1:
            raise ImageError(f"Invalid image transition {self.state.name} -> {new_state.name}")
        logger.info("Image %s: %s -> %s", self.file_path.name, self.state.name, new_state.name)
        self.state = new_state

    def partition_device(self, index: int) -> str:
        for p in self.partitions:
            if p.index == index and p.device:
                return p.device
        raise ImageError(f"Partition {index} has no device node")


class ImageMaterializer:
    """Turns a prepared chroot tree into a bootable raw disk image.

    Steps run strictly forward. On any failure the error propagates after a
    best-effort release of mounts and the loop device; nothing is rolled back.
    """

    def __init__(
        self,
        image: DiskImage,
        *,
        source_root: str | Path,
        target: BuildTarget,
        plan: PartitionPlan = PartitionPlan(),
        mappers: Optional[List[PartitionMapper]] = None,
        cleanup: Any = None,
        warn: Optional[WarnFn] = None,
        dry_run: bool = False,
    ) -> None:
        self.image = image
        self.source_root = Path(source_root)
        self.target = target
        self.plan = plan
        self.mappers = mappers if mappers is not None else default_mappers(dry_run=dry_run)
        self.cleanup = cleanup
        self.warn = warn
        self.dry_run = dry_run
        self.mounts: List[Path] = []
        self.session: Optional[ChrootSession] = None
        self.bootloader_ok = False

    def _warn(self, message: str) -> None:
        logger.warning(message)
        if self.warn is not None:
            self.warn(message)

    def build(self) -> DiskImage:
        if self.cleanup is not None:
            self.cleanup.watch_image(self.image)
        try:
            self.create()
            self.partition()
            self.format()
            self.mount()
            self.populate()
            self.install_bootloader()
        except BaseException:
            self.release()
            raise
        self.unmount()
        self.finalize()
        return self.image

    def create(self) -> None:
        path = self.image.file_path
        if self.image.size_bytes < self.plan.min_size_bytes:
            raise ImageError(f"Image size {self.image.size_bytes} bytes is too small for the partition layout")
        if path.exists():
            logger.warning("Overwriting existing image %s", path)
            if not self.dry_run:
                path.unlink()
        if not self.dry_run:
            path.parent.mkdir(parents=True, exist_ok=True)
        try:
            run_cmd(["qemu-img", "create", "-f", "raw", str(path), str(self.image.size_bytes)], dry_run=self.dry_run)
        except CommandError as e:
            raise ImageError(f"Creating {path} failed: {e}") from e
        self.image.advance(ImageState.CREATED)

    def partition(self) -> None:
        loop = attach(self.image.file_path, dry_run=self.dry_run)
        self.image.loop_device = loop
        specs = write_partition_table(loop, self.plan, dry_run=self.dry_run)
        mapper, nodes = map_partitions(loop, len(specs), self.mappers)
        self.image.mapper = mapper
        self.image.partitions = [
            PartitionInfo(index=s.index, fstype=s.fstype, size_range=(s.start, s.end), device=node)
            for s, node in zip(specs, nodes)
        ]
        self.image.advance(ImageState.PARTITIONED)

    def format(self) -> None:
        format_partitions(self.image.partition_device(1), self.image.partition_device(2), dry_run=self.dry_run)
        self.image.advance(ImageState.FORMATTED)

    def _mount(self, device: str, where: Path) -> None:
        if not self.dry_run:
            where.mkdir(parents=True, exist_ok=True)
        run_cmd(["mount", device, str(where)], dry_run=self.dry_run)
        self.mounts.append(where)

    def mount(self) -> None:
        if self.dry_run:
            mount_dir = Path(DRY_RUN_MOUNT_DIR)
        else:
            mount_dir = Path(tempfile.mkdtemp(prefix="chroot-imager."))
        self.image.mount_dir = mount_dir
        self._mount(self.image.partition_device(2), mount_dir)
        self._mount(self.image.partition_device(1), mount_dir / "boot/efi")
        self.image.advance(ImageState.MOUNTED)

    def populate(self) -> None:
        assert self.image.mount_dir is not None
        copy_rootfs(self.source_root, self.image.mount_dir, dry_run=self.dry_run)
        root_uuid = get_uuid(self.image.partition_device(2), dry_run=self.dry_run)
        esp_uuid = get_uuid(self.image.partition_device(1), dry_run=self.dry_run)
        write_fstab(self.image.mount_dir, image_entries(root_uuid=root_uuid, esp_uuid=esp_uuid), dry_run=self.dry_run)
        self.image.advance(ImageState.POPULATED)

    def install_bootloader(self) -> None:
        """Best-effort: failures become warnings, never a failed build."""

        assert self.image.mount_dir is not None
        session = ChrootSession(
            self.image.mount_dir,
            plan=IMAGE_PLAN,
            copy_resolv_conf=False,
            warn=self.warn,
            dry_run=self.dry_run,
        )
        self.session = session
        if self.cleanup is not None:
            self.cleanup.watch_session(session)

        session.begin()
        try:
            installed = install_bootloader_packages(session, self.target)
            self.bootloader_ok = install_grub_efi(session, self.target) and installed
        finally:
            session.end()
            self.session = None

        if not self.bootloader_ok:
            self._warn("Bootloader installation failed; the image may not boot without re-running grub-install")
        self.image.advance(ImageState.BOOTLOADER_INSTALLED)

    def release(self) -> None:
        """Undo mounts, partition mappings and the loop device. Safe to repeat."""

        if self.session is not None:
            self.session.end()
            self.session = None

        while self.mounts:
            lazy_umount(self.mounts.pop(), dry_run=self.dry_run)

        loop = self.image.loop_device
        if loop:
            if self.image.mapper is not None:
                self.image.mapper.release(loop)
            detach(loop, dry_run=self.dry_run)
        self.image.loop_device = None
        self.image.mapper = None
        for p in self.image.partitions:
            p.device = None

        mount_dir = self.image.mount_dir
        if mount_dir is not None and not self.dry_run:
            try:
                os.rmdir(mount_dir)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning("Could not remove mount directory %s: %s", mount_dir, e)
        self.image.mount_dir = None

    def unmount(self) -> None:
        self.release()
        self.image.advance(ImageState.UNMOUNTED)

    def finalize(self) -> None:
        self.image.advance(ImageState.FINALIZED)
        logger.info("Image %s created and configured for EFI boot", self.image.file_path)
        logger.info(
            "Write it to a USB device (be careful!): dd if=%s of=/dev/sdX bs=4M status=progress oflag=sync",
            self.image.file_path,
        )
