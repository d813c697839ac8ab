"""Tests for lib/pkg.py - bootstrap and apt helpers."""

from chroot_imager.lib.chroot import ChrootSession
from chroot_imager.lib.command import Policy
from chroot_imager.lib.pkg import (
    apt_has_package,
    apt_install,
    apt_maintenance,
    debootstrap_rootfs,
    write_sources_list,
)

from conftest import chroot_cmd


class TestDebootstrap:
    def test_argv(self, commands, tmp_path, debian_target):
        root = debootstrap_rootfs(debian_target, tmp_path / "rootfs")

        assert commands.calls == [
            [
                "debootstrap",
                "--arch=amd64",
                "--variant=minbase",
                "bookworm",
                str(root),
                "http://deb.debian.org/debian",
            ]
        ]

    def test_existing_directory_is_recreated(self, commands, tmp_path, ubuntu_target):
        target_dir = tmp_path / "rootfs"
        (target_dir / "old").mkdir(parents=True)
        (target_dir / "old/file").write_text("stale", encoding="utf-8")

        root = debootstrap_rootfs(ubuntu_target, target_dir)

        assert root.is_dir()
        assert list(root.iterdir()) == []

    def test_dry_run_leaves_directory(self, commands, tmp_path, debian_target):
        target_dir = tmp_path / "rootfs"
        target_dir.mkdir()
        (target_dir / "keep").touch()

        debootstrap_rootfs(debian_target, target_dir, dry_run=True)

        assert (target_dir / "keep").exists()
        assert commands.calls == []


class TestSourcesList:
    def test_writes_selected_suite(self, tmp_path, ubuntu_target):
        path = write_sources_list(tmp_path, ubuntu_target)

        text = path.read_text(encoding="utf-8")
        assert "jammy main restricted universe multiverse" in text
        assert path == tmp_path / "etc/apt/sources.list"


class TestAptHelpers:
    def test_install_without_recommends(self, commands, chroot_root):
        apt_install(ChrootSession(chroot_root), ["locales", "wget"])

        assert commands.calls[-1][2:] == ["apt-get", "install", "-y", "--no-install-recommends", "locales", "wget"]

    def test_install_nothing(self, commands, chroot_root):
        assert apt_install(ChrootSession(chroot_root), []) == 0
        assert commands.calls == []

    def test_has_package(self, commands, chroot_root):
        commands.on(chroot_cmd(chroot_root, "apt-cache", "show", "nope"), returncode=100)
        session = ChrootSession(chroot_root)

        assert apt_has_package(session, "xfce4") is True
        assert apt_has_package(session, "nope") is False

    def test_maintenance_continues_after_failure(self, commands, chroot_root):
        warnings = []
        commands.on(chroot_cmd(chroot_root, "apt-get", "-y", "dist-upgrade"), returncode=100)

        apt_maintenance(ChrootSession(chroot_root, warn=warnings.append))

        inner = [c[2:] for c in commands.calls]
        assert inner == [
            ["apt-get", "update"],
            ["apt-get", "-y", "upgrade"],
            ["apt-get", "-y", "dist-upgrade"],
            ["apt-get", "-y", "autoremove"],
            ["apt-get", "clean"],
        ]
        assert len(warnings) == 1

    def test_best_effort_install_returns_status(self, commands, chroot_root):
        commands.on(chroot_cmd(chroot_root, "apt-get"), returncode=100)

        rc = apt_install(ChrootSession(chroot_root), ["synaptic"], policy=Policy.BEST_EFFORT)

        assert rc == 100
