"""Tests for cleanup.py - the process-wide mount and loop device safety net."""

import signal
from pathlib import Path

import pytest

from chroot_imager.cleanup import HANDLED_SIGNALS, CleanupHandler
from chroot_imager.lib.chroot import ChrootSession
from chroot_imager.lib.errors import BuildInterrupted
from chroot_imager.lib.image import DiskImage
from chroot_imager.lib.loopdev import KpartxMapper


class TestSessions:
    def test_unmounts_only_what_is_mounted(self, commands, chroot_root):
        session = ChrootSession(chroot_root)
        table = [str(chroot_root / "dev"), str(chroot_root / "proc")]
        handler = CleanupHandler(read_table=lambda: table)
        handler.watch_session(session)

        handler.run()

        assert commands.commands("umount") == [
            ["umount", "-l", str(chroot_root / "proc")],
            ["umount", "-l", str(chroot_root / "dev")],
        ]

    def test_second_run_is_noop(self, commands, chroot_root, host_resolv):
        session = ChrootSession(chroot_root).begin()
        handler = CleanupHandler(read_table=commands.table)
        handler.watch_session(session)

        handler.run()
        after_first = len(commands.calls)
        handler.run()

        assert len(commands.calls) == after_first
        assert commands.table() == []
        assert session.active is False
        assert session.mounted == []

    def test_continues_past_failures(self, commands, chroot_root):
        commands.on(["umount"], returncode=32, stderr="target is busy")
        session = ChrootSession(chroot_root)
        table = [str(p) for p in session.planned_targets()]
        handler = CleanupHandler(read_table=lambda: table)
        handler.watch_session(session)

        handler.run()

        assert len(commands.commands("umount")) == len(table)

    def test_watch_is_deduplicated(self, chroot_root):
        session = ChrootSession(chroot_root)
        handler = CleanupHandler(read_table=list)

        handler.watch_session(session)
        handler.watch_session(session)

        assert handler.sessions == [session]


class TestImages:
    def test_releases_mapping_then_loop(self, commands, tmp_path):
        commands.on(["losetup", "/dev/loop3"], stdout="/dev/loop3: []: (/tmp/usb.img)\n")
        image = DiskImage(file_path=tmp_path / "usb.img", size_bytes=1, loop_device="/dev/loop3")
        image.mapper = KpartxMapper()
        image.mount_dir = Path("/mnt/img")
        handler = CleanupHandler(read_table=lambda: ["/mnt/img", "/mnt/img/boot/efi"])
        handler.watch_image(image)

        handler.run()

        assert commands.calls == [
            ["umount", "-l", "/mnt/img/boot/efi"],
            ["umount", "-l", "/mnt/img"],
            ["kpartx", "-d", "/dev/loop3"],
            ["losetup", "/dev/loop3"],
            ["losetup", "-d", "/dev/loop3"],
        ]
        assert image.loop_device is None

    def test_already_detached_loop(self, commands, tmp_path):
        image = DiskImage(file_path=tmp_path / "usb.img", size_bytes=1, loop_device="/dev/loop3")
        handler = CleanupHandler(read_table=list)
        handler.watch_image(image)

        handler.run()

        assert commands.calls == [["losetup", "/dev/loop3"]]

    def test_released_image_runs_nothing(self, commands, tmp_path):
        image = DiskImage(file_path=tmp_path / "usb.img", size_bytes=1)
        handler = CleanupHandler(read_table=list)
        handler.watch_image(image)

        handler.run()
        handler.run()

        assert commands.calls == []
        assert handler.runs == 2


class TestRegistration:
    def test_register_once(self, mocker):
        atexit_register = mocker.patch("chroot_imager.cleanup.atexit.register")
        signal_install = mocker.patch("chroot_imager.cleanup.signal.signal")
        handler = CleanupHandler(read_table=list)

        handler.register()
        handler.register()

        atexit_register.assert_called_once_with(handler.run)
        assert {c.args[0] for c in signal_install.call_args_list} == set(HANDLED_SIGNALS)
        assert signal_install.call_count == len(HANDLED_SIGNALS)

    def test_signal_raises_interrupt(self, mocker):
        signal_install = mocker.patch("chroot_imager.cleanup.signal.signal")
        handler = CleanupHandler(read_table=list)

        with pytest.raises(BuildInterrupted) as exc:
            handler._on_signal(signal.SIGTERM, None)

        assert exc.value.signum == signal.SIGTERM
        assert all(c.args[1] is signal.SIG_DFL for c in signal_install.call_args_list)


class TestSymlinkedRoot:
    def test_session_reached_through_symlink_is_cleaned(self, commands, chroot_root, tmp_path):
        """mountinfo lists resolved paths; a symlinked chroot dir must still match."""
        link = tmp_path / "chroot-link"
        link.symlink_to(chroot_root, target_is_directory=True)
        table = [str(chroot_root / t) for t in ("dev", "dev/pts", "proc", "sys")]
        handler = CleanupHandler(read_table=lambda: table)
        handler.watch_session(ChrootSession(link))

        handler.run()

        assert commands.commands("umount") == [["umount", "-l", p] for p in reversed(table)]

    def test_leftover_mounts_are_reported(self, commands, chroot_root, caplog):
        session = ChrootSession(chroot_root)
        stray = str(chroot_root / "mnt/usb")
        handler = CleanupHandler(read_table=lambda: [stray])
        handler.watch_session(session)

        with caplog.at_level("WARNING", logger="chroot_imager.cleanup"):
            handler.run()

        assert stray in caplog.text
        assert commands.commands("umount") == []
