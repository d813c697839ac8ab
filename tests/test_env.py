"""Tests for lib/env.py - host environment probe."""

import pytest

from chroot_imager.lib.env import REQUIRED_TOOLS, missing_tools, probe_environment
from chroot_imager.lib.errors import PreconditionError


def _which_all(name):
    return f"/usr/bin/{name}"


class TestProbeEnvironment:
    def test_requires_root(self, commands):
        with pytest.raises(PreconditionError):
            probe_environment(geteuid=lambda: 1000, which=_which_all, environ={})

        assert commands.calls == []

    def test_requires_display_for_browser(self, commands):
        with pytest.raises(PreconditionError):
            probe_environment(need_display=True, geteuid=lambda: 0, which=_which_all, environ={})

    def test_installs_host_deps(self, commands):
        probe_environment(geteuid=lambda: 0, which=_which_all, environ={"DISPLAY": ":0"}, need_display=True)

        assert commands.calls[0] == ["apt-get", "update"]
        assert commands.calls[1][:3] == ["apt-get", "install", "-y"]
        assert "debootstrap" in commands.calls[1]
        assert commands.kwargs[1]["env"]["DEBIAN_FRONTEND"] == "noninteractive"

    def test_missing_tools(self, commands):
        which = lambda name: None if name == "qemu-img" else f"/usr/bin/{name}"

        with pytest.raises(PreconditionError, match="qemu-img"):
            probe_environment(install_deps=False, geteuid=lambda: 0, which=which, environ={})

    def test_dry_run_skips_checks(self, commands):
        probe_environment(dry_run=True, geteuid=lambda: 1000, which=lambda n: None, environ={})

        assert commands.calls == []


def test_missing_tools_lists_absent_only():
    present = set(REQUIRED_TOOLS) - {"kpartx", "rsync"}

    assert missing_tools(["rsync", "parted", "kpartx"], which=lambda n: n if n in present else None) == [
        "rsync",
        "kpartx",
    ]
