"""Tests for desktop selection and the desktop install step."""

import pytest

from chroot_imager.build_config import BuildConfig
from chroot_imager.context import BuildContext
from chroot_imager.lib.chroot import ChrootSession
from chroot_imager.lib.desktop import (
    DESKTOP_CANDIDATES,
    NO_DESKTOP,
    desktop_choices,
    resolve_first_available,
    selection_for,
)
from chroot_imager.lib.errors import InvalidSelection
from chroot_imager.steps import InstallDesktopStep

from conftest import chroot_cmd


class TestResolveFirstAvailable:
    def test_first_available_wins(self):
        probed = []

        def available(pkg):
            probed.append(pkg)
            return pkg in {"B", "C"}

        assert resolve_first_available(["A", "B", "C"], available) == "B"
        assert probed == ["A", "B"]

    def test_none_available(self):
        assert resolve_first_available(["A", "B"], lambda pkg: False) is None

    def test_empty_candidates(self):
        assert resolve_first_available([], lambda pkg: True) is None


class TestSelectionFor:
    def test_case_insensitive(self):
        sel = selection_for("xfce")

        assert sel.choice == "XFCE"
        assert sel.candidate_packages == DESKTOP_CANDIDATES["XFCE"]

    def test_none_has_no_candidates(self):
        sel = selection_for(NO_DESKTOP)

        assert sel.candidate_packages == []
        assert sel.skipped

    def test_unknown(self):
        with pytest.raises(KeyError):
            selection_for("Enlightenment")

    def test_choices_end_with_none(self):
        assert desktop_choices()[-1] == NO_DESKTOP


def _session_ctx(chroot_root, desktop):
    session = ChrootSession(chroot_root)
    session.active = True
    cfg = BuildConfig(raw={"desktop": desktop})
    ctx = BuildContext(cfg=cfg)
    ctx.session = session
    return ctx


class TestInstallDesktopStep:
    def test_falls_back_to_available_candidate(self, commands, chroot_root):
        """Only the last XFCE candidate exists in the mirror."""
        commands.on(chroot_cmd(chroot_root, "apt-cache", "show"), returncode=100)
        commands.on(chroot_cmd(chroot_root, "apt-cache", "show", "xfce4"), returncode=0)
        ctx = _session_ctx(chroot_root, "XFCE")

        InstallDesktopStep().run(ctx)

        assert ctx.desktop.resolved_package == "xfce4"
        installs = [c for c in commands.calls if chroot_cmd(chroot_root, "apt-get", "install")(c)]
        assert installs == [["chroot", str(chroot_root), "apt-get", "install", "-y", "xfce4"]]

    def test_no_candidate_warns_and_skips(self, commands, chroot_root):
        commands.on(chroot_cmd(chroot_root, "apt-cache", "show"), returncode=100)
        ctx = _session_ctx(chroot_root, "MATE")

        InstallDesktopStep().run(ctx)

        assert ctx.desktop.skipped
        assert len(ctx.report.warnings) == 1
        assert not any(chroot_cmd(chroot_root, "apt-get")(c) for c in commands.calls)

    def test_none_installs_nothing(self, commands, chroot_root):
        ctx = _session_ctx(chroot_root, "None")

        InstallDesktopStep().run(ctx)

        assert commands.calls == []
        assert ctx.desktop.choice == NO_DESKTOP

    def test_non_interactive_default_is_none(self, commands, chroot_root):
        ctx = _session_ctx(chroot_root, None)

        InstallDesktopStep().run(ctx)

        assert ctx.desktop.choice == NO_DESKTOP

    def test_unknown_desktop_rejected(self, commands, chroot_root):
        ctx = _session_ctx(chroot_root, "Unity")

        with pytest.raises(InvalidSelection):
            InstallDesktopStep().run(ctx)
