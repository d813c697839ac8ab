"""
Pytest configuration and shared fixtures for chroot-imager tests.

Every external command goes through ``subprocess.run`` inside
``chroot_imager.lib.command``; the ``commands`` fixture replaces it with a
recorder that answers from canned rules and keeps a fake mount table, so no
test needs root or touches real devices.
"""

import os
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import pytest

from chroot_imager.lib import chroot as chroot_mod
from chroot_imager.lib.targets import BuildTarget, Family, MIRRORS


Matcher = Union[Sequence[str], Callable[[List[str]], bool]]


class CommandRecorder:
    """Stand-in for subprocess.run that records argv and tracks mounts."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.kwargs: List[dict] = []
        self.rules: List[tuple] = []
        self.mounted: List[str] = []

    def on(self, matcher: Matcher, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        """Answer commands matching ``matcher`` (argv prefix or predicate). Later rules win."""
        self.rules.append((matcher, returncode, stdout, stderr))

    def _match(self, matcher: Matcher, argv: List[str]) -> bool:
        if callable(matcher):
            return bool(matcher(argv))
        prefix = list(matcher)
        return argv[: len(prefix)] == prefix

    def _track_mounts(self, argv: List[str]) -> None:
        if argv and argv[0] == "mount":
            self.mounted.append(os.path.normpath(argv[-1]))
        elif argv and argv[0] == "umount":
            target = os.path.normpath(argv[-1])
            if target in self.mounted:
                self.mounted.remove(target)

    def __call__(self, argv, **kwargs):
        argv = list(argv)
        self.calls.append(argv)
        self.kwargs.append(kwargs)
        for matcher, rc, out, err in reversed(self.rules):
            if self._match(matcher, argv):
                if rc == 0:
                    self._track_mounts(argv)
                return subprocess.CompletedProcess(argv, rc, out, err)
        self._track_mounts(argv)
        return subprocess.CompletedProcess(argv, 0, "", "")

    def commands(self, name: str) -> List[List[str]]:
        return [c for c in self.calls if c and c[0] == name]

    def index_of(self, predicate: Callable[[List[str]], bool]) -> int:
        for i, c in enumerate(self.calls):
            if predicate(c):
                return i
        raise AssertionError("command not found")

    def table(self) -> List[str]:
        return list(self.mounted)


@pytest.fixture
def commands(monkeypatch) -> CommandRecorder:
    recorder = CommandRecorder()
    monkeypatch.setattr("chroot_imager.lib.command.subprocess.run", recorder)
    return recorder


@pytest.fixture
def host_resolv(tmp_path, monkeypatch) -> Path:
    """A host resolv.conf the chroot session can copy."""
    p = tmp_path / "host-resolv.conf"
    p.write_text("nameserver 192.0.2.53\n", encoding="utf-8")
    monkeypatch.setattr(chroot_mod, "HOST_RESOLV_CONF", str(p))
    return p


@pytest.fixture
def chroot_root(tmp_path) -> Path:
    root = tmp_path / "chroot"
    (root / "etc").mkdir(parents=True)
    return root


@pytest.fixture
def debian_target() -> BuildTarget:
    return BuildTarget(family=Family.DEBIAN, suite="bookworm", mirror_url=MIRRORS[Family.DEBIAN])


@pytest.fixture
def ubuntu_target() -> BuildTarget:
    return BuildTarget(family=Family.UBUNTU, suite="jammy", mirror_url=MIRRORS[Family.UBUNTU])


def canned_input(answers: Sequence[str]) -> Callable[[str], str]:
    it = iter(answers)

    def _input(prompt: str = "") -> str:
        return next(it)

    return _input


def chroot_cmd(root: Path, *inner: str) -> Callable[[List[str]], bool]:
    """Predicate matching ``chroot <root> <inner...>``."""

    def _pred(argv: List[str]) -> bool:
        return argv[:2] == ["chroot", str(root)] and argv[2 : 2 + len(inner)] == list(inner)

    return _pred


def find_call(calls: List[List[str]], prefix: Sequence[str]) -> Optional[List[str]]:
    for c in calls:
        if c[: len(prefix)] == list(prefix):
            return c
    return None
