from __future__ import annotations

import contextlib
from dataclasses import dataclass, field
from typing import Optional

from .build_config import BuildConfig
from .cleanup import CleanupHandler
from .lib.chroot import ChrootSession
from .lib.desktop import DesktopSelection
from .lib.errors import BuildError
from .lib.image import DiskImage
from .lib.targets import BuildTarget
from .prompts import Prompter
from .report import BuildReport


@dataclass
class BuildContext:
    """Everything a build step reads or produces, passed explicitly.

    ``resources`` owns scoped teardown (the chroot session); ``cleanup`` only
    watches what is registered with it.
    """

    cfg: BuildConfig
    report: BuildReport = field(default_factory=BuildReport)
    prompter: Optional[Prompter] = None
    cleanup: Optional[CleanupHandler] = None
    dry_run: bool = False
    resources: contextlib.ExitStack = field(default_factory=contextlib.ExitStack)

    target: Optional[BuildTarget] = None
    chroot_dir: Optional[str] = None
    session: Optional[ChrootSession] = None
    desktop: Optional[DesktopSelection] = None
    image: Optional[DiskImage] = None

    @property
    def interactive(self) -> bool:
        return self.prompter is not None

    def require_session(self) -> ChrootSession:
        if self.session is None or not self.session.active:
            raise BuildError("Chroot session is not active; run the bootstrap step first")
        return self.session

    def require_target(self) -> BuildTarget:
        if self.target is None:
            raise BuildError("Build target not selected")
        return self.target
