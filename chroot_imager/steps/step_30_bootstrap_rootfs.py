from __future__ import annotations

import logging

from ..context import BuildContext
from ..lib.chroot import ChrootSession
from ..lib.command import Policy
from ..lib.pkg import debootstrap_rootfs

logger = logging.getLogger(__name__)


class BootstrapRootfsStep:
    """Bootstrap the tree, then open the chroot session used by steps 40-70."""

    step_id = "30_bootstrap_rootfs"
    policy = Policy.MANDATORY

    def run(self, ctx: BuildContext) -> None:
        target = ctx.require_target()

        chroot_dir = ctx.cfg.default_target_dir()
        if ctx.interactive and ctx.cfg.target_dir is None:
            assert ctx.prompter is not None
            chroot_dir = ctx.prompter.ask("Chroot target directory", chroot_dir)

        root = debootstrap_rootfs(target, chroot_dir, dry_run=ctx.dry_run)
        ctx.chroot_dir = str(root)
        ctx.report.chroot_dir = str(root)

        session = ChrootSession(root, warn=ctx.report.warn, dry_run=ctx.dry_run)
        if ctx.cleanup is not None:
            ctx.cleanup.watch_session(session)
        ctx.session = ctx.resources.enter_context(session)
