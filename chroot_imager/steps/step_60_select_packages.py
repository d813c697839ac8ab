from __future__ import annotations

import logging
from typing import Optional

from ..context import BuildContext
from ..lib.chroot import ChrootSession
from ..lib.command import Policy
from ..lib.pkg import apt_install
from ..lib.xaccess import x_access_granted

logger = logging.getLogger(__name__)

BROWSER_PATHS = ["/usr/sbin/synaptic", "/usr/bin/synaptic", "/usr/sbin/synaptic-pkexec"]


def find_browser(session: ChrootSession) -> Optional[str]:
    for path in BROWSER_PATHS:
        if session.probe(["test", "-x", path]):
            return path
    return None


class SelectPackagesStep:
    """Let the operator pick extra packages in a graphical browser."""

    step_id = "60_select_packages"
    policy = Policy.BEST_EFFORT

    def run(self, ctx: BuildContext) -> None:
        if not ctx.cfg.package_browser:
            logger.info("Package browser disabled; skipping")
            return

        session = ctx.require_session()
        browser = find_browser(session)
        if browser is None:
            logger.warning("Package browser not found in chroot; installing it again")
            apt_install(session, ["synaptic"], policy=Policy.BEST_EFFORT)
            browser = find_browser(session)
        if browser is None:
            ctx.report.warn("Package browser not available in chroot; skipped interactive selection")
            return

        if ctx.interactive:
            assert ctx.prompter is not None
            ctx.prompter.pause("Press ENTER to start the package browser in the chroot (close it to continue) ...")

        with x_access_granted(warn=ctx.report.warn, dry_run=ctx.dry_run):
            logger.info("Launching %s in chroot", browser)
            session.run(["dbus-launch", browser], policy=Policy.BEST_EFFORT, gui=True, capture=False)

        logger.info("Package browser closed")
