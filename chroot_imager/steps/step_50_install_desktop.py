from __future__ import annotations

import logging
from functools import partial

from ..context import BuildContext
from ..lib.command import Policy
from ..lib.desktop import NO_DESKTOP, desktop_choices, resolve_selection, selection_for
from ..lib.errors import InvalidSelection
from ..lib.pkg import apt_has_package, apt_install

logger = logging.getLogger(__name__)


class InstallDesktopStep:
    step_id = "50_install_desktop"
    policy = Policy.MANDATORY

    def run(self, ctx: BuildContext) -> None:
        session = ctx.require_session()

        choice = ctx.cfg.desktop
        if choice is None:
            if ctx.interactive:
                assert ctx.prompter is not None
                choice = ctx.prompter.choose(
                    "Select a desktop environment to install into the chroot (installation may be large):",
                    desktop_choices(),
                    allow_quit=False,
                )
            else:
                choice = NO_DESKTOP

        try:
            selection = selection_for(choice)
        except KeyError:
            raise InvalidSelection(choice, desktop_choices()) from None
        ctx.desktop = selection

        if not selection.candidate_packages:
            logger.info("Skipping desktop installation; packages can be added from the package browser")
            return

        resolve_selection(selection, partial(apt_has_package, session))
        if selection.skipped:
            msg = (
                f"No {selection.choice} desktop package available "
                f"(tried {', '.join(selection.candidate_packages)}); skipped"
            )
            logger.warning(msg)
            ctx.report.warn(msg)
            return

        logger.info("Installing %s (this may take a while)", selection.resolved_package)
        apt_install(session, [selection.resolved_package], with_recommends=True)
