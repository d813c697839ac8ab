from __future__ import annotations

import logging

from ..context import BuildContext
from ..lib.command import Policy
from ..lib.pkg import BASE_PACKAGES, GUI_PACKAGES, apt_install, apt_update, write_sources_list

logger = logging.getLogger(__name__)


class InstallBaseStep:
    step_id = "40_install_base"
    policy = Policy.MANDATORY

    def run(self, ctx: BuildContext) -> None:
        session = ctx.require_session()
        target = ctx.require_target()

        write_sources_list(session.root, target, dry_run=ctx.dry_run)

        logger.info("Preparing chroot (apt update, base utilities)")
        apt_update(session)
        apt_install(session, BASE_PACKAGES)

        session.run(["locale-gen", "en_US.UTF-8"], policy=Policy.BEST_EFFORT)
        session.run(["update-ca-certificates"], policy=Policy.BEST_EFFORT)

        logger.info("Installing package browser and GUI helpers")
        apt_install(session, GUI_PACKAGES)

        self._ensure_user(ctx)

    def _ensure_user(self, ctx: BuildContext) -> None:
        name = ctx.cfg.user_name
        if not name:
            return
        session = ctx.require_session()
        if session.probe(["id", "-u", name]):
            logger.info("User %s already exists in chroot", name)
            return
        session.run(["useradd", "-m", "-s", "/bin/bash", name])
        password = ctx.cfg.user_password
        if password is not None:
            session.run(["chpasswd"], input_text=f"{name}:{password}\n")
        logger.info("Created user %s in chroot", name)
