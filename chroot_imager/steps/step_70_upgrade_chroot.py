from __future__ import annotations

import logging

from ..context import BuildContext
from ..lib.command import Policy
from ..lib.pkg import apt_maintenance

logger = logging.getLogger(__name__)


class UpgradeChrootStep:
    step_id = "70_upgrade_chroot"
    policy = Policy.BEST_EFFORT

    def run(self, ctx: BuildContext) -> None:
        logger.info("Updating and upgrading packages inside chroot")
        apt_maintenance(ctx.require_session())
