from __future__ import annotations

import logging

from ..context import BuildContext
from ..lib.command import Policy

logger = logging.getLogger(__name__)


class ReleaseChrootStep:
    step_id = "75_release_chroot"
    policy = Policy.MANDATORY

    def run(self, ctx: BuildContext) -> None:
        if ctx.session is not None:
            ctx.session.end()
