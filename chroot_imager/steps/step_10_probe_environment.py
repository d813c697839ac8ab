from __future__ import annotations

import logging

from ..context import BuildContext
from ..lib.command import Policy
from ..lib.env import probe_environment

logger = logging.getLogger(__name__)


class ProbeEnvironmentStep:
    step_id = "10_probe_environment"
    policy = Policy.MANDATORY

    def run(self, ctx: BuildContext) -> None:
        probe_environment(
            install_deps=ctx.cfg.install_host_deps,
            need_display=ctx.cfg.package_browser,
            dry_run=ctx.dry_run,
        )
