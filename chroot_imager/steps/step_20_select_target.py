from __future__ import annotations

import logging

from ..context import BuildContext
from ..lib.command import Policy
from ..lib.errors import InvalidSelection
from ..lib.targets import Family, resolve_target, suites_for

logger = logging.getLogger(__name__)


class SelectTargetStep:
    step_id = "20_select_target"
    policy = Policy.MANDATORY

    def run(self, ctx: BuildContext) -> None:
        cfg = ctx.cfg
        family_name = cfg.family
        suite = cfg.suite

        if family_name is None:
            if not ctx.interactive:
                raise InvalidSelection("", [f.value for f in Family])
            assert ctx.prompter is not None
            family_name = ctx.prompter.choose(
                "Choose the distro family to bootstrap into the chroot:",
                [f.value for f in Family],
            )
        family = Family.parse(family_name)

        if suite is None and cfg.suite_override is None:
            if not ctx.interactive:
                raise InvalidSelection("", suites_for(family))
            assert ctx.prompter is not None
            suite = ctx.prompter.choose(f"Available suites for {family.value}:", suites_for(family))

        ctx.target = resolve_target(family, suite, suite_override=cfg.suite_override, arch=cfg.arch)
        ctx.report.target = ctx.target.describe()
        logger.info("Selected: %s", ctx.target.describe())
