from __future__ import annotations

import logging

from ..context import BuildContext
from ..lib.command import Policy

logger = logging.getLogger(__name__)


class FinalizeStep:
    step_id = "90_finalize"
    policy = Policy.MANDATORY

    def run(self, ctx: BuildContext) -> None:
        if ctx.image is None:
            return
        logger.info("Image: %s (%d bytes)", ctx.image.file_path, ctx.image.size_bytes)
        if ctx.report.warnings:
            logger.info(
                "If the image does not boot, chroot into it on an EFI-capable host and re-run grub-install"
            )
        if ctx.desktop is not None and not ctx.desktop.skipped:
            logger.info("Desktop: %s", ctx.desktop.resolved_package)
