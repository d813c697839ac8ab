from __future__ import annotations

import logging

from ..context import BuildContext
from ..lib.command import Policy
from ..lib.errors import BuildError
from ..lib.image import DiskImage, ImageMaterializer

logger = logging.getLogger(__name__)


class MaterializeImageStep:
    step_id = "80_materialize_image"
    policy = Policy.MANDATORY

    def run(self, ctx: BuildContext) -> None:
        target = ctx.require_target()
        if ctx.chroot_dir is None:
            raise BuildError("No chroot directory to copy; run the bootstrap step first")

        path = ctx.cfg.default_image_path()
        size = ctx.cfg.default_image_size()
        if ctx.interactive:
            assert ctx.prompter is not None
            ctx.prompter.pause(
                f"Ready to create a raw disk image from the chroot (size default {size}). Press ENTER to continue."
            )
            if ctx.cfg.image_path is None:
                path = ctx.prompter.ask("Image file path", path)
            if ctx.cfg.image_size is None:
                size = ctx.prompter.ask("Image size (e.g. 4G)", size)

        try:
            image = DiskImage.from_config(path, size)
        except ValueError as e:
            raise BuildError(str(e)) from e
        ctx.image = image
        ctx.report.image_path = str(image.file_path)

        ImageMaterializer(
            image,
            source_root=ctx.chroot_dir,
            target=target,
            cleanup=ctx.cleanup,
            warn=ctx.report.warn,
            dry_run=ctx.dry_run,
        ).build()
