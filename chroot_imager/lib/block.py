from __future__ import annotations

import logging

from .command import run_cmd
from .errors import ImageError

logger = logging.getLogger(__name__)

DRY_RUN_UUID = "00000000-0000-0000-0000-000000000000"


def get_uuid(dev: str, *, dry_run: bool = False) -> str:
    """Return filesystem UUID for a block device."""

    r = run_cmd(["blkid", "-s", "UUID", "-o", "value", dev], check=False, dry_run=dry_run)
    uuid = (r.stdout or "").strip()
    if dry_run:
        return uuid or DRY_RUN_UUID
    if not r.ok or not uuid:
        raise ImageError(f"Unable to determine UUID for {dev}")
    return uuid
