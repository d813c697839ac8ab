from __future__ import annotations

import contextlib
import logging
from typing import Iterator, Optional

from .command import WarnFn, run_cmd

logger = logging.getLogger(__name__)

LOCAL_ROOT = "SI:localuser:root"


@contextlib.contextmanager
def x_access_granted(*, warn: Optional[WarnFn] = None, dry_run: bool = False) -> Iterator[bool]:
    """Grant local root access to the X server for the duration of the block.

    Yields whether the grant succeeded. The revoke runs on every exit path,
    including a failed grant and an exception raised inside the block.
    """

    r = run_cmd(["xhost", f"+{LOCAL_ROOT}"], check=False, dry_run=dry_run)
    if not r.ok:
        logger.warning("Could not grant X access (xhost exit %s); GUI may fail to start", r.returncode)
        if warn is not None:
            warn("xhost grant failed; run 'xhost +SI:localuser:root' in the host session")
    try:
        yield r.ok
    finally:
        revoke = run_cmd(["xhost", f"-{LOCAL_ROOT}"], check=False, dry_run=dry_run)
        if not revoke.ok:
            logger.warning("Could not revoke X access (xhost exit %s)", revoke.returncode)
