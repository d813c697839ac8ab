"""Exception hierarchy for image builds.

    BuildError
        PreconditionError
        InvalidSelection
        BuildAborted
        CommandError
        ImageError
            LoopDeviceError
            FormatError
        StepFailed

BuildInterrupted derives from BaseException so best-effort handlers that catch
BuildError/OSError never swallow an operator interrupt.
"""

from __future__ import annotations

import shlex
from typing import Sequence


class BuildError(Exception):
    """Base exception for all build failures."""


class PreconditionError(BuildError):
    """Host is not fit to run a build (privileges, tools, display)."""


class InvalidSelection(BuildError, ValueError):
    """Operator input outside an enumerated set of options."""

    def __init__(self, answer: str, options: Sequence[str]):
        self.answer = answer
        self.options = list(options)
        super().__init__(f"Invalid selection {answer!r}; expected one of: {', '.join(self.options)}")


class BuildAborted(BuildError):
    """Operator chose to quit."""


class CommandError(BuildError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = ""):
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        msg = f"Command failed ({returncode}): {' '.join(shlex.quote(a) for a in self.argv)}"
        if stderr.strip():
            msg += f"\n{stderr.strip()}"
        super().__init__(msg)


class ImageError(BuildError):
    """Disk image materialization failed."""


class LoopDeviceError(ImageError):
    pass


class FormatError(ImageError):
    pass


class StepFailed(BuildError):
    """A mandatory pipeline step failed."""

    def __init__(self, step_id: str, cause: BaseException):
        self.step_id = step_id
        self.cause = cause
        super().__init__(f"{step_id}: {cause}")


class BuildInterrupted(BaseException):
    """Raised from a signal handler so scoped resources unwind."""

    def __init__(self, signum: int):
        self.signum = signum
        super().__init__(f"Interrupted by signal {signum}")
