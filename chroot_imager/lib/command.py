from __future__ import annotations

import enum
import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Sequence

from .errors import CommandError

logger = logging.getLogger(__name__)


class Policy(str, enum.Enum):
    """Whether a non-zero exit aborts the build or is only reported."""

    MANDATORY = "mandatory"
    BEST_EFFORT = "best_effort"


WarnFn = Callable[[str], None]


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    inherit_env: bool = True,
    cwd: str | None = None,
    input_text: str | None = None,
    capture: bool = True,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command.
    - capture=False lets the child talk to the terminal (long installs, GUIs).
    - inherit_env=False runs with exactly ``env`` instead of os.environ + env.
    - dry_run logs but does not execute.

    No timeout is applied: bootstrap, installs and copies may block for hours.
    """

    argv_list = list(argv)
    logger.info("CMD %s", fmt_argv(argv_list))

    if dry_run:
        return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

    full_env = dict(os.environ, **(env or {})) if inherit_env else dict(env or {})

    try:
        p = subprocess.run(
            argv_list,
            input=input_text,
            text=True,
            stdout=subprocess.PIPE if capture else None,
            stderr=subprocess.PIPE if capture else None,
            cwd=cwd,
            env=full_env,
        )
    except FileNotFoundError as e:
        if check:
            raise CommandError(argv_list, 127, str(e)) from e
        return CmdResult(argv=argv_list, returncode=127, stdout="", stderr=str(e))

    stdout = p.stdout or ""
    stderr = p.stderr or ""
    if stdout:
        logger.debug("STDOUT %s", stdout.strip())
    if stderr:
        logger.debug("STDERR %s", stderr.strip())

    if check and p.returncode != 0:
        raise CommandError(argv_list, p.returncode, stderr)

    return CmdResult(argv=argv_list, returncode=p.returncode, stdout=stdout, stderr=stderr)


def run_with_policy(
    argv: Sequence[str],
    *,
    policy: Policy,
    warn: Optional[WarnFn] = None,
    **kwargs,
) -> CmdResult:
    """Run a command and apply the step policy to a non-zero exit.

    Mandatory commands raise CommandError. Best-effort commands log a warning,
    forward it to ``warn`` and return the failed result.
    """

    result = run_cmd(argv, check=False, **kwargs)
    if result.ok:
        return result

    err = CommandError(result.argv, result.returncode, result.stderr)
    if policy is Policy.MANDATORY:
        raise err

    logger.warning("Best-effort command failed: %s", err)
    if warn is not None:
        warn(f"{fmt_argv(result.argv)} exited with {result.returncode}")
    return result
