from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, Optional

import yaml

from .build_config import BuildConfig, load_build_config
from .cleanup import CleanupHandler
from .context import BuildContext
from .lib.env import PATHS
from .lib.errors import BuildInterrupted, PreconditionError, StepFailed
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import run_pipeline
from .prompts import Prompter
from .report import STATUS_INTERRUPTED, BuildReport, save_report
from .steps import (
    BootstrapRootfsStep,
    FinalizeStep,
    InstallBaseStep,
    InstallDesktopStep,
    MaterializeImageStep,
    ProbeEnvironmentStep,
    ReleaseChrootStep,
    SelectPackagesStep,
    SelectTargetStep,
    UpgradeChrootStep,
)

logger = logging.getLogger(__name__)

DEFAULT_REPORT_PATH = PATHS.report_default

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_PRECONDITION = 2


def build_steps():
    return [
        ProbeEnvironmentStep(),
        SelectTargetStep(),
        BootstrapRootfsStep(),
        InstallBaseStep(),
        InstallDesktopStep(),
        SelectPackagesStep(),
        UpgradeChrootStep(),
        ReleaseChrootStep(),
        MaterializeImageStep(),
        FinalizeStep(),
    ]


def run(
    *,
    cfg: BuildConfig,
    prompter: Optional[Prompter] = None,
    report_path: Optional[str] = DEFAULT_REPORT_PATH,
    dry_run: bool = False,
    cleanup: Optional[CleanupHandler] = None,
    steps=None,
    log_path: Optional[str] = None,
) -> BuildReport:
    """Run one build. Raises StepFailed or BuildInterrupted on failure."""

    report = BuildReport(log_path=log_path)
    if cleanup is None:
        cleanup = CleanupHandler(dry_run=dry_run)
        cleanup.register()

    ctx = BuildContext(cfg=cfg, report=report, prompter=prompter, cleanup=cleanup, dry_run=dry_run)

    try:
        with ctx.resources:
            result = run_pipeline(ctx, steps if steps is not None else build_steps())
        logger.info("Ran %d step(s), %d warning(s)", len(result.ran_steps), result.warnings)
        report.finish()
        return report
    except StepFailed as e:
        report.fail(e.step_id, e.cause)
        raise
    except BuildInterrupted:
        report.failed_step = report.current_step
        report.status = STATUS_INTERRUPTED
        raise
    finally:
        cleanup.run()
        if report_path:
            try:
                save_report(report_path, report)
            except OSError as e:
                logger.warning("Could not write build report %s: %s", report_path, e)


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "target_dir": args.target_dir,
        "image.path": args.image,
        "image.size": args.size,
        "family": args.family,
        "suite": args.suite,
        "suite_override": args.suite_override,
        "desktop": args.desktop,
        "arch": args.arch,
        "package_browser": False if args.no_package_browser else None,
        "install_host_deps": False if args.skip_host_deps else None,
        "interactive": False if args.non_interactive else None,
    }


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(
        prog="chroot-imager",
        description="Bootstrap a Debian/Ubuntu chroot and turn it into a bootable EFI disk image.",
    )
    p.add_argument("--config", default=None, help="YAML build configuration")
    p.add_argument("--target-dir", default=None, help="Chroot directory (destroyed and recreated)")
    p.add_argument("--image", default=None, help="Output raw image path (overwritten)")
    p.add_argument("--size", default=None, help="Image size, e.g. 4G")
    p.add_argument("--family", default=None, help="Debian|Ubuntu")
    p.add_argument("--suite", default=None, help="Suite from the known-good list")
    p.add_argument("--suite-override", default=None, help="Any suite name, not validated")
    p.add_argument("--desktop", default=None, help="GNOME|KDE|XFCE|LXDE|MATE|Cinnamon|None")
    p.add_argument("--arch", default=None, help="Target architecture (default amd64)")
    p.add_argument("--no-package-browser", action="store_true", help="Skip the graphical package selection")
    p.add_argument("--skip-host-deps", action="store_true", help="Do not install host packages")
    p.add_argument("--non-interactive", action="store_true", help="Never prompt; use config and defaults")
    p.add_argument("--dry-run", action="store_true", help="Log commands without running them")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to build log")
    p.add_argument("--report", default=DEFAULT_REPORT_PATH, help="Path to JSON build report")

    args = p.parse_args(argv)

    log_path = configure_logging(log_path=args.log)

    try:
        cfg = load_build_config(args.config).with_overrides(_overrides(args))
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error("Build failed before start: cannot load config %s: %s", args.config, e)
        return EXIT_FAILED

    prompter = Prompter() if cfg.interactive and sys.stdin.isatty() else None

    try:
        report = run(
            cfg=cfg,
            prompter=prompter,
            report_path=args.report,
            dry_run=bool(args.dry_run),
            log_path=log_path,
        )
    except StepFailed as e:
        logger.error("Build failed at step %s: %s", e.step_id, e.cause)
        if isinstance(e.cause, PreconditionError):
            return EXIT_PRECONDITION
        return EXIT_FAILED
    except BuildInterrupted as e:
        logger.error("Build interrupted by signal %s; mounts were released", e.signum)
        return 128 + e.signum

    logger.info(report.summary())
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
