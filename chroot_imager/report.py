from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_OK = "ok"
STATUS_WARNINGS = "completed_with_warnings"
STATUS_FAILED = "failed"
STATUS_INTERRUPTED = "interrupted"


@dataclass
class BuildWarning:
    step: Optional[str]
    message: str


@dataclass
class BuildReport:
    current_step: Optional[str] = None
    ran_steps: List[str] = field(default_factory=list)
    warnings: List[BuildWarning] = field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[str] = None
    status: str = STATUS_PENDING
    target: Optional[str] = None
    chroot_dir: Optional[str] = None
    image_path: Optional[str] = None
    log_path: Optional[str] = None

    def warn(self, message: str) -> None:
        self.warnings.append(BuildWarning(step=self.current_step, message=message))

    def fail(self, step_id: Optional[str], error: BaseException) -> None:
        self.failed_step = step_id
        self.error = str(error)
        self.status = STATUS_FAILED

    def finish(self) -> None:
        self.current_step = None
        self.status = STATUS_WARNINGS if self.warnings else STATUS_OK

    def summary(self) -> str:
        if self.status == STATUS_FAILED:
            return f"Build failed at step {self.failed_step}: {self.error}"
        if self.status == STATUS_INTERRUPTED:
            return f"Build interrupted during step {self.failed_step}"
        if self.warnings:
            lines = [f"Build completed with {len(self.warnings)} warning(s):"]
            lines += [f"  - [{w.step}] {w.message}" for w in self.warnings]
            return "\n".join(lines)
        return "Build completed"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def save_report(path: str, report: BuildReport) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(report.to_dict(), indent=2, sort_keys=True) + "\n", encoding="utf-8")
    logger.info("Build report written to %s", p)
