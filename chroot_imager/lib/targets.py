from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .errors import InvalidSelection

logger = logging.getLogger(__name__)


class Family(str, enum.Enum):
    DEBIAN = "Debian"
    UBUNTU = "Ubuntu"

    @classmethod
    def parse(cls, value: str) -> "Family":
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        raise InvalidSelection(str(value), [m.value for m in cls])


# Known-good suites, newest first.
SUITES: Dict[Family, List[str]] = {
    Family.DEBIAN: ["bookworm", "bullseye", "buster"],
    Family.UBUNTU: ["noble", "jammy", "focal"],
}

MIRRORS: Dict[Family, str] = {
    Family.DEBIAN: "http://deb.debian.org/debian",
    Family.UBUNTU: "http://archive.ubuntu.com/ubuntu",
}

COMPONENTS: Dict[Family, str] = {
    Family.DEBIAN: "main contrib non-free",
    Family.UBUNTU: "main restricted universe multiverse",
}

DEFAULT_ARCH = "amd64"


@dataclass(frozen=True)
class BuildTarget:
    family: Family
    suite: str
    mirror_url: str
    architecture: str = DEFAULT_ARCH

    def describe(self) -> str:
        return f"{self.family.value} {self.suite} ({self.architecture}) from {self.mirror_url}"


def suites_for(family: Family) -> List[str]:
    return list(SUITES[family])


def resolve_target(
    family: Family | str,
    suite: Optional[str] = None,
    *,
    suite_override: Optional[str] = None,
    arch: str = DEFAULT_ARCH,
) -> BuildTarget:
    """Validate a (family, suite) pair and derive the mirror.

    ``suite_override`` skips the allow-list entirely; it is only checked for
    being non-empty. Operators use it for suites the list does not know yet.
    """

    fam = family if isinstance(family, Family) else Family.parse(family)

    if suite_override is not None:
        chosen = suite_override.strip()
        if not chosen:
            raise InvalidSelection(suite_override, ["<non-empty suite name>"])
        logger.warning("Using unvalidated suite override %r for %s", chosen, fam.value)
    else:
        allowed = SUITES[fam]
        if suite is None or suite.strip() not in allowed:
            raise InvalidSelection(str(suite), allowed)
        chosen = suite.strip()

    return BuildTarget(family=fam, suite=chosen, mirror_url=MIRRORS[fam], architecture=arch)


def render_sources_list(target: BuildTarget) -> str:
    components = COMPONENTS[target.family]
    return (
        f"deb {target.mirror_url} {target.suite} {components}\n"
        f"deb-src {target.mirror_url} {target.suite} {components}\n"
    )
