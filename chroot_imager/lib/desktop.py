from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

NO_DESKTOP = "None"

# Metapackage candidates in priority order; Debian task names first, then
# Ubuntu flavours, then plain upstream metapackages.
DESKTOP_CANDIDATES: Dict[str, List[str]] = {
    "GNOME": ["task-gnome-desktop", "ubuntu-desktop"],
    "KDE": ["task-kde-desktop", "kde-standard", "kubuntu-desktop"],
    "XFCE": ["task-xfce-desktop", "xubuntu-desktop", "xfce4"],
    "LXDE": ["task-lxde-desktop", "lubuntu-desktop", "lxde"],
    "MATE": ["task-mate-desktop", "ubuntu-mate-desktop", "mate-desktop-environment"],
    "Cinnamon": ["cinnamon", "cinnamon-desktop-environment"],
    NO_DESKTOP: [],
}


@dataclass
class DesktopSelection:
    choice: str
    candidate_packages: List[str] = field(default_factory=list)
    resolved_package: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.resolved_package is None


def desktop_choices() -> List[str]:
    return list(DESKTOP_CANDIDATES)


def selection_for(choice: str) -> DesktopSelection:
    for name, pkgs in DESKTOP_CANDIDATES.items():
        if name.lower() == choice.strip().lower():
            return DesktopSelection(choice=name, candidate_packages=list(pkgs))
    raise KeyError(choice)


def resolve_first_available(
    candidates: Sequence[str],
    is_available: Callable[[str], bool],
) -> Optional[str]:
    """Return the first candidate ``is_available`` accepts, probing in order."""

    for pkg in candidates:
        if is_available(pkg):
            logger.info("Desktop package %s is available", pkg)
            return pkg
        logger.info("Desktop package %s is not available", pkg)
    return None


def resolve_selection(selection: DesktopSelection, is_available: Callable[[str], bool]) -> DesktopSelection:
    selection.resolved_package = resolve_first_available(selection.candidate_packages, is_available)
    return selection
