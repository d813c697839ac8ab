from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .lib.env import PATHS
from .lib.targets import DEFAULT_ARCH


@dataclass(frozen=True)
class BuildConfig:
    raw: Dict[str, Any] = field(default_factory=dict)

    def _image(self) -> Dict[str, Any]:
        return self.raw.get("image") or {}

    def _user(self) -> Dict[str, Any]:
        return self.raw.get("user") or {}

    @property
    def target_dir(self) -> Optional[str]:
        return self.raw.get("target_dir")

    @property
    def arch(self) -> str:
        return str(self.raw.get("arch") or DEFAULT_ARCH)

    @property
    def family(self) -> Optional[str]:
        return self.raw.get("family")

    @property
    def suite(self) -> Optional[str]:
        return self.raw.get("suite")

    @property
    def suite_override(self) -> Optional[str]:
        value = self.raw.get("suite_override")
        return None if value is None else str(value)

    @property
    def desktop(self) -> Optional[str]:
        return self.raw.get("desktop")

    @property
    def image_path(self) -> Optional[str]:
        return self._image().get("path")

    @property
    def image_size(self) -> Optional[str]:
        value = self._image().get("size")
        return None if value is None else str(value)

    @property
    def package_browser(self) -> bool:
        return bool(self.raw.get("package_browser", True))

    @property
    def install_host_deps(self) -> bool:
        return bool(self.raw.get("install_host_deps", True))

    @property
    def interactive(self) -> bool:
        return bool(self.raw.get("interactive", True))

    @property
    def user_name(self) -> Optional[str]:
        name = self._user().get("name", "user")
        return str(name) if name else None

    @property
    def user_password(self) -> Optional[str]:
        value = self._user().get("password")
        return None if value is None else str(value)

    def default_target_dir(self) -> str:
        return self.target_dir or str(Path.cwd() / PATHS.target_dir)

    def default_image_path(self) -> str:
        return self.image_path or str(Path.cwd() / PATHS.image_path)

    def default_image_size(self) -> str:
        return self.image_size or PATHS.image_size

    def with_overrides(self, overrides: Dict[str, Any]) -> "BuildConfig":
        """Return a copy with non-None ``overrides`` applied; dotted keys nest."""

        raw = copy.deepcopy(self.raw)
        for key, value in overrides.items():
            if value is None:
                continue
            node = raw
            *parents, leaf = key.split(".")
            for part in parents:
                node = node.setdefault(part, {})
            node[leaf] = value
        return BuildConfig(raw=raw)


def load_build_config(path: Optional[str]) -> BuildConfig:
    if path is None:
        return BuildConfig(raw={})

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("build config must be YAML")

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a mapping/object")

    return BuildConfig(raw=raw)
