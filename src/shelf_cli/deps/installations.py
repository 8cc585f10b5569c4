"""Machine-wide registry of which projects use which stored package.

``installations.json`` in the store home maps a package name to the project
directories it was added to. ``shelf push`` reads it to find every project to
update. The registry is loaded fresh for each operation and persisted before
the operation returns; nothing is cached between invocations.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..config import get_installations_file
from ..utils.fs import atomic_write_text
from .lockfile import read_project_lockfile


def normalize_path(path) -> str:
    """Absolute, normalized form used to compare project directories."""
    return os.path.normcase(os.path.abspath(os.path.expanduser(str(path))))


@dataclass(frozen=True)
class PackageInstallation:
    """One project directory using one stored package."""

    name: str
    path: str


class InstallationRegistry:
    """File-backed mapping of package name -> project directories."""

    def __init__(self, path: Optional[Path] = None, data: Optional[Dict[str, List[str]]] = None):
        self.path = Path(path) if path is not None else Path(get_installations_file())
        self._data: Dict[str, List[str]] = data or {}

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "InstallationRegistry":
        """Load the registry; a missing or unreadable file yields an empty one."""
        registry = cls(path)
        try:
            raw = json.loads(registry.path.read_text(encoding="utf-8"))
        except (FileNotFoundError, json.JSONDecodeError, UnicodeDecodeError):
            return registry
        if isinstance(raw, dict):
            for name, paths in raw.items():
                if isinstance(paths, list):
                    for p in paths:
                        registry.record(str(name), str(p))
        return registry

    def save(self) -> None:
        """Persist the registry.

        Raises:
            OSError: If the registry file cannot be written.
        """
        data = {name: sorted(paths) for name, paths in sorted(self._data.items()) if paths}
        atomic_write_text(self.path, json.dumps(data, indent=2) + "\n")

    def record(self, name: str, working_dir) -> bool:
        """Add a project directory for a package.

        Returns:
            bool: False if the directory was already recorded.
        """
        if not name:
            return False
        normalized = normalize_path(working_dir)
        paths = self._data.setdefault(name, [])
        if normalized in paths:
            return False
        paths.append(normalized)
        return True

    def list(self, name: str) -> List[str]:
        """Project directories recorded for a package, in recording order."""
        return list(self._data.get(name, []))

    def names(self) -> List[str]:
        return sorted(name for name, paths in self._data.items() if paths)

    def remove(self, installations: Iterable[PackageInstallation]) -> List[PackageInstallation]:
        """Remove exact (name, path) matches; absent pairs are ignored.

        Returns:
            List[PackageInstallation]: The pairs that were actually removed.
        """
        removed = []
        for installation in installations:
            paths = self._data.get(installation.name)
            normalized = normalize_path(installation.path)
            if paths and normalized in paths:
                paths.remove(normalized)
                removed.append(installation)
                if not paths:
                    del self._data[installation.name]
        return removed

    def to_dict(self) -> Dict[str, List[str]]:
        return {name: list(paths) for name, paths in self._data.items() if paths}


def add_installations(
    installations: Iterable[PackageInstallation], registry_path: Optional[Path] = None
) -> InstallationRegistry:
    """Record installations and persist the registry."""
    registry = InstallationRegistry.load(registry_path)
    for installation in installations:
        registry.record(installation.name, installation.path)
    registry.save()
    return registry


def remove_installations(
    installations: Iterable[PackageInstallation], registry_path: Optional[Path] = None
) -> List[PackageInstallation]:
    """Remove installations and persist the registry."""
    registry = InstallationRegistry.load(registry_path)
    removed = registry.remove(installations)
    if removed:
        registry.save()
    return removed


def find_stale_installations(
    registry: InstallationRegistry, names: Optional[Iterable[str]] = None
) -> List[PackageInstallation]:
    """Find recorded installations that no longer hold.

    An installation is stale when its project directory is gone or the
    project's lock file no longer lists the package.
    """
    stale = []
    for name in (list(names) if names else registry.names()):
        for path in registry.list(name):
            project = Path(path)
            if not project.is_dir() or not read_project_lockfile(project).has_package(name):
                stale.append(PackageInstallation(name=name, path=path))
    return stale


def clean_installations(
    names: Optional[Iterable[str]] = None, registry_path: Optional[Path] = None
) -> List[PackageInstallation]:
    """Drop stale installations from the registry and persist it."""
    registry = InstallationRegistry.load(registry_path)
    stale = find_stale_installations(registry, names)
    registry.remove(stale)
    if stale:
        registry.save()
    return stale
