"""Lock file support for shelf installs.

``shelf.lock`` records, per consumer project, how every shelf package was
installed so ``update``, ``push`` and ``remove`` can replay or undo it.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from ..constants import LOCKFILE_NAME
from ..utils.console import _rich_warning
from ..utils.fs import atomic_write_text, remove_path


@dataclass
class LockEntry:
    """How one package was installed into a project.

    ``file`` and ``link`` are mutually exclusive and both stay False for a
    ``pure`` install. An entry with none of the three flags set is a
    ``shelf link`` install: symlinked into node_modules, manifest untouched.
    """

    name: str
    version: str = ""
    replaced: str = ""
    pure: bool = False
    file: bool = False
    link: bool = False
    signature: str = ""

    def __post_init__(self):
        if self.pure:
            self.file = False
            self.link = False
        elif self.file and self.link:
            raise ValueError(f"Lock entry for {self.name} cannot be both file and link")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict for YAML output, omitting unset fields."""
        result: Dict[str, Any] = {}
        if self.version:
            result["version"] = self.version
        if self.signature:
            result["signature"] = self.signature
        if self.file:
            result["file"] = True
        if self.link:
            result["link"] = True
        if self.pure:
            result["pure"] = True
        if self.replaced:
            result["replaced"] = self.replaced
        return result

    @classmethod
    def from_dict(cls, name: str, data: Optional[Dict[str, Any]]) -> "LockEntry":
        """Deserialize from dict."""
        data = data or {}
        return cls(
            name=name,
            version=str(data.get("version") or ""),
            replaced=str(data.get("replaced") or ""),
            pure=bool(data.get("pure", False)),
            file=bool(data.get("file", False)),
            link=bool(data.get("link", False)),
            signature=str(data.get("signature") or ""),
        )


@dataclass
class LockFile:
    """Per-project table of shelf installs, keyed by package name."""

    lockfile_version: str = "1"
    packages: Dict[str, LockEntry] = field(default_factory=dict)

    def get(self, name: str) -> Optional[LockEntry]:
        """Get the entry for a package, if recorded."""
        return self.packages.get(name)

    def has_package(self, name: str) -> bool:
        return name in self.packages

    def upsert(self, entries: Iterable[LockEntry]) -> None:
        """Replace each named entry wholesale; other entries are kept."""
        for entry in entries:
            self.packages[entry.name] = entry

    def remove(self, names: Iterable[str]) -> List[str]:
        """Drop entries by name, returning the names that were present."""
        removed = []
        for name in names:
            if self.packages.pop(name, None) is not None:
                removed.append(name)
        return removed

    def names(self) -> List[str]:
        return sorted(self.packages)

    def to_yaml(self) -> str:
        """Serialize to YAML string, packages sorted by name."""
        data: Dict[str, Any] = {
            "lockfile_version": self.lockfile_version,
            "packages": {name: self.packages[name].to_dict() for name in self.names()},
        }
        return yaml.safe_dump(
            data, default_flow_style=False, sort_keys=False, allow_unicode=True
        )

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "LockFile":
        """Deserialize from YAML string."""
        data = yaml.safe_load(yaml_str)
        if not data or not isinstance(data, dict):
            return cls()
        lock = cls(lockfile_version=str(data.get("lockfile_version", "1")))
        packages = data.get("packages") or {}
        if not isinstance(packages, dict):
            return lock
        for name, entry_data in packages.items():
            if not (isinstance(entry_data, dict) or entry_data is None):
                continue
            # An invalid entry is dropped alone, the rest of the table is kept
            try:
                lock.packages[str(name)] = LockEntry.from_dict(str(name), entry_data)
            except ValueError as e:
                _rich_warning(f"Ignoring invalid {LOCKFILE_NAME} entry: {e}")
        return lock

    def write(self, path: Path) -> None:
        """Write lock file to disk."""
        atomic_write_text(Path(path), self.to_yaml())

    @classmethod
    def read(cls, path: Path) -> Optional["LockFile"]:
        """Read lock file from disk. Returns None if not exists or corrupt."""
        path = Path(path)
        if not path.exists():
            return None
        try:
            return cls.from_yaml(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, ValueError, UnicodeDecodeError):
            return None

    @classmethod
    def load_or_create(cls, path: Path) -> "LockFile":
        """Load existing lock file or create a new one."""
        return cls.read(path) or cls()


def get_lockfile_path(project_root: Path) -> Path:
    """Get the path to the lock file for a project."""
    return Path(project_root) / LOCKFILE_NAME


def read_project_lockfile(project_root: Path) -> LockFile:
    """Load a project's lock file, treating a missing or corrupt file as empty."""
    return LockFile.load_or_create(get_lockfile_path(project_root))


def add_packages_to_lockfile(entries: List[LockEntry], project_root: Path) -> LockFile:
    """Upsert entries into a project's lock file and persist it."""
    lock = read_project_lockfile(project_root)
    lock.upsert(entries)
    lock.write(get_lockfile_path(project_root))
    return lock


def remove_packages_from_lockfile(names: Iterable[str], project_root: Path) -> LockFile:
    """Remove entries from a project's lock file.

    The file is deleted once no entries remain.
    """
    path = get_lockfile_path(project_root)
    lock = read_project_lockfile(project_root)
    lock.remove(names)
    if lock.packages:
        lock.write(path)
    else:
        remove_path(path)
    return lock
