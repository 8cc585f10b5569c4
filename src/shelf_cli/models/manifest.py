"""Package manifest (package.json) model.

A manifest lives either in a project root or in a store entry. Only the fields
shelf works with are modelled; everything else is carried through untouched in
``raw`` so writing a manifest back never drops unknown keys.
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..constants import MANIFEST_FILE
from ..errors import InvalidPackageSpecError
from ..utils.fs import atomic_write_text

_SPEC_PATTERN = re.compile(r"^(@[^/@]+/)?([^@/]+)(?:@(.*))?$")
_INDENT_PATTERN = re.compile(r"^([ \t]+)\S", re.MULTILINE)


@dataclass(frozen=True)
class SingleBin:
    """``"bin": "cli.js"`` - one executable named after the package."""

    path: str

    def resolve(self, package_name: str) -> Dict[str, str]:
        # Scoped packages expose the bare name, as npm does
        return {package_name.split("/")[-1]: self.path}


@dataclass(frozen=True)
class BinMap:
    """``"bin": {"tool": "cli.js"}`` - explicit executable names."""

    entries: Dict[str, str]

    def resolve(self, package_name: str) -> Dict[str, str]:
        return dict(self.entries)


BinEntries = Union[SingleBin, BinMap]


def parse_bin(value: Any) -> Optional[BinEntries]:
    """Resolve the dynamic ``bin`` field into a tagged variant."""
    if isinstance(value, str) and value:
        return SingleBin(value)
    if isinstance(value, dict):
        entries = {str(k): str(v) for k, v in value.items() if v}
        return BinMap(entries) if entries else None
    return None


@dataclass(frozen=True)
class PackageSpec:
    """A requested package, ``name`` optionally pinned to ``version``."""

    name: str
    version: str = ""

    def __str__(self) -> str:
        return f"{self.name}@{self.version}" if self.version else self.name


def parse_package_spec(spec: str) -> PackageSpec:
    """Parse ``name``, ``name@1.2.3`` or ``@scope/name@1.2.3``.

    Raises:
        InvalidPackageSpecError: If no package name can be extracted.
    """
    match = _SPEC_PATTERN.match(spec.strip()) if spec else None
    if not match:
        raise InvalidPackageSpecError(spec)
    scope, name, version = match.groups()
    return PackageSpec(name=(scope or "") + name, version=version or "")


@dataclass
class PackageManifest:
    """A package descriptor read from ``package.json``."""

    name: str
    version: str = ""
    dependencies: Dict[str, str] = field(default_factory=dict)
    dev_dependencies: Dict[str, str] = field(default_factory=dict)
    scripts: Dict[str, str] = field(default_factory=dict)
    bin: Optional[BinEntries] = None
    workspaces: bool = False
    private: bool = False
    files: Optional[List[str]] = None
    main: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)
    indent: str = field(default="  ", repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], indent: str = "  ") -> "PackageManifest":
        """Create a manifest from parsed ``package.json`` data."""
        files = data.get("files")
        return cls(
            name=str(data.get("name") or ""),
            version=str(data.get("version") or ""),
            dependencies=dict(data.get("dependencies") or {}),
            dev_dependencies=dict(data.get("devDependencies") or {}),
            scripts=dict(data.get("scripts") or {}),
            bin=parse_bin(data.get("bin")),
            workspaces=bool(data.get("workspaces")),
            private=bool(data.get("private", False)),
            files=[str(f) for f in files] if isinstance(files, list) else None,
            main=data.get("main") if isinstance(data.get("main"), str) else None,
            raw=dict(data),
            indent=indent,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to ``package.json`` data.

        Dependency fields that became empty are dropped rather than written
        as empty mappings. Key order of the original document is kept.
        """
        data = dict(self.raw)
        data["name"] = self.name
        if self.version or "version" in data:
            data["version"] = self.version
        for key, value in (
            ("dependencies", self.dependencies),
            ("devDependencies", self.dev_dependencies),
        ):
            if value:
                data[key] = dict(value)
            else:
                data.pop(key, None)
        return data

    def bin_entries(self) -> Dict[str, str]:
        """Executable name -> relative path, empty when none declared."""
        if self.bin is None:
            return {}
        return self.bin.resolve(self.name)

    def has_script(self, name: str) -> bool:
        return bool(self.scripts.get(name))

    @property
    def display_name(self) -> str:
        return f"{self.name}@{self.version}" if self.version else self.name


def get_manifest_path(package_dir: Path) -> Path:
    return Path(package_dir) / MANIFEST_FILE


def read_manifest(package_dir: Path) -> Optional[PackageManifest]:
    """Read ``package.json`` from a directory.

    Returns:
        Optional[PackageManifest]: ``None`` if the file is missing or is not
        valid JSON.
    """
    path = get_manifest_path(package_dir)
    try:
        text = path.read_text(encoding="utf-8")
    except (FileNotFoundError, NotADirectoryError):
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    indent_match = _INDENT_PATTERN.search(text)
    indent = indent_match.group(1) if indent_match else "  "
    return PackageManifest.from_dict(data, indent=indent)


def write_manifest(package_dir: Path, manifest: PackageManifest) -> None:
    """Write ``package.json`` keeping the original indentation.

    Raises:
        OSError: If the file cannot be written.
    """
    content = json.dumps(manifest.to_dict(), indent=manifest.indent, ensure_ascii=False)
    atomic_write_text(get_manifest_path(package_dir), content + "\n")


def find_package(working_dir: Path) -> Optional[Path]:
    """Find the nearest directory at or above ``working_dir`` with a manifest."""
    current = Path(working_dir).resolve()
    for candidate in (current, *current.parents):
        if get_manifest_path(candidate).is_file():
            return candidate
    return None
