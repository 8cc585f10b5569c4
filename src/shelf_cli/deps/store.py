"""Versioned local package store.

Layout::

    <store home>/packages/<name>/<version>/   packaged files + shelf.sig

At most one entry exists per (name, version); publishing the same version
again overwrites it. Add and update flows only ever read from the store.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..config import get_store_packages_dir
from ..errors import PackageNotFoundError
from ..models.manifest import PackageManifest, read_manifest, write_manifest
from ..utils.fs import copy_files
from ..utils.packlist import list_package_files
from .signature import compute_signature, read_signature, write_signature


@dataclass
class CopyResult:
    """Outcome of copying a package into the store."""

    copied: bool
    signature: str
    path: Path
    files: List[str] = field(default_factory=list)


class PackageStore:
    """Read and write access to the store directory."""

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root) if root is not None else Path(get_store_packages_dir())

    def package_dir(self, name: str, version: Optional[str] = None) -> Path:
        path = self.root.joinpath(*name.split("/"))
        return path / version if version else path

    def has_package(self, name: str) -> bool:
        return self.package_dir(name).is_dir()

    def versions(self, name: str) -> List[str]:
        """List stored versions of a package, in directory-name order."""
        base = self.package_dir(name)
        if not base.is_dir():
            return []
        return sorted(
            entry.name
            for entry in base.iterdir()
            if entry.is_dir() and not entry.name.startswith(".")
        )

    def resolve_version(self, name: str, requested: str = "") -> str:
        """Pick the version to install.

        A requested version is returned as-is when it is stored. Otherwise the
        most recently created entry wins, ties broken by the greater version
        directory name.

        Raises:
            PackageNotFoundError: If the package or the requested version is
                not in the store.
        """
        if requested:
            if not self.package_dir(name, requested).is_dir():
                raise PackageNotFoundError(name, requested, self.package_dir(name, requested))
            return requested

        base = self.package_dir(name)
        candidates = [
            (os.stat(base / version).st_ctime_ns, version) for version in self.versions(name)
        ]
        if not candidates:
            raise PackageNotFoundError(name, path=base)
        return max(candidates)[1]

    def read(self, name: str, version: str) -> PackageManifest:
        """Read the manifest snapshot of a store entry.

        Raises:
            PackageNotFoundError: If the entry or its manifest is missing.
        """
        entry_dir = self.package_dir(name, version)
        manifest = read_manifest(entry_dir) if entry_dir.is_dir() else None
        if manifest is None:
            raise PackageNotFoundError(name, version, entry_dir)
        return manifest

    def signature(self, name: str, version: str) -> str:
        return read_signature(self.package_dir(name, version))

    def copy_package(
        self,
        manifest: PackageManifest,
        working_dir: Path,
        changed_only: bool = False,
        stamp_signature: bool = False,
    ) -> CopyResult:
        """Copy a package's packaged files into the store.

        Args:
            manifest: Manifest of the package being published
            working_dir: Package root directory
            changed_only: Leave the entry untouched when its signature matches
            stamp_signature: Write ``version+<sig>`` into the stored manifest

        Returns:
            CopyResult: ``copied`` is False only for an unchanged package in
            ``changed_only`` mode.
        """
        working_dir = Path(working_dir)
        files = list_package_files(working_dir, manifest)
        signature = compute_signature(working_dir, files)
        dest = self.package_dir(manifest.name, manifest.version)

        if changed_only and read_signature(dest) == signature:
            return CopyResult(copied=False, signature=signature, path=dest, files=files)

        copy_files(working_dir, files, dest)
        if stamp_signature:
            stored = read_manifest(dest)
            if stored is not None:
                stored.version = f"{manifest.version}+{signature[:8]}"
                write_manifest(dest, stored)
        write_signature(dest, signature)
        return CopyResult(copied=True, signature=signature, path=dest, files=files)
