"""Exceptions raised by shelf operations."""

from pathlib import Path
from typing import Optional


class ShelfError(Exception):
    """Base class for shelf errors."""


class PackageNotFoundError(ShelfError, LookupError):
    """A package or version is missing from the store or project."""

    def __init__(self, name: str, version: str = "", path: Optional[Path] = None):
        self.name = name
        self.version = version
        self.path = path
        label = f"{name}@{version}" if version else name
        message = f"Could not find package `{label}` in store"
        if path is not None:
            message += f" ({path})"
        super().__init__(message)


class InvalidPackageSpecError(ShelfError, ValueError):
    """A package specifier such as ``name@version`` could not be parsed."""

    def __init__(self, spec: str):
        self.spec = spec
        super().__init__(f"Could not parse package name {spec!r}")


class ScriptError(ShelfError):
    """A package script exited with a non-zero status."""

    def __init__(self, script: str, cwd: Path, returncode: int):
        self.script = script
        self.cwd = cwd
        self.returncode = returncode
        super().__init__(
            f'Script "{script}" failed in {cwd} with exit code {returncode}'
        )
