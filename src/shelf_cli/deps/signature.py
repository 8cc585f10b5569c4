"""Content signatures for package directories."""

import hashlib
from pathlib import Path
from typing import Iterable

from ..constants import SIGNATURE_FILE


def compute_signature(package_dir: Path, files: Iterable[str]) -> str:
    """Hash the given files of a package directory.

    The hash covers each file's relative path and bytes, in sorted path order,
    so renames, edits, additions and removals all change the signature.

    Args:
        package_dir: Directory the relative paths are rooted at
        files: POSIX-style relative file paths

    Returns:
        str: Hexadecimal sha256 digest
    """
    package_dir = Path(package_dir)
    hasher = hashlib.sha256()
    for rel in sorted(files):
        hasher.update(rel.encode("utf-8"))
        hasher.update(b"\0")
        hasher.update(hashlib.sha256((package_dir / rel).read_bytes()).digest())
    return hasher.hexdigest()


def read_signature(package_dir: Path) -> str:
    """Read the persisted signature of a store entry or staged copy.

    Returns:
        str: The signature, or ``""`` when none was persisted.
    """
    try:
        return (Path(package_dir) / SIGNATURE_FILE).read_text(encoding="utf-8").strip()
    except (FileNotFoundError, NotADirectoryError):
        return ""


def write_signature(package_dir: Path, signature: str) -> None:
    (Path(package_dir) / SIGNATURE_FILE).write_text(signature + "\n", encoding="utf-8")
