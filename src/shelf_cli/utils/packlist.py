"""List the files that belong to a published package.

Follows the npm packaging rules closely enough for local work: the manifest's
``files`` whitelist when present, otherwise everything minus ``.npmignore``
(or ``.gitignore``) patterns. A few files are always shipped and a few are
never shipped.
"""

import fnmatch
from pathlib import Path
from typing import List, Optional, Tuple

from ..constants import LOCKFILE_NAME, MANIFEST_FILE, NODE_MODULES, SIGNATURE_FILE, STAGING_FOLDER
from ..models.manifest import PackageManifest

NEVER_INCLUDED_DIRS = {".git", ".svn", ".hg", NODE_MODULES, STAGING_FOLDER}
NEVER_INCLUDED_FILES = {
    LOCKFILE_NAME,
    SIGNATURE_FILE,
    ".DS_Store",
    "npm-debug.log",
    ".npmrc",
    "package-lock.json",
    ".npmignore",
    ".gitignore",
}
ALWAYS_INCLUDED_PATTERNS = ("README*", "LICENSE*", "LICENCE*", "CHANGELOG*", "CHANGES*")


def _walk(package_dir: Path) -> List[str]:
    results: List[str] = []
    stack = [package_dir]
    while stack:
        current = stack.pop()
        for entry in sorted(current.iterdir()):
            if entry.is_dir() and not entry.is_symlink():
                if entry.name in NEVER_INCLUDED_DIRS:
                    continue
                stack.append(entry)
            elif entry.is_file():
                if entry.name in NEVER_INCLUDED_FILES:
                    continue
                results.append(entry.relative_to(package_dir).as_posix())
    return sorted(results)


def _parse_ignore_file(path: Path) -> List[Tuple[str, bool]]:
    """Return ``(pattern, negated)`` pairs from an ignore file."""
    rules: List[Tuple[str, bool]] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        negated = line.startswith("!")
        if negated:
            line = line[1:]
        rules.append((line, negated))
    return rules


def _matches(rel_path: str, pattern: str) -> bool:
    """Gitignore-style match of a relative POSIX path against one pattern."""
    dir_only = pattern.endswith("/")
    pattern = pattern.rstrip("/")
    anchored = pattern.startswith("/") or "/" in pattern
    pattern = pattern.lstrip("/")
    parts = rel_path.split("/")

    if anchored:
        # Match the pattern against every leading sub-path
        for i in range(1, len(parts) + 1):
            prefix = "/".join(parts[:i])
            if fnmatch.fnmatchcase(prefix, pattern):
                return not dir_only or i < len(parts)
        return False

    # Unanchored patterns match any path component
    candidates = parts[:-1] if dir_only else parts
    return any(fnmatch.fnmatchcase(part, pattern) for part in candidates)


def _is_ignored(rel_path: str, rules: List[Tuple[str, bool]]) -> bool:
    ignored = False
    for pattern, negated in rules:
        if _matches(rel_path, pattern):
            ignored = not negated
    return ignored


def _normalize(path: str) -> str:
    path = path.strip()
    while path.startswith("./"):
        path = path[2:]
    return path.lstrip("/")


def _matches_files_entry(rel_path: str, entry: str) -> bool:
    entry = _normalize(entry).rstrip("/")
    if not entry:
        return False
    if rel_path == entry or rel_path.startswith(entry + "/"):
        return True
    if fnmatch.fnmatchcase(rel_path, entry):
        return True
    # A glob naming a directory ships everything under it
    parts = rel_path.split("/")
    return any(
        fnmatch.fnmatchcase("/".join(parts[:i]), entry) for i in range(1, len(parts))
    )


def _always_included(rel_path: str, manifest: PackageManifest) -> bool:
    if rel_path == MANIFEST_FILE:
        return True
    if "/" not in rel_path and any(
        fnmatch.fnmatch(rel_path.upper(), p.upper()) for p in ALWAYS_INCLUDED_PATTERNS
    ):
        return True
    pinned = [manifest.main] + list(manifest.bin_entries().values())
    return any(p and rel_path == _normalize(p) for p in pinned)


def _ignore_file(package_dir: Path) -> Optional[Path]:
    for name in (".npmignore", ".gitignore"):
        candidate = package_dir / name
        if candidate.is_file():
            return candidate
    return None


def list_package_files(package_dir: Path, manifest: PackageManifest) -> List[str]:
    """List files to publish for a package.

    Args:
        package_dir: Package root containing ``package.json``
        manifest: The package's manifest

    Returns:
        List[str]: Sorted POSIX-style paths relative to ``package_dir``.
    """
    package_dir = Path(package_dir)
    all_files = _walk(package_dir)

    if manifest.files is not None:
        return [
            f
            for f in all_files
            if _always_included(f, manifest)
            or any(_matches_files_entry(f, entry) for entry in manifest.files)
        ]

    ignore_file = _ignore_file(package_dir)
    rules = _parse_ignore_file(ignore_file) if ignore_file else []
    return [
        f for f in all_files
        if _always_included(f, manifest) or not _is_ignored(f, rules)
    ]
