"""Filesystem helpers for copying, linking and replacing package directories.

Replacements stage into a temporary sibling and rename into place, so a
failed copy never leaves the destination half-written.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Iterable


def is_symlink(path: Path) -> bool:
    """Return True if ``path`` is a symlink (dangling links included)."""
    try:
        return Path(path).is_symlink()
    except OSError:
        return False


def remove_path(path: Path) -> None:
    """Remove a file, symlink or directory tree; no-op if it does not exist."""
    path = Path(path)
    if is_symlink(path) or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


def atomic_write_text(path: Path, content: str) -> None:
    """Write text to ``path`` through a temp file in the same directory."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def _swap_into_place(staged: Path, dest: Path) -> None:
    remove_path(dest)
    os.replace(staged, dest)


def _staging_dir(dest: Path) -> Path:
    dest.parent.mkdir(parents=True, exist_ok=True)
    return Path(tempfile.mkdtemp(dir=dest.parent, prefix=f".{dest.name}.", suffix=".tmp"))


def copy_files(src_dir: Path, files: Iterable[str], dest: Path) -> None:
    """Replace ``dest`` with a copy of the listed files from ``src_dir``.

    Args:
        src_dir: Directory the relative ``files`` paths are rooted at
        files: POSIX-style relative file paths
        dest: Destination directory, replaced wholesale
    """
    src_dir = Path(src_dir)
    dest = Path(dest)
    staged = _staging_dir(dest)
    try:
        for rel in files:
            target = staged / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(src_dir / rel, target)
        _swap_into_place(staged, dest)
    except BaseException:
        shutil.rmtree(staged, ignore_errors=True)
        raise


def replace_with_copy(src: Path, dest: Path) -> None:
    """Replace ``dest`` with a full copy of directory ``src``."""
    src = Path(src)
    dest = Path(dest)
    staged = _staging_dir(dest)
    try:
        # copytree needs a missing target
        staged.rmdir()
        shutil.copytree(src, staged, symlinks=True)
        _swap_into_place(staged, dest)
    except BaseException:
        shutil.rmtree(staged, ignore_errors=True)
        raise


def ensure_symlink(target: Path, link: Path) -> None:
    """Point ``link`` at ``target``, replacing whatever is at ``link``.

    ``target`` is stored relative to the link's directory so projects can be
    moved without breaking their links.
    """
    link = Path(link)
    link.parent.mkdir(parents=True, exist_ok=True)
    relative = os.path.relpath(Path(target), link.parent)
    remove_path(link)
    os.symlink(relative, link, target_is_directory=Path(target).is_dir())


def replace_with_symlink(src: Path, dest: Path) -> None:
    """Replace ``dest`` with a relative symlink to directory ``src``."""
    ensure_symlink(src, dest)


def resolve_link(link: Path) -> Path:
    """Return the absolute, resolved target of a symlink."""
    link = Path(link)
    return (link.parent / os.readlink(link)).resolve()


def make_executable(path: Path) -> None:
    path = Path(path)
    if path.exists():
        path.chmod(0o755)


def is_relative_to(path: Path, parent: Path) -> bool:
    try:
        Path(path).relative_to(parent)
        return True
    except ValueError:
        return False
