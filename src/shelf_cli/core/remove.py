"""Remove (or temporarily retreat) shelf packages from a project."""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..constants import STAGING_FOLDER
from ..deps.installations import PackageInstallation, remove_installations
from ..deps.lockfile import read_project_lockfile, remove_packages_from_lockfile
from ..errors import InvalidPackageSpecError
from ..models.manifest import PackageManifest, find_package, parse_package_spec, read_manifest, write_manifest
from ..utils.console import _rich_info, _rich_warning
from ..utils.fs import remove_path
from .add import is_staging_locator, node_modules_dir, staging_dir


@dataclass
class RemoveOptions:
    """Options for removing packages.

    Attributes:
        working_dir: Directory inside the consumer project
        all: Remove every package recorded in the lock file
        retreat: Restore package.json and drop node_modules entries but keep
            the lock file and staged copies, so ``restore`` can bring them back
    """

    working_dir: Path
    all: bool = False
    retreat: bool = False


def restore_dependency(manifest: PackageManifest, name: str, replaced: str) -> bool:
    """Swap the staging locator for the value it replaced, or drop it.

    Returns:
        bool: True if the manifest changed.
    """
    changed = False
    for field in (manifest.dependencies, manifest.dev_dependencies):
        if is_staging_locator(field.get(name, ""), name):
            if replaced:
                field[name] = replaced
            else:
                del field[name]
            changed = True
    return changed


def remove_packages(
    packages: List[str], options: RemoveOptions, registry_path: Optional[Path] = None
) -> List[str]:
    """Remove packages from the project containing ``options.working_dir``.

    Returns:
        List[str]: Names of the packages that were removed.
    """
    project_dir = find_package(Path(options.working_dir))
    if project_dir is None:
        return []
    manifest = read_manifest(project_dir)
    if manifest is None:
        return []
    lock = read_project_lockfile(project_dir)

    if options.all:
        names = lock.names()
    else:
        names = []
        for requested in packages:
            try:
                names.append(parse_package_spec(requested).name)
            except InvalidPackageSpecError as e:
                _rich_warning(f"{e}, skipping.")

    removed: List[str] = []
    manifest_updated = False
    for name in names:
        entry = lock.get(name)
        replaced = entry.replaced if entry else ""
        changed = restore_dependency(manifest, name, replaced)
        if entry is None and not changed:
            _rich_warning(f"Package {name} was not found in {project_dir}, skipping.")
            continue
        manifest_updated = manifest_updated or changed

        remove_path(node_modules_dir(project_dir, name))
        if not options.retreat:
            remove_path(staging_dir(project_dir, name))
        removed.append(name)
        _rich_info(f"Package {name} {'retreated' if options.retreat else 'removed'}.")

    if manifest_updated:
        write_manifest(project_dir, manifest)

    if removed and not options.retreat:
        remove_packages_from_lockfile(removed, project_dir)
        remove_installations(
            [PackageInstallation(name=name, path=str(project_dir)) for name in removed],
            registry_path,
        )
        _remove_empty_dirs(project_dir / STAGING_FOLDER)
    return removed


def _remove_empty_dirs(root: Path) -> None:
    """Delete empty directories under and including ``root``."""
    if not root.is_dir() or root.is_symlink():
        return
    for child in root.iterdir():
        if child.is_dir() and not child.is_symlink():
            _remove_empty_dirs(child)
    if not any(root.iterdir()):
        root.rmdir()
