"""Re-add packages recorded in a project's lock file.

Each package is re-added the way it was originally installed (copy, link,
plain ``shelf link`` or pure) so a push reproduces the project's setup with
the store's current content.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..deps.installations import PackageInstallation, remove_installations
from ..deps.lockfile import LockEntry, read_project_lockfile
from ..errors import InvalidPackageSpecError
from ..models.manifest import find_package, parse_package_spec
from ..utils.console import _rich_warning
from .add import AddOptions, InstallResult, PackageAdder


@dataclass
class UpdateOptions:
    """Options for updating a project's shelf packages.

    Attributes:
        working_dir: Directory inside the consumer project
        no_installations_remove: Return stale installations instead of
            removing them from the registry
        force: Replace staged copies even when signatures match
    """

    working_dir: Path
    no_installations_remove: bool = False
    force: bool = False


def _add_options_for(entry: LockEntry, options: UpdateOptions, project_dir: Path) -> AddOptions:
    base = dict(working_dir=project_dir, force=options.force)
    if entry.pure:
        return AddOptions(pure=True, **base)
    if entry.file:
        return AddOptions(pure=False, link=False, **base)
    if entry.link:
        return AddOptions(pure=False, link=True, **base)
    # Installed with `shelf link`: symlink only, package.json untouched
    return AddOptions(pure=False, link=True, no_save=True, **base)


class PackageUpdater:
    """Replays lock file entries through :class:`PackageAdder`."""

    def __init__(self, adder: Optional[PackageAdder] = None):
        self.adder = adder or PackageAdder()

    def update_packages(
        self, packages: List[str], options: UpdateOptions
    ) -> List[PackageInstallation]:
        """Update the named packages, or every locked package if none named.

        A requested ``name@version`` pins the version recorded for it. Named
        packages missing from the lock file are reported as stale
        installations of this project.

        Returns:
            List[PackageInstallation]: Stale installations found.
        """
        project_dir = find_package(Path(options.working_dir))
        if project_dir is None:
            return []
        lock = read_project_lockfile(project_dir)

        to_update: List[LockEntry] = []
        stale: List[PackageInstallation] = []
        if packages:
            for requested in packages:
                try:
                    spec = parse_package_spec(requested)
                except InvalidPackageSpecError as e:
                    _rich_warning(f"{e}, skipping.")
                    continue
                entry = lock.get(spec.name)
                if entry is None:
                    stale.append(PackageInstallation(name=spec.name, path=str(project_dir)))
                    _rich_warning(
                        f"Did not find package {spec.name} in lockfile, "
                        "please use 'add' command to add it explicitly."
                    )
                    continue
                if spec.version:
                    entry.version = spec.version
                to_update.append(entry)
        else:
            to_update = [lock.packages[name] for name in lock.names()]

        self._reinstall(to_update, options, project_dir)

        if stale and not options.no_installations_remove:
            remove_installations(stale, self.adder.registry_path)
        return stale

    def _reinstall(
        self, entries: List[LockEntry], options: UpdateOptions, project_dir: Path
    ) -> List[InstallResult]:
        results: List[InstallResult] = []
        for entry in entries:
            requested = f"{entry.name}@{entry.version}" if entry.version else entry.name
            add_options = _add_options_for(entry, options, project_dir)
            results.extend(self.adder.add_packages([requested], add_options))
        return results


def update_packages(
    packages: List[str], options: UpdateOptions, adder: Optional[PackageAdder] = None
) -> List[PackageInstallation]:
    """Update packages with a default-configured :class:`PackageUpdater`."""
    return PackageUpdater(adder).update_packages(packages, options)
