"""Add stored packages to a consumer project.

For each requested package the stored copy is staged into the project's
``.shelf/<name>`` folder, mirrored into ``node_modules/<name>`` (as a copy or a
symlink), and the project's ``package.json`` is pointed at the staged copy with
a ``file:`` or ``link:`` locator. Every install is recorded in ``shelf.lock``
and in the machine-wide installation registry.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..config import get_pure_workspaces
from ..constants import (
    BIN_FOLDER,
    LOCATOR_FILE,
    LOCATOR_LINK,
    NODE_MODULES,
    POST_INSTALL_SCRIPT,
    STAGING_FOLDER,
)
from ..deps.installations import PackageInstallation, add_installations
from ..deps.lockfile import LockEntry, add_packages_to_lockfile, read_project_lockfile
from ..deps.signature import read_signature
from ..deps.store import PackageStore
from ..errors import InvalidPackageSpecError, PackageNotFoundError
from ..models.manifest import (
    PackageManifest,
    find_package,
    parse_package_spec,
    read_manifest,
    write_manifest,
)
from ..utils.console import _rich_info, _rich_success, _rich_warning
from ..utils.fs import ensure_symlink, make_executable, replace_with_copy, replace_with_symlink
from .script_runner import ScriptRunner


@dataclass
class AddOptions:
    """Options for adding packages to a project.

    Attributes:
        working_dir: Directory inside the consumer project
        dev: Save into devDependencies
        link: Symlink node_modules to the staged copy and use a ``link:`` locator
        pure: Only stage into the store relationship; None picks the default
            (pure when the project declares workspaces)
        force: Replace the staged copy even when signatures match
        no_save: Leave package.json untouched
        record_installation: Register the project in the installation registry
    """

    working_dir: Path
    dev: bool = False
    link: bool = False
    pure: Optional[bool] = None
    force: bool = False
    no_save: bool = False
    record_installation: bool = True


@dataclass
class InstallResult:
    """A package that was installed (or purely added) to a project."""

    name: str
    version: str
    signature: str
    replaced: str
    consumer_dir: Path


def staging_dir(project_dir: Path, name: str) -> Path:
    """``<project>/.shelf/<name>``, the staged copy of a package."""
    return Path(project_dir).joinpath(STAGING_FOLDER, *name.split("/"))


def node_modules_dir(project_dir: Path, name: str) -> Path:
    return Path(project_dir).joinpath(NODE_MODULES, *name.split("/"))


def make_locator(name: str, link: bool) -> str:
    protocol = LOCATOR_LINK if link else LOCATOR_FILE
    return f"{protocol}{STAGING_FOLDER}/{name}"


def is_staging_locator(value: str, name: str) -> bool:
    """True if a dependency value points at the package's staged copy."""
    return value in (make_locator(name, link=False), make_locator(name, link=True))


def point_dependency_at_staging(
    manifest: PackageManifest, name: str, link: bool, dev: bool
) -> Tuple[bool, str]:
    """Write the staging locator for ``name`` into the manifest.

    A package already listed in devDependencies stays there; ``dev`` moves it
    there. The package is removed from the other field so it is never listed
    twice.

    Returns:
        Tuple[bool, str]: (manifest changed, previous dependency value)
    """
    locator = make_locator(name, link)
    in_dev = name in manifest.dev_dependencies
    where_to_add = manifest.dev_dependencies if (dev or in_dev) else manifest.dependencies
    other = manifest.dependencies if where_to_add is manifest.dev_dependencies else manifest.dev_dependencies

    current = where_to_add.get(name, "")
    dropped = other.pop(name, "")
    previous = current or dropped
    if current == locator:
        return bool(dropped), ""

    where_to_add[name] = locator
    return True, previous


class PackageAdder:
    """Installs stored packages into consumer projects."""

    def __init__(
        self,
        store: Optional[PackageStore] = None,
        registry_path: Optional[Path] = None,
        script_runner: Optional[ScriptRunner] = None,
    ):
        self.store = store or PackageStore()
        self.registry_path = registry_path
        self.script_runner = script_runner or ScriptRunner()

    def add_packages(self, packages: List[str], options: AddOptions) -> List[InstallResult]:
        """Add packages to the project containing ``options.working_dir``.

        Packages that cannot be parsed or found in the store are reported and
        skipped; the rest of the batch still installs. Packages whose staged
        copy already matches the store, installed in the requested mode, are
        skipped as up to date.

        Returns:
            List[InstallResult]: One result per package actually installed.

        Raises:
            ScriptError: If a package's postinstall script fails.
            OSError: If staging, package.json, lock file or registry writes fail.
        """
        if not packages:
            return []
        project_dir = find_package(Path(options.working_dir))
        if project_dir is None:
            return []
        local_manifest = read_manifest(project_dir)
        if local_manifest is None:
            return []

        do_pure = self._resolve_pure(local_manifest, options)
        lock = read_project_lockfile(project_dir)
        manifest_updated = False
        results: List[InstallResult] = []

        for requested in packages:
            try:
                spec = parse_package_spec(requested)
                version = self.store.resolve_version(spec.name, spec.version)
                stored = self.store.read(spec.name, version)
            except (InvalidPackageSpecError, PackageNotFoundError) as e:
                _rich_warning(f"{e}, skipping.")
                continue

            name = spec.name
            signature = self.store.signature(name, version)
            previous = lock.get(name)
            local_package_dir = staging_dir(project_dir, name)

            if do_pure:
                _rich_info(
                    f"{stored.display_name} added to {Path(STAGING_FOLDER, name).as_posix()} purely"
                )
                results.append(self._result(name, spec.version, signature, "", previous, project_dir))
                continue

            replaced = ""
            if not options.no_save:
                changed, replaced = point_dependency_at_staging(
                    local_manifest, name, link=options.link, dev=options.dev
                )
                manifest_updated = manifest_updated or changed
                if is_staging_locator(replaced, name):
                    replaced = ""

            if (
                not options.force
                and signature
                and signature == read_signature(local_package_dir)
                and self._same_mode(previous, options)
            ):
                _rich_info(f'"{requested}" already exists in the local "{STAGING_FOLDER}" directory')
                continue

            dest = self._install(project_dir, name, version, local_package_dir, options.link)
            action = "linked" if options.no_save else "added"
            _rich_success(f"Package {stored.display_name} {action} ==> {dest}.")
            results.append(self._result(name, spec.version, signature, replaced, previous, project_dir))

        if manifest_updated:
            write_manifest(project_dir, local_manifest)

        if results:
            saved = not do_pure and not options.no_save
            add_packages_to_lockfile(
                [
                    LockEntry(
                        name=r.name,
                        version=r.version,
                        replaced=r.replaced,
                        pure=do_pure,
                        file=saved and not options.link,
                        link=saved and options.link,
                        signature=r.signature,
                    )
                    for r in results
                ],
                project_dir,
            )
            if options.record_installation:
                add_installations(
                    [PackageInstallation(name=r.name, path=str(r.consumer_dir)) for r in results],
                    self.registry_path,
                )
        return results

    def _resolve_pure(self, local_manifest: PackageManifest, options: AddOptions) -> bool:
        if options.pure is not None:
            return options.pure
        if local_manifest.workspaces and get_pure_workspaces():
            _rich_info(
                "Because of `workspaces` enabled in this package, --pure option "
                "will be used by default, to override use --no-pure."
            )
            return True
        return False

    @staticmethod
    def _same_mode(previous: Optional[LockEntry], options: AddOptions) -> bool:
        """True if the locked install used the copy/link mode now requested."""
        if previous is None or previous.pure:
            return False
        saved = not options.no_save
        return previous.file == (saved and not options.link) and previous.link == (saved and options.link)

    @staticmethod
    def _result(
        name: str,
        version: str,
        signature: str,
        replaced: str,
        previous: Optional[LockEntry],
        project_dir: Path,
    ) -> InstallResult:
        # Keep the original dependency value across re-adds so remove can restore it
        if not replaced and previous is not None:
            replaced = previous.replaced
        return InstallResult(
            name=name,
            version=version,
            signature=signature,
            replaced=replaced,
            consumer_dir=project_dir,
        )

    def _install(
        self, project_dir: Path, name: str, version: str, local_package_dir: Path, link: bool
    ) -> Path:
        """Stage the stored package and mirror it into node_modules.

        Returns:
            Path: The node_modules entry that was created.
        """
        replace_with_copy(self.store.package_dir(name, version), local_package_dir)

        staged = read_manifest(local_package_dir)
        if staged is not None and staged.has_script(POST_INSTALL_SCRIPT):
            self.script_runner.run_script(POST_INSTALL_SCRIPT, local_package_dir)

        dest = node_modules_dir(project_dir, name)
        if link:
            replace_with_symlink(local_package_dir, dest)
        else:
            replace_with_copy(local_package_dir, dest)

        if staged is not None:
            self._link_bins(project_dir, local_package_dir, staged.bin_entries())
        return dest

    @staticmethod
    def _link_bins(project_dir: Path, local_package_dir: Path, bins: Dict[str, str]) -> None:
        if not bins:
            return
        bin_dir = Path(project_dir) / NODE_MODULES / BIN_FOLDER
        bin_dir.mkdir(parents=True, exist_ok=True)
        for bin_name, rel_path in bins.items():
            src = local_package_dir / rel_path
            if not src.is_file():
                _rich_warning(f"bin `{bin_name}` points at missing file {rel_path}, skipping.")
                continue
            ensure_symlink(src, bin_dir / bin_name)
            make_executable(src)


def add_packages(packages: List[str], options: AddOptions, **kwargs) -> List[InstallResult]:
    """Add packages with a default-configured :class:`PackageAdder`."""
    return PackageAdder(**kwargs).add_packages(packages, options)


def link_packages(packages: List[str], working_dir: Path, **kwargs) -> List[InstallResult]:
    """Symlink packages into node_modules without touching package.json."""
    options = AddOptions(working_dir=working_dir, link=True, pure=False, no_save=True)
    return add_packages(packages, options, **kwargs)
