"""Publish packages into the local store and push them to consumer projects.

Publishing copies a package's packaged files into the store under its current
version. In recursive mode, dependencies that are symlinked into
``node_modules`` from outside the project (local links such as ``npm link``)
are published first, depth first, and then added back into the project from
the store. With push, every project recorded as using the package is updated
from the fresh store entry.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Set

from ..constants import POST_PUBLISH_SCRIPTS, PRE_PUBLISH_SCRIPTS, STAGING_FOLDER
from ..deps.installations import InstallationRegistry, PackageInstallation, remove_installations
from ..deps.store import PackageStore
from ..models.manifest import PackageManifest, find_package, read_manifest
from ..utils.console import _rich_info, _rich_success, _rich_warning, echo
from ..utils.fs import is_relative_to, is_symlink, resolve_link
from .add import AddOptions, PackageAdder, node_modules_dir
from .script_runner import ScriptRunner
from .update import PackageUpdater, UpdateOptions

# Package names already bound the recursion; this guards against pathological
# link chains all the same.
MAX_PUBLISH_DEPTH = 32


@dataclass
class PublishOptions:
    """Options for publishing a package.

    Attributes:
        working_dir: Directory inside the package to publish
        force: Skip pre/post publish scripts
        sig: Stamp the content signature into the stored version
        changed: Only publish when the content signature changed
        push: Update every project recorded as using the package
        private: Publish even if the package is marked private
        recursive: Publish locally linked dependencies first
        files: Print the published file list
    """

    working_dir: Path
    force: bool = False
    sig: bool = False
    changed: bool = False
    push: bool = False
    private: bool = False
    recursive: bool = False
    files: bool = False


@dataclass
class PublishReport:
    """What a publish run did."""

    published: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    pushed: List[str] = field(default_factory=list)
    removed_installations: List[PackageInstallation] = field(default_factory=list)

    @property
    def completed(self) -> List[str]:
        """Packages whose store entry is current after this run."""
        return self.published + self.unchanged


def find_linked_dependency(package_dir: Path, name: str) -> Optional[Path]:
    """Return the real directory of a locally linked dependency.

    Only ``node_modules/<name>`` symlinks pointing outside the package's own
    staging folder count; links shelf itself created are ignored.
    """
    link = node_modules_dir(package_dir, name)
    if not is_symlink(link):
        return None
    target = resolve_link(link)
    own_staging = (Path(package_dir) / STAGING_FOLDER).resolve()
    if is_relative_to(target, own_staging) or not target.is_dir():
        return None
    return target


class Publisher:
    """Runs one publish invocation."""

    def __init__(
        self,
        store: Optional[PackageStore] = None,
        registry_path: Optional[Path] = None,
        script_runner: Optional[ScriptRunner] = None,
        adder: Optional[PackageAdder] = None,
    ):
        self.store = store or PackageStore()
        self.registry_path = registry_path
        self.script_runner = script_runner or ScriptRunner()
        self.adder = adder or PackageAdder(self.store, registry_path, self.script_runner)
        self.updater = PackageUpdater(self.adder)

    def publish(self, options: PublishOptions) -> PublishReport:
        """Publish the package containing ``options.working_dir``.

        Raises:
            ScriptError: If a publish or postinstall script fails.
            OSError: If copying into the store or any state write fails.
        """
        report = PublishReport()
        project_dir = find_package(Path(options.working_dir))
        if project_dir is None:
            return report
        manifest = read_manifest(project_dir)
        if manifest is None:
            return report

        if manifest.private and not options.private:
            _rich_warning(
                "Will not publish package with `private: true`, "
                "use --private flag to force publishing."
            )
            return report

        visited: Set[str] = set()
        root_published = self._publish_depth_first(manifest, project_dir, options, visited, report, 0)

        # Only the root package is pushed
        if options.push and root_published:
            self._push(manifest, report)
        return report

    def _publish_depth_first(
        self,
        manifest: PackageManifest,
        package_dir: Path,
        options: PublishOptions,
        visited: Set[str],
        report: PublishReport,
        depth: int,
    ) -> bool:
        if manifest.name in visited:
            return False
        if depth > MAX_PUBLISH_DEPTH:
            _rich_warning(f"Linked dependencies nested too deeply at {manifest.name}, skipping.")
            return False
        visited.add(manifest.name)

        if options.recursive and manifest.dependencies:
            names_to_add = []
            for dep_name in manifest.dependencies:
                dep_dir = find_linked_dependency(package_dir, dep_name)
                if dep_dir is None:
                    continue
                dep_manifest = read_manifest(dep_dir)
                if dep_manifest is None or dep_manifest.private:
                    continue
                self._publish_depth_first(dep_manifest, dep_dir, options, visited, report, depth + 1)
                if dep_manifest.name in report.completed:
                    names_to_add.append(dep_manifest.name)
            if names_to_add:
                self.adder.add_packages(names_to_add, AddOptions(working_dir=package_dir))

        _rich_info(f"Publishing: {manifest.name}")
        return self._publish_single(manifest, package_dir, options, report)

    def _publish_single(
        self,
        manifest: PackageManifest,
        package_dir: Path,
        options: PublishOptions,
        report: PublishReport,
    ) -> bool:
        """Copy one package into the store, running its publish scripts.

        Returns:
            bool: True if the store entry was written.
        """
        if not manifest.name or not manifest.version:
            _rich_warning(f"Package in {package_dir} needs a name and a version to be published.")
            return False

        run_scripts = not options.force and bool(manifest.scripts)
        if run_scripts:
            self.script_runner.run_first_present(manifest, PRE_PUBLISH_SCRIPTS, package_dir)

        result = self.store.copy_package(
            manifest, package_dir, changed_only=options.changed, stamp_signature=options.sig
        )
        if not result.copied:
            _rich_info("Package content has not changed, skipping publishing.")
            report.unchanged.append(manifest.name)
            return False

        if options.files:
            for rel in result.files:
                echo(rel)

        if run_scripts:
            self.script_runner.run_first_present(manifest, POST_PUBLISH_SCRIPTS, package_dir)

        stored = self.store.read(manifest.name, manifest.version)
        _rich_success(f"{stored.display_name} published locally.")
        report.published.append(manifest.name)
        return True

    def _push(self, manifest: PackageManifest, report: PublishReport) -> None:
        registry = InstallationRegistry.load(self.registry_path)
        stale: List[PackageInstallation] = []
        for path in registry.list(manifest.name):
            if not Path(path).is_dir():
                stale.append(PackageInstallation(name=manifest.name, path=path))
                continue
            _rich_info(f"Pushing {manifest.display_name} in {path}")
            stale.extend(
                self.updater.update_packages(
                    [manifest.name],
                    UpdateOptions(working_dir=Path(path), no_installations_remove=True),
                )
            )
            report.pushed.append(path)
        if stale:
            report.removed_installations = remove_installations(stale, self.registry_path)


def publish_package(options: PublishOptions, **kwargs) -> PublishReport:
    """Publish with a default-configured :class:`Publisher`."""
    return Publisher(**kwargs).publish(options)
