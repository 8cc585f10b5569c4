"""Command-line interface for shelf."""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .config import STORE_DIR_ENV, get_store_dir
from .constants import INSTALLATIONS_FILE, STORE_PACKAGES_FOLDER
from .core.add import AddOptions, PackageAdder
from .core.check import find_staged_dependencies
from .core.publish import Publisher, PublishOptions
from .core.remove import RemoveOptions, remove_packages
from .core.script_runner import ScriptRunner
from .core.update import PackageUpdater, UpdateOptions
from .deps.store import PackageStore
from .errors import ShelfError
from .commands.installations import installations
from .utils.console import _rich_error, _rich_success, echo, set_quiet


@dataclass
class ShelfContext:
    """Store locations shared by all commands of one invocation."""

    store_dir: Path

    @property
    def store(self) -> PackageStore:
        return PackageStore(self.store_dir / STORE_PACKAGES_FOLDER)

    @property
    def registry_path(self) -> Path:
        return self.store_dir / INSTALLATIONS_FILE

    def adder(self) -> PackageAdder:
        return PackageAdder(self.store, self.registry_path, ScriptRunner())

    def publisher(self) -> Publisher:
        return Publisher(self.store, self.registry_path, ScriptRunner())


def _fail(message: str) -> None:
    _rich_error(message)
    sys.exit(1)


pass_shelf = click.make_pass_decorator(ShelfContext)


@click.group(help="Work with packages locally: publish to a local store, add to projects.")
@click.version_option(__version__, prog_name="shelf")
@click.option(
    "--store-dir",
    envvar=STORE_DIR_ENV,
    type=click.Path(file_okay=False),
    help="Store home directory (default: ~/.shelf).",
)
@click.option("--quiet", "-q", is_flag=True, help="Only print warnings and errors.")
@click.pass_context
def cli(ctx, store_dir: Optional[str], quiet: bool):
    """shelf command group."""
    set_quiet(quiet)
    ctx.obj = ShelfContext(store_dir=Path(store_dir or get_store_dir()).expanduser())


def _publish_options(func):
    options = [
        click.option("--force", is_flag=True, help="Skip pre/post publish scripts."),
        click.option("--sig", is_flag=True, help="Stamp the content signature into the stored version."),
        click.option("--changed", is_flag=True, help="Publish only if package content changed."),
        click.option("--private", "private", is_flag=True, help="Publish even if marked private."),
        click.option("--recursive", is_flag=True, help="Publish locally linked dependencies first."),
        click.option("--files", is_flag=True, help="Print the published file list."),
        click.argument("directory", required=False, default=".", type=click.Path(file_okay=False)),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _run_publish(shelf: ShelfContext, directory: str, push: bool, **flags) -> None:
    try:
        shelf.publisher().publish(PublishOptions(working_dir=Path(directory), push=push, **flags))
    except (ShelfError, OSError) as e:
        _fail(f"Publish failed: {e}")


@cli.command(help="Publish a package to the local store")
@_publish_options
@click.option("--push", is_flag=True, help="Update every project using the package.")
@pass_shelf
def publish(shelf: ShelfContext, directory: str, push: bool, **flags):
    """Copy the package into the store."""
    _run_publish(shelf, directory, push, **flags)


@cli.command(help="Publish a package and update every project using it")
@_publish_options
@pass_shelf
def push(shelf: ShelfContext, directory: str, **flags):
    """Publish with push enabled."""
    _run_publish(shelf, directory, True, **flags)


@cli.command(help="Add stored packages to the current project")
@click.argument("packages", nargs=-1, required=True)
@click.option("--dev", "-D", is_flag=True, help="Save into devDependencies.")
@click.option("--link", is_flag=True, help="Use a link: locator and symlink node_modules.")
@click.option("--pure/--no-pure", default=None, help="Do not touch package.json or node_modules.")
@click.option("--force", is_flag=True, help="Replace staged copies even if unchanged.")
@pass_shelf
def add(shelf: ShelfContext, packages, dev: bool, link: bool, pure: Optional[bool], force: bool):
    """Add packages from the store."""
    options = AddOptions(
        working_dir=Path.cwd(), dev=dev, link=link, pure=pure, force=force
    )
    try:
        shelf.adder().add_packages(list(packages), options)
    except (ShelfError, OSError) as e:
        _fail(f"Add failed: {e}")


@cli.command(help="Symlink stored packages into node_modules without saving")
@click.argument("packages", nargs=-1, required=True)
@pass_shelf
def link(shelf: ShelfContext, packages):
    """Link packages from the store."""
    options = AddOptions(working_dir=Path.cwd(), link=True, pure=False, no_save=True)
    try:
        shelf.adder().add_packages(list(packages), options)
    except (ShelfError, OSError) as e:
        _fail(f"Link failed: {e}")


@cli.command(help="Update packages from the store (all locked packages by default)")
@click.argument("packages", nargs=-1)
@pass_shelf
def update(shelf: ShelfContext, packages):
    """Re-add locked packages from the store."""
    try:
        PackageUpdater(shelf.adder()).update_packages(
            list(packages), UpdateOptions(working_dir=Path.cwd())
        )
    except (ShelfError, OSError) as e:
        _fail(f"Update failed: {e}")


@cli.command(help="Restore packages after a retreat")
@pass_shelf
def restore(shelf: ShelfContext):
    """Re-add every locked package, replacing staged copies."""
    try:
        PackageUpdater(shelf.adder()).update_packages(
            [], UpdateOptions(working_dir=Path.cwd(), force=True)
        )
    except (ShelfError, OSError) as e:
        _fail(f"Restore failed: {e}")


def _remove(shelf: ShelfContext, packages, remove_all: bool, retreat: bool) -> None:
    if not packages and not remove_all:
        _fail("Specify packages or use --all.")
    options = RemoveOptions(working_dir=Path.cwd(), all=remove_all, retreat=retreat)
    try:
        remove_packages(list(packages), options, registry_path=shelf.registry_path)
    except (ShelfError, OSError) as e:
        _fail(f"Remove failed: {e}")


@cli.command(help="Remove packages from the current project")
@click.argument("packages", nargs=-1)
@click.option("--all", "remove_all", is_flag=True, help="Remove every shelf package.")
@pass_shelf
def remove(shelf: ShelfContext, packages, remove_all: bool):
    """Remove packages and restore replaced dependency values."""
    _remove(shelf, packages, remove_all, retreat=False)


@cli.command(help="Temporarily remove packages, keeping them for restore")
@click.argument("packages", nargs=-1)
@click.option("--all", "remove_all", is_flag=True, help="Retreat every shelf package.")
@pass_shelf
def retreat(shelf: ShelfContext, packages, remove_all: bool):
    """Restore package.json but keep the lock file and staged copies."""
    _remove(shelf, packages, remove_all, retreat=True)


@cli.command(help="Fail if package.json points at staged shelf packages")
def check():
    """Pre-commit guard."""
    staged = find_staged_dependencies(Path.cwd())
    if staged:
        _fail(f"package.json has shelf dependencies: {', '.join(staged)}")
    _rich_success("No shelf dependencies found in package.json")


@cli.command(name="dir", help="Show the store directory")
@pass_shelf
def store_dir(shelf: ShelfContext):
    """Print the store home."""
    echo(str(shelf.store_dir))


cli.add_command(installations)


def main():
    """Main entry point for the CLI."""
    try:
        cli(obj=None)
    except Exception as e:
        _rich_error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
