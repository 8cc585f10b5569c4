"""Inspect and clean the installation registry."""

import sys

import click

from ..deps.installations import InstallationRegistry, clean_installations
from ..utils.console import _rich_error, _rich_info, _rich_success, echo


@click.group(help="Manage the registry of projects using stored packages")
def installations():
    """Installation registry commands."""
    pass


@installations.command(help="Show projects using stored packages")
@click.argument("packages", nargs=-1)
@click.pass_obj
def show(shelf, packages):
    """List recorded projects per package."""
    registry = InstallationRegistry.load(shelf.registry_path)
    names = list(packages) or registry.names()
    if not names:
        _rich_info("No installations recorded yet")
        return

    for name in names:
        paths = registry.list(name)
        if not paths:
            _rich_info(f"{name}: no installations")
            continue
        echo(f"{name}:")
        for path in paths:
            echo(f"  {path}")


@installations.command(help="Remove installations that no longer exist")
@click.argument("packages", nargs=-1)
@click.pass_obj
def clean(shelf, packages):
    """Drop projects that are gone or no longer use the package."""
    try:
        removed = clean_installations(list(packages) or None, shelf.registry_path)
    except OSError as e:
        _rich_error(f"Error cleaning installations: {e}")
        sys.exit(1)

    if not removed:
        _rich_info("No stale installations found")
        return
    for installation in removed:
        _rich_info(f"Removed {installation.name} installation in {installation.path}")
    _rich_success(f"Removed {len(removed)} stale installation(s)")
