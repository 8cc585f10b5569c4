"""Add, update, remove and publish operations."""

from .add import AddOptions, InstallResult, PackageAdder, add_packages, link_packages
from .publish import PublishOptions, PublishReport, Publisher, publish_package
from .remove import RemoveOptions, remove_packages
from .script_runner import ScriptRunner
from .update import PackageUpdater, UpdateOptions, update_packages

__all__ = [
    "AddOptions",
    "InstallResult",
    "PackageAdder",
    "add_packages",
    "link_packages",
    "PublishOptions",
    "PublishReport",
    "Publisher",
    "publish_package",
    "RemoveOptions",
    "remove_packages",
    "ScriptRunner",
    "PackageUpdater",
    "UpdateOptions",
    "update_packages",
]
