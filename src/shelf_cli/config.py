"""Configuration management for shelf.

The store home (``~/.shelf`` by default) holds the package store, the
installation registry and the user config file. ``SHELF_STORE_DIR`` overrides
its location.
"""

import os
import json
from typing import Any, Dict, Optional

from .constants import INSTALLATIONS_FILE, STORE_PACKAGES_FOLDER

CONFIG_DIR = os.path.expanduser("~/.shelf")
CONFIG_FILE = os.path.join(CONFIG_DIR, "config.json")

STORE_DIR_ENV = "SHELF_STORE_DIR"

DEFAULT_CONFIG: Dict[str, Any] = {
    "package_manager": None,
    "pure_workspaces": True,
}


def ensure_config_exists():
    """Ensure the configuration directory and file exist."""
    if not os.path.exists(CONFIG_DIR):
        os.makedirs(CONFIG_DIR)

    if not os.path.exists(CONFIG_FILE):
        with open(CONFIG_FILE, "w") as f:
            json.dump(DEFAULT_CONFIG, f, indent=2)


def get_config() -> Dict[str, Any]:
    """Get the current configuration, with defaults for missing keys.

    Returns:
        dict: Current configuration.
    """
    config = dict(DEFAULT_CONFIG)
    if not os.path.exists(CONFIG_FILE):
        return config
    try:
        with open(CONFIG_FILE, "r") as f:
            stored = json.load(f)
    except (json.JSONDecodeError, OSError):
        return config
    if isinstance(stored, dict):
        config.update(stored)
    return config


def update_config(updates: Dict[str, Any]) -> None:
    """Update the configuration with new values.

    Args:
        updates: Dictionary of configuration values to update.
    """
    ensure_config_exists()
    config = get_config()
    config.update(updates)
    with open(CONFIG_FILE, "w") as f:
        json.dump(config, f, indent=2)


def get_store_dir() -> str:
    """Return the store home directory.

    ``SHELF_STORE_DIR`` wins over the default location so tests and CI can
    point shelf at an isolated store.
    """
    return os.environ.get(STORE_DIR_ENV) or CONFIG_DIR


def get_store_packages_dir() -> str:
    """Return the directory holding ``<name>/<version>`` store entries."""
    return os.path.join(get_store_dir(), STORE_PACKAGES_FOLDER)


def get_installations_file() -> str:
    """Return the path of the machine-wide installation registry."""
    return os.path.join(get_store_dir(), INSTALLATIONS_FILE)


def get_package_manager() -> Optional[str]:
    """Get the configured package manager override, if any."""
    return get_config().get("package_manager")


def set_package_manager(name: Optional[str]) -> None:
    """Set (or clear with ``None``) the package manager override."""
    update_config({"package_manager": name})


def get_pure_workspaces() -> bool:
    """Whether projects declaring ``workspaces`` default to pure installs."""
    return bool(get_config().get("pure_workspaces", True))


def set_pure_workspaces(enabled: bool) -> None:
    """Set whether ``workspaces`` projects default to pure installs."""
    update_config({"pure_workspaces": enabled})
