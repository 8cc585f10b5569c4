"""Run package scripts through the project's package manager."""

import subprocess
from pathlib import Path
from typing import Iterable, Optional

from ..config import get_package_manager
from ..errors import ScriptError
from ..models.manifest import PackageManifest
from ..utils.console import _rich_info

LOCKFILE_PACKAGE_MANAGERS = (
    ("yarn.lock", "yarn"),
    ("pnpm-lock.yaml", "pnpm"),
)


def detect_package_manager(package_dir: Path) -> str:
    """Pick the package manager binary for a directory.

    A configured override wins; otherwise the first package manager lock file
    found decides, falling back to npm.
    """
    configured = get_package_manager()
    if configured:
        return configured
    package_dir = Path(package_dir)
    for lock_name, binary in LOCKFILE_PACKAGE_MANAGERS:
        if (package_dir / lock_name).exists():
            return binary
    return "npm"


class ScriptRunner:
    """Runs ``<package manager> run <script>`` synchronously.

    Output goes straight to the terminal. There is no timeout: a hanging
    script blocks the operation.
    """

    def __init__(self, package_manager: Optional[str] = None):
        self.package_manager = package_manager

    def run_script(self, script: str, cwd: Path) -> None:
        """Run a named script in ``cwd``.

        Raises:
            ScriptError: If the script exits with a non-zero status.
        """
        cwd = Path(cwd)
        binary = self.package_manager or detect_package_manager(cwd)
        result = subprocess.run([binary, "run", script], cwd=str(cwd))
        if result.returncode != 0:
            raise ScriptError(script, cwd, result.returncode)

    def run_first_present(
        self, manifest: PackageManifest, scripts: Iterable[str], cwd: Path
    ) -> Optional[str]:
        """Run the first of ``scripts`` the manifest declares.

        Returns:
            Optional[str]: The script that ran, or None if none is declared.
        """
        for script in scripts:
            if manifest.has_script(script):
                _rich_info(f'Running "{script}" script: {manifest.scripts[script]}')
                self.run_script(script, cwd)
                return script
        return None
