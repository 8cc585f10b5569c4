"""Guard against committing a package.json that points at staged copies."""

from pathlib import Path
from typing import List

from ..models.manifest import find_package, read_manifest
from .add import is_staging_locator


def find_staged_dependencies(working_dir: Path) -> List[str]:
    """Names whose dependency value is a ``file:``/``link:`` staging locator."""
    project_dir = find_package(Path(working_dir))
    if project_dir is None:
        return []
    manifest = read_manifest(project_dir)
    if manifest is None:
        return []
    return sorted(
        name
        for deps in (manifest.dependencies, manifest.dev_dependencies)
        for name, value in deps.items()
        if is_staging_locator(value, name)
    )
