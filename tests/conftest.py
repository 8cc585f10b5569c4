"""Shared fixtures: an isolated store, registry and package factory per test."""

import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

import shelf_cli.config
from shelf_cli.core.add import PackageAdder
from shelf_cli.core.publish import Publisher
from shelf_cli.core.script_runner import ScriptRunner
from shelf_cli.deps.store import PackageStore
from shelf_cli.errors import ScriptError
from shelf_cli.models.manifest import read_manifest
from shelf_cli.utils.console import set_quiet


class FakeScriptRunner(ScriptRunner):
    """Records scripts instead of spawning a package manager."""

    def __init__(self, failing: Optional[List[str]] = None):
        super().__init__(package_manager="npm")
        self.calls: List[Tuple[str, Path]] = []
        self.failing = set(failing or [])

    def run_script(self, script: str, cwd: Path) -> None:
        self.calls.append((script, Path(cwd)))
        if script in self.failing:
            raise ScriptError(script, Path(cwd), 1)

    @property
    def scripts(self) -> List[str]:
        return [script for script, _ in self.calls]


@pytest.fixture(autouse=True)
def isolated_store_home(tmp_path, monkeypatch):
    """Point config and store home at a temp directory for every test."""
    home = tmp_path / "store-home"
    monkeypatch.setattr(shelf_cli.config, "CONFIG_DIR", str(home))
    monkeypatch.setattr(shelf_cli.config, "CONFIG_FILE", str(home / "config.json"))
    monkeypatch.setenv(shelf_cli.config.STORE_DIR_ENV, str(home))
    set_quiet(False)
    return home


@pytest.fixture
def store(isolated_store_home) -> PackageStore:
    return PackageStore(isolated_store_home / "packages")


@pytest.fixture
def registry_path(isolated_store_home) -> Path:
    return isolated_store_home / "installations.json"


@pytest.fixture
def script_runner() -> FakeScriptRunner:
    return FakeScriptRunner()


@pytest.fixture
def adder(store, registry_path, script_runner) -> PackageAdder:
    return PackageAdder(store, registry_path, script_runner)


@pytest.fixture
def publisher(store, registry_path, script_runner, adder) -> Publisher:
    return Publisher(store, registry_path, script_runner, adder)


def write_package(
    path: Path,
    name: str,
    version: str = "1.0.0",
    contents: Optional[Dict[str, str]] = None,
    **fields,
) -> Path:
    """Create a package directory with a package.json and some files."""
    path.mkdir(parents=True, exist_ok=True)
    data = {"name": name, "version": version}
    data.update(fields)
    (path / "package.json").write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    if contents is None:
        contents = {"index.js": f"module.exports = {name!r}\n"}
    for rel, content in contents.items():
        target = path / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def make_package(tmp_path):
    """Factory creating packages under ``tmp_path/<dirname>``."""

    def _make(name: str, version: str = "1.0.0", dirname: Optional[str] = None, **kwargs) -> Path:
        return write_package(tmp_path / (dirname or name.replace("/", "__")), name, version, **kwargs)

    return _make


@pytest.fixture
def publish_to_store(store):
    """Copy a package directory into the store, returning the signature."""

    def _publish(package_dir: Path) -> str:
        manifest = read_manifest(package_dir)
        return store.copy_package(manifest, package_dir).signature

    return _publish


@pytest.fixture
def consumer(make_package) -> Path:
    """A consumer project with one unrelated dependency."""
    return make_package("my-app", dependencies={"lodash": "^4.17.0"})
