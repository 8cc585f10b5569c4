"""Tests for adding stored packages to consumer projects."""

import json

import pytest

from shelf_cli.config import set_pure_workspaces
from shelf_cli.core.add import (
    AddOptions,
    link_packages,
    make_locator,
    point_dependency_at_staging,
)
from shelf_cli.deps.installations import InstallationRegistry, normalize_path
from shelf_cli.deps.lockfile import read_project_lockfile
from shelf_cli.errors import ScriptError
from shelf_cli.models.manifest import PackageManifest


def _deps(project):
    data = json.loads((project / "package.json").read_text())
    return data.get("dependencies", {}), data.get("devDependencies", {})


class TestPointDependencyAtStaging:
    def test_adds_to_dependencies(self):
        manifest = PackageManifest.from_dict({"name": "app"})
        changed, previous = point_dependency_at_staging(manifest, "lib", link=False, dev=False)
        assert changed
        assert previous == ""
        assert manifest.dependencies == {"lib": "file:.shelf/lib"}

    def test_keeps_existing_dev_dependency_in_dev(self):
        manifest = PackageManifest.from_dict({"name": "app", "devDependencies": {"lib": "^1.0.0"}})
        changed, previous = point_dependency_at_staging(manifest, "lib", link=True, dev=False)
        assert changed
        assert previous == "^1.0.0"
        assert manifest.dev_dependencies == {"lib": "link:.shelf/lib"}
        assert "lib" not in manifest.dependencies

    def test_dev_moves_out_of_dependencies(self):
        manifest = PackageManifest.from_dict({"name": "app", "dependencies": {"lib": "^1.0.0"}})
        point_dependency_at_staging(manifest, "lib", link=False, dev=True)
        assert manifest.dev_dependencies == {"lib": "file:.shelf/lib"}
        assert "lib" not in manifest.dependencies

    def test_same_locator_is_unchanged(self):
        manifest = PackageManifest.from_dict({"name": "app", "dependencies": {"lib": "file:.shelf/lib"}})
        assert point_dependency_at_staging(manifest, "lib", link=False, dev=False) == (False, "")

    def test_same_locator_drops_duplicate_listing(self):
        manifest = PackageManifest.from_dict({
            "name": "app",
            "dependencies": {"lib": "^1.0.0"},
            "devDependencies": {"lib": "file:.shelf/lib"},
        })
        changed, previous = point_dependency_at_staging(manifest, "lib", link=False, dev=False)
        assert changed
        assert previous == ""
        assert manifest.dev_dependencies == {"lib": "file:.shelf/lib"}
        assert manifest.dependencies == {}

    def test_make_locator_scoped(self):
        assert make_locator("@acme/utils", link=True) == "link:.shelf/@acme/utils"


class TestAddPackages:
    def test_add_copies_and_saves(self, adder, consumer, make_package, publish_to_store, registry_path):
        signature = publish_to_store(make_package("left-pad"))

        results = adder.add_packages(["left-pad"], AddOptions(working_dir=consumer))

        assert [r.name for r in results] == ["left-pad"]
        deps, _ = _deps(consumer)
        assert deps == {"lodash": "^4.17.0", "left-pad": "file:.shelf/left-pad"}
        assert (consumer / ".shelf" / "left-pad" / "index.js").is_file()
        installed = consumer / "node_modules" / "left-pad"
        assert installed.is_dir() and not installed.is_symlink()

        entry = read_project_lockfile(consumer).get("left-pad")
        assert entry.file and not entry.link and not entry.pure
        assert entry.signature == signature
        assert InstallationRegistry.load(registry_path).list("left-pad") == [normalize_path(consumer.resolve())]

    def test_add_from_subdirectory(self, adder, consumer, make_package, publish_to_store):
        publish_to_store(make_package("left-pad"))
        subdir = consumer / "src" / "deep"
        subdir.mkdir(parents=True)
        adder.add_packages(["left-pad"], AddOptions(working_dir=subdir))
        assert (consumer / ".shelf" / "left-pad").is_dir()

    def test_add_link_uses_symlink(self, adder, consumer, make_package, publish_to_store):
        publish_to_store(make_package("left-pad"))
        adder.add_packages(["left-pad"], AddOptions(working_dir=consumer, link=True))

        deps, _ = _deps(consumer)
        assert deps["left-pad"] == "link:.shelf/left-pad"
        installed = consumer / "node_modules" / "left-pad"
        assert installed.is_symlink()
        assert installed.resolve() == (consumer / ".shelf" / "left-pad").resolve()
        assert read_project_lockfile(consumer).get("left-pad").link

    def test_add_records_replaced_value(self, adder, make_package, publish_to_store):
        publish_to_store(make_package("left-pad"))
        app = make_package("app", dependencies={"left-pad": "^1.0.0"})

        adder.add_packages(["left-pad"], AddOptions(working_dir=app))
        assert read_project_lockfile(app).get("left-pad").replaced == "^1.0.0"

        adder.add_packages(["left-pad"], AddOptions(working_dir=app, force=True))
        assert read_project_lockfile(app).get("left-pad").replaced == "^1.0.0"

    def test_readd_unchanged_is_skipped(self, adder, consumer, make_package, publish_to_store):
        publish_to_store(make_package("left-pad"))
        adder.add_packages(["left-pad"], AddOptions(working_dir=consumer))
        before = (consumer / "package.json").read_text()
        lock_before = (consumer / "shelf.lock").read_bytes()

        assert adder.add_packages(["left-pad"], AddOptions(working_dir=consumer)) == []
        assert (consumer / "package.json").read_text() == before
        assert (consumer / "shelf.lock").read_bytes() == lock_before

    def test_switching_to_link_reinstalls(self, adder, consumer, make_package, publish_to_store):
        publish_to_store(make_package("left-pad"))
        adder.add_packages(["left-pad"], AddOptions(working_dir=consumer))

        results = adder.add_packages(["left-pad"], AddOptions(working_dir=consumer, link=True))

        assert [r.name for r in results] == ["left-pad"]
        assert _deps(consumer)[0]["left-pad"] == "link:.shelf/left-pad"
        assert (consumer / "node_modules" / "left-pad").is_symlink()
        entry = read_project_lockfile(consumer).get("left-pad")
        assert entry.link and not entry.file

    def test_readd_removes_duplicate_listing(self, adder, make_package, publish_to_store):
        publish_to_store(make_package("left-pad"))
        app = make_package(
            "app",
            dependencies={"left-pad": "^1.0.0"},
            devDependencies={"left-pad": "file:.shelf/left-pad"},
        )

        adder.add_packages(["left-pad"], AddOptions(working_dir=app, force=True))

        deps, dev_deps = _deps(app)
        assert "left-pad" not in deps
        assert dev_deps == {"left-pad": "file:.shelf/left-pad"}

    def test_force_replaces_staged_copy(self, adder, consumer, make_package, publish_to_store):
        publish_to_store(make_package("left-pad"))
        adder.add_packages(["left-pad"], AddOptions(working_dir=consumer))
        (consumer / ".shelf" / "left-pad" / "index.js").write_text("edited")

        results = adder.add_packages(["left-pad"], AddOptions(working_dir=consumer, force=True))

        assert len(results) == 1
        assert (consumer / ".shelf" / "left-pad" / "index.js").read_text() != "edited"

    def test_changed_store_entry_is_reinstalled(self, adder, consumer, make_package, publish_to_store):
        pkg = make_package("left-pad")
        publish_to_store(pkg)
        adder.add_packages(["left-pad"], AddOptions(working_dir=consumer))
        (pkg / "index.js").write_text("module.exports = 2\n")
        signature = publish_to_store(pkg)

        results = adder.add_packages(["left-pad"], AddOptions(working_dir=consumer))

        assert [r.signature for r in results] == [signature]
        assert (consumer / "node_modules" / "left-pad" / "index.js").read_text() == "module.exports = 2\n"

    def test_specific_version(self, adder, consumer, make_package, publish_to_store):
        publish_to_store(make_package("left-pad", "1.0.0", dirname="v1"))
        publish_to_store(make_package("left-pad", "2.0.0", dirname="v2"))

        adder.add_packages(["left-pad@1.0.0"], AddOptions(working_dir=consumer))

        installed = json.loads((consumer / "node_modules" / "left-pad" / "package.json").read_text())
        assert installed["version"] == "1.0.0"
        assert read_project_lockfile(consumer).get("left-pad").version == "1.0.0"

    def test_missing_package_is_skipped(self, adder, consumer, make_package, publish_to_store, capsys):
        publish_to_store(make_package("left-pad"))

        results = adder.add_packages(["not-stored", "left-pad"], AddOptions(working_dir=consumer))

        assert [r.name for r in results] == ["left-pad"]
        assert "not-stored" in capsys.readouterr().err

    def test_scoped_package(self, adder, consumer, make_package, publish_to_store):
        publish_to_store(make_package("@acme/utils"))
        adder.add_packages(["@acme/utils"], AddOptions(working_dir=consumer))

        deps, _ = _deps(consumer)
        assert deps["@acme/utils"] == "file:.shelf/@acme/utils"
        assert (consumer / ".shelf" / "@acme" / "utils" / "index.js").is_file()
        assert (consumer / "node_modules" / "@acme" / "utils" / "index.js").is_file()

    def test_no_project_found(self, adder, tmp_path):
        empty = tmp_path / "nowhere"
        empty.mkdir()
        assert adder.add_packages(["left-pad"], AddOptions(working_dir=empty)) == []


class TestPureAdd:
    def test_pure_leaves_project_untouched(self, adder, consumer, make_package, publish_to_store):
        publish_to_store(make_package("left-pad"))
        before = (consumer / "package.json").read_text()

        results = adder.add_packages(["left-pad"], AddOptions(working_dir=consumer, pure=True))

        assert [r.name for r in results] == ["left-pad"]
        assert (consumer / "package.json").read_text() == before
        assert not (consumer / ".shelf").exists()
        assert not (consumer / "node_modules").exists()
        entry = read_project_lockfile(consumer).get("left-pad")
        assert entry.pure and not entry.file and not entry.link

    def test_workspaces_default_to_pure(self, adder, make_package, publish_to_store):
        publish_to_store(make_package("left-pad"))
        mono = make_package("mono", workspaces=["packages/*"])

        adder.add_packages(["left-pad"], AddOptions(working_dir=mono))

        assert read_project_lockfile(mono).get("left-pad").pure
        assert not (mono / "node_modules").exists()

    def test_no_pure_overrides_workspaces(self, adder, make_package, publish_to_store):
        publish_to_store(make_package("left-pad"))
        mono = make_package("mono", workspaces=["packages/*"])

        adder.add_packages(["left-pad"], AddOptions(working_dir=mono, pure=False))

        assert not read_project_lockfile(mono).get("left-pad").pure
        assert (mono / "node_modules" / "left-pad").is_dir()

    def test_workspaces_default_can_be_disabled(self, adder, make_package, publish_to_store):
        set_pure_workspaces(False)
        publish_to_store(make_package("left-pad"))
        mono = make_package("mono", workspaces=["packages/*"])

        adder.add_packages(["left-pad"], AddOptions(working_dir=mono))

        assert read_project_lockfile(mono).get("left-pad").file


class TestInstallSteps:
    def test_bins_are_linked(self, adder, consumer, make_package, publish_to_store):
        publish_to_store(make_package(
            "@acme/tool",
            contents={"cli.js": "#!/usr/bin/env node\n"},
            bin="cli.js",
        ))

        adder.add_packages(["@acme/tool"], AddOptions(working_dir=consumer))

        bin_link = consumer / "node_modules" / ".bin" / "tool"
        assert bin_link.is_symlink()
        assert bin_link.resolve() == (consumer / ".shelf" / "@acme" / "tool" / "cli.js").resolve()

    def test_postinstall_runs_in_staged_copy(self, adder, consumer, make_package, publish_to_store, script_runner):
        publish_to_store(make_package("left-pad", scripts={"postinstall": "node setup.js"}))

        adder.add_packages(["left-pad"], AddOptions(working_dir=consumer))

        assert script_runner.calls == [("postinstall", (consumer / ".shelf" / "left-pad").resolve())]

    def test_postinstall_failure_raises(self, adder, consumer, make_package, publish_to_store, script_runner):
        script_runner.failing.add("postinstall")
        publish_to_store(make_package("left-pad", scripts={"postinstall": "exit 1"}))

        with pytest.raises(ScriptError):
            adder.add_packages(["left-pad"], AddOptions(working_dir=consumer))


class TestLinkPackages:
    def test_link_does_not_save(self, store, registry_path, script_runner, consumer, make_package, publish_to_store):
        publish_to_store(make_package("left-pad"))
        before = (consumer / "package.json").read_text()

        link_packages(
            ["left-pad"], consumer, store=store, registry_path=registry_path, script_runner=script_runner
        )

        assert (consumer / "package.json").read_text() == before
        assert (consumer / "node_modules" / "left-pad").is_symlink()
        entry = read_project_lockfile(consumer).get("left-pad")
        assert not (entry.file or entry.link or entry.pure)
        assert InstallationRegistry.load(registry_path).list("left-pad") == [normalize_path(consumer.resolve())]
