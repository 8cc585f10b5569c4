"""Data models for shelf."""

from .manifest import (
    BinMap,
    PackageManifest,
    PackageSpec,
    SingleBin,
    find_package,
    parse_package_spec,
    read_manifest,
    write_manifest,
)

__all__ = [
    "BinMap",
    "PackageManifest",
    "PackageSpec",
    "SingleBin",
    "find_package",
    "parse_package_spec",
    "read_manifest",
    "write_manifest",
]
