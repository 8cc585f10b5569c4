"""Store, lock file and installation registry for shelf."""

from .installations import InstallationRegistry, PackageInstallation
from .lockfile import LockEntry, LockFile, get_lockfile_path
from .signature import compute_signature, read_signature
from .store import CopyResult, PackageStore

__all__ = [
    'InstallationRegistry',
    'PackageInstallation',
    'LockEntry',
    'LockFile',
    'get_lockfile_path',
    'compute_signature',
    'read_signature',
    'CopyResult',
    'PackageStore',
]
