"""On-disk cache layout for resolved dependencies.

Every dependency owns one subtree of the download root::

    <download_root>/<name>/
        <name>/                  extracted source
            .depfetch-source     source stamp (what the tree was acquired for)
        <name>-build/            out-of-tree build directory
        <name>-install/          install prefix (include/, lib/)
            .depfetch-complete   completion marker (descriptor fingerprint)
        <archive>                downloaded archive
        .depfetch.lock           advisory lock held during ensure()

Deleting ``<download_root>/<name>`` forces a clean rebuild.
"""

import contextlib
import fcntl
import json
import os
import shutil
from dataclasses import dataclass

from .cli_logger import logger

MARKER_NAME = ".depfetch-complete"
SOURCE_STAMP_NAME = ".depfetch-source"
LOCK_NAME = ".depfetch.lock"


@dataclass(frozen=True)
class DependencyPaths:
    root: str
    source_dir: str
    build_dir: str
    install_dir: str
    archive: str
    lock_file: str

    @classmethod
    def for_descriptor(cls, descriptor, download_root):
        root = os.path.join(os.path.abspath(download_root), descriptor.name)
        install_dir = descriptor.install_prefix or os.path.join(root, f"{descriptor.name}-install")
        return cls(
            root=root,
            source_dir=os.path.join(root, descriptor.name),
            build_dir=os.path.join(root, f"{descriptor.name}-build"),
            install_dir=os.path.abspath(install_dir),
            archive=os.path.join(root, descriptor.archive_name),
            lock_file=os.path.join(root, LOCK_NAME),
        )

    @property
    def marker(self):
        return os.path.join(self.install_dir, MARKER_NAME)

    @property
    def include_dir(self):
        return os.path.join(self.install_dir, "include")

    @property
    def lib_dir(self):
        return os.path.join(self.install_dir, "lib")

    def resolve(self, relative):
        """Resolve an install-relative path; absolute paths pass through."""
        if os.path.isabs(relative):
            return relative
        return os.path.join(self.install_dir, relative)

    def source_path(self, relative):
        return os.path.join(self.source_dir, relative)

    @property
    def source_stamp(self):
        return self.source_path(SOURCE_STAMP_NAME)


def artifact_paths(descriptor, paths):
    return [paths.resolve(artifact) for artifact in descriptor.effective_artifacts]


def artifacts_present(descriptor, paths):
    return all(os.path.exists(path) for path in artifact_paths(descriptor, paths))


def read_marker(paths):
    try:
        with open(paths.marker, "r") as f:
            return f.read().strip()
    except FileNotFoundError:
        return None


def is_cached(descriptor, paths):
    """True when every expected artifact exists and the marker matches."""
    if not artifacts_present(descriptor, paths):
        return False
    recorded = read_marker(paths)
    if recorded is None:
        logger.warning(f"  - {descriptor.name}: artifacts exist but no completion marker, rebuilding.")
        return False
    if recorded != descriptor.fingerprint():
        logger.info(f"  - {descriptor.name}: descriptor changed since last build, rebuilding.")
        return False
    return True


def write_marker(descriptor, paths):
    os.makedirs(paths.install_dir, exist_ok=True)
    tmp = paths.marker + ".tmp"
    with open(tmp, "w") as f:
        f.write(descriptor.fingerprint() + "\n")
    os.replace(tmp, paths.marker)


def clear_marker(paths):
    with contextlib.suppress(FileNotFoundError):
        os.remove(paths.marker)


def read_source_stamp(paths):
    """The stamp written when the source tree was acquired, or None."""
    try:
        with open(paths.source_stamp, "r") as f:
            return json.load(f)
    except FileNotFoundError:
        return None
    except ValueError:
        logger.warning(f"  - Ignoring unreadable source stamp {paths.source_stamp}")
        return {}


def write_source_stamp(descriptor, paths, tree=None):
    """Record which descriptor ``tree`` (default: the source dir) was acquired for."""
    stamp = {
        "fingerprint": descriptor.source_fingerprint(),
        "version": descriptor.version,
        "archive": descriptor.archive_name,
    }
    with open(os.path.join(tree or paths.source_dir, SOURCE_STAMP_NAME), "w") as f:
        json.dump(stamp, f, indent=4)


def source_is_stale(descriptor, paths):
    """True when the source tree carries a stamp for a different descriptor.

    A tree without a stamp (placed by hand) is never stale.
    """
    stamp = read_source_stamp(paths)
    return stamp is not None and stamp.get("fingerprint") != descriptor.source_fingerprint()


def discard_source(paths):
    """Remove a stale source tree, its build directory and the archive it came from."""
    stamp = read_source_stamp(paths) or {}
    if stamp.get("archive") == os.path.basename(paths.archive):
        with contextlib.suppress(FileNotFoundError):
            os.remove(paths.archive)
    for directory in (paths.source_dir, paths.build_dir):
        if os.path.isdir(directory):
            shutil.rmtree(directory)


@contextlib.contextmanager
def dependency_lock(paths):
    """Hold an exclusive advisory lock on a dependency's cache subtree."""
    os.makedirs(paths.root, exist_ok=True)
    with open(paths.lock_file, "a") as handle:
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            logger.info(f"  - Waiting for another depfetch run holding {paths.lock_file}...")
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
        try:
            yield handle
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


def remove_cache(name, download_root):
    """Delete one dependency's cache subtree. Returns True if anything was removed."""
    if not name or os.sep in name or name in (".", ".."):
        raise ValueError(f"Refusing to remove cache for invalid name '{name}'")
    root = os.path.join(os.path.abspath(download_root), name)
    if not os.path.isdir(root):
        return False
    shutil.rmtree(root)
    return True
