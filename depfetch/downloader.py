import contextlib
import os
import shutil
import tarfile
import zipfile

import requests

from . import cache
from .cli_logger import logger
from .exceptions import DownloadError, ExtractionError
from .utils import bunzip2, download_file, extract, run_shell_command, sha256sum
from .utils.patch_resolver import apply_patches

DEFAULT_TIMEOUT = 300


def manual_download_hint(path, url):
    return (
        "You can manually download and place the file:\n"
        f"  curl -L -o {path} {url}\n"
        "Then re-run depfetch."
    )


def manual_clone_hint(descriptor, paths, url):
    return (
        "You can manually clone the sources:\n"
        f"  git clone --depth 1 --branch {descriptor.git_tag} {url} {paths.source_dir}\n"
        "Then re-run depfetch."
    )


def download_with_mirrors(descriptor, paths, timeout=DEFAULT_TIMEOUT):
    """
    Fetches the descriptor's archive, trying each source URL once, in order.

    An archive already present at ``paths.archive`` (e.g. placed there by
    hand) is used as-is.

    Returns:
        str: Path of the downloaded archive.

    Raises:
        DownloadError: if every URL failed or the checksum does not match.
    """
    if os.path.exists(paths.archive):
        logger.info(f"  - {descriptor.name} archive already cached: {paths.archive}")
    else:
        last_error = None
        for url in descriptor.source_urls:
            logger.info(f"  - Downloading {descriptor.name} {descriptor.version} from {url} ...")
            try:
                download_file(url, paths.archive, timeout=timeout)
            except (requests.exceptions.RequestException, OSError) as e:
                last_error = e
                logger.warning(f"Download from {url} failed: {e}")
                with contextlib.suppress(OSError):
                    os.remove(paths.archive)
                continue
            break
        else:
            raise DownloadError(
                descriptor.name,
                f"download failed from all {len(descriptor.source_urls)} source(s): {last_error}",
                hint=manual_download_hint(paths.archive, descriptor.source_urls[-1]),
            )

    if descriptor.sha256:
        actual = sha256sum(paths.archive)
        if actual.lower() != descriptor.sha256.lower():
            os.remove(paths.archive)
            raise DownloadError(
                descriptor.name,
                f"checksum mismatch for {os.path.basename(paths.archive)}: expected {descriptor.sha256}, got {actual}",
                hint=manual_download_hint(paths.archive, descriptor.primary_url),
            )
    return paths.archive


def _pick_extracted_root(tmp_dir, descriptor):
    if descriptor.extracted_dir:
        candidate = os.path.normpath(os.path.join(tmp_dir, descriptor.extracted_dir))
        if not os.path.isdir(candidate):
            raise ExtractionError(
                descriptor.name,
                f"expected directory '{descriptor.extracted_dir}' not found in archive",
            )
        return candidate
    entries = os.listdir(tmp_dir)
    if len(entries) == 1 and os.path.isdir(os.path.join(tmp_dir, entries[0])):
        return os.path.join(tmp_dir, entries[0])
    return tmp_dir


@contextlib.contextmanager
def _staging_dir(descriptor, paths):
    """A scratch directory next to the source tree, removed on every exit path."""
    tmp_dir = os.path.join(paths.root, f"{descriptor.name}-tmp")
    if os.path.isdir(tmp_dir):
        shutil.rmtree(tmp_dir)
    try:
        yield tmp_dir
    finally:
        shutil.rmtree(tmp_dir, ignore_errors=True)


def _install_source(staged_root, descriptor, paths, project_path):
    """Patch and stamp a staged tree, then move it to ``paths.source_dir``.

    The source dir only ever holds a tree whose patches all applied.
    """
    if descriptor.source_marker and not os.path.exists(os.path.join(staged_root, descriptor.source_marker)):
        raise ExtractionError(
            descriptor.name,
            f"{paths.source_path(descriptor.source_marker)} not found after extraction",
            hint=f"Check the archive layout or set 'source_marker' for {descriptor.name}.",
        )
    apply_patches(descriptor, staged_root, project_path)
    cache.write_source_stamp(descriptor, paths, tree=staged_root)
    if os.path.isdir(paths.source_dir):
        shutil.rmtree(paths.source_dir)
    os.replace(staged_root, paths.source_dir)
    logger.info(f"  - {descriptor.name} source cached: {paths.source_dir}")
    return paths.source_dir


def extract_to_source(archive, descriptor, paths, project_path="."):
    """Unpack ``archive``, apply patches and move the tree to ``paths.source_dir``."""
    with _staging_dir(descriptor, paths) as tmp_dir:
        if descriptor.archive_format == "file":
            os.makedirs(tmp_dir)
            shutil.copy2(archive, os.path.join(tmp_dir, os.path.basename(archive)))
            return _install_source(tmp_dir, descriptor, paths, project_path)

        logger.info(f"  - Extracting {descriptor.name} {descriptor.version} ...")
        try:
            extract(archive, tmp_dir)
        except (IOError, tarfile.TarError, zipfile.BadZipFile) as e:
            raise ExtractionError(
                descriptor.name,
                f"could not extract {os.path.basename(archive)}: {e}",
                hint=f"Delete {archive} and re-run depfetch to download it again.",
            )
        return _install_source(_pick_extracted_root(tmp_dir, descriptor), descriptor, paths, project_path)


def clone_to_source(descriptor, paths, project_path="."):
    """
    Shallow-clones ``git_tag`` from each source URL in turn into the source dir.

    Raises:
        DownloadError: if the clone failed from every URL.
    """
    with _staging_dir(descriptor, paths) as tmp_dir:
        clone_dir = os.path.join(tmp_dir, descriptor.name)
        last_error = ""
        for url in descriptor.source_urls:
            logger.info(f"  - Cloning {descriptor.name} {descriptor.git_tag} from {url} ...")
            command = ["git", "clone", "--depth", "1", "--branch", descriptor.git_tag, url, clone_dir]
            stdout, stderr, returncode = run_shell_command(command)
            if returncode == 0:
                break
            lines = (stderr or stdout).strip().splitlines()
            last_error = lines[-1] if lines else f"exit code {returncode}"
            logger.warning(f"Clone from {url} failed: {last_error}")
            shutil.rmtree(clone_dir, ignore_errors=True)
        else:
            raise DownloadError(
                descriptor.name,
                f"git clone failed from all {len(descriptor.source_urls)} source(s): {last_error}",
                hint=manual_clone_hint(descriptor, paths, descriptor.source_urls[-1]),
            )
        shutil.rmtree(os.path.join(clone_dir, ".git"), ignore_errors=True)
        root = _pick_extracted_root(clone_dir, descriptor) if descriptor.extracted_dir else clone_dir
        return _install_source(root, descriptor, paths, project_path)


def source_present(descriptor, paths):
    """True when the source tree (or the single downloaded file) is already in place."""
    if descriptor.archive_format == "file":
        return os.path.exists(os.path.join(paths.source_dir, os.path.basename(paths.archive)))
    if not descriptor.source_marker:
        return False
    return os.path.exists(paths.source_path(descriptor.source_marker))


def source_current(descriptor, paths):
    """True when the source tree is in place and was acquired for this descriptor."""
    return source_present(descriptor, paths) and not cache.source_is_stale(descriptor, paths)


def acquire(descriptor, paths, timeout=DEFAULT_TIMEOUT, project_path="."):
    """
    Make the patched source tree available, downloading only when needed.

    A tree acquired for another version (or other patches) is discarded
    together with its build directory and archive. A freshly acquired tree
    always starts from an empty build directory.
    """
    if source_current(descriptor, paths):
        logger.info(f"  - {descriptor.name} source already cached: {paths.source_dir}")
        return paths.source_dir
    if cache.source_is_stale(descriptor, paths):
        logger.info(f"  - {descriptor.name}: cached source is for a different release, fetching it again.")
        cache.discard_source(paths)
    elif os.path.isdir(paths.build_dir):
        shutil.rmtree(paths.build_dir)

    if descriptor.archive_format == "git":
        return clone_to_source(descriptor, paths, project_path)
    archive = download_with_mirrors(descriptor, paths, timeout=timeout)
    return extract_to_source(archive, descriptor, paths, project_path)


def _fetch_extra(descriptor, item, paths, timeout):
    dest_dir = paths.resolve(item.dest)
    installed = os.path.join(dest_dir, item.installed_name)
    if os.path.exists(installed):
        logger.step_info(f"{item.installed_name} already present", indent=4)
        return installed

    target = os.path.join(dest_dir, item.filename)
    logger.info(f"  - Downloading {item.filename} for {descriptor.name} ...")
    try:
        download_file(item.url, target, timeout=timeout)
    except (requests.exceptions.RequestException, OSError) as e:
        raise DownloadError(
            descriptor.name,
            f"download of {item.url} failed: {e}",
            hint=manual_download_hint(target, item.url),
        )
    if item.decompress == "bz2":
        try:
            bunzip2(target, installed)
        except (OSError, EOFError) as e:
            raise ExtractionError(
                descriptor.name,
                f"could not decompress {item.filename}: {e}",
                hint=f"Delete {target} and re-run depfetch to download it again.",
            )
        os.remove(target)
    return installed


def fetch_extras(descriptor, paths, timeout=DEFAULT_TIMEOUT):
    """Download the files that enabled build options add to the install tree."""
    return [_fetch_extra(descriptor, item, paths, timeout) for item in descriptor.extra_downloads]
