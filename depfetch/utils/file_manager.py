import bz2
import contextlib
import glob
import hashlib
import os
import shutil
import tarfile
import zipfile

import requests

from ..cli_logger import logger

CHUNK_SIZE = 1024 * 256

# -------------------- Helpers: safe paths & extraction --------------------

def _safe_join(base, *paths):
    """Join paths under ``base``, refusing anything that escapes it."""
    base = os.path.abspath(base)
    final = os.path.abspath(os.path.join(base, *paths))
    if final != base and not final.startswith(base + os.sep):
        raise IOError(f"Unsafe path detected in archive: {final}")
    return final


def _safe_extract_zip(zip_ref, dest_dir):
    for member in zip_ref.infolist():
        target_path = _safe_join(dest_dir, member.filename)
        if member.is_dir():
            os.makedirs(target_path, exist_ok=True)
            continue
        os.makedirs(os.path.dirname(target_path), exist_ok=True)
        with zip_ref.open(member, "r") as src, open(target_path, "wb") as out:
            shutil.copyfileobj(src, out)
        mode = member.external_attr >> 16
        if mode:
            os.chmod(target_path, mode & 0o777)


def _safe_extract_tar(tar_ref, dest_dir):
    for member in tar_ref.getmembers():
        member_path = _safe_join(dest_dir, member.name)
        if member.isdir():
            os.makedirs(member_path, exist_ok=True)
            continue
        if member.issym() or member.islnk():
            # links must also resolve inside the destination
            link_base = os.path.dirname(member_path) if member.issym() else dest_dir
            _safe_join(link_base, member.linkname)
            os.makedirs(os.path.dirname(member_path), exist_ok=True)
            with contextlib.suppress(FileNotFoundError):
                os.remove(member_path)
            if member.issym():
                os.symlink(member.linkname, member_path)
            else:
                shutil.copy2(_safe_join(dest_dir, member.linkname), member_path)
            continue
        src = tar_ref.extractfile(member)
        if src is None:
            continue
        os.makedirs(os.path.dirname(member_path), exist_ok=True)
        with src as src_file, open(member_path, "wb") as out:
            shutil.copyfileobj(src_file, out)
        if member.mode:
            os.chmod(member_path, member.mode & 0o777)


def extract(filepath, dest_dir):
    """Extracts a tar or zip archive into ``dest_dir``.

    Raises:
        IOError: if the archive type is unsupported or a member escapes ``dest_dir``.
        tarfile.TarError, zipfile.BadZipFile: if the archive is corrupt.
    """
    os.makedirs(dest_dir, exist_ok=True)
    if tarfile.is_tarfile(filepath):
        with tarfile.open(filepath, "r:*") as tar:
            _safe_extract_tar(tar, dest_dir)
    elif zipfile.is_zipfile(filepath):
        with zipfile.ZipFile(filepath, "r") as zip_ref:
            _safe_extract_zip(zip_ref, dest_dir)
    else:
        raise IOError(f"Unsupported archive type: {os.path.basename(filepath)}")
    logger.step_info(f"Extracted {os.path.basename(filepath)} to {dest_dir}", indent=4)
    return dest_dir


def bunzip2(filepath, dest):
    """Decompress a single .bz2 file to ``dest`` through a temporary file.

    Raises:
        OSError, EOFError: if the file is not valid bzip2 data.
    """
    temp_dest = dest + ".tmp"
    try:
        with bz2.open(filepath, "rb") as src, open(temp_dest, "wb") as out:
            shutil.copyfileobj(src, out, CHUNK_SIZE)
        os.replace(temp_dest, dest)
    except BaseException:
        with contextlib.suppress(OSError):
            os.remove(temp_dest)
        raise
    return dest

# -------------------- Download --------------------

def download_file(url, filepath, timeout=300):
    """Download ``url`` to ``filepath`` through a temporary file.

    The final path only appears once the whole body has been written. On any
    failure the partial temporary file is removed and the error re-raised.
    """
    os.makedirs(os.path.dirname(filepath), exist_ok=True)
    temp_filepath = filepath + ".tmp"
    try:
        with requests.get(url, stream=True, timeout=timeout) as r:
            r.raise_for_status()
            total_size = int(r.headers.get("content-length", 0) or 0)
            with open(temp_filepath, "wb") as f:
                chunks = logger.progress(
                    r.iter_content(chunk_size=CHUNK_SIZE),
                    description=f"Downloading {os.path.basename(filepath)}",
                    total=total_size,
                )
                for chunk in chunks:
                    if chunk:
                        f.write(chunk)
        os.replace(temp_filepath, filepath)
    except BaseException:
        with contextlib.suppress(OSError):
            os.remove(temp_filepath)
        raise
    return filepath


def sha256sum(filepath):
    digest = hashlib.sha256()
    with open(filepath, "rb") as f:
        for block in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(block)
    return digest.hexdigest()

# -------------------- Copy helpers --------------------

def _literal_prefix(pattern):
    """Leading directories of a glob pattern that contain no wildcard."""
    parts = pattern.replace("\\", "/").split("/")[:-1]
    prefix = []
    for part in parts:
        if glob.has_magic(part):
            break
        prefix.append(part)
    return os.path.join(*prefix) if prefix else ""


def copy_matching(src_dir, patterns, dest_dir, keep_tree=False):
    """Copy files under ``src_dir`` matching any glob in ``patterns`` to ``dest_dir``.

    With ``keep_tree`` the directory layout below each pattern's literal
    prefix is preserved (``include/*.h`` lands flat, ``**/*.hpp`` keeps its
    subdirectories). Returns the list of copied destination paths.
    """
    copied = []
    os.makedirs(dest_dir, exist_ok=True)
    for pattern in patterns:
        base = os.path.join(src_dir, _literal_prefix(pattern))
        for path in sorted(glob.glob(os.path.join(src_dir, pattern), recursive=True)):
            if not os.path.isfile(path):
                continue
            if keep_tree:
                target = os.path.join(dest_dir, os.path.relpath(path, base))
                os.makedirs(os.path.dirname(target), exist_ok=True)
            else:
                target = os.path.join(dest_dir, os.path.basename(path))
            shutil.copy2(path, target)
            copied.append(target)
    return copied
