import os
from ..cli_logger import logger
from ..exceptions import BuildError
from .command_executor import run_shell_command


def _apply_patch_file(descriptor, source_dir, patch_file, project_path):
    patch_path = patch_file if os.path.isabs(patch_file) else os.path.join(project_path, patch_file)
    if not os.path.exists(patch_path):
        raise BuildError(descriptor.name, f"patch file not found: {patch_path}", stage="patch")

    logger.info(f"    - Applying patch: {patch_file}")
    stdout, stderr, returncode = run_shell_command(["patch", "-p1", "-i", patch_path], cwd=source_dir)
    if returncode != 0:
        raise BuildError(
            descriptor.name,
            f"failed to apply patch {patch_file} (exit code {returncode})",
            stage="patch",
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
        )


def _apply_replacement(descriptor, source_dir, patch):
    target = os.path.join(source_dir, patch["path"])
    try:
        with open(target, "r") as f:
            content = f.read()
    except OSError as e:
        raise BuildError(descriptor.name, f"cannot read {patch['path']} for patching: {e}", stage="patch")

    if patch["search"] not in content:
        logger.warning(f"    - Patch text not found in {patch['path']}, leaving it unchanged.")
        return
    with open(target, "w") as f:
        f.write(content.replace(patch["search"], patch["replace"]))
    logger.info(f"    - Patched {patch['path']}")


def apply_patches(descriptor, source_dir, project_path="."):
    """
    Applies the descriptor's patches to a freshly extracted source tree.

    Each entry of ``descriptor.patches`` is either ``{"file": "<patch>"}``
    (applied with ``patch -p1``, relative to the project directory) or
    ``{"path": "<file>", "search": "...", "replace": "..."}`` for an
    in-place text replacement.

    Raises:
        BuildError: if a patch file is missing or does not apply.
    """
    if not descriptor.patches:
        return
    logger.info(f"  - Applying patches for {descriptor.name}...")
    for patch in descriptor.patches:
        if "file" in patch:
            _apply_patch_file(descriptor, source_dir, patch["file"], project_path)
        else:
            _apply_replacement(descriptor, source_dir, patch)
