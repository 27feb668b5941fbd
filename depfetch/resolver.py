"""Idempotent fetch / build / install of a single dependency.

``ensure()`` is the only entry point that touches the network or runs build
tools. It holds the dependency's lock for its whole duration and returns a
``LinkPlan`` either straight from the cache or after a full rebuild.
"""

import os

from . import cache
from . import downloader
from .cli_logger import logger
from .exceptions import BuildError
from .link_plan import build_link_plan
from .utils import run_shell_command, format_command
from .utils.build_system_resolver import STAGES, get_resolver

STAGE_LABELS = {
    "pre_configure": "Preparing",
    "configure": "Configuring",
    "build": "Building",
    "install": "Installing",
}

# how much captured output a BuildError shows on the console
OUTPUT_TAIL_LINES = 40


def _tail(text, lines=OUTPUT_TAIL_LINES):
    return "\n".join(text.strip().splitlines()[-lines:])


def _run_stage(resolver, stage, commands):
    descriptor = resolver.descriptor
    if not commands:
        return
    logger.info(f"  - {STAGE_LABELS[stage]} {descriptor.name} ...")
    for command in commands:
        logger.step_info(format_command(command), indent=4)
        stdout, stderr, returncode = run_shell_command(command, env=resolver.env, cwd=resolver.working_dir)
        if returncode != 0:
            logger.error(f"{descriptor.name} {stage} failed (Exit Code: {returncode}):")
            if stdout:
                logger.error(f"Stdout:\n{_tail(stdout)}")
            if stderr:
                logger.error(f"Stderr:\n{_tail(stderr)}")
            raise BuildError(
                descriptor.name,
                f"`{format_command(command)}` exited with status {returncode}",
                stage=stage,
                returncode=returncode,
                stdout=stdout,
                stderr=stderr,
                hint=f"Fix the error above, then delete {resolver.paths.root} and re-run depfetch.",
            )


def _verify_artifacts(descriptor, paths):
    missing = [path for path in cache.artifact_paths(descriptor, paths) if not os.path.exists(path)]
    if missing:
        raise BuildError(
            descriptor.name,
            f"install finished but expected artifacts are missing: {', '.join(missing)}",
            stage="verify",
            hint=f"Check 'expected_artifacts' for {descriptor.name}, or delete {paths.root} and retry.",
        )


def _build(descriptor, paths, jobs, timeout, project_path):
    downloader.acquire(descriptor, paths, timeout=timeout, project_path=project_path)

    resolver = get_resolver(descriptor, paths, jobs=jobs)
    resolver.prepare()
    commands = resolver.get_build_commands()
    for stage in STAGES:
        _run_stage(resolver, stage, commands[stage])
    resolver.post_install()
    downloader.fetch_extras(descriptor, paths, timeout=timeout)
    _verify_artifacts(descriptor, paths)


def ensure(descriptor, download_root="download", jobs=None, timeout=downloader.DEFAULT_TIMEOUT, project_path="."):
    """
    Makes one dependency available for linking.

    On a cache hit (all expected artifacts plus a matching completion marker)
    nothing is downloaded or executed. Otherwise the source is acquired if
    missing, then configured, built and installed, and the marker written.

    Returns:
        LinkPlan: include directories and ordered libraries for the dependency.

    Raises:
        DependencyError: on any unrecoverable download, extract or build failure.
    """
    paths = cache.DependencyPaths.for_descriptor(descriptor, download_root)
    logger.info(f"{descriptor.name} {descriptor.version} ({descriptor.build_kind.value})")

    with cache.dependency_lock(paths):
        if cache.is_cached(descriptor, paths):
            logger.success(f"{descriptor.name} already built: {paths.install_dir}")
            return build_link_plan(descriptor, paths)

        cache.clear_marker(paths)
        _build(descriptor, paths, jobs, timeout, project_path)
        cache.write_marker(descriptor, paths)

    logger.success(f"{descriptor.name} {descriptor.version} built and installed to {paths.install_dir}")
    return build_link_plan(descriptor, paths)


def ensure_all(descriptors, download_root="download", jobs=None, timeout=downloader.DEFAULT_TIMEOUT, project_path="."):
    """Ensure each descriptor in turn; the first failure aborts the run."""
    return [
        ensure(descriptor, download_root=download_root, jobs=jobs, timeout=timeout, project_path=project_path)
        for descriptor in descriptors
    ]


def status(descriptor, download_root="download"):
    """Report the cache state of a dependency without modifying anything."""
    paths = cache.DependencyPaths.for_descriptor(descriptor, download_root)
    if cache.artifacts_present(descriptor, paths):
        recorded = cache.read_marker(paths)
        if recorded == descriptor.fingerprint():
            state = "cached"
        elif recorded is None:
            state = "incomplete"
        else:
            state = "stale"
    elif downloader.source_current(descriptor, paths):
        state = "source-only"
    else:
        state = "missing"
    return state, paths
