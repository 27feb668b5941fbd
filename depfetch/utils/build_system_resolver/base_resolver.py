import os
from abc import ABC, abstractmethod

from ...cli_logger import logger
from ...exceptions import BuildError
from ..file_manager import copy_matching

STAGES = ("pre_configure", "configure", "build", "install")


class BaseResolver(ABC):
    """Turns a descriptor into the commands of one build system.

    Concrete resolvers only describe *what* to run; the caller executes the
    commands stage by stage and treats any non-zero exit as fatal.
    """

    def __init__(self, descriptor, paths, jobs=None, env=None):
        self.descriptor = descriptor
        self.paths = paths
        self.jobs = jobs or os.cpu_count() or 1
        self.env = env

    @property
    def working_dir(self):
        return self.paths.source_dir

    def prepare(self):
        """Create directories the commands expect. Runs before any stage."""
        os.makedirs(self.paths.install_dir, exist_ok=True)

    def pre_configure_commands(self):
        return [list(command) for command in self.descriptor.pre_configure]

    @abstractmethod
    def get_build_commands(self):
        """Returns a dict mapping each of ``STAGES`` to a list of argv lists."""

    def post_install(self):
        """File-copy work for libraries without a usable install rule."""
        if self.descriptor.install_headers:
            self.install_headers()

    def install_headers(self, patterns=None):
        patterns = patterns or self.descriptor.install_headers
        dest = self.paths.include_dir
        if self.descriptor.include_subdir:
            dest = os.path.join(dest, self.descriptor.include_subdir)
        copied = copy_matching(self.paths.source_dir, patterns, dest, keep_tree=True)
        if not copied:
            raise BuildError(
                self.descriptor.name,
                f"no headers matching {patterns} in {self.paths.source_dir}",
                stage="install",
            )
        logger.step_info(f"Copied {len(copied)} header(s) to {dest}", indent=4)
        return copied
