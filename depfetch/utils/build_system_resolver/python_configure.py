import os
import sys

from .base_resolver import BaseResolver


class PythonConfigureResolver(BaseResolver):
    """Projects configured by a ``configure.py`` script (Botan), then built with make."""

    python = sys.executable

    def get_build_commands(self):
        return {
            "pre_configure": self.pre_configure_commands(),
            "configure": [
                [self.python, os.path.join(self.paths.source_dir, "configure.py"), f"--prefix={self.paths.install_dir}"]
                + list(self.descriptor.effective_build_flags)
            ],
            "build": [["make", f"-j{self.jobs}"] + list(self.descriptor.build_targets)],
            "install": [["make", "install"]],
        }
