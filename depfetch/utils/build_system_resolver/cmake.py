import glob
import os
import shutil

from ...cli_logger import logger
from ...exceptions import BuildError
from .base_resolver import BaseResolver

DEFAULT_CMAKE_FLAGS = [
    "-DCMAKE_INSTALL_LIBDIR=lib",
    "-DCMAKE_BUILD_TYPE=Release",
    "-DCMAKE_POSITION_INDEPENDENT_CODE=ON",
]


class CMakeResolver(BaseResolver):
    """Out-of-tree ``cmake -S/-B`` build, installed with ``cmake --install``.

    Projects without install rules (``install_rule = false``) get their
    libraries copied out of the build tree instead.
    """

    @property
    def cmake_source_dir(self):
        if self.descriptor.source_subdir:
            return self.paths.source_path(self.descriptor.source_subdir)
        return self.paths.source_dir

    def prepare(self):
        super().prepare()
        os.makedirs(self.paths.build_dir, exist_ok=True)

    def get_build_commands(self):
        build = ["cmake", "--build", self.paths.build_dir, "--config", "Release", "-j", str(self.jobs)]
        for target in self.descriptor.build_targets:
            build += ["--target", target]
        install = []
        if self.descriptor.install_rule:
            install.append(["cmake", "--install", self.paths.build_dir, "--config", "Release"])
        return {
            "pre_configure": self.pre_configure_commands(),
            "configure": [
                [
                    "cmake",
                    "-S", self.cmake_source_dir,
                    "-B", self.paths.build_dir,
                    f"-DCMAKE_INSTALL_PREFIX={self.paths.install_dir}",
                ]
                + DEFAULT_CMAKE_FLAGS
                + list(self.descriptor.effective_build_flags)
            ],
            "build": [build],
            "install": install,
        }

    def _find_built_library(self, filename):
        for candidate in (
            os.path.join(self.paths.build_dir, filename),
            os.path.join(self.paths.build_dir, "Release", filename),
        ):
            if os.path.isfile(candidate):
                return candidate
        matches = glob.glob(os.path.join(self.paths.build_dir, "**", filename), recursive=True)
        return matches[0] if matches else None

    def post_install(self):
        if self.descriptor.install_rule:
            super().post_install()
            return
        os.makedirs(self.paths.lib_dir, exist_ok=True)
        for target in self.descriptor.link_targets:
            filename = os.path.basename(target.path)
            built = self._find_built_library(filename)
            if built is None:
                raise BuildError(
                    self.descriptor.name,
                    f"build produced no {filename} under {self.paths.build_dir}",
                    stage="install",
                )
            shutil.copy2(built, self.paths.resolve(target.path))
            logger.step_info(f"Copied {filename} to {self.paths.lib_dir}", indent=4)
        if self.descriptor.install_headers:
            self.install_headers()
