import contextlib
import glob
import os
import re

from ...exceptions import BuildError
from .base_resolver import BaseResolver


class ManualCompileResolver(BaseResolver):
    """Libraries shipped without a build system (ALGLIB, the SQLite amalgamation).

    Each source file is compiled to an object file, the objects are added to
    ``lib/lib<name>.a`` one ``ar rcs`` call at a time, and headers are copied.
    """

    ar = os.environ.get("AR", "ar")

    @property
    def options(self):
        return self.descriptor.compile

    @property
    def src_dir(self):
        return os.path.join(self.paths.source_dir, self.options.source_subdir)

    @property
    def object_dir(self):
        return os.path.join(self.paths.build_dir, "obj")

    @property
    def library_path(self):
        name = self.options.library or self.descriptor.name
        return os.path.join(self.paths.lib_dir, f"lib{name}.a")

    def sources(self):
        excluded = [re.compile(pattern) for pattern in self.options.exclude]
        selected = []
        for path in sorted(glob.glob(os.path.join(self.src_dir, self.options.sources))):
            stem = os.path.splitext(os.path.basename(path))[0]
            if any(regex.search(stem) for regex in excluded):
                continue
            selected.append(path)
        return selected

    def prepare(self):
        super().prepare()
        os.makedirs(self.object_dir, exist_ok=True)
        os.makedirs(self.paths.lib_dir, exist_ok=True)
        with contextlib.suppress(FileNotFoundError):
            os.remove(self.library_path)

    def _object_for(self, source):
        stem = os.path.splitext(os.path.basename(source))[0]
        return os.path.join(self.object_dir, f"{stem}.o")

    def get_build_commands(self):
        sources = self.sources()
        if not sources:
            raise BuildError(
                self.descriptor.name,
                f"no sources matching '{self.options.sources}' in {self.src_dir}",
                stage="build",
            )
        compiler = os.environ.get("CXX" if self.options.compiler in ("c++", "g++", "clang++") else "CC", self.options.compiler)
        defines = [f"-D{define}" for define in self.options.defines]
        compile_commands = [
            [compiler] + list(self.options.flags) + defines + [f"-I{self.src_dir}", "-c", source, "-o", self._object_for(source)]
            for source in sources
        ]
        # one object per ar call keeps the command line short
        archive_commands = [[self.ar, "rcs", self.library_path, self._object_for(source)] for source in sources]
        return {
            "pre_configure": self.pre_configure_commands(),
            "configure": [],
            "build": compile_commands + archive_commands,
            "install": [],
        }

    def post_install(self):
        patterns = [os.path.join(self.options.source_subdir, pattern) for pattern in self.options.headers]
        self.install_headers(patterns)
