import os

from .base_resolver import BaseResolver, STAGES

DEFAULT_HEADER_PATTERNS = ["**/*.h", "**/*.hpp"]


class HeaderOnlyResolver(BaseResolver):
    """Nothing to build: headers are copied into the include directory."""

    def get_build_commands(self):
        return {stage: [] for stage in STAGES}

    def post_install(self):
        patterns = self.descriptor.install_headers
        if not patterns:
            if self.descriptor.archive_format == "file":
                patterns = [os.path.basename(self.paths.archive)]
            else:
                patterns = DEFAULT_HEADER_PATTERNS
        self.install_headers(patterns)
