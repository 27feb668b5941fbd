from .base_resolver import BaseResolver


class MakeDirectResolver(BaseResolver):
    """Plain Makefile projects (OpenBLAS): no configure step, flags passed to every make call."""

    def _make_variables(self):
        return list(self.descriptor.effective_build_flags) + [f"PREFIX={self.paths.install_dir}"]

    def get_build_commands(self):
        return {
            "pre_configure": self.pre_configure_commands(),
            "configure": [],
            "build": [["make"] + list(self.descriptor.build_targets) + [f"-j{self.jobs}"] + self._make_variables()],
            "install": [["make", "install"] + self._make_variables()],
        }
