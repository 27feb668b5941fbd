import os

from .base_resolver import BaseResolver

# configure honours the last occurrence of an option, so descriptor flags
# placed after these can still override them
STATIC_PIC_FLAGS = ["--disable-shared", "--enable-static", "--with-pic"]


class AutotoolsResolver(BaseResolver):
    """``./configure && make && make install`` with a static, PIC build."""

    def pre_configure_commands(self):
        commands = super().pre_configure_commands()
        configure = os.path.join(self.paths.source_dir, "configure")
        autogen = os.path.join(self.paths.source_dir, "autogen.sh")
        # release tarballs ship configure, git snapshots only autogen.sh
        if not commands and not os.path.exists(configure) and os.path.exists(autogen):
            commands.append(["sh", "autogen.sh"])
        return commands

    def get_build_commands(self):
        return {
            "pre_configure": self.pre_configure_commands(),
            "configure": [
                [os.path.join(self.paths.source_dir, "configure"), f"--prefix={self.paths.install_dir}"]
                + STATIC_PIC_FLAGS
                + list(self.descriptor.effective_build_flags)
            ],
            "build": [["make", f"-j{self.jobs}"] + list(self.descriptor.build_targets)],
            "install": [["make", "install"]],
        }
