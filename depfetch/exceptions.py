class DepfetchError(Exception):
    """Base class for every error raised by depfetch."""


class ConfigError(DepfetchError):
    """The project configuration could not be read or is invalid."""


class DescriptorError(DepfetchError):
    """A dependency descriptor is incomplete or inconsistent."""


class DependencyError(DepfetchError):
    """A fatal failure while making one dependency available.

    Carries the failing ``stage`` (download, extract, configure, build,
    install, verify), the ``dependency`` name and an optional copy-pasteable
    ``hint`` describing a manual workaround.
    """

    stage = "resolve"

    def __init__(self, dependency, message, hint=None, stage=None):
        super().__init__(message)
        self.dependency = dependency
        self.message = message
        self.hint = hint
        if stage:
            self.stage = stage

    def __str__(self):
        return f"[{self.dependency}] {self.stage} failed: {self.message}"


class DownloadError(DependencyError):
    stage = "download"


class ExtractionError(DependencyError):
    stage = "extract"


class BuildError(DependencyError):
    """A configure/build/install command exited with a non-zero status."""

    stage = "build"

    def __init__(self, dependency, message, stage=None, returncode=None, stdout="", stderr="", hint=None):
        super().__init__(dependency, message, hint=hint, stage=stage)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
