import enum
import hashlib
import json
import os
from dataclasses import dataclass, field, fields, asdict

from .exceptions import DescriptorError


class BuildKind(enum.Enum):
    AUTOTOOLS = "autotools"
    CMAKE = "cmake"
    PYTHON_CONFIGURE = "python-configure"
    MAKE_DIRECT = "make-direct"
    HEADER_ONLY = "header-only"
    MANUAL_COMPILE = "manual-compile"


ARCHIVE_FORMATS = (".tar.gz", ".tar.xz", ".tar.bz2", ".tgz", ".zip")

# File that proves the source tree is already in place, per build kind.
DEFAULT_SOURCE_MARKERS = {
    BuildKind.AUTOTOOLS: "configure",
    BuildKind.CMAKE: "CMakeLists.txt",
    BuildKind.PYTHON_CONFIGURE: "configure.py",
    BuildKind.MAKE_DIRECT: "Makefile",
}


def infer_archive_format(url):
    """Return the archive format of ``url`` (``tar.gz``, ``zip``, ... or ``file``)."""
    path = url.split("?", 1)[0].lower()
    for ext in ARCHIVE_FORMATS:
        if path.endswith(ext):
            return "tar.gz" if ext == ".tgz" else ext[1:]
    return "file"


@dataclass
class CompileOptions:
    """Direct compiler invocation for libraries that ship no build system."""

    compiler: str = "c++"
    sources: str = "*.cpp"
    source_subdir: str = ""
    exclude: list = field(default_factory=list)
    flags: list = field(default_factory=lambda: ["-O2", "-fPIC"])
    defines: list = field(default_factory=list)
    library: str = ""
    headers: list = field(default_factory=lambda: ["*.h"])


@dataclass
class LinkTarget:
    name: str
    path: str
    kind: str = "static"


@dataclass
class ExtraDownload:
    """A file fetched into the install tree, e.g. a pre-trained model."""

    url: str
    dest: str = "share"
    decompress: str = ""

    @property
    def filename(self):
        return os.path.basename(self.url.split("?", 1)[0])

    @property
    def installed_name(self):
        if self.decompress == "bz2" and self.filename.endswith(".bz2"):
            return self.filename[:-len(".bz2")]
        return self.filename


@dataclass
class BuildOption:
    """A named boolean that adds flags, definitions or downloads when enabled."""

    enabled: bool = False
    description: str = ""
    build_flags: list = field(default_factory=list)
    compile_definitions: list = field(default_factory=list)
    system_libs: list = field(default_factory=list)
    expected_artifacts: list = field(default_factory=list)
    downloads: list = field(default_factory=list)

    def __post_init__(self):
        self.downloads = [
            item if isinstance(item, ExtraDownload) else ExtraDownload(**item)
            for item in self.downloads
        ]


@dataclass
class DependencyDescriptor:
    """Everything needed to fetch, build and link one dependency.

    ``expected_artifacts`` and the paths of ``link_targets`` are relative to
    the install prefix unless absolute. The order of ``link_targets`` is the
    order the static linker needs (C++ wrapper before its C base library).
    """

    name: str
    version: str
    source_urls: list
    build_kind: BuildKind
    expected_artifacts: list
    build_flags: list = field(default_factory=list)
    archive_format: str = ""
    git_tag: str = ""
    install_prefix: str = ""
    link_targets: list = field(default_factory=list)
    source_marker: str = ""
    extracted_dir: str = ""
    source_subdir: str = ""
    pre_configure: list = field(default_factory=list)
    build_targets: list = field(default_factory=list)
    install_rule: bool = True
    install_headers: list = field(default_factory=list)
    patches: list = field(default_factory=list)
    include_subdir: str = ""
    compile: CompileOptions = None
    compile_definitions: list = field(default_factory=list)
    system_libs: list = field(default_factory=list)
    sha256: str = ""
    options: dict = field(default_factory=dict)
    description: str = ""
    license: str = ""

    def __post_init__(self):
        if isinstance(self.build_kind, str):
            try:
                self.build_kind = BuildKind(self.build_kind)
            except ValueError:
                valid = ", ".join(kind.value for kind in BuildKind)
                raise DescriptorError(f"{self.name}: unknown build kind '{self.build_kind}' (expected one of: {valid})")
        if isinstance(self.compile, dict):
            self.compile = CompileOptions(**self.compile)
        self.link_targets = [
            target if isinstance(target, LinkTarget) else LinkTarget(**target)
            for target in self.link_targets
        ]
        options = {}
        for option_name, option in self.options.items():
            if isinstance(option, dict):
                option = BuildOption(**option)
            elif not isinstance(option, BuildOption):
                raise DescriptorError(f"{self.name}: option '{option_name}' is not defined for this dependency")
            options[option_name] = option
        self.options = options
        if not self.archive_format and self.git_tag:
            self.archive_format = "git"
        elif not self.archive_format and self.source_urls:
            self.archive_format = infer_archive_format(self.source_urls[0])
        if not self.source_marker:
            self.source_marker = DEFAULT_SOURCE_MARKERS.get(self.build_kind, "")
        if self.build_kind is BuildKind.MANUAL_COMPILE and self.compile is None:
            self.compile = CompileOptions()
        self.validate()

    def validate(self):
        if not self.name or os.sep in self.name or self.name in (".", "..") or (os.altsep and os.altsep in self.name):
            raise DescriptorError(f"Invalid dependency name: '{self.name}'")
        if not self.source_urls:
            raise DescriptorError(f"{self.name}: at least one source URL is required")
        if not self.expected_artifacts:
            raise DescriptorError(f"{self.name}: expected_artifacts must not be empty")
        if self.archive_format == "git" and not self.git_tag:
            raise DescriptorError(f"{self.name}: a git source needs 'git_tag'")

    @classmethod
    def from_dict(cls, name, data):
        """Build a descriptor from a ``[dependencies.<name>]`` config table."""
        data = dict(data)
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise DescriptorError(f"{name}: unknown descriptor keys: {', '.join(sorted(unknown))}")
        data.setdefault("name", name)
        for required in ("version", "source_urls", "build_kind", "expected_artifacts"):
            if required not in data:
                raise DescriptorError(f"{name}: missing required key '{required}'")
        return cls(**data)

    def to_dict(self):
        data = asdict(self)
        data["build_kind"] = self.build_kind.value
        return data

    def enabled_options(self):
        return [(name, option) for name, option in self.options.items() if option.enabled]

    def _with_options(self, attr):
        values = list(getattr(self, attr))
        for _, option in self.enabled_options():
            values += getattr(option, attr)
        return values

    @property
    def effective_build_flags(self):
        """``build_flags`` followed by the flags of every enabled option."""
        return self._with_options("build_flags")

    @property
    def effective_compile_definitions(self):
        return self._with_options("compile_definitions")

    @property
    def effective_system_libs(self):
        return self._with_options("system_libs")

    @property
    def effective_artifacts(self):
        return self._with_options("expected_artifacts")

    @property
    def extra_downloads(self):
        return [item for _, option in self.enabled_options() for item in option.downloads]

    @staticmethod
    def _digest(relevant):
        payload = json.dumps(relevant, sort_keys=True).encode("utf-8")
        return hashlib.sha256(payload).hexdigest()

    def source_fingerprint(self):
        """SHA-256 of the fields that decide what the source tree contains."""
        return self._digest({
            "name": self.name,
            "version": self.version,
            "archive_format": self.archive_format,
            "archive_name": self.archive_name,
            "git_tag": self.git_tag,
            "extracted_dir": self.extracted_dir,
            "patches": list(self.patches),
            "sha256": self.sha256,
        })

    def fingerprint(self):
        """SHA-256 of the fields that change what gets built and installed."""
        return self._digest({
            "source": self.source_fingerprint(),
            "build_kind": self.build_kind.value,
            "source_subdir": self.source_subdir,
            "pre_configure": [list(command) for command in self.pre_configure],
            "build_flags": list(self.build_flags),
            "build_targets": list(self.build_targets),
            "install_rule": self.install_rule,
            "install_headers": list(self.install_headers),
            "include_subdir": self.include_subdir,
            "expected_artifacts": list(self.expected_artifacts),
            "compile": asdict(self.compile) if self.compile else None,
            "compile_definitions": list(self.compile_definitions),
            "options": {name: asdict(option) for name, option in self.enabled_options()},
        })

    @property
    def primary_url(self):
        return self.source_urls[0]

    @property
    def archive_name(self):
        """File name the downloaded archive is stored under."""
        if self.archive_format == "file":
            return os.path.basename(self.primary_url.split("?", 1)[0])
        return f"{self.name}-{self.version}.{self.archive_format}"
