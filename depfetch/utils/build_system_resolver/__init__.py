"""Build-system strategies, one per ``BuildKind``."""

from ...descriptor import BuildKind
from .autotools import AutotoolsResolver
from .base_resolver import BaseResolver, STAGES
from .cmake import CMakeResolver
from .header_only import HeaderOnlyResolver
from .make_direct import MakeDirectResolver
from .manual_compile import ManualCompileResolver
from .python_configure import PythonConfigureResolver

RESOLVERS = {
    BuildKind.AUTOTOOLS: AutotoolsResolver,
    BuildKind.CMAKE: CMakeResolver,
    BuildKind.PYTHON_CONFIGURE: PythonConfigureResolver,
    BuildKind.MAKE_DIRECT: MakeDirectResolver,
    BuildKind.HEADER_ONLY: HeaderOnlyResolver,
    BuildKind.MANUAL_COMPILE: ManualCompileResolver,
}


def get_resolver(descriptor, paths, jobs=None, env=None):
    """Return the resolver instance matching ``descriptor.build_kind``."""
    return RESOLVERS[descriptor.build_kind](descriptor, paths, jobs=jobs, env=env)
