from .catalog import get_descriptor
from .descriptor import BuildKind, CompileOptions, DependencyDescriptor, LinkTarget
from .exceptions import BuildError, DependencyError, DepfetchError, DownloadError, ExtractionError
from .link_plan import LinkPlan, merge_plans, render_cmake
from .resolver import ensure, ensure_all, status
