from .clean import clean
from .config import config
from .ensure import ensure
from .info import info
from .list_deps import list_deps
from .log import log
from .status import status
from .version import version

__all__ = ["clean", "config", "ensure", "info", "list_deps", "log", "status", "version"]
