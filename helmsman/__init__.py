__title__ = 'helmsman'
__license__ = 'MIT'
__version__ = "0.1.0"

from .application import *
from .commands import *
from .completion import *
from .faults import *
from .flags import *
from .parser import *
from .routing import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
))

version_info = VersionInfo(0, 1, 0, "final", 0)

__all__ = (
    "__title__",
    "__license__",
    "__version__",
    "version_info",
)

# Load the exposed API of each module
__all__ += application.__all__  # type: ignore[name-defined]
__all__ += commands.__all__  # type: ignore[name-defined]
__all__ += completion.__all__  # type: ignore[name-defined]
__all__ += faults.__all__  # type: ignore[name-defined]
__all__ += flags.__all__  # type: ignore[name-defined]
__all__ += parser.__all__  # type: ignore[name-defined]
__all__ += routing.__all__  # type: ignore[name-defined]
