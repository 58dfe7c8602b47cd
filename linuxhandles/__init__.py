"""Release-once handles over directory streams, shared libraries and select()."""

from . import constants as _constants
from . import config as _config
from . import ffi as _ffi
from . import runtime as _runtime
from .constants import *  # noqa: F401,F403
from .config import *  # noqa: F401,F403
from .ffi import *  # noqa: F401,F403
from .runtime import *  # noqa: F401,F403

__version__ = "0.1.0"

__all__ = []
__all__ += getattr(_constants, "__all__", [])
__all__ += getattr(_config, "__all__", [])
__all__ += getattr(_ffi, "__all__", [])
__all__ += getattr(_runtime, "__all__", [])
