"""
Native handles for the Python host.

| Resource           | Native calls                                   | Release           |
<------------------- + ---------------------------------------------- + ------------------>
| Directory stream   | opendir, readdir, telldir, seekdir, rewinddir  | closedir, once    |
| Library            | dlopen, dlsym, dlerror                         | dlclose, once     |
| Symbol             | (weak view of a library)                       | no native call    |
| Descriptor set     | fd_set bitmap                                  | plain value       |
| Readiness wait     | select                                         | n/a               |

Every handle can be released explicitly, by leaving a ``with`` block, or by
garbage collection; only the first of these reaches the native layer.
"""

from . import core as _core
from . import lifetimes as _lifetimes
from . import dirent as _dirent
from . import dl as _dl
from . import fdset as _fdset
from . import readiness as _readiness
from .cli import main, parse_args

from .core import *
from .lifetimes import *
from .dirent import *
from .dl import *
from .fdset import *
from .readiness import *

__all__ = []
for module in (_core, _lifetimes, _dirent, _dl, _fdset, _readiness):
    __all__.extend(getattr(module, "__all__", []))
__all__ += ["main", "parse_args"]
__all__ = list(dict.fromkeys(__all__))
