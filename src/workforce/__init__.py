"""Multi-agent task workforce with resilient provider fallback."""

from importlib import metadata

from .orchestrator import Workforce
from .tasks.base import AgentKind, Task

try:
    __version__ = metadata.version("workforce")
except metadata.PackageNotFoundError:  # pragma: no cover - fallback for dev
    __version__ = "0.0.0"

__all__ = ["Workforce", "Task", "AgentKind", "__version__"]
