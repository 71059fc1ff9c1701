"""Logdash client SDK.

Ships structured logs and metric updates to the Logdash platform without ever
blocking or failing the host application:

- `Logdash` / `create()`: top-level handle owning the transport lifecycle.
- `LogdashConfig` / `load_config()`: validated settings (optionally from `LOGDASH_*` env vars).
- `LogEntry`, `MetricEntry`, `LogLevel`, `MetricType`: immutable event model.
"""

from .client import Logdash, create
from .config import LogdashConfig, load_config
from .exceptions import LogdashError, LogdashHttpError
from .logger import LogdashLogger
from .metrics import LogdashMetrics
from .models import LogEntry, LogLevel, MetricEntry, MetricType

__version__ = "0.2.0"

__all__ = [
    "LogEntry",
    "LogLevel",
    "Logdash",
    "LogdashConfig",
    "LogdashError",
    "LogdashHttpError",
    "LogdashLogger",
    "LogdashMetrics",
    "MetricEntry",
    "MetricType",
    "create",
    "load_config",
]
