"""
Artifact Quota

Keeps the workflow artifacts stored for a repository under a byte limit by
evicting the oldest (or newest) ones before a new upload.
"""

import importlib.metadata

__version__ = importlib.metadata.version("artifact-quota")

from .config import ReclaimConfig, Settings, build_config, format_size, parse_size
from .errors import (
    ConfigurationError,
    DeletionError,
    MeasurementError,
    QuotaExceededError,
    RateLimitedError,
    ReclaimError,
    RemoteError,
    TransientRemoteError,
)
from .models import Artifact, Namespace, RemoveDirection, Run
from .reclaim import ReclaimResult, run_reclaim

__all__ = [
    "Artifact",
    "ConfigurationError",
    "DeletionError",
    "MeasurementError",
    "Namespace",
    "QuotaExceededError",
    "RateLimitedError",
    "ReclaimConfig",
    "ReclaimError",
    "ReclaimResult",
    "RemoteError",
    "RemoveDirection",
    "Run",
    "Settings",
    "TransientRemoteError",
    "build_config",
    "format_size",
    "parse_size",
    "run_reclaim",
]
