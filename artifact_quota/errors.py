"""
Error taxonomy for artifact quota reclamation.

Every error carries a stable ``code`` for programmatic handling and a
human-readable ``message``. Fatal errors abort the remaining pipeline;
already-executed deletes are never rolled back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .reclaim.executor import EvictionReport


class ReclaimError(Exception):
    """
    Base class for all reclamation failures.

    Attributes:
        code: Stable error code for programmatic handling
        message: Human-readable error description
    """

    code = "reclaim_error"

    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code or self.code
        self.message = message
        super().__init__(f"{self.code}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "error": type(self).__name__,
            "code": self.code,
            "message": self.message,
        }


class ConfigurationError(ReclaimError):
    """Invalid or missing input, raised before any remote call."""

    code = "invalid_configuration"


class MeasurementError(ReclaimError):
    """The pending upload could not be archived and measured."""

    code = "measurement_failed"


class QuotaExceededError(ReclaimError):
    """The pending upload alone is larger than the limit."""

    code = "quota_exceeded"


class RemoteError(ReclaimError):
    """A call to the remote artifact API failed."""

    code = "remote_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ):
        self.status_code = status_code
        super().__init__(message, code=code)


class TransientRemoteError(RemoteError):
    """Server-side or transport failure that may succeed on retry."""

    code = "remote_transient"


class RateLimitedError(RemoteError):
    """The remote side asked us to slow down.

    ``retry_after`` is the server-suggested delay in seconds.
    """

    code = "remote_rate_limited"

    def __init__(
        self,
        message: str,
        retry_after: float,
        status_code: Optional[int] = None,
    ):
        self.retry_after = retry_after
        super().__init__(message, status_code=status_code)


class ArtifactNotFoundError(RemoteError):
    """No artifact with the requested name exists in the run."""

    code = "artifact_not_found"


class DeletionError(ReclaimError):
    """A victim could not be deleted; carries what was deleted before it."""

    code = "deletion_failed"

    def __init__(self, message: str, report: "EvictionReport"):
        self.report = report
        super().__init__(message)
