"""Error types for universe lifecycle management."""
import logging
from typing import Any, Dict, Optional


class VkubeError(Exception):
    """Base error class for vkube."""
    def __init__(
        self,
        message: str,
        phase: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.phase = phase
        self.details = details or {}


class UniverseOpenError(VkubeError):
    """Universe could not be created or opened."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, phase="open", details=details)


class UniverseSaveError(VkubeError):
    """Universe could not be saved."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, phase="save", details=details)


class UniverseCloseError(VkubeError):
    """Universe could not be closed."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, phase="close", details=details)


class UniverseClosedError(VkubeError):
    """Operation attempted on a universe that was already closed or saved."""
    def __init__(self, directory: str):
        super().__init__(
            f"Universe {directory} is already closed",
            details={"directory": directory}
        )


class SnapshotNotFoundError(VkubeError):
    """Requested snapshot does not exist in the universe."""
    def __init__(self, directory: str, snapshot: str):
        super().__init__(
            f"Snapshot {snapshot!r} not found in universe {directory}",
            details={"directory": directory, "snapshot": snapshot}
        )


class ProviderLoadError(VkubeError):
    """Universe provider could not be imported."""
    def __init__(self, target: str, reason: str):
        super().__init__(
            f"Cannot load provider {target!r}: {reason}",
            details={"target": target}
        )


def log_error(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None
) -> None:
    """Log an error with context."""
    logger = logger or logging.getLogger("vkube.errors")

    error_info: Dict[str, Any] = {
        "error_type": error.__class__.__name__,
        "error_message": str(error)
    }
    if context:
        error_info["context"] = context
    if isinstance(error, VkubeError):
        error_info["phase"] = error.phase
        error_info["details"] = error.details

    logger.error("Universe error occurred", extra={"data": error_info})
