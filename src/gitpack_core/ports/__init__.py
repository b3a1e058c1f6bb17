"""Ports (protocols and structured errors) for gitpack-core."""

from gitpack_core.ports.builder import (
    BuilderError,
    BuilderErrorCode,
    BuilderErrorDetails,
    BuilderErrorInfo,
    BuilderProtocol,
)
from gitpack_core.ports.orchestrator import (
    LogSinkProtocol,
    OrchestrationError,
    OrchestrationErrorCode,
    OrchestrationErrorDetails,
    OrchestrationErrorInfo,
)
from gitpack_core.ports.storage import (
    LogStoreProtocol,
    ManifestStoreProtocol,
    StorageError,
    StorageErrorCode,
    StorageErrorDetails,
    StorageErrorInfo,
)
from gitpack_core.ports.vcs import (
    VcsError,
    VcsErrorCode,
    VcsErrorDetails,
    VcsErrorInfo,
    VcsProtocol,
)

__all__ = [
    "BuilderError",
    "BuilderErrorCode",
    "BuilderErrorDetails",
    "BuilderErrorInfo",
    "BuilderProtocol",
    "LogSinkProtocol",
    "LogStoreProtocol",
    "ManifestStoreProtocol",
    "OrchestrationError",
    "OrchestrationErrorCode",
    "OrchestrationErrorDetails",
    "OrchestrationErrorInfo",
    "StorageError",
    "StorageErrorCode",
    "StorageErrorDetails",
    "StorageErrorInfo",
    "VcsError",
    "VcsErrorCode",
    "VcsErrorDetails",
    "VcsErrorInfo",
    "VcsProtocol",
]
