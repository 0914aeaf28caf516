"""
Remote service boundary.

Provides the callback-to-async adapter used for every blueprint API call,
the collaborator interfaces the pipeline depends on, and local sandbox
implementations of those collaborators.
"""

from .adapter import AdapterResult, CallbackAdapter, call_remote
from .interfaces import (
    BlueprintApi,
    FileTransfer,
    IdentityProvider,
    ProjectHandle,
    ProjectState,
)
from .sandbox import (
    FileProjectHandle,
    FileProjectState,
    SandboxBlueprintApi,
    SandboxFileTransfer,
    StaticIdentityProvider,
)

__all__ = [
    "AdapterResult",
    "BlueprintApi",
    "CallbackAdapter",
    "FileProjectHandle",
    "FileProjectState",
    "FileTransfer",
    "IdentityProvider",
    "ProjectHandle",
    "ProjectState",
    "SandboxBlueprintApi",
    "SandboxFileTransfer",
    "StaticIdentityProvider",
    "call_remote",
]
