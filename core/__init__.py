"""Core run state and collaborator contracts."""

from .contracts import (
    DownloadBacklog,
    DownloadCoordinator,
    DownloadIntake,
    DownloadSlot,
    ErrorNotifier,
    Item,
    OutputRootResolver,
    ProgressSender,
    RunPhase,
    RunState,
    SessionDisposer,
    SourceGroup,
    SourceGroupStore,
    SourceRef,
)

__all__ = [
    "DownloadBacklog",
    "DownloadCoordinator",
    "DownloadIntake",
    "DownloadSlot",
    "ErrorNotifier",
    "Item",
    "OutputRootResolver",
    "ProgressSender",
    "RunPhase",
    "RunState",
    "SessionDisposer",
    "SourceGroup",
    "SourceGroupStore",
    "SourceRef",
]
