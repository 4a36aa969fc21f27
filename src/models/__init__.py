"""Wire-level models exchanged with the scheduling engine."""

from src.models.wire_models import (
    CalendarSyncData,
    ConfigurationUpdateRequest,
    EngineResponse,
    EngineTaskRecord,
    ProjectDataPayload,
    ProjectUpdateRequest,
    ResourceSyncData,
    TaskSyncData,
)


__all__ = [
    "CalendarSyncData",
    "ConfigurationUpdateRequest",
    "EngineResponse",
    "EngineTaskRecord",
    "ProjectDataPayload",
    "ProjectUpdateRequest",
    "ResourceSyncData",
    "TaskSyncData",
]
