from src.services import (
    calendar_service,
    dependency_service,
    hierarchy_service,
    local_schedule_service,
    reconciliation_service,
    segment_service,
    sync_service,
)


__all__ = [
    "calendar_service",
    "dependency_service",
    "hierarchy_service",
    "local_schedule_service",
    "reconciliation_service",
    "segment_service",
    "sync_service",
]
