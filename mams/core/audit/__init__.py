from mams.core.audit.models import ActivityLog
from mams.core.audit.service import (
    ActivityAction,
    ActivityLogService,
    ResourceType,
    list_activity_logs,
)

__all__ = [
    "ActivityLog",
    "ActivityAction",
    "ActivityLogService",
    "ResourceType",
    "list_activity_logs",
]
