from datetime import datetime
from typing import Any

from mams.shared.schemas import BaseSchema


class ActivityLogResponse(BaseSchema):
    """Activity log entry."""

    id: int
    user_id: int | None
    username: str | None
    action: str
    resource_type: str
    resource_id: int | None
    details: dict[str, Any] | None
    ip_address: str | None
    created_at: datetime
