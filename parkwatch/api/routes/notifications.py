"""Recent wait-time notifications (in memory, newest first)."""
from typing import Any

from fastapi import APIRouter, Depends, Query

from parkwatch.api.deps import get_inbox
from parkwatch.core.constants import NOTIFICATIONS_LIMIT_MAX
from parkwatch.services.dispatch import NotificationInbox

router = APIRouter()


@router.get("/notifications")
def list_notifications(
    inbox: NotificationInbox = Depends(get_inbox),
    limit: int = Query(50, ge=1, le=NOTIFICATIONS_LIMIT_MAX),
) -> dict[str, Any]:
    events = inbox.recent(limit)
    return {"notifications": [e.to_dict() for e in events], "count": len(events)}
