from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from expense_dashboard.api.dependencies import get_notifier
from expense_dashboard.services.notifications import NotificationCenter

router = APIRouter(prefix="/api/notifications")


@router.get("")
async def list_notifications(
    notifier: Annotated[NotificationCenter, Depends(get_notifier)],
) -> list[dict[str, object]]:
    return [item.to_dict() for item in notifier.active()]


@router.delete("/{notification_id}")
async def dismiss_notification(
    notification_id: str,
    notifier: Annotated[NotificationCenter, Depends(get_notifier)],
) -> dict[str, str]:
    if not notifier.dismiss(notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"status": "dismissed"}
