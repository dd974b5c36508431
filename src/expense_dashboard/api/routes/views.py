from typing import Annotated, Any

import httpx
from fastapi import APIRouter, Depends, HTTPException

from expense_dashboard.api.dependencies import get_view
from expense_dashboard.api.schemas import OpenViewRequest
from expense_dashboard.errors import (
    AlreadyPending,
    DashboardApiNotConfigured,
    ImportedItemImmutable,
    InvalidTransition,
    UnknownTransaction,
    ViewClosed,
)
from expense_dashboard.logger import get_logger
from expense_dashboard.services.list_view import TransactionListView

logger = get_logger(__name__)

router = APIRouter(prefix="/api/views")


@router.post("/{kind}/open")
async def open_view(
    req: OpenViewRequest,
    view: Annotated[TransactionListView, Depends(get_view)],
) -> dict[str, Any]:
    try:
        projection = await view.open(req.to_scope())
    except DashboardApiNotConfigured as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except httpx.HTTPError as exc:
        logger.error("[VIEW] Could not load %s list: %s", view.kind.value, exc)
        raise HTTPException(status_code=502, detail="Could not load transactions") from exc
    return projection.to_dict()


@router.post("/{kind}/close")
async def close_view(
    view: Annotated[TransactionListView, Depends(get_view)],
) -> dict[str, str]:
    view.close()
    return {"status": "closed"}


@router.get("/{kind}")
async def render_view(
    view: Annotated[TransactionListView, Depends(get_view)],
) -> dict[str, Any]:
    try:
        return view.render().to_dict()
    except ViewClosed as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.post("/{kind}/refresh")
async def refresh_view(
    view: Annotated[TransactionListView, Depends(get_view)],
) -> dict[str, Any]:
    try:
        return (await view.refresh()).to_dict()
    except ViewClosed as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except httpx.HTTPError as exc:
        logger.error("[VIEW] Could not refresh %s list: %s", view.kind.value, exc)
        raise HTTPException(status_code=502, detail="Could not load transactions") from exc


@router.delete("/{kind}/rows/{item_id}", status_code=202)
async def delete_row(
    item_id: int,
    view: Annotated[TransactionListView, Depends(get_view)],
    wait: bool = False,
) -> dict[str, Any]:
    try:
        task = view.delete(item_id)
    except ImportedItemImmutable as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except UnknownTransaction as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (AlreadyPending, ViewClosed, InvalidTransition) as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    if not wait:
        return {"status": "pending", "view": view.render().to_dict()}

    outcome = await task
    if outcome.status == "rolled_back":
        raise HTTPException(status_code=502, detail=str(outcome.error))
    if outcome.status == "rejected":
        raise HTTPException(status_code=409, detail=str(outcome.error))
    body: dict[str, Any] = {"status": outcome.status}
    if view.is_open:
        body["view"] = view.render().to_dict()
    return body
