from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException

from expense_dashboard.api.dependencies import get_quick_actions
from expense_dashboard.api.schemas import QuickActionRequest
from expense_dashboard.errors import DashboardApiNotConfigured, MutationError
from expense_dashboard.services.quick_actions import QuickActions

router = APIRouter(prefix="/api/quick-actions")


async def _run(action: Any, req: QuickActionRequest) -> dict[str, Any]:
    try:
        created = await action(req.draft, req.to_scope())
    except MutationError as exc:
        if isinstance(exc.cause, DashboardApiNotConfigured):
            raise HTTPException(status_code=503, detail=str(exc.cause)) from exc
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return {"status": "created", "transaction": created}


@router.post("/expense", status_code=201)
async def add_expense(
    req: QuickActionRequest,
    actions: Annotated[QuickActions, Depends(get_quick_actions)],
) -> dict[str, Any]:
    return await _run(actions.add_expense, req)


@router.post("/income", status_code=201)
async def add_income(
    req: QuickActionRequest,
    actions: Annotated[QuickActions, Depends(get_quick_actions)],
) -> dict[str, Any]:
    return await _run(actions.add_income, req)


@router.post("/recurring-expense", status_code=201)
async def add_recurring_expense(
    req: QuickActionRequest,
    actions: Annotated[QuickActions, Depends(get_quick_actions)],
) -> dict[str, Any]:
    return await _run(actions.add_recurring_expense, req)
