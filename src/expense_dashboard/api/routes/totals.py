from typing import Annotated

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query

from expense_dashboard.api.dependencies import get_totals
from expense_dashboard.domain.catalog import format_currency
from expense_dashboard.errors import DashboardApiNotConfigured
from expense_dashboard.logger import get_logger
from expense_dashboard.models import MonthScope, TransactionKind
from expense_dashboard.services.totals import MonthlyTotals

logger = get_logger(__name__)

router = APIRouter(prefix="/api/totals")


@router.get("/{kind}")
async def get_total(
    kind: TransactionKind,
    totals: Annotated[MonthlyTotals, Depends(get_totals)],
    month: Annotated[int, Query(ge=0, le=11)],
    year: Annotated[int, Query(ge=1900, le=9999)],
) -> dict[str, object]:
    scope = MonthScope(month=month, year=year)
    try:
        value = await totals.total(scope, kind)
    except DashboardApiNotConfigured as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except httpx.HTTPError as exc:
        logger.error("[TOTALS] Could not compute %s total: %s", kind.value, exc)
        raise HTTPException(status_code=502, detail="Could not load transactions") from exc
    return {
        "kind": kind.value,
        "month": month,
        "year": year,
        "total": str(value),
        "total_formatted": format_currency(value),
    }
