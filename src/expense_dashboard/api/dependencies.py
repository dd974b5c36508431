from fastapi import HTTPException, Request

from expense_dashboard.integration.dashboard_api import DashboardApiClient
from expense_dashboard.models import TransactionKind
from expense_dashboard.services.broadcaster import InvalidationBroadcaster
from expense_dashboard.services.list_view import TransactionListView
from expense_dashboard.services.notifications import NotificationCenter
from expense_dashboard.services.quick_actions import QuickActions
from expense_dashboard.services.totals import MonthlyTotals


def _require_state(request: Request, name: str) -> object:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return value


def get_client(request: Request) -> DashboardApiClient:
    client = getattr(request.app.state, "client", None)
    if not client:
        raise HTTPException(status_code=500, detail="Dashboard API not configured")
    return client


def get_broadcaster(request: Request) -> InvalidationBroadcaster:
    return _require_state(request, "broadcaster")  # type: ignore[return-value]


def get_notifier(request: Request) -> NotificationCenter:
    return _require_state(request, "notifier")  # type: ignore[return-value]


def get_totals(request: Request) -> MonthlyTotals:
    return _require_state(request, "totals")  # type: ignore[return-value]


def get_quick_actions(request: Request) -> QuickActions:
    return _require_state(request, "quick_actions")  # type: ignore[return-value]


def get_views(request: Request) -> dict[TransactionKind, TransactionListView]:
    return _require_state(request, "views")  # type: ignore[return-value]


def get_view(kind: TransactionKind, request: Request) -> TransactionListView:
    views = get_views(request)
    view = views.get(kind)
    if view is None:
        raise HTTPException(status_code=404, detail=f"No list view for {kind.value}")
    return view
