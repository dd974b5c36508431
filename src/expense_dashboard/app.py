from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from expense_dashboard.api.routes import events, notifications, quick_actions, totals, views
from expense_dashboard.core import settings
from expense_dashboard.integration.dashboard_api import DashboardApiClient
from expense_dashboard.logger import get_logger, setup_logging
from expense_dashboard.models import TransactionKind
from expense_dashboard.services.broadcaster import InvalidationBroadcaster
from expense_dashboard.services.list_view import TransactionListView
from expense_dashboard.services.mutations import MutationExecutor
from expense_dashboard.services.notifications import NotificationCenter
from expense_dashboard.services.quick_actions import QuickActions
from expense_dashboard.services.totals import MonthlyTotals

logger = get_logger(__name__)


def build_state(app: FastAPI, client: DashboardApiClient) -> None:
    broadcaster = InvalidationBroadcaster()
    notifier = NotificationCenter()
    executors = {kind: MutationExecutor(client, kind) for kind in TransactionKind}

    app.state.client = client
    app.state.broadcaster = broadcaster
    app.state.notifier = notifier
    app.state.totals = MonthlyTotals(client, broadcaster).attach()
    app.state.quick_actions = QuickActions(
        client,
        broadcaster,
        expenses=executors[TransactionKind.EXPENSE],
        incomes=executors[TransactionKind.INCOME],
    )
    app.state.views = {
        kind: TransactionListView(
            client,
            broadcaster,
            kind=kind,
            notifier=notifier,
            executor=executor,
        )
        for kind, executor in executors.items()
    }


async def teardown_state(app: FastAPI) -> None:
    for view in getattr(app.state, "views", {}).values():
        view.close()
        await view.drain()
    totals = getattr(app.state, "totals", None)
    if totals is not None:
        totals.close()
    client = getattr(app.state, "client", None)
    if client is not None:
        await client.aclose()


def create_app() -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing services...")
        settings.log_environment()

        client = DashboardApiClient()
        if not client.configured:
            logger.warning("DASHBOARD_API_URL not set. Transaction lists will be unavailable.")

        build_state(app, client)
        logger.info("Services initialized.")
        yield
        logger.info("Service shutting down.")
        await teardown_state(app)

    app = FastAPI(title="Expense Dashboard", lifespan=lifespan)

    app.include_router(views.router)
    app.include_router(notifications.router)
    app.include_router(totals.router)
    app.include_router(quick_actions.router)
    app.include_router(events.router)

    return app
