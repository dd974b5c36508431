class DashboardError(Exception):
    """Base class for errors raised by the dashboard core."""


class InvalidTransition(DashboardError):
    def __init__(self, item_id: int, operation: str, reason: str) -> None:
        self.item_id = item_id
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation}({item_id}) rejected: {reason}")


class AlreadyPending(DashboardError):
    def __init__(self, item_id: int) -> None:
        self.item_id = item_id
        super().__init__(f"A mutation for transaction {item_id} is already in flight")


class MutationError(DashboardError):
    def __init__(self, item_id: int | None, cause: BaseException) -> None:
        self.item_id = item_id
        self.cause = cause
        target = f"transaction {item_id}" if item_id is not None else "new transaction"
        super().__init__(f"Remote mutation failed for {target}: {cause}")


class ImportedItemImmutable(DashboardError):
    def __init__(self, item_id: int) -> None:
        self.item_id = item_id
        super().__init__(f"Transaction {item_id} was imported from a bank connection and cannot be deleted")


class UnknownTransaction(DashboardError):
    def __init__(self, item_id: int) -> None:
        self.item_id = item_id
        super().__init__(f"Transaction {item_id} is not part of the open list")


class ViewClosed(DashboardError):
    def __init__(self) -> None:
        super().__init__("The transaction list view is not open")


class DashboardApiNotConfigured(DashboardError):
    def __init__(self) -> None:
        super().__init__("DASHBOARD_API_URL is not set")
