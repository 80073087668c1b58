# storefront/errors.py


class SettlementError(Exception):
    """Base class for loyalty settlement failures."""

    code = "settlement_error"

    def __init__(self, order_id: str, user_id: str, detail: str = ""):
        self.order_id = order_id
        self.user_id = user_id
        self.detail = detail
        super().__init__(detail or f"{self.code}: order={order_id} user={user_id}")


class UserNotFound(SettlementError):
    """The balance record for the order owner does not exist. Not retried."""

    code = "user_not_found"


class OrderOwnerMismatch(SettlementError):
    code = "order_owner_mismatch"


class TransactionConflict(SettlementError):
    """Concurrent writers kept winning the race until the retry budget ran out."""

    code = "transaction_conflict"


class NotificationFailure(Exception):
    code = "notification_failure"

    def __init__(self, recipient: str, detail: str = ""):
        self.recipient = recipient
        self.detail = detail
        super().__init__(detail or f"notification to {recipient} failed")
