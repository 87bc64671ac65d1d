# storefront/transaction_agent.py
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from .backend import BackendClient, BackendError, BackendUnavailable, describe_failure
from .base_agent import BaseAgent, Task, TaskResult
from .config import Settings
from .models import CheckoutRequest
from .schemas import CreatedResponse, TransactionListResponse

logger = logging.getLogger(__name__)

TRANSACTION_FALLBACK_MESSAGE = "Failed to create transaction"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_transaction_body(request: CheckoutRequest, order_date: datetime, order_id: Any = None) -> Dict[str, Any]:
    data = {
        "orderItems": request.line_items(),
        "totalAmount": float(request.total_price),
        "totalQuantity": request.total_quantity,
        "orderDate": order_date.isoformat(),
        "user": request.user_id,
    }
    if order_id is not None:
        data["order"] = order_id
    return {"data": data}


class TransactionAgent(BaseAgent):
    name = "transaction"

    def __init__(self, backend: BackendClient, settings: Settings, clock: Optional[Callable[[], datetime]] = None):
        self.backend = backend
        self.settings = settings
        self._clock = clock or _utcnow

    async def handle(self, task: Task) -> TaskResult:
        t = task.type
        if t == "TRANSACTION_CREATE":
            return await self._create(task)
        if t == "TRANSACTION_HISTORY":
            return await self._history(task)
        return self.unsupported(task)

    async def _create(self, task: Task) -> TaskResult:
        request: CheckoutRequest = task.payload.get("request")
        if request is None or not request.lines:
            return self.failed(task, "MISSING_FIELDS", "A non-empty checkout request is required")

        order_id = task.payload.get("order_id") if self.settings.link_transaction_to_order else None
        # stamped when the write is submitted, not when the cart was built
        order_date = self._clock()
        headers = {}
        if self.settings.idempotency_keys:
            headers["Idempotency-Key"] = f"{request.request_id}:transaction"

        try:
            created = await self.backend.fetch(
                CreatedResponse, "POST", "/api/transactions",
                credential=request.credential,
                json=build_transaction_body(request, order_date, order_id),
                headers=headers,
            )
        except (BackendError, BackendUnavailable) as e:
            message, details = describe_failure(e, TRANSACTION_FALLBACK_MESSAGE)
            return self.failed(task, "TRANSACTION_WRITE_FAILED", message, details)

        return self.succeeded(task, {"transaction_id": created.data.id, "order_date": order_date.isoformat()})

    async def _history(self, task: Task) -> TaskResult:
        if not task.user_id or not task.credential:
            return self.failed(task, "UNAUTHENTICATED", "Please login first")

        params = {"filters[user][id][$eq]": task.user_id, "sort[0]": "createdAt:desc"}
        try:
            listing = await self.backend.fetch(
                TransactionListResponse, "GET", "/api/transactions", credential=task.credential, params=params,
            )
        except (BackendError, BackendUnavailable) as e:
            message, details = describe_failure(e, "Failed to fetch transactions")
            return self.failed(task, "BACKEND_ERROR", message, details)

        return self.succeeded(task, {"transactions": listing.data})
