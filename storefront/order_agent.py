# storefront/order_agent.py
import logging
from typing import Any, Dict

from .backend import BackendClient, BackendError, BackendUnavailable, describe_failure
from .base_agent import BaseAgent, Task, TaskResult
from .config import Settings
from .models import CheckoutRequest, format_price
from .schemas import CreatedResponse

logger = logging.getLogger(__name__)

ORDER_FALLBACK_MESSAGE = "Failed to create order"


def build_order_body(request: CheckoutRequest) -> Dict[str, Any]:
    # the orders resource stores both totals as text
    return {
        "data": {
            "orderlist": request.line_items(),
            "totalorder": format_price(request.total_price),
            "quantity": str(request.total_quantity),
            "user": request.user_id,
        }
    }


class OrderAgent(BaseAgent):
    name = "order"

    def __init__(self, backend: BackendClient, settings: Settings):
        self.backend = backend
        self.settings = settings

    async def handle(self, task: Task) -> TaskResult:
        if task.type == "ORDER_CREATE":
            return await self._create(task)
        return self.unsupported(task)

    async def _create(self, task: Task) -> TaskResult:
        request: CheckoutRequest = task.payload.get("request")
        if request is None or not request.lines:
            return self.failed(task, "MISSING_FIELDS", "A non-empty checkout request is required")

        headers = {}
        if self.settings.idempotency_keys:
            headers["Idempotency-Key"] = f"{request.request_id}:order"

        try:
            created = await self.backend.fetch(
                CreatedResponse, "POST", "/api/orders",
                credential=request.credential, json=build_order_body(request), headers=headers,
            )
        except (BackendError, BackendUnavailable) as e:
            message, details = describe_failure(e, ORDER_FALLBACK_MESSAGE)
            return self.failed(task, "ORDER_WRITE_FAILED", message, details)

        logger.info("Order %s created for user %s (request %s)", created.data.id, request.user_id, request.request_id)
        return self.succeeded(task, {"order_id": created.data.id, "document_id": created.data.document_id})
