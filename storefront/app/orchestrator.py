# app/orchestrator.py
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..base_agent import ErrorDetail, NextAction, Task
from ..cart import Cart
from ..config import Settings
from ..models import Identity, format_price
from ..order_agent import OrderAgent
from ..transaction_agent import TransactionAgent

logger = logging.getLogger(__name__)


class CheckoutState(str, Enum):
    IDLE = "IDLE"
    REJECTED = "REJECTED"
    SUBMITTING_ORDER = "SUBMITTING_ORDER"
    ORDER_FAILED = "ORDER_FAILED"
    SUBMITTING_TRANSACTION = "SUBMITTING_TRANSACTION"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    COMMITTED = "COMMITTED"


@dataclass
class CheckoutResult:
    state: CheckoutState
    request_id: Optional[str] = None
    order_id: Any = None
    transaction_id: Any = None
    total_quantity: int = 0
    total_price: str = "0.00"
    errors: List[ErrorDetail] = field(default_factory=list)
    next_actions: List[NextAction] = field(default_factory=list)
    history: List[CheckoutState] = field(default_factory=list)

    @property
    def status(self) -> str:
        return "success" if self.state == CheckoutState.COMMITTED else "failed"


class CheckoutOrchestrator:
    """Records one cart as an order write followed by a transaction write.

    The backend has no multi-resource transaction, so a failed transaction
    write leaves the order in place. That state is reported as
    TRANSACTION_FAILED and logged for reconciliation; nothing is rolled back
    and nothing is retried.
    """

    def __init__(self, order: OrderAgent, transaction: TransactionAgent, settings: Settings):
        self.order = order
        self.transaction = transaction
        self.settings = settings

    async def checkout(self, cart: Cart, identity: Optional[Identity]) -> CheckoutResult:
        history = [CheckoutState.IDLE]

        # 0) Preconditions -> nothing leaves the process
        if identity is None or not identity.is_complete:
            return self._rejected(history, "Please login first", {"reason": "missing_identity"},
                                  [NextAction(type="LOGIN", message="Please login first")])
        if cart.is_empty():
            return self._rejected(history, "Cart is empty", {"reason": "empty_cart"})

        # snapshot before the first await so late cart clicks don't leak in
        request = cart.snapshot(identity)
        result = CheckoutResult(
            state=CheckoutState.SUBMITTING_ORDER,
            request_id=request.request_id,
            total_quantity=request.total_quantity,
            total_price=format_price(request.total_price),
            history=history,
        )
        history.append(CheckoutState.SUBMITTING_ORDER)

        # 1) Order write
        order_task = Task(task_id=str(uuid.uuid4()), agent="order", type="ORDER_CREATE", request_id=request.request_id,
                          user_id=request.user_id, credential=request.credential, payload={"request": request})
        order_res = await self.order.handle(order_task)
        if not order_res.ok:
            logger.warning("Checkout %s: order write failed: %s", request.request_id, _messages(order_res.errors))
            return self._finish(result, CheckoutState.ORDER_FAILED, errors=order_res.errors)
        result.order_id = order_res.payload.get("order_id")

        # 2) Transaction write
        history.append(CheckoutState.SUBMITTING_TRANSACTION)
        result.state = CheckoutState.SUBMITTING_TRANSACTION
        tx_task = Task(task_id=str(uuid.uuid4()), agent="transaction", type="TRANSACTION_CREATE",
                       request_id=request.request_id, user_id=request.user_id, credential=request.credential,
                       payload={"request": request, "order_id": result.order_id})
        tx_res = await self.transaction.handle(tx_task)
        if not tx_res.ok:
            # order is committed on the backend, its transaction is missing
            logger.error(
                "Checkout %s: partial failure, order %s committed for user %s but transaction write failed: %s",
                request.request_id, result.order_id, request.user_id, _messages(tx_res.errors),
            )
            errors = [
                ErrorDetail(code=e.code, message=e.message, details={**e.details, "order_id": result.order_id})
                for e in tx_res.errors
            ]
            return self._finish(result, CheckoutState.TRANSACTION_FAILED, errors=errors)
        result.transaction_id = tx_res.payload.get("transaction_id")

        # 3) Commit -> clear cart, point the user at their history
        cart.clear()
        logger.info("Checkout %s committed: order %s, transaction %s", request.request_id, result.order_id,
                    result.transaction_id)
        return self._finish(
            result, CheckoutState.COMMITTED,
            next_actions=[NextAction(type="NAVIGATE", message="Order placed",
                                     data={"path": self.settings.history_path})],
        )

    def _rejected(self, history: List[CheckoutState], message: str, details: Dict[str, Any],
                  next_actions: Optional[List[NextAction]] = None) -> CheckoutResult:
        history.append(CheckoutState.REJECTED)
        return CheckoutResult(
            state=CheckoutState.REJECTED,
            errors=[ErrorDetail(code="UNAUTHENTICATED", message=message, details=details)],
            next_actions=next_actions or [],
            history=history,
        )

    @staticmethod
    def _finish(result: CheckoutResult, state: CheckoutState, errors: Optional[List[ErrorDetail]] = None,
                next_actions: Optional[List[NextAction]] = None) -> CheckoutResult:
        result.state = state
        result.history.append(state)
        result.errors = list(errors or [])
        result.next_actions = list(next_actions or [])
        return result


def _messages(errors: List[ErrorDetail]) -> str:
    return "; ".join(f"{e.code}: {e.message}" for e in errors)
