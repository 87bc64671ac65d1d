# storefront/catalog_agent.py
from typing import Any, Dict

from .backend import BackendClient, BackendError, BackendUnavailable, describe_failure
from .base_agent import BaseAgent, Task, TaskResult
from .models import CatalogSnapshot
from .schemas import ProductListResponse, ProductResponse


def _product_body(payload: Dict[str, Any]) -> Dict[str, Any]:
    fields = {k: payload[k] for k in ("name", "price", "description") if payload.get(k) is not None}
    if "price" in fields:
        fields["price"] = float(fields["price"])
    return {"data": fields}


class CatalogAgent(BaseAgent):
    """Pass-through to the backend's products resource.

    The catalog is owned by the backend; this agent only reads it into a
    :class:`CatalogSnapshot` and forwards edits.
    """

    name = "catalog"

    def __init__(self, backend: BackendClient):
        self.backend = backend

    async def handle(self, task: Task) -> TaskResult:
        t = task.type
        if t == "CATALOG_LIST":
            return await self._list(task)
        if t == "PRODUCT_CREATE":
            return await self._create(task)
        if t == "PRODUCT_UPDATE":
            return await self._update(task)
        if t == "PRODUCT_DELETE":
            return await self._delete(task)
        return self.unsupported(task)

    async def _list(self, task: Task) -> TaskResult:
        try:
            listing = await self.backend.fetch(
                ProductListResponse, "GET", "/api/products", credential=task.credential, params={"populate": "*"},
            )
        except (BackendError, BackendUnavailable) as e:
            message, details = describe_failure(e, "Failed to fetch products")
            return self.failed(task, "BACKEND_ERROR", message, details)

        snapshot = CatalogSnapshot(products=tuple(r.to_product() for r in listing.data))
        return self.succeeded(task, {"snapshot": snapshot, "records": listing.data})

    async def _create(self, task: Task) -> TaskResult:
        if not task.payload.get("name") or task.payload.get("price") is None:
            return self.failed(task, "MISSING_FIELDS", "name & price required")
        try:
            created = await self.backend.fetch(
                ProductResponse, "POST", "/api/products", credential=task.credential, json=_product_body(task.payload),
            )
        except (BackendError, BackendUnavailable) as e:
            message, details = describe_failure(e, "Failed to create product")
            return self.failed(task, "BACKEND_ERROR", message, details)
        return self.succeeded(task, {"product": created.data})

    async def _update(self, task: Task) -> TaskResult:
        product_id = task.payload.get("product_id")
        if product_id is None:
            return self.failed(task, "MISSING_FIELDS", "product_id required")
        try:
            updated = await self.backend.fetch(
                ProductResponse, "PUT", f"/api/products/{product_id}",
                credential=task.credential, json=_product_body(task.payload),
            )
        except (BackendError, BackendUnavailable) as e:
            message, details = describe_failure(e, "Failed to update product")
            return self.failed(task, "BACKEND_ERROR", message, details)
        return self.succeeded(task, {"product": updated.data})

    async def _delete(self, task: Task) -> TaskResult:
        product_id = task.payload.get("product_id")
        if product_id is None:
            return self.failed(task, "MISSING_FIELDS", "product_id required")
        try:
            await self.backend.request("DELETE", f"/api/products/{product_id}", credential=task.credential)
        except (BackendError, BackendUnavailable) as e:
            message, details = describe_failure(e, "Failed to delete product")
            return self.failed(task, "BACKEND_ERROR", message, details)
        return self.succeeded(task, {"deleted": product_id})
