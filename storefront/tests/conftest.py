# tests/conftest.py
import json
from decimal import Decimal

import httpx
import pytest

from storefront.backend import BackendClient
from storefront.config import Settings
from storefront.models import Identity, Product


class FakeBackend:
    """Stands in for the content backend; records every request it sees."""

    def __init__(self):
        self.requests = []
        self.routes = {}

    def on(self, method, path, status=200, body=None, raises=None):
        self.routes[(method, path)] = (status, body, raises)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"data": None, "error": {"status": 404, "message": "Not Found"}})
        status, body, raises = route
        if raises is not None:
            raise raises("simulated failure", request=request)
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method and r.url.path == path]

    @staticmethod
    def body(request):
        return json.loads(request.content)


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def settings():
    return Settings(backend_url="http://backend.test", request_timeout=2.0)


@pytest.fixture
def backend(settings, fake_backend):
    return BackendClient(settings, transport=fake_backend.transport)


@pytest.fixture
def product_a():
    return Product(id=1, name="Product A", price=Decimal("3.50"))


@pytest.fixture
def product_b():
    return Product(id=2, name="Product B", price=Decimal("5.00"))


@pytest.fixture
def identity():
    return Identity(user_id="7", credential="jwt-token", username="alice")


def product_listing():
    return {
        "data": [
            {"id": 1, "documentId": "doc-a", "name": "Product A", "price": 3.5, "description": "first"},
            {"id": 2, "documentId": "doc-b", "name": "Product B", "price": 5},
        ],
        "meta": {"pagination": {"page": 1, "pageSize": 25, "pageCount": 1, "total": 2}},
    }


@pytest.fixture
def listing():
    return product_listing()
