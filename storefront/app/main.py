# app/main.py
import uuid
from dataclasses import asdict
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, Optional, Union

import httpx
import uvicorn
from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..auth_agent import AuthAgent
from ..backend import BackendClient
from ..base_agent import BaseAgent, Task, TaskResult
from ..catalog_agent import CatalogAgent
from ..cart import Cart
from ..config import Settings, configure_logging
from ..models import CatalogSnapshot, Identity, format_price
from ..order_agent import OrderAgent
from ..session import Session, SessionStore
from ..transaction_agent import TransactionAgent
from .orchestrator import CheckoutOrchestrator, CheckoutResult


# ---------- Request Schemas ---------- #

class ProductIn(BaseModel):
    name: str
    price: Decimal = Field(ge=0)
    description: Optional[str] = None


class ProductUpdateIn(BaseModel):
    name: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    description: Optional[str] = None


class LoginRequest(BaseModel):
    username: str
    password: str


class RegisterRequest(BaseModel):
    username: str
    password: str
    email: Optional[str] = None


class CartMutation(BaseModel):
    product_id: Union[int, str]


class CheckoutIn(BaseModel):
    user_id: Optional[Union[int, str]] = None


# ---------- Wiring ---------- #

class Storefront:
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.backend = BackendClient(settings, transport=transport)
        self.catalog = CatalogAgent(self.backend)
        self.auth = AuthAgent(self.backend)
        self.order = OrderAgent(self.backend, settings)
        self.transaction = TransactionAgent(self.backend, settings)
        self.orchestrator = CheckoutOrchestrator(self.order, self.transaction, settings)
        self.sessions = SessionStore(max_idle=timedelta(seconds=settings.session_max_idle))


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def _run(agent: BaseAgent, type: str, payload: Dict[str, Any], user_id: Optional[Union[int, str]] = None,
               credential: Optional[str] = None) -> TaskResult:
    task = Task(task_id=str(uuid.uuid4()), agent=agent.name, type=type, request_id=str(uuid.uuid4()),
                user_id=user_id, credential=credential, payload=payload)
    return await agent.handle(task)


def _raise_for(result: TaskResult, default_status: int = 502) -> None:
    if result.ok:
        return
    error = result.errors[0]
    status_code = error.details.get("status_code")
    if error.code == "MISSING_FIELDS":
        status_code = 400
    elif error.code == "UNAUTHENTICATED" and not status_code:
        status_code = 401
    elif not isinstance(status_code, int) or not 400 <= status_code < 500:
        status_code = default_status
    raise HTTPException(status_code=status_code, detail={"code": error.code, "message": error.message})


def _session(store: Storefront, session_id: str) -> Session:
    session = store.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Unknown session")
    return session


async def _catalog(store: Storefront, session: Session, refresh: bool = False) -> CatalogSnapshot:
    if session.catalog is None or refresh:
        result = await _run(store.catalog, "CATALOG_LIST", {})
        _raise_for(result)
        session.catalog = result.payload["snapshot"]
    return session.catalog


def product_view(product) -> Dict[str, Any]:
    return {"id": product.id, "name": product.name, "price": format_price(product.price)}


def cart_view(session: Session) -> Dict[str, Any]:
    cart: Cart = session.cart
    total_quantity, total_price = cart.totals()
    quantities = {}
    if session.catalog is not None:
        quantities = {str(p.id): cart.quantity_of(p.id) for p in session.catalog}
    return {
        "session_id": session.session_id,
        "lines": [
            {**product_view(line.product), "quantity": line.quantity, "subtotal": format_price(line.subtotal)}
            for line in cart.lines()
        ],
        "quantities": quantities,
        "total_quantity": total_quantity,
        "total_price": format_price(total_price),
    }


def checkout_view(result: CheckoutResult) -> Dict[str, Any]:
    return {
        "status": result.status,
        "state": result.state.value,
        "request_id": result.request_id,
        "order_id": result.order_id,
        "transaction_id": result.transaction_id,
        "total_quantity": result.total_quantity,
        "total_price": result.total_price,
        "errors": [asdict(e) for e in result.errors],
        "next_actions": [asdict(a) for a in result.next_actions],
        "history": [s.value for s in result.history],
    }


def create_app(settings: Optional[Settings] = None, transport: httpx.AsyncBaseTransport | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    app = FastAPI(title="Storefront")
    app.state.storefront = Storefront(settings, transport=transport)

    # allow calls from the web front-end
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def store(request: Request) -> Storefront:
        return request.app.state.storefront

    # ---------- Catalog ---------- #

    @app.get("/products")
    async def list_products(request: Request):
        result = await _run(store(request).catalog, "CATALOG_LIST", {})
        _raise_for(result)
        return {"data": [product_view(p) for p in result.payload["snapshot"]]}

    @app.post("/products")
    async def create_product(payload: ProductIn, request: Request, authorization: Optional[str] = Header(None)):
        result = await _run(store(request).catalog, "PRODUCT_CREATE", payload.model_dump(),
                            credential=_bearer(authorization))
        _raise_for(result)
        return {"data": product_view(result.payload["product"].to_product())}

    @app.put("/products/{product_id}")
    async def update_product(product_id: str, payload: ProductUpdateIn, request: Request,
                             authorization: Optional[str] = Header(None)):
        result = await _run(store(request).catalog, "PRODUCT_UPDATE",
                            {"product_id": product_id, **payload.model_dump(exclude_none=True)},
                            credential=_bearer(authorization))
        _raise_for(result)
        return {"data": product_view(result.payload["product"].to_product())}

    @app.delete("/products/{product_id}")
    async def delete_product(product_id: str, request: Request, authorization: Optional[str] = Header(None)):
        result = await _run(store(request).catalog, "PRODUCT_DELETE", {"product_id": product_id},
                            credential=_bearer(authorization))
        _raise_for(result)
        return {"deleted": product_id}

    # ---------- Identity ---------- #

    @app.post("/auth/login")
    async def login(payload: LoginRequest, request: Request):
        result = await _run(store(request).auth, "AUTH_LOGIN", payload.model_dump())
        _raise_for(result, default_status=401)
        identity: Identity = result.payload["identity"]
        return {"jwt": identity.credential, "user": result.payload["user"].model_dump()}

    @app.post("/auth/register")
    async def register(payload: RegisterRequest, request: Request):
        result = await _run(store(request).auth, "AUTH_REGISTER", payload.model_dump())
        _raise_for(result)
        identity: Identity = result.payload["identity"]
        return {"jwt": identity.credential, "user": result.payload["user"].model_dump()}

    # ---------- Sessions & cart ---------- #

    @app.post("/sessions")
    async def open_session(request: Request):
        session = store(request).sessions.create()
        return cart_view(session)

    @app.get("/sessions/{session_id}/catalog")
    async def session_catalog(session_id: str, request: Request, refresh: bool = False):
        session = _session(store(request), session_id)
        snapshot = await _catalog(store(request), session, refresh=refresh)
        return {
            "data": [
                {**product_view(p), "quantity": session.cart.quantity_of(p.id)} for p in snapshot
            ]
        }

    @app.get("/sessions/{session_id}/cart")
    async def get_cart(session_id: str, request: Request):
        return cart_view(_session(store(request), session_id))

    @app.post("/sessions/{session_id}/cart/add")
    async def add_to_cart(session_id: str, payload: CartMutation, request: Request):
        session = _session(store(request), session_id)
        snapshot = await _catalog(store(request), session)
        product = snapshot.get(payload.product_id)
        if product is None:
            raise HTTPException(status_code=404, detail="Unknown product")
        session.cart.add(product)
        return cart_view(session)

    @app.post("/sessions/{session_id}/cart/remove")
    async def remove_from_cart(session_id: str, payload: CartMutation, request: Request):
        session = _session(store(request), session_id)
        snapshot = await _catalog(store(request), session)
        product = snapshot.get(payload.product_id)
        if product is not None:
            session.cart.remove(product)
        return cart_view(session)

    @app.post("/sessions/{session_id}/checkout")
    async def checkout(session_id: str, payload: CheckoutIn, request: Request,
                       authorization: Optional[str] = Header(None)):
        storefront = store(request)
        session = _session(storefront, session_id)
        identity = Identity(user_id=payload.user_id, credential=_bearer(authorization))
        result = await storefront.orchestrator.checkout(session.cart, identity)
        return checkout_view(result)

    @app.delete("/sessions/{session_id}")
    async def close_session(session_id: str, request: Request):
        if not store(request).sessions.close(session_id):
            raise HTTPException(status_code=404, detail="Unknown session")
        return {"closed": session_id}

    # ---------- History ---------- #

    @app.get("/transactions")
    async def transactions(request: Request, user_id: Optional[str] = None,
                           authorization: Optional[str] = Header(None)):
        result = await _run(store(request).transaction, "TRANSACTION_HISTORY", {}, user_id=user_id,
                            credential=_bearer(authorization))
        _raise_for(result)
        return {"data": [t.model_dump(mode="json", by_alias=True) for t in result.payload["transactions"]]}

    return app


def run():
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
