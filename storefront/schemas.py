# storefront/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .models import Identity, Product


# ---------- Backend response schemas ---------- #

class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ProductRecord(_Record):
    id: Union[int, str]
    name: str
    price: Decimal = Field(ge=0)
    description: Optional[str] = None
    document_id: Optional[str] = Field(default=None, alias="documentId")

    def to_product(self) -> Product:
        return Product(id=self.id, name=self.name, price=self.price)


class ProductListResponse(_Record):
    data: List[ProductRecord]


class ProductResponse(_Record):
    data: ProductRecord


class CreatedRecord(_Record):
    id: Union[int, str]
    document_id: Optional[str] = Field(default=None, alias="documentId")


class CreatedResponse(_Record):
    data: CreatedRecord


class ErrorBody(_Record):
    status: Optional[int] = None
    name: Optional[str] = None
    message: Optional[str] = None


class ErrorEnvelope(_Record):
    error: Optional[ErrorBody] = None


class LineProduct(_Record):
    id: Union[int, str]
    name: str
    price: Decimal


class LineItemRecord(_Record):
    product: LineProduct
    quantity: int = Field(ge=1)


class TransactionRecord(_Record):
    id: Union[int, str]
    document_id: Optional[str] = Field(default=None, alias="documentId")
    order_date: Optional[datetime] = Field(default=None, alias="orderDate")
    order_items: List[LineItemRecord] = Field(default_factory=list, alias="orderItems")
    total_amount: Decimal = Field(alias="totalAmount")
    total_quantity: int = Field(alias="totalQuantity")


class TransactionListResponse(_Record):
    data: List[TransactionRecord]


class UserRecord(_Record):
    id: Union[int, str]
    username: Optional[str] = None
    email: Optional[str] = None


class AuthResponse(_Record):
    jwt: str
    user: UserRecord

    def to_identity(self) -> Identity:
        return Identity(user_id=self.user.id, credential=self.jwt, username=self.user.username)
