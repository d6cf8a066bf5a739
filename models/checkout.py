from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Literal, Any
from datetime import datetime
from azure.data.tables import TableEntity
import json
import uuid

from models.base import ApiModel
from utils.dates import to_iso, from_iso
from utils.flags import positive_int

CheckoutStatus = Literal['created', 'stripe_created', 'paid', 'error', 'expired']

# checkouts テーブルはパーティション = checkoutId。同一パーティションにセッションと注文を置き、
# 注文作成とセッション更新を1トランザクションで書き込む
SESSION_ROW_KEY = "session"
ORDER_ROW_KEY = "order"

# items は1つの文字列プロパティ (最大 64KiB, UTF-16) に JSON で保存する。注文にも同じ内容を複製する
MAX_CART_ITEMS = 20
MAX_ITEMS_JSON_LENGTH = 30000


class Position(ApiModel):
    x: float = 0
    y: float = 0


class PrintArea(ApiModel):
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0


class CartLineItem(ApiModel):
    """ブラウザ側カートの1行 (カスタマイズ内容を含む)"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    product_id: str
    asset_id: str
    product_name: str = ""
    asset_title: str = ""
    asset_image_url: Optional[str] = None
    mockup_image_url: Optional[str] = None
    scale: Optional[float] = None
    position: Optional[Position] = None
    print_area: Optional[PrintArea] = None
    quantity: int = 1

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, value: Any) -> str:
        return str(value) if value not in (None, "") else str(uuid.uuid4())

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, value: Any) -> int:
        return positive_int(value, 1)

    def display_name(self) -> str:
        return f"{self.product_name} - {self.asset_title}"


class AmountSummary(ApiModel):
    currency: str
    unit_amount: int
    item_count: int
    subtotal: int
    total: int

    @classmethod
    def flat_rate(cls, items: List[CartLineItem], unit_amount: int, currency: str) -> "AmountSummary":
        item_count = sum(item.quantity for item in items)
        subtotal = unit_amount * item_count
        return cls(currency=currency, unit_amount=unit_amount, item_count=item_count, subtotal=subtotal, total=subtotal)


class CheckoutRequest(ApiModel):
    user_id: str = "anon"
    items: List[CartLineItem] = []

    @field_validator("user_id", mode="before")
    @classmethod
    def _user_id(cls, value: Any) -> str:
        return str(value) if value not in (None, "") else "anon"


class CheckoutResponse(ApiModel):
    url: str
    checkout_id: str


class CheckoutSession(ApiModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    status: CheckoutStatus = 'created'
    user_id: str = "anon"
    items: List[CartLineItem] = []
    amount: Optional[AmountSummary] = None
    stripe_session_id: Optional[str] = None
    stripe_payment_intent_id: Optional[str] = None
    error: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CheckoutSessionTableEntity(BaseModel):
    PartitionKey: str
    RowKey: str = SESSION_ROW_KEY
    status: str = 'created'
    user_id: str = "anon"
    items: str = "[]"
    amount: Optional[str] = None
    stripe_session_id: Optional[str] = None
    stripe_payment_intent_id: Optional[str] = None
    error: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_checkout_session(self) -> CheckoutSession:
        return CheckoutSession(id=self.PartitionKey, items=deserialize_items(self.items),
                               amount=AmountSummary.model_validate_json(self.amount) if self.amount else None,
                               created_at=from_iso(self.created_at), updated_at=from_iso(self.updated_at),
                               **self.model_dump(exclude={"PartitionKey", "RowKey", "items", "amount", "created_at", "updated_at"}))

    @classmethod
    def from_checkout_session(cls, session: CheckoutSession) -> "CheckoutSessionTableEntity":
        return cls(PartitionKey=session.id, items=serialize_items(session.items),
                   amount=session.amount.model_dump_json(by_alias=True) if session.amount else None,
                   created_at=to_iso(session.created_at), updated_at=to_iso(session.updated_at),
                   **session.model_dump(exclude={"id", "items", "amount", "created_at", "updated_at"}))

    @classmethod
    def from_entity(cls, entity: TableEntity):
        return cls.model_validate(dict(entity))


def serialize_items(items: List[CartLineItem]) -> str:
    return json.dumps([item.model_dump(by_alias=True, exclude_none=True) for item in items])


def deserialize_items(raw: Optional[str]) -> List[CartLineItem]:
    return [CartLineItem.model_validate(item) for item in json.loads(raw)] if raw else []
