from pydantic import BaseModel
from typing import List, Optional, Literal
from datetime import datetime
from azure.data.tables import TableEntity

from models.base import ApiModel
from models.checkout import CartLineItem, AmountSummary, ORDER_ROW_KEY, serialize_items, deserialize_items
from utils.dates import to_iso, from_iso

PaymentStatus = Literal['paid']
FulfillmentStatus = Literal['unfulfilled', 'in_production', 'shipped', 'delivered', 'canceled']


class Fulfillment(ApiModel):
    status: FulfillmentStatus = 'unfulfilled'
    updated_at: Optional[datetime] = None


class FulfillmentUpdate(ApiModel):
    status: FulfillmentStatus


class Order(ApiModel):
    # id は元になったチェックアウトセッションの id と常に一致する
    id: str
    payment_status: PaymentStatus = 'paid'
    fulfillment: Fulfillment = Fulfillment()
    user_id: Optional[str] = None
    amount: Optional[AmountSummary] = None
    items: List[CartLineItem] = []
    stripe_session_id: Optional[str] = None
    stripe_payment_intent_id: Optional[str] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    payment_confirmed: Optional[bool] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderTableEntity(BaseModel):
    PartitionKey: str
    RowKey: str = ORDER_ROW_KEY
    payment_status: str = 'paid'
    fulfillment_status: str = 'unfulfilled'
    fulfillment_updated_at: Optional[str] = None
    user_id: Optional[str] = None
    amount: Optional[str] = None
    items: str = "[]"
    stripe_session_id: Optional[str] = None
    stripe_payment_intent_id: Optional[str] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_order(self) -> Order:
        fulfillment = Fulfillment(status=self.fulfillment_status, updated_at=from_iso(self.fulfillment_updated_at))
        return Order(id=self.PartitionKey, fulfillment=fulfillment, items=deserialize_items(self.items),
                     amount=AmountSummary.model_validate_json(self.amount) if self.amount else None,
                     created_at=from_iso(self.created_at), updated_at=from_iso(self.updated_at),
                     **self.model_dump(exclude={"PartitionKey", "RowKey", "fulfillment_status", "fulfillment_updated_at",
                                                "items", "amount", "created_at", "updated_at"}))

    @classmethod
    def from_order(cls, order: Order) -> "OrderTableEntity":
        return cls(PartitionKey=order.id, fulfillment_status=order.fulfillment.status,
                   fulfillment_updated_at=to_iso(order.fulfillment.updated_at), items=serialize_items(order.items),
                   amount=order.amount.model_dump_json(by_alias=True) if order.amount else None,
                   created_at=to_iso(order.created_at), updated_at=to_iso(order.updated_at),
                   **order.model_dump(exclude={"id", "fulfillment", "items", "amount", "payment_confirmed",
                                               "created_at", "updated_at"}))

    @classmethod
    def from_entity(cls, entity: TableEntity):
        return cls.model_validate(dict(entity))
