from pydantic import BaseModel
from typing import Optional, Dict, Any
from datetime import datetime
from azure.data.tables import TableEntity
import json

from models.base import ApiModel
from utils.dates import to_iso, from_iso

# Table のプロパティは最大 64KiB (UTF-16)。余裕を持って打ち切る
MAX_OBJECT_JSON_LENGTH = 30000

# サイズ超過時に残すキー
PROJECTED_KEYS = (
    "id", "object", "status", "payment_status", "payment_intent", "amount_total", "currency",
    "metadata", "customer_details", "client_reference_id", "created",
)

COMPLETED_EVENT_TYPES = ('checkout.session.completed', 'checkout.session.async_payment_succeeded')
EXPIRED_EVENT_TYPES = ('checkout.session.expired',)


class PaymentEvent(ApiModel):
    """Stripe webhook イベント。id は Stripe のイベントID"""
    id: str
    type: str
    created: Optional[int] = None
    livemode: bool = False
    api_version: Optional[str] = None
    checkout_id: Optional[str] = None
    user_id: Optional[str] = None
    object: Optional[Dict[str, Any]] = None
    received_at: Optional[datetime] = None

    @classmethod
    def from_stripe_event(cls, event: Dict[str, Any]) -> "PaymentEvent":
        obj = (event.get("data") or {}).get("object") or None
        metadata = (obj or {}).get("metadata") or {}
        return cls(id=event["id"], type=event["type"], created=event.get("created"),
                   livemode=bool(event.get("livemode", False)), api_version=event.get("api_version"),
                   checkout_id=metadata.get("checkoutId"), user_id=metadata.get("userId"), object=obj)


class PaymentEventTableEntity(BaseModel):
    PartitionKey: str = "stripe_event"
    RowKey: str
    type: str
    created: Optional[int] = None
    livemode: bool = False
    api_version: Optional[str] = None
    checkout_id: Optional[str] = None
    user_id: Optional[str] = None
    object: Optional[str] = None
    object_truncated: bool = False
    received_at: Optional[str] = None

    def to_payment_event(self) -> PaymentEvent:
        return PaymentEvent(id=self.RowKey, object=json.loads(self.object) if self.object else None,
                            received_at=from_iso(self.received_at),
                            **self.model_dump(exclude={"PartitionKey", "RowKey", "object", "object_truncated", "received_at"}))

    @classmethod
    def from_payment_event(cls, event: PaymentEvent) -> "PaymentEventTableEntity":
        serialized_object, truncated = serialize_object(event.object)
        return cls(RowKey=event.id, object=serialized_object, object_truncated=truncated,
                   received_at=to_iso(event.received_at),
                   **event.model_dump(exclude={"id", "object", "received_at"}))

    @classmethod
    def from_entity(cls, entity: TableEntity):
        return cls.model_validate(dict(entity))


def serialize_object(obj: Optional[Dict[str, Any]]):
    if obj is None:
        return None, False
    serialized = json.dumps(obj)
    if len(serialized) <= MAX_OBJECT_JSON_LENGTH:
        return serialized, False
    projected = json.dumps({key: obj[key] for key in PROJECTED_KEYS if key in obj})
    if len(projected) > MAX_OBJECT_JSON_LENGTH:
        projected = json.dumps({key: obj.get(key) for key in ("id", "object", "status", "payment_status")})
    return projected, True
