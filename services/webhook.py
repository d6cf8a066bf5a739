from typing import Any, Callable, Dict, Optional
from datetime import datetime
import logging

from azure.data.tables import TableTransactionError
from azure.core.exceptions import ResourceExistsError, ResourceModifiedError

from managers.table_manager import TableConnectionManager
from models.checkout import AmountSummary, CheckoutSessionTableEntity
from models.order import Fulfillment, Order, OrderTableEntity
from models.payment import PaymentEvent, COMPLETED_EVENT_TYPES, EXPIRED_EVENT_TYPES
from repository import checkout as checkout_repo
from repository import order as order_repo
from repository import payment as payment_repo
from utils.dates import utc_now

logger = logging.getLogger(__name__)

MAX_TRANSACTION_ATTEMPTS = 5
CONFLICT_STATUS_CODES = (409, 412)


class OrderReconciliationError(Exception):
    pass


def is_conflict(error: Exception) -> bool:
    if isinstance(error, (ResourceExistsError, ResourceModifiedError)):
        return True
    return getattr(error, "status_code", None) in CONFLICT_STATUS_CODES


class PaymentWebhookService:
    """
    署名検証済みの Stripe イベントを処理する

    - イベントは種類に関係なく最初に保存する (イベントIDがキーなので再送は上書き)
    - 決済完了イベントは checkoutId をキーに注文を upsert し、セッションを paid にする
    """

    def __init__(self, tables: TableConnectionManager, clock: Callable[[], datetime] = utc_now):
        self.tables = tables
        self.clock = clock

    def persist(self, event: Dict[str, Any]) -> PaymentEvent:
        payment_event = PaymentEvent.from_stripe_event(event)
        payment_repo.save_event(self.tables, payment_event)
        logger.info("stripe_webhook.persisted event_id=%s type=%s checkout_id=%s",
                    payment_event.id, payment_event.type, payment_event.checkout_id)
        return payment_event

    def dispatch(self, event: PaymentEvent) -> Optional[Order]:
        if event.type in COMPLETED_EVENT_TYPES:
            if not event.checkout_id:
                logger.warning("stripe_webhook.missing_checkout_id event_id=%s type=%s", event.id, event.type)
                return None
            return self.reconcile_paid_checkout(event.checkout_id, event.object or {})

        if event.type in EXPIRED_EVENT_TYPES:
            if event.checkout_id and checkout_repo.mark_expired(self.tables, event.checkout_id):
                logger.info("stripe_webhook.expired checkout_id=%s", event.checkout_id)
            return None

        logger.info("stripe_webhook.ignored event_id=%s type=%s", event.id, event.type)
        return None

    def reconcile_paid_checkout(self, checkout_id: str, stripe_session: Dict[str, Any]) -> Order:
        """
        注文 (id = checkoutId) を作成または更新し、セッションを paid にする

        読み取り→書き込みを ETag 条件付きのトランザクションで行い、競合したらやり直す。
        何度再送されても注文は1件で、created_at は最初の値のまま。
        """
        for attempt in range(1, MAX_TRANSACTION_ATTEMPTS + 1):
            session_entity, order_entity = order_repo.read_checkout_partition(self.tables, checkout_id)
            existing = OrderTableEntity.from_entity(order_entity).to_order() if order_entity is not None else None
            snapshot = CheckoutSessionTableEntity.from_entity(session_entity).to_checkout_session() \
                if session_entity is not None else None

            now = self.clock()
            order = self.build_paid_order(checkout_id, stripe_session, snapshot, existing, now)
            session_fields = None
            if session_entity is not None:
                session_fields = {"status": 'paid', "updated_at": now.isoformat()}
                if order.stripe_session_id:
                    session_fields["stripe_session_id"] = order.stripe_session_id
                if order.stripe_payment_intent_id:
                    session_fields["stripe_payment_intent_id"] = order.stripe_payment_intent_id

            try:
                order_repo.commit_paid_order(self.tables, order, order_repo.etag_of(order_entity),
                                             session_fields, order_repo.etag_of(session_entity))
            except (TableTransactionError, ResourceExistsError, ResourceModifiedError) as e:
                if is_conflict(e) and attempt < MAX_TRANSACTION_ATTEMPTS:
                    logger.info("stripe_webhook.order_conflict checkout_id=%s attempt=%s", checkout_id, attempt)
                    continue
                raise OrderReconciliationError(f"Failed to upsert order {checkout_id}: {e}") from e

            logger.info("stripe_webhook.order_upserted checkout_id=%s created=%s items=%s",
                        checkout_id, existing is None, len(order.items))
            return order
        raise OrderReconciliationError(f"Failed to upsert order {checkout_id}")

    @staticmethod
    def build_paid_order(checkout_id, stripe_session, snapshot, existing, now) -> Order:
        customer = stripe_session.get("customer_details") or {}
        metadata = stripe_session.get("metadata") or {}
        payment_intent = stripe_session.get("payment_intent")
        if isinstance(payment_intent, dict):
            payment_intent = payment_intent.get("id")

        if snapshot is not None:
            items = snapshot.items
            amount = snapshot.amount
            user_id = snapshot.user_id
        else:
            # セッションドキュメントが無い場合は Stripe 側の金額だけ残す
            items = existing.items if existing else []
            amount = existing.amount if existing else None
            if amount is None and stripe_session.get("amount_total") is not None:
                total = int(stripe_session["amount_total"])
                amount = AmountSummary(currency=stripe_session.get("currency") or "usd", unit_amount=total,
                                       item_count=1, subtotal=total, total=total)
            user_id = metadata.get("userId") or (existing.user_id if existing else None)

        return Order(
            id=checkout_id,
            payment_status='paid',
            fulfillment=existing.fulfillment if existing else Fulfillment(status='unfulfilled', updated_at=now),
            user_id=user_id,
            amount=amount,
            items=items,
            stripe_session_id=stripe_session.get("id") or (existing.stripe_session_id if existing else None),
            stripe_payment_intent_id=payment_intent or (existing.stripe_payment_intent_id if existing else None),
            customer_email=customer.get("email") or stripe_session.get("customer_email")
            or (existing.customer_email if existing else None),
            customer_name=customer.get("name") or (existing.customer_name if existing else None),
            created_at=existing.created_at if existing and existing.created_at else now,
            updated_at=now,
        )
