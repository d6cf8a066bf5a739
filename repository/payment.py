from azure.data.tables import UpdateMode
from managers.table_manager import TableConnectionManager
from models.payment import PaymentEvent, PaymentEventTableEntity
from models.query import QueryFilter
from typing import List, Optional
from utils.dates import utc_now


def save_event(manager: TableConnectionManager, event: PaymentEvent) -> PaymentEvent:
    """
    イベントIDをキーにマージ upsert する

    同じイベントが再送されても上書きになるだけで件数は増えない
    """
    event.received_at = utc_now()
    event_entity = PaymentEventTableEntity.from_payment_event(event)
    manager.stripe_events_table.upsert_entity(mode=UpdateMode.MERGE, entity=event_entity.model_dump(exclude_none=True))
    return event


def query_events(
        manager: TableConnectionManager,
        user_id: Optional[str] = None,
        checkout_id: Optional[str] = None,
        event_type: Optional[str] = None,
    ) -> List[PaymentEvent]:
    qf = QueryFilter()
    qf.add_filter("PartitionKey", "stripe_event")
    qf.add_filter("user_id", user_id)
    qf.add_filter("checkout_id", checkout_id)
    qf.add_filter("type", event_type)

    entities = manager.stripe_events_table.query_entities(**qf.model_dump())
    return [PaymentEventTableEntity.from_entity(e).to_payment_event() for e in entities]
