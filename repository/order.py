from azure.data.tables import UpdateMode, TableEntity
from azure.core import MatchConditions
from azure.core.exceptions import ResourceNotFoundError
from managers.table_manager import TableConnectionManager
from models.checkout import SESSION_ROW_KEY, ORDER_ROW_KEY
from models.order import Order, OrderTableEntity, FulfillmentStatus
from models.query import QueryFilter
from typing import Any, Dict, List, Optional, Tuple
from utils.dates import utc_now


def read_checkout_partition(
        manager: TableConnectionManager,
        checkout_id: str,
    ) -> Tuple[Optional[TableEntity], Optional[TableEntity]]:
    """チェックアウトセッションと注文を (session, order) で返す。無いものは None"""
    def read(row_key: str) -> Optional[TableEntity]:
        try:
            return manager.checkouts_table.get_entity(partition_key=checkout_id, row_key=row_key)
        except ResourceNotFoundError:
            return None

    return read(SESSION_ROW_KEY), read(ORDER_ROW_KEY)


def etag_of(entity: Optional[TableEntity]) -> Optional[str]:
    return entity.metadata.get("etag") if entity is not None else None


def commit_paid_order(
        manager: TableConnectionManager,
        order: Order,
        order_etag: Optional[str],
        session_fields: Optional[Dict[str, Any]],
        session_etag: Optional[str],
    ) -> None:
    """
    注文の作成/更新とセッションの更新を1トランザクションで書き込む

    読み取り時の ETag を条件にするため、途中で他のリクエストが書き込んでいれば
    TableTransactionError (409/412) になり、何も書き込まれない。
    """
    order_entity = OrderTableEntity.from_order(order).model_dump(exclude_none=True)
    operations: List[tuple] = []
    if order_etag is None:
        operations.append(("create", order_entity))
    else:
        operations.append(("update", order_entity,
                           {"mode": UpdateMode.REPLACE, "etag": order_etag, "match_condition": MatchConditions.IfNotModified}))

    if session_fields is not None:
        session_entity = {"PartitionKey": order.id, "RowKey": SESSION_ROW_KEY, **session_fields}
        operations.append(("update", session_entity,
                           {"mode": UpdateMode.MERGE, "etag": session_etag, "match_condition": MatchConditions.IfNotModified}))

    manager.checkouts_table.submit_transaction(operations)


def get_order(manager: TableConnectionManager, order_id: str) -> Optional[Order]:
    try:
        entity = manager.checkouts_table.get_entity(partition_key=order_id, row_key=ORDER_ROW_KEY)
    except ResourceNotFoundError:
        return None
    return OrderTableEntity.from_entity(entity).to_order()


def query_orders(manager: TableConnectionManager, user_id: Optional[str] = None, limit: int = 50) -> List[Order]:
    """注文一覧 (新しい順)"""
    qf = QueryFilter()
    qf.add_filter("RowKey", ORDER_ROW_KEY)
    qf.add_filter("user_id", user_id)

    entities = manager.checkouts_table.query_entities(**qf.model_dump(), results_per_page=limit)
    orders = [OrderTableEntity.from_entity(e).to_order() for e in entities]
    orders.sort(key=lambda o: o.created_at.isoformat() if o.created_at else "", reverse=True)
    return orders[:limit]


def update_fulfillment(manager: TableConnectionManager, order_id: str, status: FulfillmentStatus) -> Optional[Order]:
    """フルフィルメント状態は決済とは別のライフサイクル (手動で進める)"""
    now = utc_now().isoformat()
    entity = {"PartitionKey": order_id, "RowKey": ORDER_ROW_KEY, "fulfillment_status": status,
              "fulfillment_updated_at": now, "updated_at": now}
    try:
        manager.checkouts_table.update_entity(mode=UpdateMode.MERGE, entity=entity)
    except ResourceNotFoundError:
        return None
    return get_order(manager, order_id)
