from azure.data.tables import UpdateMode
from azure.core.exceptions import ResourceNotFoundError
from managers.table_manager import TableConnectionManager
from models.checkout import CheckoutSession, CheckoutSessionTableEntity, CheckoutStatus, SESSION_ROW_KEY
from typing import Any, Optional
from utils.dates import utc_now


def create_checkout_session(manager: TableConnectionManager, session: CheckoutSession) -> CheckoutSession:
    """created 状態のチェックアウトセッションを作成する"""
    now = utc_now()
    session.created_at = now
    session.updated_at = now
    session_entity = CheckoutSessionTableEntity.from_checkout_session(session)

    manager.checkouts_table.create_entity(session_entity.model_dump(exclude_none=True))
    return session


def update_checkout_status(manager: TableConnectionManager, checkout_id: str, status: CheckoutStatus, **fields: Any) -> None:
    entity = {"PartitionKey": checkout_id, "RowKey": SESSION_ROW_KEY, "status": status,
              "updated_at": utc_now().isoformat()}
    entity.update({k: v for k, v in fields.items() if v is not None})
    manager.checkouts_table.update_entity(mode=UpdateMode.MERGE, entity=entity)


def get_checkout_session(manager: TableConnectionManager, checkout_id: str) -> Optional[CheckoutSession]:
    try:
        entity = manager.checkouts_table.get_entity(partition_key=checkout_id, row_key=SESSION_ROW_KEY)
    except ResourceNotFoundError:
        return None
    return CheckoutSessionTableEntity.from_entity(entity).to_checkout_session()


def mark_expired(manager: TableConnectionManager, checkout_id: str) -> bool:
    """存在すれば expired にする"""
    try:
        update_checkout_status(manager, checkout_id, 'expired')
    except ResourceNotFoundError:
        return False
    return True
