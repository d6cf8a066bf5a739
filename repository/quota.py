from azure.data.tables import UpdateMode, TableEntity
from azure.core import MatchConditions
from azure.core.exceptions import ResourceExistsError, ResourceModifiedError, ResourceNotFoundError
from managers.table_manager import TableConnectionManager
from typing import Optional, Tuple
from utils.dates import utc_now

PARTITION_KEY = "generation"
MAX_ATTEMPTS = 10


class QuotaContentionError(Exception):
    pass


def _read(manager: TableConnectionManager, day_key: str) -> Optional[TableEntity]:
    try:
        return manager.quota_table.get_entity(partition_key=PARTITION_KEY, row_key=day_key)
    except ResourceNotFoundError:
        return None


def get_used(manager: TableConnectionManager, day_key: str) -> int:
    entity = _read(manager, day_key)
    return int(entity.get("used", 0)) if entity is not None else 0


def _write(manager: TableConnectionManager, day_key: str, entity: Optional[TableEntity], used: int) -> None:
    """読み取り時点から変更されていなければ書き込む。競合時は ResourceExistsError / ResourceModifiedError"""
    row = {"PartitionKey": PARTITION_KEY, "RowKey": day_key, "used": used, "updated_at": utc_now().isoformat()}
    if entity is None:
        manager.quota_table.create_entity(row)
    else:
        manager.quota_table.update_entity(row, mode=UpdateMode.MERGE, etag=entity.metadata.get("etag"),
                                          match_condition=MatchConditions.IfNotModified)


def reserve(manager: TableConnectionManager, day_key: str, count: int, cap: int) -> Tuple[bool, int]:
    """
    当日の生成枠を count 枚分確保する (読み取り→条件付き書き込み)

    Returns:
        (確保できたか, 確保前の使用済み枚数)
    """
    for _ in range(MAX_ATTEMPTS):
        entity = _read(manager, day_key)
        used = int(entity.get("used", 0)) if entity is not None else 0
        if used + count > cap:
            return False, used
        try:
            _write(manager, day_key, entity, used + count)
            return True, used
        except (ResourceExistsError, ResourceModifiedError):
            continue
    raise QuotaContentionError(f"Could not reserve generation quota for {day_key}")


def release(manager: TableConnectionManager, day_key: str, count: int) -> int:
    """生成できなかった分の枠を戻す。戻した後の使用済み枚数を返す"""
    if count <= 0:
        return get_used(manager, day_key)
    for _ in range(MAX_ATTEMPTS):
        entity = _read(manager, day_key)
        if entity is None:
            return 0
        used = max(int(entity.get("used", 0)) - count, 0)
        try:
            _write(manager, day_key, entity, used)
            return used
        except ResourceModifiedError:
            continue
    raise QuotaContentionError(f"Could not release generation quota for {day_key}")
