from azure.data.tables import UpdateMode
from azure.core.exceptions import ResourceNotFoundError
from managers.table_manager import TableConnectionManager
from models.asset import Asset, AssetTableEntity
from models.query import QueryFilter
from typing import List, Literal, Optional
from utils.dates import utc_now


def query_assets(
        manager: TableConnectionManager,
        published: Optional[bool] = None,
        job_id: Optional[str] = None,
        order_by: Literal['created_at', 'title'] = 'created_at',
        limit: int = 50,
    ) -> List[Asset]:
    """ギャラリー・スタジオ用 (既定は新しい順、管理画面のピッカーは title 昇順)"""
    qf = QueryFilter()
    qf.add_filter("PartitionKey", "asset")
    qf.add_filter("published", published)
    qf.add_filter("job_id", job_id)

    entities = manager.assets_table.query_entities(**qf.model_dump(), results_per_page=limit)
    assets = [AssetTableEntity.from_entity(e).to_asset() for e in entities]
    if order_by == 'title':
        assets.sort(key=lambda a: a.title.lower())
    else:
        assets.sort(key=lambda a: a.created_at.isoformat() if a.created_at else "", reverse=True)
    return assets[:limit]


def get_asset(manager: TableConnectionManager, asset_id: str) -> Optional[Asset]:
    try:
        entity = manager.assets_table.get_entity(partition_key='asset', row_key=asset_id)
    except ResourceNotFoundError:
        return None
    return AssetTableEntity.from_entity(entity).to_asset()


def create_asset(manager: TableConnectionManager, asset: Asset) -> Asset:
    now = utc_now()
    asset.created_at = now
    asset.updated_at = now
    asset_entity = AssetTableEntity.from_asset(asset)

    manager.assets_table.create_entity(asset_entity.model_dump(exclude_none=True))
    return asset


def set_published(manager: TableConnectionManager, asset_id: str, published: bool) -> Optional[Asset]:
    entity = {"PartitionKey": "asset", "RowKey": asset_id, "published": published,
              "updated_at": utc_now().isoformat()}
    try:
        manager.assets_table.update_entity(mode=UpdateMode.MERGE, entity=entity)
    except ResourceNotFoundError:
        return None
    return get_asset(manager, asset_id)
