from azure.data.tables import UpdateMode
from azure.core.exceptions import ResourceNotFoundError
from managers.table_manager import TableConnectionManager
from models.product import Product, ProductTableEntity, ProductUpdate
from models.query import QueryFilter
from typing import List, Optional
from utils.dates import utc_now


def query_products(manager: TableConnectionManager, active: Optional[bool] = None, limit: int = 100) -> List[Product]:
    """商品一覧 (name 昇順)"""
    qf = QueryFilter()
    qf.add_filter("PartitionKey", "product")
    qf.add_filter("active", active)

    entities = manager.products_table.query_entities(**qf.model_dump(), results_per_page=limit)
    products = [ProductTableEntity.from_entity(e).to_product() for e in entities]
    products.sort(key=lambda p: p.name.lower())
    return products[:limit]


def get_product(manager: TableConnectionManager, product_id: str) -> Optional[Product]:
    try:
        entity = manager.products_table.get_entity(partition_key='product', row_key=product_id)
    except ResourceNotFoundError:
        return None
    return ProductTableEntity.from_entity(entity).to_product()


def create_product(manager: TableConnectionManager, product: Product) -> Product:
    now = utc_now()
    product.created_at = now
    product.updated_at = now
    product_entity = ProductTableEntity.from_product(product)

    manager.products_table.create_entity(product_entity.model_dump(exclude_none=True))
    return product


def update_product(manager: TableConnectionManager, product_id: str, update: ProductUpdate) -> Optional[Product]:
    """指定されたフィールドだけをマージ更新する"""
    entity = {"PartitionKey": "product", "RowKey": product_id, "updated_at": utc_now().isoformat()}
    entity.update(update.model_dump(exclude_none=True))
    try:
        manager.products_table.update_entity(mode=UpdateMode.MERGE, entity=entity)
    except ResourceNotFoundError:
        return None
    return get_product(manager, product_id)


def delete_product(manager: TableConnectionManager, product_id: str) -> bool:
    if get_product(manager, product_id) is None:
        return False
    manager.products_table.delete_entity(partition_key='product', row_key=product_id)
    return True
