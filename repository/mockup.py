from azure.core.exceptions import ResourceNotFoundError
from managers.table_manager import TableConnectionManager
from models.mockup import Mockup, MockupTableEntity
from models.query import QueryFilter
from typing import List, Optional
from utils.dates import utc_now


def create_mockup(manager: TableConnectionManager, mockup: Mockup) -> Mockup:
    now = utc_now()
    mockup.created_at = now
    mockup.updated_at = now
    mockup_entity = MockupTableEntity.from_mockup(mockup)

    manager.mockups_table.create_entity(mockup_entity.model_dump(exclude_none=True))
    return mockup


def get_mockup(manager: TableConnectionManager, mockup_id: str) -> Optional[Mockup]:
    try:
        entity = manager.mockups_table.get_entity(partition_key='mockup', row_key=mockup_id)
    except ResourceNotFoundError:
        return None
    return MockupTableEntity.from_entity(entity).to_mockup()


def query_mockups(manager: TableConnectionManager, limit: int = 50) -> List[Mockup]:
    qf = QueryFilter()
    qf.add_filter("PartitionKey", "mockup")

    entities = manager.mockups_table.query_entities(**qf.model_dump(), results_per_page=limit)
    mockups = [MockupTableEntity.from_entity(e).to_mockup() for e in entities]
    mockups.sort(key=lambda m: m.created_at.isoformat() if m.created_at else "", reverse=True)
    return mockups[:limit]
