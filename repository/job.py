from azure.data.tables import UpdateMode
from azure.core.exceptions import ResourceNotFoundError
from managers.table_manager import TableConnectionManager
from models.job import Job, JobTableEntity, serialize_assets
from typing import Any, Dict, Optional
from utils.dates import utc_now


def create_job(manager: TableConnectionManager, job: Job) -> Job:
    """pending 状態のジョブを作成する"""
    now = utc_now()
    job.created_at = now
    job.updated_at = now
    job_entity = JobTableEntity.from_job(job)

    manager.jobs_table.create_entity(job_entity.model_dump(exclude_none=True))
    return job


def update_job(manager: TableConnectionManager, job_id: str, **fields: Any) -> None:
    """
    ジョブをマージ更新する

    assets は AssetSummary のリスト、日時は datetime で渡す
    """
    entity: Dict[str, Any] = {"PartitionKey": "job", "RowKey": job_id, "updated_at": utc_now().isoformat()}
    for key, value in fields.items():
        if value is None:
            continue
        if key == "assets":
            value = serialize_assets(value)
        elif hasattr(value, "isoformat"):
            value = value.isoformat()
        entity[key] = value
    manager.jobs_table.update_entity(mode=UpdateMode.MERGE, entity=entity)


def get_job(manager: TableConnectionManager, job_id: str) -> Optional[Job]:
    try:
        entity = manager.jobs_table.get_entity(partition_key='job', row_key=job_id)
    except ResourceNotFoundError:
        return None
    return JobTableEntity.from_entity(entity).to_job()
