from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Literal, Any
from datetime import datetime
from azure.data.tables import TableEntity
import json
import uuid

from models.base import ApiModel
from models.asset import AssetSummary
from utils.dates import to_iso, from_iso
from utils.flags import parse_bool, clamp_count

JobStatus = Literal['pending', 'done', 'mock_done', 'error']

MAX_IMAGES_PER_REQUEST = 8


class GenerationRequest(ApiModel):
    """
    画像生成リクエスト

    count は 1..8 に丸め、数値でない値は 1 として扱う。mock は parse_bool の真理値表に従う。
    """
    prompt: str = ""
    title: str = "AI generated design"
    niche: str = "general"
    style: str = ""
    count: int = 1
    mock: bool = False
    run_id: Optional[str] = None
    row_id: Optional[str] = None

    @field_validator("prompt", "style", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, value: Any) -> str:
        value = "" if value is None else str(value).strip()
        return value or "AI generated design"

    @field_validator("niche", mode="before")
    @classmethod
    def _niche(cls, value: Any) -> str:
        value = "" if value is None else str(value).strip()
        return value or "general"

    @field_validator("count", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> int:
        return clamp_count(value, 1, MAX_IMAGES_PER_REQUEST)

    @field_validator("mock", mode="before")
    @classmethod
    def _mock(cls, value: Any) -> bool:
        return parse_bool(value)

    @field_validator("run_id", "row_id", mode="before")
    @classmethod
    def _ids(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)

    def final_prompt(self) -> str:
        return f"{self.prompt}\n\nStyle: {self.style}" if self.style else self.prompt


class GenerationResponse(ApiModel):
    ok: bool = True
    request_id: str
    run_id: str
    row_id: Optional[str] = None
    job_id: str
    mock: bool = False
    count: int
    assets: List[AssetSummary]


class Job(ApiModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    request_id: str
    run_id: str
    row_id: Optional[str] = None
    status: JobStatus = 'pending'
    title: str = ""
    niche: str = ""
    style: str = ""
    requested_count: int = 1
    is_mock: bool = False
    generated_count: Optional[int] = None
    assets: List[AssetSummary] = []
    error: Optional[str] = None
    used_today: Optional[int] = None
    daily_cap: Optional[int] = None
    ms: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class JobTableEntity(BaseModel):
    PartitionKey: str = "job"
    RowKey: str
    request_id: str
    run_id: str
    row_id: Optional[str] = None
    status: str = 'pending'
    title: str = ""
    niche: str = ""
    style: str = ""
    requested_count: int = 1
    is_mock: bool = False
    generated_count: Optional[int] = None
    assets: Optional[str] = None
    error: Optional[str] = None
    used_today: Optional[int] = None
    daily_cap: Optional[int] = None
    ms: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    finished_at: Optional[str] = None

    def to_job(self) -> Job:
        deserialized_assets = [AssetSummary.model_validate(a) for a in json.loads(self.assets)] if self.assets else []
        return Job(id=self.RowKey, assets=deserialized_assets, created_at=from_iso(self.created_at),
                   updated_at=from_iso(self.updated_at), finished_at=from_iso(self.finished_at),
                   **self.model_dump(exclude={"PartitionKey", "RowKey", "assets", "created_at", "updated_at", "finished_at"}))

    @classmethod
    def from_job(cls, job: Job) -> "JobTableEntity":
        return cls(RowKey=job.id, assets=serialize_assets(job.assets), created_at=to_iso(job.created_at),
                   updated_at=to_iso(job.updated_at), finished_at=to_iso(job.finished_at),
                   **job.model_dump(exclude={"id", "assets", "created_at", "updated_at", "finished_at"}))

    @classmethod
    def from_entity(cls, entity: TableEntity):
        return cls.model_validate(dict(entity))


def serialize_assets(assets: List[AssetSummary]) -> str:
    return json.dumps([a.model_dump(by_alias=True) for a in assets])
