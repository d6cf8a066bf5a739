from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime
from azure.data.tables import TableEntity
import uuid

from models.base import ApiModel
from utils.dates import to_iso, from_iso

AssetSource = Literal['mock', 'generation', 'manual']


class Asset(ApiModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    prompt: str = ""
    niche: str = "general"
    style: str = ""
    image_url: str
    thumb_url: Optional[str] = None
    storage_path: str = ""
    source: AssetSource = 'manual'
    request_id: Optional[str] = None
    run_id: Optional[str] = None
    row_id: Optional[str] = None
    job_id: Optional[str] = None
    published: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AssetCreate(ApiModel):
    """管理画面からの手動登録"""
    title: str
    image_url: str
    prompt: str = ""
    niche: str = "general"
    style: str = ""
    published: bool = False

    def to_asset(self) -> Asset:
        return Asset(source='manual', thumb_url=self.image_url, **self.model_dump())


class AssetSummary(ApiModel):
    asset_id: str
    image_url: str


class AssetTableEntity(BaseModel):
    PartitionKey: str = "asset"
    RowKey: str
    title: str
    prompt: str = ""
    niche: str = "general"
    style: str = ""
    image_url: str
    thumb_url: Optional[str] = None
    storage_path: str = ""
    source: str = 'manual'
    request_id: Optional[str] = None
    run_id: Optional[str] = None
    row_id: Optional[str] = None
    job_id: Optional[str] = None
    published: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_asset(self) -> Asset:
        return Asset(id=self.RowKey, created_at=from_iso(self.created_at), updated_at=from_iso(self.updated_at),
                     **self.model_dump(exclude={"PartitionKey", "RowKey", "created_at", "updated_at"}))

    @classmethod
    def from_asset(cls, asset: Asset) -> "AssetTableEntity":
        return cls(RowKey=asset.id, created_at=to_iso(asset.created_at), updated_at=to_iso(asset.updated_at),
                   **asset.model_dump(exclude={"id", "created_at", "updated_at"}))

    @classmethod
    def from_entity(cls, entity: TableEntity):
        return cls.model_validate(dict(entity))
