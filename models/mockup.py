from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from azure.data.tables import TableEntity
import base64
import binascii
import re
import uuid

from models.base import ApiModel
from utils.dates import to_iso, from_iso

PNG_DATA_URL = re.compile(r"^data:image/png;base64,(.+)$", re.DOTALL)


class MockupRequest(ApiModel):
    data_url: Optional[str] = None
    asset_id: Optional[str] = None
    product_id: Optional[str] = None

    def is_complete(self) -> bool:
        return bool(self.data_url and self.asset_id and self.product_id)

    def png_bytes(self) -> bytes:
        """data:image/png;base64,... をデコードする。形式不正は ValueError"""
        matches = PNG_DATA_URL.match(self.data_url or "")
        if not matches:
            raise ValueError("Invalid data URL format")
        try:
            return base64.b64decode(matches.group(1), validate=True)
        except binascii.Error:
            raise ValueError("Invalid data URL format")


class MockupResponse(ApiModel):
    id: str
    image_url: str


class Mockup(ApiModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    asset_id: str
    product_id: str
    image_url: str
    storage_path: str
    asset_title: Optional[str] = None
    product_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MockupTableEntity(BaseModel):
    PartitionKey: str = "mockup"
    RowKey: str
    asset_id: str
    product_id: str
    image_url: str
    storage_path: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_mockup(self) -> Mockup:
        return Mockup(id=self.RowKey, created_at=from_iso(self.created_at), updated_at=from_iso(self.updated_at),
                      **self.model_dump(exclude={"PartitionKey", "RowKey", "created_at", "updated_at"}))

    @classmethod
    def from_mockup(cls, mockup: Mockup) -> "MockupTableEntity":
        return cls(RowKey=mockup.id, created_at=to_iso(mockup.created_at), updated_at=to_iso(mockup.updated_at),
                   **mockup.model_dump(exclude={"id", "asset_title", "product_name", "created_at", "updated_at"}))

    @classmethod
    def from_entity(cls, entity: TableEntity):
        return cls.model_validate(dict(entity))
