from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from azure.data.tables import TableEntity
import uuid

from models.base import ApiModel
from utils.dates import to_iso, from_iso


class Product(ApiModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: str = ""
    price: float = Field(ge=0)
    active: bool = True
    mockup_image_url: Optional[str] = None
    default_asset_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name is required")
        return value


class ProductUpdate(ApiModel):
    """部分更新。None のフィールドは変更しない(リンク解除は空文字)"""
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    active: Optional[bool] = None
    mockup_image_url: Optional[str] = None
    default_asset_id: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("name must not be blank")
        return value.strip() if value else value


class ProductTableEntity(BaseModel):
    PartitionKey: str = "product"
    RowKey: str
    name: str
    description: str = ""
    price: float
    active: bool = True
    mockup_image_url: Optional[str] = None
    default_asset_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_product(self) -> Product:
        # リンク解除は空文字で保存されている
        return Product(id=self.RowKey, created_at=from_iso(self.created_at), updated_at=from_iso(self.updated_at),
                       mockup_image_url=self.mockup_image_url or None, default_asset_id=self.default_asset_id or None,
                       **self.model_dump(exclude={"PartitionKey", "RowKey", "created_at", "updated_at",
                                                  "mockup_image_url", "default_asset_id"}))

    @classmethod
    def from_product(cls, product: Product) -> "ProductTableEntity":
        return cls(RowKey=product.id, created_at=to_iso(product.created_at), updated_at=to_iso(product.updated_at),
                   **product.model_dump(exclude={"id", "created_at", "updated_at"}))

    @classmethod
    def from_entity(cls, entity: TableEntity):
        return cls.model_validate(dict(entity))
