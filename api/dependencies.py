from functools import lru_cache
from typing import Optional
from fastapi import Depends

from config import Settings, get_settings
from managers.table_manager import TableConnectionManager
from managers.blob_manager import BLOBConnectionManager
from managers.stripe_manager import StripeManager
from managers.image_manager import ImageGenerationManager
from services.checkout import CheckoutService
from services.generation import AssetGenerationService
from services.webhook import PaymentWebhookService

# 外部クライアントはプロセス内で一度だけ生成し、以後は同じインスタンスを使う


@lru_cache
def get_table_manager() -> TableConnectionManager:
    return TableConnectionManager.from_settings(get_settings())


@lru_cache
def get_blob_manager() -> Optional[BLOBConnectionManager]:
    """ストレージ未設定ならモック生成のみ可能"""
    settings = get_settings()
    if not settings.AZURE_STORAGE_CONNECTION_STRING:
        return None
    return BLOBConnectionManager.from_settings(settings)


@lru_cache
def get_stripe_manager() -> StripeManager:
    return StripeManager.from_settings(get_settings())


@lru_cache
def get_image_manager() -> ImageGenerationManager:
    return ImageGenerationManager.from_settings(get_settings())


def get_generation_service(
    settings: Settings = Depends(get_settings),
    tables: TableConnectionManager = Depends(get_table_manager),
    blobs: Optional[BLOBConnectionManager] = Depends(get_blob_manager),
    images: ImageGenerationManager = Depends(get_image_manager),
) -> AssetGenerationService:
    return AssetGenerationService(settings, tables, blobs, images)


def get_checkout_service(
    settings: Settings = Depends(get_settings),
    tables: TableConnectionManager = Depends(get_table_manager),
    stripe_manager: StripeManager = Depends(get_stripe_manager),
) -> CheckoutService:
    return CheckoutService(settings, tables, stripe_manager)


def get_webhook_service(
    tables: TableConnectionManager = Depends(get_table_manager),
) -> PaymentWebhookService:
    return PaymentWebhookService(tables)
