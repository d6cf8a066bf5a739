from functools import lru_cache
from typing import Any, List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.flags import parse_bool


class Settings(BaseSettings):
    """
    環境変数から読み込むアプリケーション設定

    Stripe:
      - STRIPE_SECRET_KEY / STRIPE_WEBHOOK_SECRET
    Azure:
      - AZURE_COSMOSDB_ENDPOINT (DefaultAzureCredential) または AZURE_TABLES_CONNECTION_STRING
      - AZURE_STORAGE_CONNECTION_STRING / AZURE_BLOB_CONTAINER_NAME
    OpenAI:
      - OPENAI_API_KEY
    """

    PROJECT_NAME: str = "AI Merch API"

    # Stripe
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    CHECKOUT_CURRENCY: str = "usd"
    CHECKOUT_UNIT_AMOUNT: int = 2500
    FRONT_URL: str = "http://localhost:3000"

    # 画像生成
    OPENAI_API_KEY: str = ""
    OPENAI_IMAGE_MODEL: str = "gpt-image-1"
    OPENAI_IMAGE_SIZE: str = "1024x1024"
    IMAGE_FETCH_TIMEOUT: float = 30.0
    DAILY_CAP: int = 10
    DAILY_TZ: str = "America/New_York"
    MOCK_MODE: bool = False
    MOCK_IMAGE_URL: Optional[str] = None

    # Azure
    AZURE_COSMOSDB_ENDPOINT: Optional[str] = None
    AZURE_TABLES_CONNECTION_STRING: Optional[str] = None
    AZURE_STORAGE_CONNECTION_STRING: Optional[str] = None
    AZURE_BLOB_CONTAINER_NAME: str = "assets"
    BLOB_SAS_EXPIRY_DAYS: int = 365

    # 内部エンドポイント用の共有シークレット
    AUTOMATION_SHARED_SECRET: Optional[str] = None
    ADMIN_KEY: Optional[str] = None

    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("MOCK_MODE", mode="before")
    @classmethod
    def _parse_mock_mode(cls, value: Any) -> bool:
        return parse_bool(value)


@lru_cache
def get_settings() -> Settings:
    return Settings()
