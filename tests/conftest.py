from fastapi.testclient import TestClient
from types import SimpleNamespace
from unittest.mock import Mock
import base64
import pytest

from api import app
from api import dependencies
from config import Settings, get_settings
from managers.blob_manager import BLOBConnectionManager
from managers.image_manager import ImageGenerationManager
from managers.stripe_manager import StripeManager
from managers.table_manager import TableConnectionManager
from tests.fakes import FakeBlobServiceClient, FakeTableServiceClient
from tests.helpers import ADMIN_KEY, AUTOMATION_SECRET, PNG_BYTES, WEBHOOK_SECRET


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        STRIPE_SECRET_KEY="sk_test_dummy",
        STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET,
        OPENAI_API_KEY="sk-test-dummy",
        DAILY_CAP=10,
        MOCK_MODE=False,
        MOCK_IMAGE_URL=None,
        ADMIN_KEY=ADMIN_KEY,
        AUTOMATION_SHARED_SECRET=AUTOMATION_SECRET,
        FRONT_URL="http://localhost:3000",
    )


@pytest.fixture
def tables():
    return TableConnectionManager(FakeTableServiceClient())


@pytest.fixture
def blob_service():
    return FakeBlobServiceClient()


@pytest.fixture
def blobs(blob_service):
    return BLOBConnectionManager(blob_service, "assets", blob_service.account_name, blob_service.account_key)


@pytest.fixture
def openai_client():
    """images.generate が count 枚の b64 画像を返す OpenAI クライアントのモック"""
    client = Mock()
    encoded = base64.b64encode(PNG_BYTES).decode()
    client.images.generate.side_effect = lambda **kwargs: SimpleNamespace(
        data=[SimpleNamespace(b64_json=encoded, url=None) for _ in range(kwargs["n"])]
    )
    return client


@pytest.fixture
def images(settings, openai_client):
    return ImageGenerationManager(settings.OPENAI_API_KEY, client=openai_client)


@pytest.fixture
def stripe_manager(settings):
    return StripeManager.from_settings(settings)


@pytest.fixture
def client(settings, tables, blobs, images, stripe_manager):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[dependencies.get_table_manager] = lambda: tables
    app.dependency_overrides[dependencies.get_blob_manager] = lambda: blobs
    app.dependency_overrides[dependencies.get_image_manager] = lambda: images
    app.dependency_overrides[dependencies.get_stripe_manager] = lambda: stripe_manager
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": ADMIN_KEY}


@pytest.fixture
def automation_headers():
    return {"X-Automation-Secret": AUTOMATION_SECRET}
