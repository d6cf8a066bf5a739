from typing import Any, List, Optional
from threading import Lock
import base64
import binascii
import logging
import requests
from openai import OpenAI

from config import Settings

logger = logging.getLogger(__name__)


class ImageGenerationManager:
    """
    画像生成API (OpenAI Images) への窓口

    クライアントは最初の実呼び出し時に一度だけ生成する (モック運用ではAPIキー不要)。
    """

    def __init__(self, api_key: str, model: str = "gpt-image-1", size: str = "1024x1024",
                 fetch_timeout: float = 30.0, client: Optional[OpenAI] = None):
        self.api_key = api_key
        self.model = model
        self.size = size
        self.fetch_timeout = fetch_timeout
        self._client = client
        self._lock = Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImageGenerationManager":
        return cls(settings.OPENAI_API_KEY, settings.OPENAI_IMAGE_MODEL, settings.OPENAI_IMAGE_SIZE,
                   settings.IMAGE_FETCH_TIMEOUT)

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            with self._lock:
                if self._client is None:
                    if not self.api_key:
                        raise RuntimeError("OPENAI_API_KEY is not set")
                    self._client = OpenAI(api_key=self.api_key)
        return self._client

    def generate(self, prompt: str, count: int) -> List[Any]:
        """バッチ全体で1回だけ呼び出す。戻り値の各要素は b64_json か url を持つ"""
        response = self.client.images.generate(model=self.model, prompt=prompt, n=count, size=self.size)
        return list(response.data or [])

    def load_image(self, image: Any) -> Optional[bytes]:
        """
        b64_json を優先し、無ければ一時URLから取得する

        取得・デコードに失敗した画像は None (呼び出し側でスキップ)
        """
        b64_json = getattr(image, "b64_json", None)
        if b64_json:
            try:
                return base64.b64decode(b64_json)
            except (binascii.Error, ValueError) as e:
                logger.warning("image.decode_failed error=%s", e)

        url = getattr(image, "url", None)
        if url:
            try:
                response = requests.get(url, timeout=self.fetch_timeout)
                response.raise_for_status()
                return response.content
            except requests.exceptions.RequestException as e:
                logger.warning("image.fetch_failed url=%s error=%s", url, e)
        return None
