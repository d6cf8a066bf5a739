from fastapi import Depends, Header, HTTPException
from typing import Optional
import hmac
import logging

from config import Settings, get_settings

logger = logging.getLogger(__name__)


def secret_matches(expected: Optional[str], provided: Optional[str]) -> bool:
    """シークレット未設定の場合は常に不一致"""
    if not expected or not provided:
        return False
    return hmac.compare_digest(expected.encode(), provided.encode())


class UnauthorizedError(Exception):
    pass


def require_automation_secret(
    x_automation_secret: Optional[str] = Header(None, description="自動化ワークフロー用の共有シークレット"),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    内部自動化エンドポイント (画像生成) 用

    JSON 形式のエラー本文 {ok:false,...} を返すため HTTPException ではなく UnauthorizedError を投げる
    """
    if not secret_matches(settings.AUTOMATION_SHARED_SECRET, x_automation_secret):
        logger.info("auth.automation_rejected has_header=%s", x_automation_secret is not None)
        raise UnauthorizedError()


def require_admin_key(
    x_admin_key: Optional[str] = Header(None, description="管理画面用のキー"),
    settings: Settings = Depends(get_settings),
) -> None:
    if not secret_matches(settings.ADMIN_KEY, x_admin_key):
        raise HTTPException(status_code=401, detail="Unauthorized")
