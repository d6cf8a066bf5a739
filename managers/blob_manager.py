from typing import Dict
from azure.storage.blob import BlobServiceClient, ContentSettings, generate_blob_sas, BlobSasPermissions
import datetime

from config import Settings


def parse_connection_string(conn_str: str) -> Dict[str, str]:
    result = {}
    for pair in conn_str.split(";"):
        if not pair:
            continue
        key, value = pair.split('=', 1)
        result[key] = value
    return result


class BLOBConnectionManager:
    """
    オブジェクトストレージ (Azure Blob Storage)

    アップロードしたファイルは読み取り専用の SAS 付き URL で公開する。
    """

    def __init__(self, client: BlobServiceClient, container_name: str, account_name: str, account_key: str,
                 sas_expiry_days: int = 365):
        self.client = client
        self.container_name = container_name
        self.account_name = account_name
        self.account_key = account_key
        self.sas_expiry_days = sas_expiry_days

    @classmethod
    def from_settings(cls, settings: Settings) -> "BLOBConnectionManager":
        conn_str = settings.AZURE_STORAGE_CONNECTION_STRING
        if not conn_str:
            raise RuntimeError("AZURE_STORAGE_CONNECTION_STRING is not set")
        parts = parse_connection_string(conn_str)
        return cls(BlobServiceClient.from_connection_string(conn_str), settings.AZURE_BLOB_CONTAINER_NAME,
                   parts["AccountName"], parts["AccountKey"], settings.BLOB_SAS_EXPIRY_DAYS)

    def upload_png(self, blob_name: str, data: bytes) -> str:
        return self.upload(blob_name, data, "image/png")

    def upload(self, blob_name: str, data: bytes, content_type: str) -> str:
        """パスを指定してアップロードし、SAS URL を返す"""
        blob_client = self.client.get_blob_client(container=self.container_name, blob=blob_name)
        blob_client.upload_blob(data, overwrite=True, content_settings=ContentSettings(content_type=content_type))
        return self.generate_sas_url(blob_name)

    def generate_sas_url(self, blob_name: str) -> str:
        """Azure Blob Storage用のSAS URLを生成する"""
        start_time = datetime.datetime.now(datetime.timezone.utc)
        expiry_time = start_time + datetime.timedelta(days=self.sas_expiry_days)

        blob_client = self.client.get_blob_client(container=self.container_name, blob=blob_name)

        sas_token = generate_blob_sas(
            account_name=self.account_name,
            container_name=self.container_name,
            blob_name=blob_name,
            account_key=self.account_key,
            permission=BlobSasPermissions(read=True),
            expiry=expiry_time,
            start=start_time,
        )
        return f"{blob_client.url}?{sas_token}"
