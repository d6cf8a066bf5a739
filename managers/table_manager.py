from typing import Optional
from azure.data.tables import TableServiceClient, TableClient
from azure.core.exceptions import ResourceExistsError
from azure.identity import DefaultAzureCredential

from config import Settings


def get_table_client(table_name: str, client: TableServiceClient) -> TableClient:
    try:
        table_client = client.create_table_if_not_exists(table_name)
    except ResourceExistsError:
        table_client = client.get_table_client(table_name)
    return table_client


class TableConnectionManager:
    """
    ドキュメントストア (Cosmos DB Table API) への接続

    プロセス起動時に一度だけ生成し、Depends で各ハンドラへ渡す。
    テーブル名は英数字のみ (Azure Table の命名規則)。
    """
    client: TableServiceClient
    products_table: TableClient
    assets_table: TableClient
    jobs_table: TableClient
    checkouts_table: TableClient
    stripe_events_table: TableClient
    mockups_table: TableClient
    quota_table: TableClient

    def __init__(self, client: TableServiceClient):
        self.client = client
        self.products_table = get_table_client("products", client)
        self.assets_table = get_table_client("assets", client)
        self.jobs_table = get_table_client("jobs", client)
        # チェックアウトセッションと注文 (PartitionKey = checkoutId)
        self.checkouts_table = get_table_client("checkouts", client)
        self.stripe_events_table = get_table_client("stripeevents", client)
        self.mockups_table = get_table_client("mockups", client)
        self.quota_table = get_table_client("generationquota", client)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TableConnectionManager":
        if settings.AZURE_TABLES_CONNECTION_STRING:
            client = TableServiceClient.from_connection_string(settings.AZURE_TABLES_CONNECTION_STRING)
        elif settings.AZURE_COSMOSDB_ENDPOINT:
            client = TableServiceClient(endpoint=settings.AZURE_COSMOSDB_ENDPOINT, credential=DefaultAzureCredential())
        else:
            raise RuntimeError("AZURE_COSMOSDB_ENDPOINT or AZURE_TABLES_CONNECTION_STRING is not set")
        return cls(client)
