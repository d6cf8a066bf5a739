from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from managers.table_manager import TableConnectionManager
from repository import quota as quota_repo
from tests.fakes import FakeTableServiceClient
from utils.dates import day_key, day_start


def make_tables():
    return TableConnectionManager(FakeTableServiceClient())


def test_reserve_and_release():
    tables = make_tables()
    assert quota_repo.reserve(tables, "2025-03-01", 3, 10) == (True, 0)
    assert quota_repo.reserve(tables, "2025-03-01", 7, 10) == (True, 3)
    assert quota_repo.reserve(tables, "2025-03-01", 1, 10) == (False, 10)
    assert quota_repo.release(tables, "2025-03-01", 2) == 8
    assert quota_repo.get_used(tables, "2025-03-01") == 8
    assert quota_repo.get_used(tables, "2025-03-02") == 0


def test_concurrent_reservations_never_exceed_cap():
    tables = make_tables()

    def reserve(_):
        try:
            return quota_repo.reserve(tables, "2025-03-01", 1, 10)[0]
        except quota_repo.QuotaContentionError:
            return False

    with ThreadPoolExecutor(max_workers=8) as executor:
        granted = sum(executor.map(reserve, range(30)))

    used = quota_repo.get_used(tables, "2025-03-01")
    assert granted == used
    assert used <= 10


def test_day_key_uses_configured_timezone():
    # 2025-03-02 03:00 UTC は New York ではまだ 3/1
    now = datetime(2025, 3, 2, 3, 0, tzinfo=timezone.utc)
    assert day_key("America/New_York", now) == "2025-03-01"
    assert day_key("UTC", now) == "2025-03-02"
    assert day_start("America/New_York", now) == datetime(2025, 3, 1, 5, 0, tzinfo=timezone.utc)
