"""
Unit Tests - Inventory Sync Job
"""
from datetime import datetime, timedelta, timezone

import pytest
from prometheus_client import REGISTRY
from structlog.testing import capture_logs

from stocksync.database.models import ARTICLES, LOGS, PRODUCTS, SETTINGS
from stocksync.exceptions import BatchCommitError, EmptyDatasetError, TransferError
from stocksync.sync.job import NO_CHANGES_MESSAGE, InventorySyncJob, SyncStatus
from stocksync.sync.sync_log import WATERMARK_DOC_ID, get_watermark, set_watermark


async def products_by_name(store):
    return {doc["productName"]: doc for doc in (await store.fetch_all(PRODUCTS)).values()}


def failed_ftp_runs():
    return REGISTRY.get_sample_value("stocksync_sync_runs_total", {"trigger": "ftp", "status": "failed"}) or 0


class TestSyncRun:
    """Tests for InventorySyncJob.run"""

    async def test_first_run_creates_everything(self, sync_job, store, fake_source):
        result = await sync_job.run()

        assert result.status == SyncStatus.COMPLETED
        assert result.message == "Sync completed: 2 products created, 0 products updated."
        assert sorted(result.products_created) == ["Scarf", "Shirt"]
        assert result.articles_created == 3
        assert result.rows == 4
        assert fake_source.downloads == 1

        products = await products_by_name(store)
        shirt = products["Shirt"]
        assert shirt["totalStock"] == 8
        assert shirt["sizes"] == "M, L"
        assert shirt["sizesArray"] == ["M", "L"]
        assert [item["sku"] for item in shirt["items"]] == ["SKU-1", "SKU-2"]
        assert shirt["leverandor"] == "Acme"
        assert len(await store.fetch_all(ARTICLES)) == 3

    async def test_row_without_sku_is_not_stored(self, sync_job, store):
        await sync_job.run()

        assert "Ghost" not in await products_by_name(store)

    async def test_watermark_and_log_written(self, sync_job, store, fake_source):
        result = await sync_job.run()

        assert await get_watermark(store) == fake_source.modified
        assert result.source_modified == fake_source.modified

        logs = list((await store.fetch_all(LOGS)).values())
        assert len(logs) == 1
        assert sorted(logs[0]["createdProducts"]) == ["Scarf", "Shirt"]
        assert logs[0]["updatedProducts"] == []

    async def test_unchanged_feed_is_skipped(self, sync_job, store, fake_source):
        await set_watermark(store, fake_source.modified)

        result = await sync_job.run()

        assert result.status == SyncStatus.SKIPPED
        assert result.message == NO_CHANGES_MESSAGE
        assert fake_source.downloads == 0
        assert await store.fetch_all(PRODUCTS) == {}
        assert await store.fetch_all(LOGS) == {}

    async def test_older_feed_is_skipped(self, sync_job, store, fake_source):
        await set_watermark(store, fake_source.modified + timedelta(hours=1))

        assert (await sync_job.run()).status == SyncStatus.SKIPPED

    async def test_newer_feed_with_same_content_writes_nothing(self, sync_job, store, fake_source):
        await sync_job.run()
        fake_source.modified += timedelta(days=1)

        result = await sync_job.run()

        assert result.status == SyncStatus.COMPLETED
        assert result.operations == 0
        assert result.products_created == []
        assert result.products_updated == []
        assert await get_watermark(store) == fake_source.modified

    async def test_changed_stock_patches_article_and_product(self, sync_job, store, fake_source, make_csv):
        await sync_job.run()
        fake_source.content = make_csv(
            "100;M;Blue;Acme;Shirt;Shirts;100.00;299.95;5701234567890;7;SKU-1;Cotton;ES 25;2;0;12;Acme;299.95;299.95;Aktiv;",
            "100;L;Blue;Acme;Shirt;Shirts;100.00;299.95;5701234567891;5;SKU-2;Cotton;ES 25;1;0;12;Acme;299.95;299.95;Aktiv;",
        )
        fake_source.modified += timedelta(days=1)

        result = await sync_job.run()

        assert result.products_updated == ["Shirt"]
        assert result.articles_updated == 1
        # Article patch plus product patch
        assert result.operations == 2

        shirt = (await products_by_name(store))["Shirt"]
        assert shirt["totalStock"] == 12
        # Products missing from the feed are left alone
        assert "Scarf" in await products_by_name(store)

    async def test_stored_fields_survive_patch(self, sync_job, store, fake_source, make_csv):
        await sync_job.run()
        shirt_id = next(doc_id for doc_id, doc in (await store.fetch_all(PRODUCTS)).items() if doc["productName"] == "Shirt")
        await store.update(PRODUCTS, shirt_id, {"isUde": True, "orders": ["o1"]})

        fake_source.content = make_csv(
            "100;M;Blue;Acme;Shirt;Shirts;100.00;299.95;5701234567890;1;SKU-1;Cotton;ES 25;2;0;12;Acme;299.95;299.95;Aktiv;",
        )
        fake_source.modified += timedelta(days=1)
        await sync_job.run()

        shirt = await store.get(PRODUCTS, shirt_id)
        assert shirt["isUde"] is True
        assert shirt["orders"] == ["o1"]
        assert shirt["totalStock"] == 1

    async def test_numeric_stored_total_not_rewritten(self, sync_job, store, fake_source):
        await sync_job.run()
        fake_source.modified += timedelta(days=1)

        with capture_logs() as logs:
            result = await sync_job.run()

        assert result.operations == 0
        assert not [entry for entry in logs if entry["event"].startswith("Stored fields have inconsistent types")]

    async def test_empty_feed_raises(self, sync_job, store, fake_source, make_csv):
        fake_source.content = make_csv()

        with pytest.raises(EmptyDatasetError, match="CSV data is empty"):
            await sync_job.run()

        assert await get_watermark(store) is None

    async def test_batches_respect_configured_size(self, store, fake_source, sync_settings):
        sync_settings.batch_size = 2
        job = InventorySyncJob(store, source=fake_source, sync_settings=sync_settings)

        result = await job.run()

        # 3 articles + 2 products
        assert result.operations == 5
        assert result.batches == 3

    async def test_batch_failure_leaves_watermark(self, store, fake_source, sync_settings, monkeypatch):
        job = InventorySyncJob(store, source=fake_source, sync_settings=sync_settings)

        async def broken_apply(operations):
            raise RuntimeError("write quota exceeded")

        monkeypatch.setattr(store, "apply", broken_apply)

        with pytest.raises(BatchCommitError):
            await job.run()

        assert await store.get(SETTINGS, WATERMARK_DOC_ID) is None

    async def test_log_failure_is_not_fatal(self, sync_job, store, monkeypatch):
        async def broken_add(collection, data):
            raise RuntimeError("logs unavailable")

        monkeypatch.setattr(store, "add", broken_add)

        with capture_logs() as logs:
            result = await sync_job.run()

        assert result.status == SyncStatus.COMPLETED
        assert any(entry["event"] == "Sync log append failed" for entry in logs)

    async def test_transfer_failure_writes_nothing(self, sync_job, store, fake_source):
        fake_source.error = TransferError("530 Login incorrect")
        failed_before = failed_ftp_runs()

        with pytest.raises(TransferError):
            await sync_job.run()

        assert failed_ftp_runs() == failed_before + 1
        assert await get_watermark(store) is None
        assert await store.fetch_all(PRODUCTS) == {}
        assert await store.fetch_all(LOGS) == {}

    async def test_invalid_byte_in_feed_still_syncs(self, sync_job, store, fake_source, sample_csv):
        fake_source.content = sample_csv.replace(b"Scarf", b"Sc\xe6rf")

        with capture_logs() as logs:
            result = await sync_job.run()

        assert result.status == SyncStatus.COMPLETED
        assert sorted(result.products_created) == ["Sc\ufffdrf", "Shirt"]
        assert any(entry["event"] == "Replaced undecodable bytes in CSV rows" for entry in logs)

    async def test_run_without_source(self, store):
        with pytest.raises(RuntimeError):
            await InventorySyncJob(store).run()


class TestSyncUpload:
    """Tests for InventorySyncJob.run_upload"""

    async def test_upload_ignores_watermark(self, store, sync_settings, sample_csv):
        job = InventorySyncJob(store, sync_settings=sync_settings)
        await set_watermark(store, datetime(2030, 1, 1, tzinfo=timezone.utc))

        result = await job.run_upload(sample_csv, filename="Inventory.csv")

        assert result.status == SyncStatus.COMPLETED
        assert len(result.products_created) == 2
        assert await get_watermark(store) == datetime(2030, 1, 1, tzinfo=timezone.utc)

    async def test_upload_with_comma_delimiter(self, store, sync_settings):
        job = InventorySyncJob(store, sync_settings=sync_settings)
        content = b"Item number,Product name,SKU,Size,Stock,Supplier\n100,Shirt,A,M,3,Acme\n"

        result = await job.run_upload(content, delimiter=",")

        assert result.products_created == ["Shirt"]
        product = next(iter((await store.fetch_all(PRODUCTS)).values()))
        assert product["leverandor"] == "Acme"
