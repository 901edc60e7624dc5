"""Tests for the immutable metadata store."""

import asyncio
import json

import pytest

from youtube_workflow.errors import NoReliableSourceError, NotFoundError
from youtube_workflow.storage import MetadataStore, metadata_store

from fakes import RICK_ID, RICK_URL, FakeSheetView, make_metadata


class FakeVideoSource:
    """Stands in for VideoCollector during recovery."""

    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error
        self.urls = []

    async def get_complete_video_data(self, video_url):
        self.urls.append(video_url)
        if self.error:
            raise self.error
        payload = self.payload

        class Complete:
            def to_dict(self):
                return dict(payload)

        return Complete()


def sheet_row(**overrides):
    row = {
        "youtubeUrl": RICK_URL,
        "title": "Never Gonna Give You Up",
        "youtubeVideoId": RICK_ID,
        "channel": "Rick Astley",
        "duration": "3:33",
    }
    row.update(overrides)
    return row


def tamper(store, video_id, **changes):
    path = store.metadata_path(video_id)
    data = json.loads(path.read_text(encoding="utf-8"))
    data["original_metadata"].update(changes)
    path.write_text(json.dumps(data), encoding="utf-8")


@pytest.fixture
def store(tmp_path):
    return MetadataStore(str(tmp_path / "metadata"))


@pytest.fixture
def payload():
    return make_metadata().to_dict()


class TestChecksum:
    def test_key_order_does_not_matter(self):
        a = MetadataStore.calculate_checksum({"title": "x", "view_count": 1, "tags": ["a"]})
        b = MetadataStore.calculate_checksum({"tags": ["a"], "view_count": 1, "title": "x"})
        assert a == b
        assert len(a) == 64

    def test_content_changes_checksum(self):
        a = MetadataStore.calculate_checksum({"title": "x"})
        b = MetadataStore.calculate_checksum({"title": "y"})
        assert a != b

    def test_nested_order_is_significant(self):
        # Only top-level keys are sorted
        a = MetadataStore.calculate_checksum({"thumbnails": {"a": 1, "b": 2}})
        b = MetadataStore.calculate_checksum({"thumbnails": {"b": 2, "a": 1}})
        assert a != b


class TestWrite:
    def test_creates_directories(self, tmp_path):
        store = MetadataStore(str(tmp_path / "nested" / "metadata"))
        assert store.metadata_dir.is_dir()
        assert store.backup_dir.is_dir()

    @pytest.mark.asyncio
    async def test_write_seals_record(self, store, payload):
        record = await store.write(RICK_ID, payload)

        assert record.video_id == RICK_ID
        assert record.version == "1.0"
        assert record.original_metadata["title"] == payload["title"]
        assert record.original_metadata["fetched_at"].endswith("Z")
        assert record.checksum == MetadataStore.calculate_checksum(payload)
        assert record.workflow_metadata["processing_attempts"] == 0
        assert record.workflow_metadata["script_generated"] is False
        assert record.system_integrity["validation_status"] == "verified"
        assert record.system_integrity["backup_created"] is True
        assert store.validate(record)

    @pytest.mark.asyncio
    async def test_write_persists_primary_and_backup(self, store, payload):
        await store.write(RICK_ID, payload)

        stored = json.loads(store.metadata_path(RICK_ID).read_text(encoding="utf-8"))
        assert stored["system_integrity"]["backup_created"] is True
        backups = list(store.backup_dir.glob(f"{RICK_ID}_*.json"))
        assert len(backups) == 1
        assert ":" not in backups[0].name
        backup = json.loads(backups[0].read_text(encoding="utf-8"))
        assert backup["original_metadata"] == stored["original_metadata"]

    @pytest.mark.asyncio
    async def test_incoming_seal_fields_are_ignored(self, store, payload):
        payload["checksum"] = "bogus"
        payload["fetched_at"] = "1999-01-01T00:00:00Z"

        record = await store.write(RICK_ID, payload)

        assert record.checksum != "bogus"
        assert record.original_metadata["fetched_at"] != "1999-01-01T00:00:00Z"
        assert store.validate(record)

    @pytest.mark.asyncio
    async def test_write_once(self, store, payload):
        first = await store.write(RICK_ID, payload)
        second = await store.write(RICK_ID, {**payload, "title": "Rewritten"})

        assert second.original_metadata == first.original_metadata
        assert second.created_at == first.created_at
        assert (await store.read(RICK_ID)).original_metadata["title"] == payload["title"]
        assert len(list(store.backup_dir.glob("*.json"))) == 1

    @pytest.mark.asyncio
    async def test_invalid_record_is_replaced(self, store, payload):
        await store.write(RICK_ID, payload)
        tamper(store, RICK_ID, title="Tampered")

        record = await store.write(RICK_ID, {**payload, "title": "Fresh"})

        assert record.original_metadata["title"] == "Fresh"
        assert store.validate(await store.read(RICK_ID))

    @pytest.mark.asyncio
    async def test_concurrent_first_writes_agree(self, store, payload):
        a, b = await asyncio.gather(
            store.write(RICK_ID, {**payload, "title": "Writer A"}),
            store.write(RICK_ID, {**payload, "title": "Writer B"}),
        )

        stored = await store.read(RICK_ID)
        assert a.original_metadata["title"] == b.original_metadata["title"]
        assert stored.original_metadata["title"] == a.original_metadata["title"]
        assert store.validate(stored)

    @pytest.mark.asyncio
    async def test_first_write_without_hard_links(self, store, payload, monkeypatch):
        def no_links(src, dst):
            raise PermissionError(1, "Operation not permitted")

        monkeypatch.setattr(metadata_store.os, "link", no_links)

        record = await store.write(RICK_ID, payload)

        assert store.validate(await store.read(RICK_ID))
        assert record.system_integrity["backup_created"] is True
        assert list(store.metadata_dir.glob(".*.tmp")) == []
        # Still exclusive when the record is already there
        with pytest.raises(FileExistsError):
            MetadataStore._create_exclusive(store.metadata_path(RICK_ID), record.to_dict())

    def test_failed_dump_leaves_no_temp_file(self, store):
        with pytest.raises(TypeError):
            MetadataStore._write_json(store.metadata_path(RICK_ID), {"title": object()})

        assert list(store.metadata_dir.iterdir()) == [store.backup_dir]


class TestReadAndValidate:
    @pytest.mark.asyncio
    async def test_missing(self, store):
        assert await store.read(RICK_ID) is None
        assert store.validate(None) is False

    @pytest.mark.asyncio
    async def test_undecodable_file(self, store):
        store.metadata_path(RICK_ID).write_text("{not json", encoding="utf-8")
        assert await store.read(RICK_ID) is None

    @pytest.mark.asyncio
    async def test_tampering_is_detected(self, store, payload):
        await store.write(RICK_ID, payload)
        tamper(store, RICK_ID, view_count=1)

        record = await store.read(RICK_ID)
        assert record is not None
        assert store.validate(record) is False

    @pytest.mark.asyncio
    async def test_missing_checksum_is_invalid(self, store, payload):
        await store.write(RICK_ID, payload)
        path = store.metadata_path(RICK_ID)
        data = json.loads(path.read_text(encoding="utf-8"))
        del data["original_metadata"]["checksum"]
        path.write_text(json.dumps(data), encoding="utf-8")

        assert store.validate(await store.read(RICK_ID)) is False

    @pytest.mark.asyncio
    async def test_reordered_keys_still_validate(self, store, payload):
        await store.write(RICK_ID, payload)
        path = store.metadata_path(RICK_ID)
        data = json.loads(path.read_text(encoding="utf-8"))
        data["original_metadata"] = dict(reversed(list(data["original_metadata"].items())))
        path.write_text(json.dumps(data), encoding="utf-8")

        assert store.validate(await store.read(RICK_ID)) is True


class TestGetReliable:
    @pytest.mark.asyncio
    async def test_valid_file_needs_no_network(self, tmp_path, payload):
        sheet = FakeSheetView({RICK_ID: sheet_row()})
        source = FakeVideoSource(payload)
        store = MetadataStore(str(tmp_path), sheet_view=sheet, video_source=source)
        await store.write(RICK_ID, payload)

        metadata = await store.get_reliable(RICK_ID)

        assert metadata["title"] == payload["title"]
        assert "checksum" in metadata
        assert sheet.lookups == []
        assert source.urls == []

    @pytest.mark.asyncio
    async def test_corrupted_file_is_recovered_from_sheet(self, tmp_path, payload):
        sheet = FakeSheetView({RICK_ID: sheet_row()})
        source = FakeVideoSource({**payload, "title": "Refetched"})
        store = MetadataStore(str(tmp_path), sheet_view=sheet, video_source=source)
        await store.write(RICK_ID, payload)
        tamper(store, RICK_ID, title="Tampered")

        metadata = await store.get_reliable(RICK_ID)

        assert metadata["title"] == "Refetched"
        assert source.urls == [RICK_URL]
        stored = await store.read(RICK_ID)
        assert stored.original_metadata["title"] == "Refetched"
        assert store.validate(stored)

    @pytest.mark.asyncio
    async def test_missing_file_is_recovered_and_persisted(self, tmp_path, payload):
        store = MetadataStore(
            str(tmp_path),
            sheet_view=FakeSheetView({RICK_ID: sheet_row()}),
            video_source=FakeVideoSource(payload),
        )

        await store.get_reliable(RICK_ID)

        assert await store.list_video_ids() == [RICK_ID]

    @pytest.mark.asyncio
    async def test_no_sources_configured(self, store):
        with pytest.raises(NoReliableSourceError):
            await store.get_reliable(RICK_ID)

    @pytest.mark.asyncio
    async def test_row_without_url(self, tmp_path, payload):
        source = FakeVideoSource(payload)
        store = MetadataStore(
            str(tmp_path),
            sheet_view=FakeSheetView({RICK_ID: sheet_row(youtubeUrl="")}),
            video_source=source,
        )

        with pytest.raises(NoReliableSourceError):
            await store.get_reliable(RICK_ID)
        assert source.urls == []

    @pytest.mark.asyncio
    async def test_refetch_failure(self, tmp_path):
        boom = RuntimeError("quota exceeded")
        store = MetadataStore(
            str(tmp_path),
            sheet_view=FakeSheetView({RICK_ID: sheet_row()}),
            video_source=FakeVideoSource(error=boom),
        )

        with pytest.raises(NoReliableSourceError) as excinfo:
            await store.get_reliable(RICK_ID)
        assert excinfo.value.__cause__ is boom


class TestWorkflowFields:
    @pytest.mark.asyncio
    async def test_merge_keeps_original(self, store, payload):
        created = await store.write(RICK_ID, payload)

        updated = await store.update_workflow_fields(RICK_ID, {"script_generated": True, "stage": "draft"})

        assert updated.workflow_metadata["script_generated"] is True
        assert updated.workflow_metadata["stage"] == "draft"
        assert updated.workflow_metadata["processing_attempts"] == 0
        assert updated.workflow_metadata["last_updated"].endswith("Z")

        stored = await store.read(RICK_ID)
        assert stored.workflow_metadata["stage"] == "draft"
        assert stored.original_metadata == created.original_metadata
        assert store.validate(stored)

    @pytest.mark.asyncio
    async def test_updates_cannot_touch_original(self, store, payload):
        await store.write(RICK_ID, payload)
        await store.update_workflow_fields(RICK_ID, {"original_metadata": {"title": "Hijacked"}})

        stored = await store.read(RICK_ID)
        assert stored.original_metadata["title"] == payload["title"]
        assert store.validate(stored)

    @pytest.mark.asyncio
    async def test_missing_record(self, store):
        with pytest.raises(NotFoundError):
            await store.update_workflow_fields(RICK_ID, {"stage": "draft"})

    @pytest.mark.asyncio
    async def test_concurrent_updates_are_all_kept(self, store, payload):
        await store.write(RICK_ID, payload)

        results = await asyncio.gather(
            *(store.update_workflow_fields(RICK_ID, {f"step_{i}": i}) for i in range(20)),
            return_exceptions=True,
        )

        assert [r for r in results if isinstance(r, Exception)] == []
        stored = await store.read(RICK_ID)
        assert all(stored.workflow_metadata[f"step_{i}"] == i for i in range(20))
        assert store.validate(stored)
        assert list(store.metadata_dir.glob("*.tmp")) == []

    @pytest.mark.asyncio
    async def test_update_during_first_write_is_not_lost(self, store, payload):
        await asyncio.gather(
            store.write(RICK_ID, payload),
            store.update_workflow_fields(RICK_ID, {"stage": "draft"}),
        )

        stored = await store.read(RICK_ID)
        assert stored.workflow_metadata["stage"] == "draft"
        assert stored.system_integrity["backup_created"] is True


class TestReconcile:
    @pytest.mark.asyncio
    async def test_without_sheet(self, store, payload):
        await store.write(RICK_ID, payload)
        result = await store.reconcile_with_view(RICK_ID)
        assert result.is_valid is True
        assert result.note == "No sheet view configured"

    @pytest.mark.asyncio
    async def test_without_record(self, tmp_path):
        sheet = FakeSheetView({RICK_ID: sheet_row()})
        result = await MetadataStore(str(tmp_path), sheet_view=sheet).reconcile_with_view(RICK_ID)
        assert result.is_valid is True
        assert result.note == "No file metadata to compare"
        assert sheet.lookups == []

    @pytest.mark.asyncio
    async def test_row_missing(self, tmp_path, payload):
        store = MetadataStore(str(tmp_path), sheet_view=FakeSheetView())
        await store.write(RICK_ID, payload)

        result = await store.reconcile_with_view(RICK_ID)

        assert result.is_valid is False
        assert [d.to_dict() for d in result.discrepancies] == [{
            "field": "sheet_missing",
            "original": RICK_ID,
            "current": None,
            "severity": "critical",
        }]

    @pytest.mark.asyncio
    async def test_matching_row(self, tmp_path, payload):
        store = MetadataStore(str(tmp_path), sheet_view=FakeSheetView({RICK_ID: sheet_row()}))
        await store.write(RICK_ID, payload)

        result = await store.reconcile_with_view(RICK_ID)

        assert result.is_valid is True
        assert result.discrepancies == []

    @pytest.mark.asyncio
    async def test_edited_row(self, tmp_path, payload):
        row = sheet_row(title="Never Gonna Give You Up (Edited)", youtubeVideoId="xxxxxxxxxxx")
        store = MetadataStore(str(tmp_path), sheet_view=FakeSheetView({RICK_ID: row}))
        await store.write(RICK_ID, payload)

        result = await store.reconcile_with_view(RICK_ID)

        assert result.is_valid is False
        by_field = {d.field: d for d in result.discrepancies}
        assert set(by_field) == {"title", "video_id"}
        assert by_field["title"].severity == "warning"
        assert by_field["title"].original == payload["title"]
        assert by_field["title"].current == "Never Gonna Give You Up (Edited)"
        assert by_field["video_id"].severity == "critical"
        # The record is never modified by reconciliation
        assert (await store.read(RICK_ID)).original_metadata["title"] == payload["title"]


class TestMaintenance:
    @pytest.mark.asyncio
    async def test_list_and_load(self, store, payload):
        await store.write(RICK_ID, payload)
        await store.write("abc12345678", {**payload, "video_id": "abc12345678"})

        assert await store.list_video_ids() == ["abc12345678", RICK_ID]
        records = await store.load_all()
        assert {r["video_id"] for r in records} == {"abc12345678", RICK_ID}

    @pytest.mark.asyncio
    async def test_health_check(self, store):
        status = await store.health_check()

        assert status["status"] == "healthy"
        assert status["integrity_validation"] is True
        assert status["can_read"] is True
        assert await store.list_video_ids() == []
        assert list(store.backup_dir.iterdir()) == []
