import json
from unittest.mock import MagicMock

import pytest

from promptlib.errors import ErrorCode, PromptLibError
from promptlib.library import PromptLibrary
from promptlib.storage import BACKUP_KEY, PROMPTS_KEY, MemoryBlobStore
from promptlib.transfer.backup import create_backup, load_backup, restore_from_backup
from promptlib.transfer.exporter import build_export
from promptlib.transfer.importer import check_for_duplicates, import_file, import_prompts
from promptlib.transfer.models import ConflictInfo, ImportStatus, Resolution
from promptlib.transfer.statistics import calculate_statistics
from promptlib.views import ViewMode, view


def _record(id_, title=None):
    stamp = "2024-01-01T00:00:00.000Z"
    return {
        "id": id_,
        "title": title or f"prompt {id_}",
        "content": f"content {id_}",
        "createdAt": stamp,
        "rating": 0,
        "isFavorite": False,
        "notes": [],
        "metadata": {
            "model": "gpt-4o",
            "createdAt": stamp,
            "updatedAt": stamp,
            "tokenEstimate": {"min": 2, "max": 3, "confidence": "high"},
        },
    }


def _document(records, version="1.0"):
    return json.dumps(
        {
            "version": version,
            "exportedAt": "2024-06-01T00:00:00.000Z",
            "statistics": {},
            "prompts": records,
        }
    )


def _library(records=()):
    library = PromptLibrary(MemoryBlobStore())
    if records:
        library.save_raw(list(records))
    return library


def _never(info):
    raise AssertionError("resolver should not be called")


class FlakyStore(MemoryBlobStore):
    """Fails the next ``failures`` writes to the live collection."""

    def __init__(self, persist_before_failing=False):
        super().__init__()
        self.failures = 0
        self.persist_before_failing = persist_before_failing

    def set(self, key, value):
        if key == PROMPTS_KEY and self.failures:
            self.failures -= 1
            if self.persist_before_failing:
                super().set(key, value)
            raise PromptLibError.storage_write_failed(key, "disk full")
        super().set(key, value)


class TestNoConflicts:
    def test_appends_in_order(self):
        library = _library([_record(1), _record(2)])
        outcome = import_prompts(library, _document([_record(3), _record(4)]), _never)
        assert outcome.status is ImportStatus.IMPORTED
        assert outcome.added_count == 2
        assert outcome.total_count == 4
        assert [p.id for p in library.list_prompts()] == [1, 2, 3, 4]

    def test_accepts_bytes(self):
        library = _library()
        outcome = import_prompts(library, _document([_record(1)]).encode(), _never)
        assert outcome.succeeded

    def test_round_trip_into_empty_library(self):
        source = _library()
        source.create_prompt("A", "gpt-4o", "first prompt")
        b = source.create_prompt("B", "claude", "second prompt", is_code=True)
        source.add_note(b.id, "a note")
        source.toggle_favorite(b.id)
        document = json.dumps(build_export(source.list_prompts()))

        target = _library()
        outcome = import_prompts(target, document, _never)

        assert outcome.status is ImportStatus.IMPORTED
        assert [p.to_dict() for p in target.list_prompts()] == [
            p.to_dict() for p in source.list_prompts()
        ]


class TestConflicts:
    def test_resolver_sees_counts(self):
        library = _library([_record(1), _record(2)])
        resolver = MagicMock(return_value=Resolution.CANCEL)
        import_prompts(library, _document([_record(2), _record(3), _record(4)]), resolver)
        info = resolver.call_args.args[0]
        assert (info.existing_count, info.import_count, info.duplicate_count) == (2, 3, 1)
        assert info.duplicate_ids == [2]

    def test_merge_keeps_existing_records(self):
        existing = [_record(1, "original one"), _record(2, "original two")]
        library = _library(existing)
        imported = [_record(2, "imposter"), _record(3), _record(1, "imposter"), _record(4)]

        outcome = import_prompts(library, _document(imported), lambda info: Resolution.MERGE)

        assert outcome.status is ImportStatus.MERGED
        assert outcome.added_count == 2
        records = library.load_raw()
        assert records[:2] == existing
        assert [r["id"] for r in records] == [1, 2, 3, 4]

    def test_replace_discards_existing(self):
        library = _library([_record(1), _record(2)])
        imported = [_record(2, "new two"), _record(9)]
        outcome = import_prompts(library, _document(imported), lambda info: Resolution.REPLACE)
        assert outcome.status is ImportStatus.REPLACED
        assert library.load_raw() == imported

    def test_cancel_writes_nothing(self):
        library = _library([_record(1)])
        before = library.store.get(PROMPTS_KEY)
        outcome = import_prompts(library, _document([_record(1)]), lambda info: Resolution.CANCEL)
        assert outcome.status is ImportStatus.CANCELLED
        assert not outcome.succeeded
        assert library.store.get(PROMPTS_KEY) == before

    def test_string_resolution(self):
        library = _library([_record(1)])
        outcome = import_prompts(library, _document([_record(1), _record(2)]), lambda info: "merge")
        assert outcome.status is ImportStatus.MERGED

    def test_unknown_resolution_rolls_back(self):
        library = _library([_record(1)])
        outcome = import_prompts(library, _document([_record(1)]), lambda info: "maybe")
        assert outcome.status is ImportStatus.ROLLED_BACK
        assert outcome.error.code == ErrorCode.VALIDATION

    def test_resolver_error_rolls_back(self):
        library = _library([_record(1)])

        def explode(info):
            raise RuntimeError("dialog crashed")

        outcome = import_prompts(library, _document([_record(1)]), explode)
        assert outcome.status is ImportStatus.ROLLED_BACK
        assert outcome.errors == ["dialog crashed"]
        assert library.load_raw() == [_record(1)]


class TestRejectedDocuments:
    def test_version_gate(self):
        library = _library([_record(1)])
        outcome = import_prompts(library, _document([_record(5)], version="2.0"), _never)
        assert outcome.status is ImportStatus.ROLLED_BACK
        assert outcome.error.code == ErrorCode.INVALID_DOCUMENT
        assert "Unsupported version: 2.0. Expected: 1.0" in outcome.errors
        assert library.load_raw() == [_record(1)]

    def test_malformed_json(self):
        library = _library([_record(1)])
        outcome = import_prompts(library, "{not json", _never)
        assert outcome.status is ImportStatus.ROLLED_BACK
        assert outcome.error.code == ErrorCode.MALFORMED_DOCUMENT
        assert library.load_raw() == [_record(1)]

    def test_invalid_records_report_every_error(self):
        library = _library()
        records = [{"id": 1, "title": "", "content": ""}, {"title": "x", "content": "y"}]
        outcome = import_prompts(library, _document(records), _never)
        assert outcome.error.code == ErrorCode.INVALID_DOCUMENT
        assert outcome.errors == [
            "Prompt at index 0 missing title",
            "Prompt at index 0 missing content",
            "Prompt at index 1 missing ID",
        ]
        assert library.load_raw() == []


class TestBackupAndRollback:
    def test_backup_failure_aborts_before_anything(self):
        library = _library([_record(1)])
        library.store.quota_bytes = len(library.store.get(PROMPTS_KEY)) + 5
        resolver = MagicMock()
        with pytest.raises(PromptLibError) as exc_info:
            import_prompts(library, _document([_record(2)]), resolver)
        assert exc_info.value.code == ErrorCode.BACKUP_FAILED
        resolver.assert_not_called()
        assert library.load_raw() == [_record(1)]

    def test_backup_snapshots_live_collection(self):
        library = _library([_record(1)])
        import_prompts(library, _document([_record(2)]), _never)
        assert load_backup(library).prompts == [_record(1)]

        import_prompts(library, _document([_record(3)]), _never)
        assert [r["id"] for r in load_backup(library).prompts] == [1, 2]

    def test_failed_commit_is_rolled_back(self):
        store = FlakyStore(persist_before_failing=True)
        library = PromptLibrary(store)
        library.save_raw([_record(1)])
        store.failures = 1  # commit fails, restore succeeds

        outcome = import_prompts(library, _document([_record(2)]), _never)

        assert outcome.status is ImportStatus.ROLLED_BACK
        assert outcome.error.code == ErrorCode.STORAGE_WRITE_FAILED
        assert library.load_raw() == [_record(1)]

    def test_failed_restore_is_critical(self):
        store = FlakyStore()
        library = PromptLibrary(store)
        library.save_raw([_record(1)])
        store.failures = 2

        with pytest.raises(PromptLibError) as exc_info:
            import_prompts(library, _document([_record(2)]), _never)
        assert exc_info.value.code == ErrorCode.CRITICAL_RESTORE_FAILURE
        assert exc_info.value.__cause__.code == ErrorCode.RESTORE_FAILED


class TestRestore:
    def test_restore(self):
        library = _library([_record(1)])
        create_backup(library)
        library.save_raw([_record(2)])
        backup = restore_from_backup(library)
        assert backup.prompts == [_record(1)]
        assert library.load_raw() == [_record(1)]

    def test_no_backup(self):
        with pytest.raises(PromptLibError) as exc_info:
            restore_from_backup(_library())
        assert exc_info.value.code == ErrorCode.RESTORE_FAILED

    def test_corrupt_backup(self):
        library = _library()
        library.store.set(BACKUP_KEY, b"garbage")
        with pytest.raises(PromptLibError) as exc_info:
            restore_from_backup(library)
        assert exc_info.value.code == ErrorCode.RESTORE_FAILED


class TestImportFile:
    def test_rejects_non_json_name(self, tmp_path):
        path = tmp_path / "prompts.txt"
        path.write_text(_document([_record(1)]))
        library = _library()
        with pytest.raises(PromptLibError) as exc_info:
            import_file(library, path, _never)
        assert exc_info.value.code == ErrorCode.INVALID_FILE
        assert library.store.get(BACKUP_KEY) is None

    def test_imports_json_file(self, tmp_path):
        path = tmp_path / "prompts.json"
        path.write_text(_document([_record(1)]))
        library = _library()
        outcome = import_file(library, path, _never)
        assert outcome.status is ImportStatus.IMPORTED
        assert library.get_prompt(1).title == "prompt 1"


class TestCheckForDuplicates:
    def test_counts(self):
        info = check_for_duplicates([_record(1), _record(2)], [_record(2), _record(3)])
        assert info == ConflictInfo(existing_count=2, import_count=2, duplicate_count=1, duplicate_ids=[2])
        assert info.has_duplicates

    def test_ids_compare_strictly(self):
        info = check_for_duplicates([_record(1)], [_record("1")])
        assert not info.has_duplicates


class TestRecordShape:
    def test_string_rating_is_rejected(self):
        library = _library([_record(1)])
        bad = dict(_record(2), rating="5")

        outcome = import_prompts(library, _document([bad]), _never)

        assert outcome.status is ImportStatus.ROLLED_BACK
        assert outcome.error.code == ErrorCode.INVALID_DOCUMENT
        assert "Prompt at index 0 has invalid rating '5' (expected 0-5)" in outcome.errors
        assert library.load_raw() == [_record(1)]

        prompts = library.list_prompts()
        assert calculate_statistics(prompts).total_prompts == 1
        assert build_export(prompts)["prompts"] == [_record(1)]
        assert view(prompts, ViewMode.TOP_RATED) == []

    def test_bool_id_is_not_a_duplicate_of_one(self):
        info = check_for_duplicates([_record(1)], [_record(True)])
        assert not info.has_duplicates

    def test_float_id_is_not_a_duplicate_of_int(self):
        info = check_for_duplicates([_record(1)], [_record(1.0)])
        assert not info.has_duplicates
