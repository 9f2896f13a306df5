from promptlib.transfer.integrity import validate_data_integrity, validate_import_data


def _record(id_=1, title="t", content="c", metadata=None):
    record = {"id": id_, "title": title, "content": content}
    if metadata is not None:
        record["metadata"] = metadata
    return record


GOOD_METADATA = {
    "model": "gpt-4o",
    "createdAt": "2024-01-01T00:00:00.000Z",
    "updatedAt": "2024-01-01T00:00:00.000Z",
    "tokenEstimate": {"min": 1, "max": 2, "confidence": "high"},
}


class TestDataIntegrity:
    def test_valid(self):
        report = validate_data_integrity([_record(metadata=GOOD_METADATA), _record(2)])
        assert report.valid
        assert report.errors == []

    def test_empty_list_is_valid(self):
        assert validate_data_integrity([]).valid

    def test_missing_title(self):
        report = validate_data_integrity([{"id": 1, "title": "", "content": "x"}])
        assert not report.valid
        assert report.errors == ["Prompt at index 0 missing title"]

    def test_not_a_list(self):
        report = validate_data_integrity({"id": 1})
        assert not report.valid
        assert report.errors == ["Data is not an array"]

    def test_collects_every_error(self):
        report = validate_data_integrity(
            [
                {"title": "", "content": ""},
                _record(2),
                {"id": 3, "title": "x"},
            ]
        )
        assert report.errors == [
            "Prompt at index 0 missing ID",
            "Prompt at index 0 missing title",
            "Prompt at index 0 missing content",
            "Prompt at index 2 missing content",
        ]

    def test_metadata_checks(self):
        report = validate_data_integrity(
            [_record(title="Broken", metadata={"createdAt": "whenever"})]
        )
        assert report.errors == [
            'Prompt "Broken" missing model in metadata',
            'Prompt "Broken" has invalid createdAt timestamp',
            'Prompt "Broken" missing token estimate',
        ]

    def test_non_object_record(self):
        report = validate_data_integrity([_record(), "oops"])
        assert report.errors == ["Prompt at index 1 is not an object"]


def _document(**overrides):
    document = {
        "version": "1.0",
        "exportedAt": "2024-01-01T00:00:00.000Z",
        "statistics": {},
        "prompts": [_record(metadata=GOOD_METADATA)],
    }
    document.update(overrides)
    return document


class TestImportData:
    def test_valid(self):
        assert validate_import_data(_document()).valid

    def test_version_gate(self):
        report = validate_import_data(_document(version="2.0"))
        assert not report.valid
        assert report.errors == ["Unsupported version: 2.0. Expected: 1.0"]

    def test_missing_version(self):
        document = _document()
        del document["version"]
        report = validate_import_data(document)
        assert "Missing version number" in report.errors
        assert "Unsupported version: None. Expected: 1.0" in report.errors

    def test_prompts_must_be_list(self):
        report = validate_import_data(_document(prompts={"id": 1}))
        assert "Missing or invalid prompts array" in report.errors

    def test_missing_exported_at(self):
        document = _document()
        del document["exportedAt"]
        assert validate_import_data(document).errors == ["Missing export timestamp"]

    def test_folds_record_errors(self):
        report = validate_import_data(_document(prompts=[_record(title="")]))
        assert report.errors == ["Prompt at index 0 missing title"]

    def test_not_an_object(self):
        assert validate_import_data([1, 2]).errors == ["Import data must be a JSON object"]


class TestRatingAndEstimateShape:
    def test_string_rating(self):
        report = validate_data_integrity([{"id": 1, "title": "t", "content": "c", "rating": "5"}])
        assert report.errors == ["Prompt at index 0 has invalid rating '5' (expected 0-5)"]

    def test_rating_out_of_range_or_bool(self):
        records = [
            {"id": 1, "title": "t", "content": "c", "rating": 6},
            {"id": 2, "title": "t", "content": "c", "rating": True},
            {"id": 3, "title": "t", "content": "c", "rating": 5},
        ]
        report = validate_data_integrity(records)
        assert [e.split(" has")[0] for e in report.errors] == [
            "Prompt at index 0",
            "Prompt at index 1",
        ]

    def test_token_bounds_must_be_integers(self):
        metadata = dict(GOOD_METADATA, tokenEstimate={"min": "1", "max": 2, "confidence": "high"})
        report = validate_data_integrity([_record(title="Odd", metadata=metadata)])
        assert report.errors == ['Prompt "Odd" has malformed token estimate']
