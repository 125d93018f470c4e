import pytest
from pydantic import ValidationError

from swagger_changelog.parser.base import ChangeRecord, Changes, DiffEntry, SpecDocument


class TestSpecDocument:
    def test_version_and_paths(self):
        doc = SpecDocument(
            name="billing/v1.json",
            content={"info": {"version": "1.2.0"}, "paths": {"/charge": {}}},
        )
        assert doc.version == "1.2.0"
        assert list(doc.paths) == ["/charge"]

    def test_missing_info_and_paths(self):
        doc = SpecDocument(name="empty.json", content={})
        assert doc.version is None
        assert doc.paths == {}

    def test_numeric_version_is_stringified(self):
        doc = SpecDocument(name="a.json", content={"info": {"version": 3}})
        assert doc.version == "3"

    def test_is_frozen(self):
        doc = SpecDocument(name="a.json", content={})
        with pytest.raises(ValidationError):
            doc.name = "b.json"


class TestChangeRecord:
    def test_create_by_field_name(self):
        record = ChangeRecord(api_number="API#1", description="API removed", path="/pets")
        assert record.api_number == "API#1"

    def test_create_by_alias(self):
        record = ChangeRecord(apiNumber="API#2", description="x", path="/pets")
        assert record.api_number == "API#2"

    def test_dump_uses_wire_names(self):
        record = ChangeRecord(api_number="API#1", description="New API added", path="/pets")
        assert record.model_dump(by_alias=True) == {
            "apiNumber": "API#1",
            "description": "New API added",
            "path": "/pets",
        }


class TestDiffEntry:
    def test_parses_oasdiff_change(self):
        entry = DiffEntry.model_validate({
            "id": "api-path-removed-without-deprecation",
            "text": "api path removed without deprecation",
            "level": 3,
            "operation": "GET",
            "operationId": "listPets",
            "path": "/pets",
            "source": "",
        })
        assert entry.operation == "GET"
        assert entry.operation_id == "listPets"
        assert entry.level == 3

    def test_operation_is_optional(self):
        entry = DiffEntry(path="/pets", text="changed")
        assert entry.operation is None


class TestChanges:
    def test_payload(self):
        changes = Changes(
            version="1.0",
            records=(ChangeRecord(api_number="API#1", description="d", path="/p"),),
        )
        assert changes.to_payload() == {
            "version": "1.0",
            "changes": [{"apiNumber": "API#1", "description": "d", "path": "/p"}],
        }
