"""Tests for the reset engine."""

import ast
from pathlib import Path

import pytest

from list_backup.backup.reset import reset_all_data

RESET_PY = Path(__file__).parent.parent / "src" / "list_backup" / "backup" / "reset.py"


class TestResetAllData:
    """Every collection is emptied, dependents first."""

    async def test_deletes_in_reverse_dependency_order(self, catalog, make_records):
        records = make_records(
            {
                "Country": [{"id": 1, "fields": {}}, {"id": 2, "fields": {}}],
                "Company": [{"id": 5, "fields": {}}],
                "Contact": [{"id": 9, "fields": {}}],
            }
        )

        summary = await reset_all_data(records, catalog)

        assert records.calls == [
            ("delete", "Contact", 9),
            ("delete", "Company", 5),
            ("delete", "Country", 1),
            ("delete", "Country", 2),
        ]
        assert summary.deleted == {"Contact": 1, "Company": 1, "Country": 2}
        assert summary.total == 4

    async def test_empty_store(self, catalog, make_records):
        summary = await reset_all_data(make_records(), catalog)
        assert summary.total == 0
        assert set(summary.deleted) == {"Country", "Company", "Contact"}

    async def test_fail_fast_on_delete_error(self, catalog, make_records):
        records = make_records(
            {
                "Country": [{"id": 1, "fields": {}}],
                "Company": [{"id": 5, "fields": {}}, {"id": 6, "fields": {}}],
            },
            fail_on=("delete", "Company"),
        )

        with pytest.raises(RuntimeError, match="delete failed for Company"):
            await reset_all_data(records, catalog)

        # Country is never reached
        assert records.data["Country"] == {1: {}}
        assert records.calls == []

    async def test_progress_every_twenty_and_last(self, catalog, make_records):
        records = make_records({"Country": [{"id": i, "fields": {}} for i in range(1, 46)]})
        events = []

        await reset_all_data(records, catalog, progress=events.append)

        processed = [
            e.records_processed
            for e in events
            if e.current_collection == "Country" and e.records_processed
        ]
        assert processed == [20, 40, 45]
        assert events[-1].phase == "Reset complete"
        assert events[-1].collections_completed == 3

    async def test_custom_interval(self, catalog, make_records):
        records = make_records({"Contact": [{"id": i, "fields": {}} for i in range(1, 6)]})
        events = []

        await reset_all_data(records, catalog, progress=events.append, progress_interval=2)

        processed = [
            e.records_processed
            for e in events
            if e.current_collection == "Contact" and e.records_processed
        ]
        assert processed == [2, 4, 5]

    async def test_record_counters_accumulate_across_collections(self, catalog, make_records):
        records = make_records(
            {
                "Contact": [{"id": i, "fields": {}} for i in range(1, 4)],
                "Country": [{"id": i, "fields": {}} for i in range(10, 12)],
            }
        )
        events = []

        await reset_all_data(records, catalog, progress=events.append)

        processed = [e.records_processed for e in events]
        assert processed == sorted(processed)
        country = [e.records_processed for e in events if e.current_collection == "Country"]
        assert country == [3, 5]
        assert (events[-1].records_processed, events[-1].records_total) == (5, 5)

    async def test_collection_events_before_reading(self, catalog, make_records):
        events = []

        await reset_all_data(make_records(), catalog, progress=events.append)

        started = [e.current_collection for e in events if e.phase == "Deleting"]
        assert started == ["Contact", "Company", "Country"]

    def test_no_print_statements(self):
        tree = ast.parse(RESET_PY.read_text())
        for node in ast.walk(tree):
            if isinstance(node, ast.Call):
                func = node.func
                if isinstance(func, ast.Name) and func.id == "print":
                    pytest.fail("print() call found in reset.py")
