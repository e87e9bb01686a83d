"""Unit tests for manifest upsert and CSV regeneration."""

import csv
import json
import threading

import pytest

from atelier.core.manifest import CSV_COLUMNS, ManifestSynchronizer, render_csv
from atelier.core.records import ArtworkRecord


@pytest.fixture
def manifest(temp_dir) -> ManifestSynchronizer:
    return ManifestSynchronizer(temp_dir / "manifest.json", temp_dir / "bulk_import.csv")


def _record(artwork_id: str, **overrides) -> ArtworkRecord:
    fields = {
        "id": artwork_id,
        "title": f"Title {artwork_id}",
        "description": "A description",
        "tags": ["noir", "city"],
        "price": "120",
        "dimensions": "30x40cm",
        "medium": "Oil",
        "status": "Available",
        "file_name": f"{artwork_id}_title.png",
    }
    fields.update(overrides)
    return ArtworkRecord(**fields)


def _read_csv(path):
    with open(path, encoding="utf-8", newline="") as handle:
        return list(csv.reader(handle))


class TestLoad:
    """Tests for ManifestSynchronizer.load."""

    def test_missing_manifest_is_empty(self, manifest):
        assert manifest.load() == []

    def test_corrupt_manifest_is_empty(self, manifest):
        manifest.manifest_path.write_text("{not json", encoding="utf-8")

        assert manifest.load() == []

    def test_non_array_manifest_is_empty(self, manifest):
        manifest.manifest_path.write_text('{"id": "a1"}', encoding="utf-8")

        assert manifest.load() == []

    def test_non_object_items_dropped(self, manifest):
        manifest.manifest_path.write_text('[{"id": "a1"}, 3, "x"]', encoding="utf-8")

        assert manifest.load() == [{"id": "a1"}]


class TestUpsert:
    """Tests for ManifestSynchronizer.upsert."""

    def test_first_upsert_creates_both_files(self, manifest):
        manifest.upsert(_record("a1"))

        entries = json.loads(manifest.manifest_path.read_text(encoding="utf-8"))
        assert [entry["id"] for entry in entries] == ["a1"]
        assert entries[0]["fileName"] == "a1_title.png"
        assert manifest.csv_path.exists()

    def test_upsert_is_idempotent_and_keeps_latest_values(self, manifest):
        """Saving the same id twice leaves one entry with the later values."""
        manifest.upsert(_record("a1", title="First"))
        manifest.upsert(_record("a1", title="Second"))

        entries = manifest.load()
        assert len(entries) == 1
        assert entries[0]["title"] == "Second"

    def test_replace_preserves_position(self, manifest):
        for artwork_id in ("a1", "a2", "a3"):
            manifest.upsert(_record(artwork_id))
        manifest.upsert(_record("a2", title="Updated"))

        entries = manifest.load()
        assert [entry["id"] for entry in entries] == ["a1", "a2", "a3"]
        assert entries[1]["title"] == "Updated"

    def test_replace_is_full_overwrite(self, manifest):
        """Fields absent from the new record do not survive from the old one."""
        manifest.upsert({"id": "a1", "title": "Old", "legacy": "value"})
        manifest.upsert(_record("a1"))

        assert "legacy" not in manifest.load()[0]

    def test_corrupt_manifest_is_overwritten(self, manifest):
        manifest.manifest_path.write_text("[{broken", encoding="utf-8")

        entries = manifest.upsert(_record("a1"))

        assert [entry["id"] for entry in entries] == ["a1"]
        assert manifest.load() == entries

    def test_no_temp_files_left_behind(self, manifest, temp_dir):
        manifest.upsert(_record("a1"))

        assert not list(temp_dir.glob("*.tmp"))

    def test_concurrent_upserts_keep_every_id(self, manifest):
        """The lock serialises read-modify-write so no update is lost."""
        threads = [
            threading.Thread(target=manifest.upsert, args=(_record(f"t{i}"),))
            for i in range(12)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(entry["id"] for entry in manifest.load()) == sorted(
            f"t{i}" for i in range(12)
        )


class TestCsv:
    """Tests for the CSV rendering."""

    def test_header_row(self, manifest):
        manifest.upsert(_record("a1"))

        rows = _read_csv(manifest.csv_path)
        assert rows[0] == [header for header, _ in CSV_COLUMNS]
        assert rows[0] == [
            "ID",
            "Title",
            "Description",
            "Tags",
            "Price",
            "Dimensions",
            "Medium",
            "Status",
            "ImageFileName",
        ]

    def test_rows_match_manifest_order(self, manifest):
        for artwork_id in ("b", "a", "c"):
            manifest.upsert(_record(artwork_id))
        manifest.upsert(_record("a", title="again"))

        rows = _read_csv(manifest.csv_path)
        assert [row[0] for row in rows[1:]] == [entry["id"] for entry in manifest.load()]
        assert len(rows) == 4

    def test_tags_joined_by_space(self, manifest):
        manifest.upsert(_record("a1", tags=["noir", "abstract", "city"]))

        assert _read_csv(manifest.csv_path)[1][3] == "noir abstract city"

    def test_every_field_quoted(self):
        text = render_csv([_record("a1").to_document()])

        for line in text.strip().split("\n"):
            assert line.startswith('"') and line.endswith('"')
            assert len(line[1:-1].split('","')) == len(CSV_COLUMNS)

    def test_embedded_quotes_doubled(self):
        text = render_csv([_record("a1", title='The "Blue" Hour').to_document()])

        assert '"The ""Blue"" Hour"' in text

    def test_injection_title_stays_in_one_column(self, manifest):
        """A title with quotes, commas and a formula does not split the row."""
        manifest.upsert(_record("a1", title='",=1+1', description="line one\nline two"))

        rows = _read_csv(manifest.csv_path)
        assert len(rows) == 2
        assert len(rows[1]) == len(CSV_COLUMNS)
        assert rows[1][1] == '",=1+1'
        assert rows[1][2] == "line one\nline two"

    def test_csv_is_regenerated_not_appended(self, manifest):
        manifest.upsert(_record("a1"))
        manifest.upsert(_record("a1"))
        manifest.upsert(_record("a1"))

        assert len(_read_csv(manifest.csv_path)) == 2

    def test_missing_fields_render_empty(self):
        text = render_csv([{"id": "a1"}])

        assert text.split("\n")[1] == '"a1","","","","","","","",""'
