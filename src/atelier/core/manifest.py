"""Manifest synchronisation for the local gallery database.

The manifest is a denormalised export of every artwork record: a single
``manifest.json`` array plus a ``bulk_import.csv`` rendering that CMS bulk
importers and spreadsheets can consume.  The per-record JSON files under
``data/`` remain the source of truth for each individual artwork.

Every upsert is a whole-file read-modify-write:

- read ``manifest.json`` (missing or unparseable means an empty manifest)
- replace the entry with the same ``id`` in place, or append it
- rewrite ``manifest.json`` in full
- regenerate ``bulk_import.csv`` in full from the in-memory manifest

An exclusive lock is held across the whole sequence so two saves in the same
process cannot interleave and drop one another's update.  Files are replaced
atomically so readers never observe a half-written manifest.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from atelier.core.records import ArtworkRecord

logger = logging.getLogger(__name__)

CSV_COLUMNS = (
    ("ID", "id"),
    ("Title", "title"),
    ("Description", "description"),
    ("Tags", "tags"),
    ("Price", "price"),
    ("Dimensions", "dimensions"),
    ("Medium", "medium"),
    ("Status", "status"),
    ("ImageFileName", "fileName"),
)


def atomic_write_text(path: Path, content: str) -> None:
    """Write *content* to *path* through a temp file and ``os.replace``.

    Args:
        path: Destination file.
        content: Full file content.

    Raises:
        OSError: If the temp file cannot be written or moved into place.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _csv_value(entry: dict, key: str) -> str:
    value = entry.get(key)
    if value is None:
        return ""
    if key == "tags" and isinstance(value, (list, tuple)):
        return " ".join(str(tag) for tag in value)
    return str(value)


def render_csv(entries: list[dict]) -> str:
    """Render manifest entries as CSV text.

    Every field is quoted and embedded quotes are doubled, so commas, quotes
    and newlines inside values never shift columns.  Tags are joined with a
    single space inside one field.

    Args:
        entries: Manifest entries in manifest order.

    Returns:
        CSV text with a header row and one row per entry.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow([header for header, _ in CSV_COLUMNS])
    for entry in entries:
        writer.writerow([_csv_value(entry, key) for _, key in CSV_COLUMNS])
    return buffer.getvalue()


class ManifestSynchronizer:
    """Maintain ``manifest.json`` and its CSV rendering.

    Args:
        manifest_path: Location of ``manifest.json``.
        csv_path: Location of ``bulk_import.csv``.
    """

    def __init__(self, manifest_path: Path, csv_path: Path):
        self.manifest_path = Path(manifest_path)
        self.csv_path = Path(csv_path)
        self._lock = threading.Lock()

    def load(self) -> list[dict]:
        """Read the manifest, treating a missing or corrupt file as empty.

        Non-object items inside the array are dropped.
        """
        if not self.manifest_path.exists():
            return []

        try:
            with open(self.manifest_path, encoding="utf-8") as handle:
                raw_entries = json.load(handle)
        except (OSError, ValueError) as e:
            logger.warning(f"Manifest {self.manifest_path} is unreadable, starting empty: {e}")
            return []

        if not isinstance(raw_entries, list):
            logger.warning(f"Manifest {self.manifest_path} is not a JSON array, starting empty")
            return []

        return [entry for entry in raw_entries if isinstance(entry, dict)]

    def upsert(self, record: ArtworkRecord | dict) -> list[dict]:
        """Insert or replace *record* by ``id`` and regenerate both exports.

        Args:
            record: The artwork to store.

        Returns:
            The full manifest as written.

        Raises:
            OSError: If the manifest or CSV cannot be written.
        """
        document = record.to_document() if isinstance(record, ArtworkRecord) else dict(record)

        with self._lock:
            entries = self.load()

            # Replace in place so the entry keeps its position in the export.
            index = next(
                (i for i, entry in enumerate(entries) if entry.get("id") == document["id"]),
                None,
            )
            if index is None:
                entries.append(document)
            else:
                entries[index] = document

            atomic_write_text(self.manifest_path, json.dumps(entries, indent=2))
            atomic_write_text(self.csv_path, render_csv(entries))

        logger.info(f"Manifest now holds {len(entries)} artworks (upserted {document['id']})")
        return entries
