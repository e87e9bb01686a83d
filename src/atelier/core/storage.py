"""File-backed artwork storage.

Layout under the configured storage root::

    images/<id>_<sanitized-title>.<ext>   one image per artwork
    data/<id>.json                        one record per artwork
    manifest.json                         every record, see manifest.py
    bulk_import.csv                       CSV rendering of the manifest

A save either lands the image, the record and the manifest update together,
or raises :class:`~atelier.core.errors.StorageFailure` with the previous
files restored.  The image and record are staged as temp files next to
their destinations, files they replace are moved aside first, and the
manifest is updated only once both are in place.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from atelier.core.errors import StorageFailure
from atelier.core.manifest import ManifestSynchronizer
from atelier.core.records import ArtworkRecord, utc_timestamp
from atelier.core.validation import ImagePayload, sanitize_title

logger = logging.getLogger(__name__)

# Id, slug, extension and the staging affixes must fit a 255-byte file name.
TITLE_SLUG_MAX = 100


def _stage(directory: Path, name: str, content: bytes) -> Path:
    """Write *content* to a hidden temp file in *directory* and return its path."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{name}.", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return Path(tmp_name)


def _move_aside(path: Path) -> Path:
    """Rename an existing *path* to a hidden backup beside it and return the backup."""
    fd, backup_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".bak", dir=path.parent)
    os.close(fd)
    try:
        os.replace(path, backup_name)
    except BaseException:
        Path(backup_name).unlink(missing_ok=True)
        raise
    return Path(backup_name)


class ArtworkStore:
    """Persist artworks as image + JSON files and keep the manifest in sync.

    Args:
        storage_dir: Root of the local gallery database.
    """

    def __init__(self, storage_dir: Path):
        self.storage_dir = Path(storage_dir)
        self.images_dir = self.storage_dir / "images"
        self.data_dir = self.storage_dir / "data"
        self.manifest = ManifestSynchronizer(
            self.storage_dir / "manifest.json",
            self.storage_dir / "bulk_import.csv",
        )

        try:
            self.images_dir.mkdir(parents=True, exist_ok=True)
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageFailure(f"Cannot create storage directory {self.storage_dir}") from e

        logger.info(f"Artwork store ready at {self.storage_dir}")

    def image_file_name(self, artwork_id: str, title: str, image: ImagePayload) -> str:
        slug = sanitize_title(title)[:TITLE_SLUG_MAX]
        return f"{artwork_id}_{slug}.{image.extension}"

    def record_path(self, artwork_id: str) -> Path:
        return self.data_dir / f"{artwork_id}.json"

    def save(self, record: ArtworkRecord, image: ImagePayload) -> ArtworkRecord:
        """Write the image, the record and the manifest entry for *record*.

        ``image_path``, ``file_name`` and ``last_updated`` are filled in here;
        any values the caller set on them are overwritten.

        Args:
            record: Validated artwork fields.
            image: Decoded image payload.

        Returns:
            The record as persisted.

        Raises:
            StorageFailure: If any of the writes fail.  The image, record and
                manifest are left as they were before the call.
        """
        file_name = self.image_file_name(record.id, record.title, image)
        image_path = self.images_dir / file_name
        stored = record.model_copy(
            update={
                "image_path": str(image_path),
                "file_name": file_name,
                "last_updated": utc_timestamp(),
            }
        )
        json_path = self.record_path(record.id)

        staged: list[Path] = []
        placed: list[Path] = []
        backups: dict[Path, Path] = {}
        try:
            staged_image = _stage(self.images_dir, file_name, image.data)
            staged.append(staged_image)
            staged_json = _stage(
                self.data_dir,
                json_path.name,
                json.dumps(stored.to_document(), indent=2).encode("utf-8"),
            )
            staged.append(staged_json)

            for source, destination in ((staged_image, image_path), (staged_json, json_path)):
                if destination.exists():
                    backups[destination] = _move_aside(destination)
                os.replace(source, destination)
                placed.append(destination)

            self.manifest.upsert(stored)
        except OSError as e:
            logger.exception(f"Failed to save artwork {record.id}")
            self._roll_back(staged, placed, backups)
            raise StorageFailure("Failed to save locally") from e

        for backup in backups.values():
            backup.unlink(missing_ok=True)

        logger.info(f"Saved artwork {record.id} as {file_name}")
        return stored

    def _roll_back(
        self, staged: list[Path], placed: list[Path], backups: dict[Path, Path]
    ) -> None:
        """Undo a partial save: drop new files and put replaced ones back."""
        for path in [*staged, *placed]:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.error(f"Could not remove {path} after failed save: {e}")
        for destination, backup in backups.items():
            try:
                os.replace(backup, destination)
            except OSError as e:
                logger.error(f"Could not restore {destination} from {backup.name}: {e}")

    def list_artworks(self) -> list[dict]:
        """Return every stored record, newest ``lastUpdated`` first.

        Records that cannot be parsed are skipped with a warning.

        Raises:
            StorageFailure: If the data directory cannot be listed.
        """
        if not self.data_dir.is_dir():
            raise StorageFailure("Failed to read artworks")
        try:
            json_paths = sorted(self.data_dir.glob("*.json"))
        except OSError as e:
            raise StorageFailure("Failed to read artworks") from e

        artworks: list[dict] = []
        for path in json_paths:
            try:
                with open(path, encoding="utf-8") as handle:
                    document = json.load(handle)
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable artwork record {path.name}: {e}")
                continue
            if not isinstance(document, dict) or "id" not in document:
                logger.warning(f"Skipping malformed artwork record {path.name}")
                continue
            artworks.append(document)

        artworks.sort(key=lambda doc: str(doc.get("lastUpdated", "")), reverse=True)
        return artworks
