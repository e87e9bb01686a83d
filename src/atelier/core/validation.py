"""Validation gate for artwork and AI-generation inputs.

Every check here is pure and total: it accepts any Python object, performs no
I/O, never raises, and returns a :class:`ValidationResult`.  Route handlers
turn a failed result into :class:`~atelier.core.errors.InvalidInput` with
:meth:`ValidationResult.raise_for_failure`.
"""

from __future__ import annotations

import base64
import binascii
import logging
import math
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from atelier.core.errors import InvalidInput

logger = logging.getLogger(__name__)

SHORT_TEXT_MAX = 200
LONG_TEXT_MAX = 5000
ID_MAX = 100
TAG_MAX = 100
TAGS_MAX_COUNT = 50
PRICE_MAX = 50
MAX_IMAGE_BYTES = 40 * 1024 * 1024

ARTWORK_STATUSES = ("Available", "Sold", "Reserved", "NFS")
GENERATION_TYPES = ("title", "story", "tags")

# Declared subtype -> file extension used on disk.
IMAGE_EXTENSIONS = {
    "png": "png",
    "jpeg": "jpg",
    "gif": "gif",
    "webp": "webp",
}

_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
_DATA_URL_PATTERN = re.compile(r"^data:image/(png|jpeg|gif|webp);base64,(.*)$", re.DOTALL)


@dataclass(frozen=True)
class ImagePayload:
    """A decoded inline image."""

    subtype: str
    data: bytes

    @property
    def mime_type(self) -> str:
        return f"image/{self.subtype}"

    @property
    def extension(self) -> str:
        return IMAGE_EXTENSIONS[self.subtype]


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a single check.

    Attributes:
        ok: Whether the value passed.
        field: Name of the checked field.
        reason: Human-readable constraint that was violated (``None`` on success).
        value: Normalised value on success (e.g. the decoded :class:`ImagePayload`).
    """

    ok: bool
    field: str
    reason: str | None = None
    value: Any = None

    @classmethod
    def passed(cls, field: str, value: Any = None) -> ValidationResult:
        return cls(ok=True, field=field, value=value)

    @classmethod
    def failed(cls, field: str, reason: str) -> ValidationResult:
        return cls(ok=False, field=field, reason=reason)

    @property
    def message(self) -> str:
        return f"{self.field}: {self.reason}"

    def raise_for_failure(self) -> Any:
        """Raise :class:`InvalidInput` if the check failed, else return ``value``."""
        if not self.ok:
            logger.info(f"Rejected input: {self.message}")
            raise InvalidInput(self.message)
        return self.value


def first_failure(*results: ValidationResult) -> ValidationResult | None:
    """Return the first failed result, or ``None`` when all passed."""
    return next((r for r in results if not r.ok), None)


def check_string(field: str, value: Any, max_length: int, *, required: bool = False) -> ValidationResult:
    """Check that *value* is a string no longer than *max_length* characters.

    ``None`` is accepted for optional fields and normalised to ``""``.
    """
    if value is None:
        if required:
            return ValidationResult.failed(field, "is required")
        return ValidationResult.passed(field, "")
    if not isinstance(value, str):
        return ValidationResult.failed(field, "must be a string")
    if required and not value.strip():
        return ValidationResult.failed(field, "is required")
    if len(value) > max_length:
        return ValidationResult.failed(field, f"must be at most {max_length} characters")
    return ValidationResult.passed(field, value)


def check_identifier(field: str, value: Any) -> ValidationResult:
    """Check an artwork id, which is also used to name files on disk."""
    result = check_string(field, value, ID_MAX, required=True)
    if not result.ok:
        return result
    if not _ID_PATTERN.match(value):
        return ValidationResult.failed(
            field, "may only contain letters, digits, '-' and '_'"
        )
    return result


def check_status(field: str, value: Any) -> ValidationResult:
    if value not in ARTWORK_STATUSES:
        return ValidationResult.failed(field, f"must be one of {', '.join(ARTWORK_STATUSES)}")
    return ValidationResult.passed(field, value)


def check_generation_type(field: str, value: Any) -> ValidationResult:
    if value not in GENERATION_TYPES:
        return ValidationResult.failed(field, f"must be one of {', '.join(GENERATION_TYPES)}")
    return ValidationResult.passed(field, value)


def check_tags(field: str, value: Any) -> ValidationResult:
    """Check an optional ordered sequence of tag strings.

    ``None`` normalises to an empty list; order is preserved.
    """
    if value is None:
        return ValidationResult.passed(field, [])
    if not isinstance(value, (list, tuple)):
        return ValidationResult.failed(field, "must be a list of strings")
    if len(value) > TAGS_MAX_COUNT:
        return ValidationResult.failed(field, f"must contain at most {TAGS_MAX_COUNT} tags")
    for index, tag in enumerate(value):
        tag_result = check_string(f"{field}[{index}]", tag, TAG_MAX, required=True)
        if not tag_result.ok:
            return tag_result
    return ValidationResult.passed(field, list(value))


def check_price(field: str, value: Any) -> ValidationResult:
    """Check an optional price given as a numeric string."""
    result = check_string(field, value, PRICE_MAX)
    if not result.ok or not result.value.strip():
        return result
    try:
        amount = Decimal(result.value.strip())
    except InvalidOperation:
        return ValidationResult.failed(field, "must be a number")
    if not amount.is_finite() or amount < 0 or not math.isfinite(float(amount)):
        return ValidationResult.failed(field, "must be a non-negative number")
    return ValidationResult.passed(field, result.value.strip())


def check_image(field: str, value: Any, *, max_bytes: int = MAX_IMAGE_BYTES) -> ValidationResult:
    """Check and decode an inline ``data:image/<subtype>;base64,`` payload.

    The decoded size is estimated from the encoded length first so oversized
    payloads are rejected without being decoded.

    Returns:
        A passing result whose ``value`` is an :class:`ImagePayload`.
    """
    if not isinstance(value, str):
        return ValidationResult.failed(field, "must be a string")

    match = _DATA_URL_PATTERN.match(value)
    if not match:
        return ValidationResult.failed(
            field, "must be a data:image/(png|jpeg|gif|webp);base64 payload"
        )

    subtype, encoded = match.group(1), match.group(2).strip()
    padding = len(encoded) - len(encoded.rstrip("="))
    estimated_size = len(encoded) * 3 // 4 - padding
    if estimated_size > max_bytes:
        return ValidationResult.failed(field, f"image exceeds {max_bytes} bytes")

    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        return ValidationResult.failed(field, "is not valid base64")

    if not data:
        return ValidationResult.failed(field, "image is empty")
    if len(data) > max_bytes:
        return ValidationResult.failed(field, f"image exceeds {max_bytes} bytes")

    return ValidationResult.passed(field, ImagePayload(subtype=subtype, data=data))


def sanitize_title(title: str) -> str:
    """Lower-case *title* with every character outside ``[a-z0-9]`` replaced by ``_``."""
    return re.sub(r"[^a-z0-9]", "_", title, flags=re.IGNORECASE).lower()
