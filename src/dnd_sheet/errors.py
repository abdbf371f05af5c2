"""Custom exceptions for dnd_sheet."""

from __future__ import annotations


class DndSheetError(Exception):
    """Base dnd_sheet error."""


class TransferError(DndSheetError):
    """Base error for character import/export."""


class ExportError(TransferError):
    """Raised when a character cannot be serialized."""


class ImportSourceError(TransferError):
    """Raised when a character document cannot be read."""


class ImportFormatError(TransferError):
    """Raised when no import strategy accepts a document."""

    def __init__(self, attempts: dict[str, str], message: str | None = None) -> None:
        if message is None:
            tried = ", ".join(attempts) or "none"
            message = f"Unrecognized character document (tried: {tried})"
        super().__init__(message)
        self.attempts = attempts


class ReferenceDataError(DndSheetError):
    """Base error for bundled reference data."""


class AssetNotFoundError(ReferenceDataError):
    """Raised when a reference asset file is missing."""

    def __init__(self, filename: str) -> None:
        super().__init__(f"Asset not found: {filename}")
        self.filename = filename


class AssetDecodeError(ReferenceDataError):
    """Raised when a reference asset cannot be decoded."""


class RecordNotFoundError(DndSheetError):
    """Raised when a stored record does not exist."""

    def __init__(self, collection: str, record_id: str) -> None:
        super().__init__(f"No {collection} record with id {record_id}")
        self.collection = collection
        self.record_id = record_id


class CacheError(DndSheetError):
    """Raised when the file cache cannot be written."""
