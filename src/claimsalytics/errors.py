"""Exception hierarchy for claims ingestion.

Structural errors abort ingestion of a file. Cell-level anomalies never
raise; the normalizers recover them locally.
"""

from __future__ import annotations


class ClaimsalyticsError(Exception):
    """Base class for all errors raised by this package."""


class StructuralError(ClaimsalyticsError, ValueError):
    """A file's layout cannot be interpreted (missing column or header)."""


class MissingColumnError(StructuralError):
    """A mandatory column is absent from a delimited-text header."""

    def __init__(self, column: str, found: list[str] | None = None) -> None:
        self.column = column
        self.found = list(found or [])
        message = f"Could not find a '{column}' column header in CSV."
        if self.found:
            message += f" Found columns: {self.found}"
        super().__init__(message)


class MissingHeaderError(StructuralError):
    """No 'Date of Service' / 'DOS' header cell exists anywhere in a report grid."""

    def __init__(self) -> None:
        super().__init__("Could not find 'Date of Service' or 'DOS' header in Excel file.")


class UnsupportedFileError(StructuralError):
    """The file type is not handled at the ingestion boundary."""

    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__(f"Unsupported file type: {filename}")


class BatchIngestError(ClaimsalyticsError):
    """A structural error in one file of a multi-file batch."""

    def __init__(self, filename: str, cause: Exception) -> None:
        self.filename = filename
        self.cause = cause
        super().__init__(f"Failed to process {filename}: {cause}")


class EmptyBatchError(ClaimsalyticsError):
    """No claims were extracted from any file in the batch."""

    def __init__(self, message: str = "No valid claims data found in the uploaded files.") -> None:
        super().__init__(message)
