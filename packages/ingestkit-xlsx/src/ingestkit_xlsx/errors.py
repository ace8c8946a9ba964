"""Error codes, structured error model, and raisable exceptions for ingestkit-xlsx.

``ErrorCode`` contains all error/warning codes relevant to streaming .xlsx
reads.  ``IngestError`` is the Pydantic data model describing a failure;
``XlsxReaderError`` and its subclasses wrap it so failures can be raised
and caught in normal control flow.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Error codes for .xlsx reading.

    Values equal their names so they are stable strings suitable for
    metrics and alerting.  ``E_`` prefix = fatal, ``W_`` prefix = warning.
    """

    # Security
    E_SECURITY_BAD_EXTENSION = "E_SECURITY_BAD_EXTENSION"
    E_SECURITY_TOO_LARGE = "E_SECURITY_TOO_LARGE"
    E_SECURITY_BAD_MAGIC = "E_SECURITY_BAD_MAGIC"
    E_SECURITY_ENTITY_DECLARATION = "E_SECURITY_ENTITY_DECLARATION"

    # Package
    E_PARSE_CORRUPT = "E_PARSE_CORRUPT"
    E_PARSE_EMPTY = "E_PARSE_EMPTY"
    E_PACKAGE_PART_MISSING = "E_PACKAGE_PART_MISSING"

    # Sheet resolution
    E_SHEET_NOT_FOUND = "E_SHEET_NOT_FOUND"
    E_SHEET_DESCRIPTOR_MISSING = "E_SHEET_DESCRIPTOR_MISSING"

    # Row/cell decoding
    E_SHARED_STRING_LOOKUP = "E_SHARED_STRING_LOOKUP"
    E_CELL_REFERENCE_MALFORMED = "E_CELL_REFERENCE_MALFORMED"
    E_CELL_COERCION = "E_CELL_COERCION"
    E_TRAVERSAL_SUPERSEDED = "E_TRAVERSAL_SUPERSEDED"

    # Warnings (non-fatal)
    W_LARGE_FILE = "W_LARGE_FILE"
    W_SHEET_DECLARATION_SKIPPED = "W_SHEET_DECLARATION_SKIPPED"


class IngestError(BaseModel):
    """Structured error with code, message, and workbook location context.

    ``sheet_name`` and ``cell_reference`` point at the sheet and cell that
    produced the failure when that is known.
    """

    code: ErrorCode
    message: str
    stage: str | None = None
    recoverable: bool = False
    sheet_name: str | None = None
    cell_reference: str | None = None


class XlsxReaderError(Exception):
    """Raisable exception wrapping an :class:`IngestError` data model.

    Carries the structured error as the ``.error`` attribute for inspection
    and serialization.  Subclasses pin a default ``ErrorCode`` and stage so
    call sites only pass the message and location context.
    """

    default_code: ErrorCode = ErrorCode.E_PARSE_CORRUPT
    default_stage: str | None = None

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        stage: str | None = None,
        sheet_name: str | None = None,
        cell_reference: str | None = None,
    ) -> None:
        self.error = IngestError(
            code=code or self.default_code,
            message=message,
            stage=stage or self.default_stage,
            sheet_name=sheet_name,
            cell_reference=cell_reference,
        )
        super().__init__(message)

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def stage(self) -> str | None:
        return self.error.stage

    @property
    def sheet_name(self) -> str | None:
        return self.error.sheet_name

    @property
    def cell_reference(self) -> str | None:
        return self.error.cell_reference


class PackageError(XlsxReaderError):
    """The container could not be opened, or a required part is missing."""

    default_code = ErrorCode.E_PARSE_CORRUPT
    default_stage = "package"


class UnknownSheetError(XlsxReaderError, LookupError):
    """No catalogued sheet matches the requested ordinal or name."""

    default_code = ErrorCode.E_SHEET_NOT_FOUND
    default_stage = "resolve"


class MissingDescriptorError(XlsxReaderError, ValueError):
    """A sheet descriptor was required but ``None`` was passed."""

    default_code = ErrorCode.E_SHEET_DESCRIPTOR_MISSING
    default_stage = "resolve"


class SharedStringLookupError(XlsxReaderError, LookupError):
    """A shared-string cell references an ordinal absent from the table."""

    default_code = ErrorCode.E_SHARED_STRING_LOOKUP
    default_stage = "decode"


class MalformedCoordinateError(XlsxReaderError, ValueError):
    """A cell reference does not end in a positive row number."""

    default_code = ErrorCode.E_CELL_REFERENCE_MALFORMED
    default_stage = "decode"


class CoercionError(XlsxReaderError, ValueError):
    """A cell's raw text cannot be coerced to the requested type."""

    default_code = ErrorCode.E_CELL_COERCION
    default_stage = "coerce"


class TraversalSupersededError(XlsxReaderError, RuntimeError):
    """A row iterator was resumed after a newer traversal replaced it."""

    default_code = ErrorCode.E_TRAVERSAL_SUPERSEDED
    default_stage = "decode"
