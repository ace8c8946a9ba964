"""ingestkit-xlsx -- streaming, forward-only reader for .xlsx workbooks.

Public API re-exports for convenient access.
"""

from ingestkit_xlsx.catalog import build_sheet_catalog
from ingestkit_xlsx.config import XlsxReaderConfig
from ingestkit_xlsx.cursor import ElementCursor
from ingestkit_xlsx.decoder import decode_cell, iter_rows
from ingestkit_xlsx.errors import (
    CoercionError,
    ErrorCode,
    IngestError,
    MalformedCoordinateError,
    MissingDescriptorError,
    PackageError,
    SharedStringLookupError,
    TraversalSupersededError,
    UnknownSheetError,
    XlsxReaderError,
)
from ingestkit_xlsx.models import (
    CellCoordinate,
    CellKind,
    CellRecord,
    RowRecord,
    SheetDescriptor,
    SheetState,
    WorkbookCatalog,
    infer_cell_kind,
)
from ingestkit_xlsx.package import XlsxPackage
from ingestkit_xlsx.reader import XlsxReader
from ingestkit_xlsx.security import XlsxSecurityScanner
from ingestkit_xlsx.shared_strings import SharedStringTable, build_shared_string_table

__all__ = [
    # Reader
    "XlsxReader",
    "XlsxReaderConfig",
    # Models
    "CellCoordinate",
    "CellKind",
    "CellRecord",
    "RowRecord",
    "SheetDescriptor",
    "SheetState",
    "WorkbookCatalog",
    "infer_cell_kind",
    # Streaming building blocks
    "ElementCursor",
    "XlsxPackage",
    "SharedStringTable",
    "build_shared_string_table",
    "build_sheet_catalog",
    "iter_rows",
    "decode_cell",
    # Security
    "XlsxSecurityScanner",
    # Errors
    "ErrorCode",
    "IngestError",
    "XlsxReaderError",
    "PackageError",
    "UnknownSheetError",
    "MissingDescriptorError",
    "SharedStringLookupError",
    "MalformedCoordinateError",
    "CoercionError",
    "TraversalSupersededError",
]
