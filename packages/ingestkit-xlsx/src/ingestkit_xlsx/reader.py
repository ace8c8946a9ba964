"""XlsxReader -- session object and public API for streaming .xlsx reads.

Opening a reader:

1. Runs the pre-flight :class:`XlsxSecurityScanner` (path sources only).
2. Opens the zip container via :class:`XlsxPackage`.
3. Builds the :class:`SharedStringTable` in one pass over the shared-string part.
4. Builds the sheet catalog in one pass over the workbook part.

Rows are then decoded lazily, per sheet, by :meth:`XlsxReader.read_sheet`.
A session supports one live traversal at a time: starting a new one
releases the previous cursor.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Iterator
from typing import IO

from ingestkit_xlsx.catalog import build_sheet_catalog
from ingestkit_xlsx.config import XlsxReaderConfig
from ingestkit_xlsx.cursor import ElementCursor
from ingestkit_xlsx.decoder import iter_rows
from ingestkit_xlsx.errors import (
    MissingDescriptorError,
    PackageError,
    TraversalSupersededError,
    UnknownSheetError,
)
from ingestkit_xlsx.models import RowRecord, SheetDescriptor, WorkbookCatalog
from ingestkit_xlsx.package import XlsxPackage
from ingestkit_xlsx.security import XlsxSecurityScanner
from ingestkit_xlsx.shared_strings import SharedStringTable, build_shared_string_table

logger = logging.getLogger("ingestkit_xlsx")


class XlsxReader:
    """Forward-only reader session over one .xlsx workbook.

    Parameters
    ----------
    source:
        Filesystem path, or a seekable binary stream.  Streams stay owned by
        the caller.
    config:
        Reader configuration.  Uses defaults when *None*.

    Raises
    ------
    PackageError
        If the security scan fails or the container cannot be opened.
    """

    def __init__(
        self,
        source: str | os.PathLike[str] | IO[bytes],
        config: XlsxReaderConfig | None = None,
    ) -> None:
        self._config = config or XlsxReaderConfig()
        self._active_cursor: ElementCursor | None = None
        self._closed = False
        start = time.monotonic()

        if isinstance(source, (str, os.PathLike)):
            self._source_label = os.path.basename(os.fspath(source))
            if self._config.enable_security_scan:
                self._scan(os.fspath(source))
        else:
            self._source_label = "<stream>"

        try:
            self._package = XlsxPackage(source)
        except PackageError as exc:
            self._log_fatal(exc.code.value, exc.message)
            raise

        try:
            self._shared_strings = self._load_shared_strings()
            self._catalog = self._load_catalog()
        except Exception:
            self._package.close()
            raise

        logger.info(
            "ingestkit_xlsx | opened | file=%s | sheets=%d | shared_strings=%d | "
            "time=%.3fs",
            self._source_label,
            len(self._catalog.sheets),
            len(self._shared_strings),
            time.monotonic() - start,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def sheets(self) -> tuple[SheetDescriptor, ...]:
        """Catalogued sheets in workbook order."""
        return self._catalog.sheets

    @property
    def shared_strings(self) -> SharedStringTable:
        return self._shared_strings

    @property
    def date1904(self) -> bool:
        """Whether the workbook uses the 1904 date system."""
        return self._catalog.date1904

    @property
    def closed(self) -> bool:
        return self._closed

    def get_sheet(self, key: int | str) -> SheetDescriptor:
        """Resolve a sheet by catalog ordinal or case-insensitive name.

        Ordinals are ``SheetDescriptor.index`` values (positions among all
        declared sheets), not positions in :attr:`sheets`.

        Raises:
            UnknownSheetError: If no catalogued sheet matches *key*.
        """
        if isinstance(key, str):
            wanted = key.casefold()
            for descriptor in self._catalog.sheets:
                if descriptor.name.casefold() == wanted:
                    return descriptor
            raise UnknownSheetError(
                f"File does not contain a sheet named {key}",
                sheet_name=key,
            )

        if isinstance(key, int) and not isinstance(key, bool):
            for descriptor in self._catalog.sheets:
                if descriptor.index == key:
                    return descriptor
            raise UnknownSheetError(f"No sheet with index {key}")

        raise TypeError(
            f"Sheet key must be an int or str, not {type(key).__name__}"
        )

    def read_sheet(
        self, sheet: int | str | SheetDescriptor | None
    ) -> Iterator[RowRecord]:
        """Return a lazy iterator over the rows of *sheet*.

        *sheet* may be a catalog ordinal, a sheet name (case-insensitive) or
        a :class:`SheetDescriptor`.  Resolution errors are raised here,
        before any row is produced; decoding errors are raised by the
        iterator.  The iterator releases its cursor when exhausted, closed,
        or superseded by a later ``read_sheet()`` traversal.

        Raises:
            UnknownSheetError: If an ordinal or name matches no sheet.
            MissingDescriptorError: If *sheet* is ``None``.
            PackageError: If the sheet's part cannot be located.
        """
        self._ensure_open()
        if sheet is None:
            raise MissingDescriptorError("A sheet descriptor is required")
        descriptor = sheet if isinstance(sheet, SheetDescriptor) else self.get_sheet(sheet)
        part_name = self._package.resolve_relationship(descriptor.relationship_id)
        return self._traverse(descriptor, part_name)

    def close(self) -> None:
        """Release the active cursor and the container.  Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._release_active_cursor()
        self._package.close()

    def __enter__(self) -> XlsxReader:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _traverse(self, descriptor: SheetDescriptor, part_name: str) -> Iterator[RowRecord]:
        self._ensure_open()
        self._release_active_cursor()
        cursor = self._package.open_cursor(part_name)
        self._active_cursor = cursor
        logger.debug(
            "ingestkit_xlsx | traversal started | sheet=%s | part=%s",
            descriptor.name,
            part_name,
        )

        row_count = 0
        try:
            for row in iter_rows(
                cursor,
                self._shared_strings,
                date1904=self._catalog.date1904,
                sheet_name=descriptor.name,
                log_sample_data=self._config.log_sample_data,
            ):
                row_count += 1
                yield row
                if cursor is not self._active_cursor:
                    raise TraversalSupersededError(
                        f"Traversal of sheet '{descriptor.name}' was superseded "
                        "by a newer traversal or the reader was closed",
                        sheet_name=descriptor.name,
                    )
        finally:
            cursor.close()
            if self._active_cursor is cursor:
                self._active_cursor = None
            logger.debug(
                "ingestkit_xlsx | traversal ended | sheet=%s | rows=%d | events=%d",
                descriptor.name,
                row_count,
                cursor.read_count,
            )

    def _release_active_cursor(self) -> None:
        if self._active_cursor is not None:
            self._active_cursor.close()
            self._active_cursor = None

    def _ensure_open(self) -> None:
        if self._closed:
            raise ValueError("I/O operation on closed XlsxReader")

    def _scan(self, file_path: str) -> None:
        findings = XlsxSecurityScanner(self._config).scan(file_path)
        for finding in findings:
            if finding.code.value.startswith("E_"):
                self._log_fatal(finding.code.value, finding.message)
                raise PackageError(finding.message, code=finding.code, stage="security")
            logger.warning(
                "ingestkit_xlsx | file=%s | code=%s | detail=%s",
                self._source_label,
                finding.code.value,
                finding.message,
            )

    def _log_fatal(self, code: str, detail: str) -> None:
        logger.error(
            "ingestkit_xlsx | file=%s | code=%s | detail=%s",
            self._source_label,
            code,
            detail,
        )

    def _load_shared_strings(self) -> SharedStringTable:
        part_name = self._package.shared_strings_part
        if part_name is None:
            logger.debug("ingestkit_xlsx | no shared-string part | file=%s", self._source_label)
            return build_shared_string_table(None)
        with self._package.open_cursor(part_name) as cursor:
            return build_shared_string_table(
                cursor, merge_rich_text_runs=self._config.merge_rich_text_runs
            )

    def _load_catalog(self) -> WorkbookCatalog:
        with self._package.open_cursor(self._package.workbook_part) as cursor:
            return build_sheet_catalog(cursor)
