"""Lazy row/cell decoder over a worksheet's element stream.

``iter_rows()`` is a generator state machine built from one primitive,
:meth:`ElementCursor.advance_until`, applied at three nesting levels:

1. rows (``<row>``) bounded by the end of ``<sheetData>``;
2. cells (``<c>``) bounded by the end of the current ``<row>``;
3. the value payload (``<v>`` or ``<is>``) bounded by the end of the ``<c>``.

Each row is decoded only when the consumer asks for it, and decoding resumes
from the cursor's current position, so the stream is read exactly once.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from ingestkit_xlsx.cursor import ElementCursor
from ingestkit_xlsx.errors import XlsxReaderError
from ingestkit_xlsx.models import (
    SHARED_STRING_TYPE,
    CellCoordinate,
    CellRecord,
    RowRecord,
    infer_cell_kind,
)
from ingestkit_xlsx.shared_strings import SharedStringTable, read_string_item

logger = logging.getLogger("ingestkit_xlsx")

_SHEET_DATA = "sheetData"
_ROW = "row"
_CELL = "c"
_VALUE = "v"
_INLINE_STRING = "is"


def iter_rows(
    cursor: ElementCursor,
    shared_strings: SharedStringTable,
    *,
    date1904: bool = False,
    sheet_name: str | None = None,
    log_sample_data: bool = False,
) -> Iterator[RowRecord]:
    """Yield the rows of the worksheet under *cursor*, one at a time.

    The generator ends when no ``<row>`` remains before the end of
    ``<sheetData>`` (or the end of the document).  Errors raised while
    decoding a cell propagate from the ``next()`` call that requested the
    row; rows yielded before it are unaffected.
    """
    while cursor.advance_until(_ROW, _SHEET_DATA):
        row = RowRecord()
        while cursor.advance_until(_CELL, _ROW):
            try:
                row.append(decode_cell(cursor, shared_strings, date1904=date1904))
            except XlsxReaderError as exc:
                if exc.error.sheet_name is None:
                    exc.error.sheet_name = sheet_name
                raise

        if log_sample_data:
            logger.debug(
                "ingestkit_xlsx | row decoded | sheet=%s | row=%s | values=%s",
                sheet_name,
                row.row_number,
                [cell.raw_text for cell in row],
            )
        yield row


def decode_cell(
    cursor: ElementCursor,
    shared_strings: SharedStringTable,
    *,
    date1904: bool = False,
) -> CellRecord:
    """Decode the ``<c>`` element the cursor is positioned on.

    Reads the ``r`` and ``t`` attributes, then seeks the value payload
    within the cell.  A cell without a payload decodes as empty text, even
    when its type marks it as a shared-string reference.

    Raises:
        MalformedCoordinateError: If the ``r`` attribute is missing or has
            no row number.
        SharedStringLookupError: If a shared-string cell references an
            ordinal the table does not contain.
    """
    reference = cursor.get_attribute("r")
    cell_type = cursor.get_attribute("t")
    coordinate = CellCoordinate.parse(reference)

    found = cursor.advance_until((_VALUE, _INLINE_STRING), _CELL)
    if not found:
        raw_text = ""
    elif cursor.local_name == _INLINE_STRING:
        raw_text = read_string_item(cursor)
    else:
        raw_text = cursor.get_text()

    if cell_type == SHARED_STRING_TYPE and found:
        raw_text = shared_strings.lookup(raw_text, cell_reference=coordinate.reference)

    return CellRecord(
        coordinate=coordinate,
        raw_text=raw_text,
        kind=infer_cell_kind(cell_type, raw_text),
        date1904=date1904,
    )
