"""Pydantic data models and enumerations for ingestkit-xlsx.

Defines the sheet catalog entries (``SheetDescriptor``, ``WorkbookCatalog``),
the immutable cell coordinate value, the tagged ``CellRecord`` and the
``RowRecord`` sequence produced by the row decoder.
"""

from __future__ import annotations

import datetime
import decimal
import math
import re
from collections.abc import Iterable, Iterator, Sequence
from enum import Enum
from typing import overload

from pydantic import BaseModel, ConfigDict

from ingestkit_xlsx.errors import CoercionError, MalformedCoordinateError

_REFERENCE_PATTERN = re.compile(r"(\D*)(\d+)")
# Plain ASCII literals only: no digit separators, padding or non-ASCII digits.
_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
_NUMBER_PATTERN = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

SHARED_STRING_TYPE = "s"
INLINE_STRING_TYPE = "inlineStr"

_MS_PER_DAY = 86_400_000
_OLE_AUTOMATION_EPOCH = datetime.datetime(1899, 12, 30)
_EPOCH_1904 = datetime.datetime(1904, 1, 1)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class CellKind(str, Enum):
    """Value kind inferred for a decoded cell.

    Shared-string, inline-string and blank cells are ``TEXT``; every other
    cell with a payload is ``NUMERIC`` regardless of its style.
    """

    TEXT = "text"
    NUMERIC = "numeric"


def infer_cell_kind(cell_type: str | None, raw_text: str) -> CellKind:
    """Classify a cell from its ``t`` attribute and raw payload.

    Shared and inline strings are text, blank payloads are text, and
    everything else is numeric.  Number formats and styles are not
    consulted, so dates and ``t="str"`` formula results come out numeric.
    """
    if cell_type in (SHARED_STRING_TYPE, INLINE_STRING_TYPE):
        return CellKind.TEXT
    if not raw_text.strip():
        return CellKind.TEXT
    return CellKind.NUMERIC


class SheetState(str, Enum):
    """Visibility declared on a workbook ``<sheet>`` element."""

    VISIBLE = "visible"
    HIDDEN = "hidden"
    VERY_HIDDEN = "veryHidden"


# ---------------------------------------------------------------------------
# Workbook catalog
# ---------------------------------------------------------------------------


class SheetDescriptor(BaseModel):
    """Catalog entry identifying one sheet of the workbook.

    ``index`` is the position among *all* ``<sheet>`` declarations in the
    workbook part, including declarations dropped for missing attributes,
    so catalogued indexes may have gaps.
    """

    model_config = ConfigDict(frozen=True)

    index: int
    name: str
    sheet_id: str
    relationship_id: str
    state: SheetState = SheetState.VISIBLE

    @property
    def is_hidden(self) -> bool:
        return self.state != SheetState.VISIBLE


class WorkbookCatalog(BaseModel):
    """Result of the single workbook-part scan."""

    model_config = ConfigDict(frozen=True)

    sheets: tuple[SheetDescriptor, ...] = ()
    date1904: bool = False
    declared_sheet_count: int = 0


# ---------------------------------------------------------------------------
# Cells and rows
# ---------------------------------------------------------------------------


class CellCoordinate(BaseModel):
    """Immutable cell reference split into column letters and row number.

    Build instances with :meth:`parse`, which performs the split once so the
    column and row can never disagree with ``reference``.
    """

    model_config = ConfigDict(frozen=True)

    reference: str
    column: str
    row: int

    @classmethod
    def parse(cls, reference: str | None) -> CellCoordinate:
        """Split *reference* (e.g. ``"AA100"``) into ``("AA", 100)``.

        Raises:
            MalformedCoordinateError: If *reference* is missing, does not
                end in a run of digits, or names row 0.
        """
        if not reference:
            raise MalformedCoordinateError("Cell is missing its reference attribute")

        match = _REFERENCE_PATTERN.fullmatch(reference)
        if match is None:
            raise MalformedCoordinateError(
                f"Cell reference '{reference}' does not end in a row number",
                cell_reference=reference,
            )

        row = int(match.group(2))
        if row < 1:
            raise MalformedCoordinateError(
                f"Cell reference '{reference}' has a non-positive row number",
                cell_reference=reference,
            )

        return cls(reference=reference, column=match.group(1), row=row)

    def __str__(self) -> str:
        return self.reference


class CellRecord(BaseModel):
    """One decoded cell: its coordinate, raw text and inferred kind.

    Coercions are lazy: ``to_decimal()``, ``to_int()`` and ``to_datetime()``
    only validate ``raw_text`` when called, so traversal never fails on a
    value that merely looks unusual.
    """

    model_config = ConfigDict(frozen=True)

    coordinate: CellCoordinate
    raw_text: str
    kind: CellKind
    date1904: bool = False

    @property
    def reference(self) -> str:
        return self.coordinate.reference

    @property
    def column(self) -> str:
        return self.coordinate.column

    @property
    def row(self) -> int:
        return self.coordinate.row

    @property
    def is_text(self) -> bool:
        return self.kind == CellKind.TEXT

    @property
    def is_numeric(self) -> bool:
        return self.kind == CellKind.NUMERIC

    def to_decimal(self) -> decimal.Decimal:
        """Parse the raw text as a finite decimal number."""
        if _NUMBER_PATTERN.fullmatch(self.raw_text) is None:
            raise self._coercion_error("decimal")
        return decimal.Decimal(self.raw_text)

    def to_int(self) -> int:
        """Parse the raw text as an integer literal."""
        if _INTEGER_PATTERN.fullmatch(self.raw_text) is None:
            raise self._coercion_error("integer")
        return int(self.raw_text)

    def to_datetime(self) -> datetime.datetime:
        """Interpret the raw text as a serial day number.

        Day 0 is 1899-12-30 (OLE automation dates), or 1904-01-01 for
        workbooks using the 1904 date system.  The result is rounded to the
        nearest millisecond.
        """
        if _NUMBER_PATTERN.fullmatch(self.raw_text) is None:
            raise self._coercion_error("datetime")
        try:
            serial = float(self.raw_text)
            millis = int(serial * _MS_PER_DAY + (0.5 if serial >= 0 else -0.5))
            if self.date1904:
                return _EPOCH_1904 + datetime.timedelta(milliseconds=millis)
            if millis < 0:
                # Negative serials count whole days back but the time of
                # day forward: -1.25 is 1899-12-29 06:00.
                millis -= int(math.fmod(millis, _MS_PER_DAY)) * 2
            return _OLE_AUTOMATION_EPOCH + datetime.timedelta(milliseconds=millis)
        except (ValueError, OverflowError) as exc:
            raise self._coercion_error("datetime") from exc

    def _coercion_error(self, target: str) -> CoercionError:
        return CoercionError(
            f"Cannot coerce cell {self.reference} value '{self.raw_text}' to {target}",
            cell_reference=self.reference,
        )

    def __str__(self) -> str:
        return self.raw_text


class RowRecord(Sequence[CellRecord]):
    """Cells of one worksheet row, in document order.

    Sparse rows stay sparse: cells the worksheet omits are not filled in,
    so positions do not correspond to column numbers.  Use :meth:`get` to
    look a cell up by column letters.
    """

    __slots__ = ("_cells",)

    def __init__(self, cells: Iterable[CellRecord] = ()) -> None:
        self._cells: list[CellRecord] = list(cells)

    @property
    def cells(self) -> tuple[CellRecord, ...]:
        return tuple(self._cells)

    @property
    def row_number(self) -> int | None:
        """Row number shared by the cells, or ``None`` for an empty row."""
        return self._cells[0].row if self._cells else None

    def append(self, cell: CellRecord) -> None:
        self._cells.append(cell)

    def get(self, column: str) -> CellRecord | None:
        """Return the cell in *column* (case-insensitive), or ``None``."""
        wanted = column.casefold()
        for cell in self._cells:
            if cell.column.casefold() == wanted:
                return cell
        return None

    @overload
    def __getitem__(self, index: int) -> CellRecord: ...

    @overload
    def __getitem__(self, index: slice) -> RowRecord: ...

    def __getitem__(self, index: int | slice) -> CellRecord | RowRecord:
        if isinstance(index, slice):
            return RowRecord(self._cells[index])
        return self._cells[index]

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[CellRecord]:
        return iter(self._cells)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RowRecord):
            return self._cells == other._cells
        return NotImplemented

    def __repr__(self) -> str:
        return f"RowRecord({self._cells!r})"
