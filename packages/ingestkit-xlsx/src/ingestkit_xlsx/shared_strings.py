"""Shared-string index built from a single forward scan of ``sharedStrings.xml``.

Provides ``SharedStringTable``, a read-only ordinal -> text mapping, and
``build_shared_string_table()`` which fills it from an element cursor.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping

from ingestkit_xlsx.cursor import ElementCursor
from ingestkit_xlsx.errors import SharedStringLookupError

logger = logging.getLogger("ingestkit_xlsx")

_TEXT = "t"
_STRING_ITEM = "si"
_PHONETIC_RUN = "rPh"


class SharedStringTable(Mapping[int, str]):
    """Immutable mapping from 0-based ordinal to shared string text."""

    __slots__ = ("_strings",)

    def __init__(self, strings: tuple[str, ...] = ()) -> None:
        self._strings = strings

    def lookup(self, raw_ordinal: str, cell_reference: str | None = None) -> str:
        """Resolve a cell's raw ``<v>`` payload to its shared string.

        Raises:
            SharedStringLookupError: If *raw_ordinal* is not an integer or
                has no entry in the table.
        """
        try:
            ordinal = int(raw_ordinal)
        except ValueError as exc:
            raise SharedStringLookupError(
                f"Shared-string reference '{raw_ordinal}' is not an ordinal",
                cell_reference=cell_reference,
            ) from exc
        try:
            return self[ordinal]
        except KeyError as exc:
            raise SharedStringLookupError(
                f"Shared-string ordinal {ordinal} is out of range "
                f"(table has {len(self._strings)} entries)",
                cell_reference=cell_reference,
            ) from exc

    def __getitem__(self, ordinal: int) -> str:
        if not isinstance(ordinal, int) or ordinal < 0 or ordinal >= len(self._strings):
            raise KeyError(ordinal)
        return self._strings[ordinal]

    def __len__(self) -> int:
        return len(self._strings)

    def __iter__(self) -> Iterator[int]:
        return iter(range(len(self._strings)))

    def __repr__(self) -> str:
        return f"SharedStringTable({len(self._strings)} entries)"


def read_string_item(cursor: ElementCursor) -> str:
    """Read a rich-text string item (``<si>`` or ``<is>``) as one string.

    The cursor must sit on the item's start event; it is left on the item's
    end event.  ``<t>`` runs are concatenated in order, skipping phonetic
    (``<rPh>``) runs.
    """
    item_name = cursor.local_name
    item_depth = cursor.depth
    parts: list[str] = []
    phonetic_depth = 0

    while cursor.read():
        name = cursor.local_name
        if cursor.is_end and name == item_name and cursor.depth == item_depth - 1:
            break
        if name == _PHONETIC_RUN:
            phonetic_depth += 1 if cursor.is_start else -1
        elif name == _TEXT and cursor.is_end and phonetic_depth == 0:
            parts.append(cursor.get_text())

    return "".join(parts)


def build_shared_string_table(
    cursor: ElementCursor | None,
    merge_rich_text_runs: bool = False,
) -> SharedStringTable:
    """Scan the shared-string part once and build the ordinal index.

    Parameters
    ----------
    cursor:
        Cursor over ``sharedStrings.xml``, or ``None`` when the workbook has
        no shared-string part (which yields an empty table).
    merge_rich_text_runs:
        When ``False`` every ``<t>`` element receives its own ordinal.  When
        ``True`` one ordinal is assigned per ``<si>`` item, joining its runs.

    Returns
    -------
    SharedStringTable
        The read-only ordinal -> text table.
    """
    if cursor is None:
        return SharedStringTable()

    strings: list[str] = []
    while cursor.read():
        if merge_rich_text_runs:
            if cursor.is_start and cursor.local_name == _STRING_ITEM:
                strings.append(read_string_item(cursor))
        elif cursor.is_end and cursor.local_name == _TEXT:
            strings.append(cursor.get_text())

    logger.debug(
        "ingestkit_xlsx | shared strings indexed | part=%s | count=%d",
        cursor.part_name,
        len(strings),
    )
    return SharedStringTable(tuple(strings))
