"""Sheet catalog built from a single forward scan of ``workbook.xml``."""

from __future__ import annotations

import logging

from ingestkit_xlsx.cursor import ElementCursor
from ingestkit_xlsx.errors import ErrorCode
from ingestkit_xlsx.models import SheetDescriptor, SheetState, WorkbookCatalog

logger = logging.getLogger("ingestkit_xlsx")

_SHEET = "sheet"
_WORKBOOK_PROPERTIES = "workbookPr"
_TRUE_VALUES = frozenset({"1", "true"})


def build_sheet_catalog(cursor: ElementCursor) -> WorkbookCatalog:
    """Enumerate the ``<sheet>`` declarations of the workbook part.

    Every ``<sheet>`` start element advances a zero-based ordinal, but only
    declarations carrying a non-empty ``name``, ``sheetId`` and relationship
    ``id`` become descriptors.  A dropped declaration therefore leaves a gap
    in the catalogued indexes; callers must resolve sheets by
    ``SheetDescriptor.index``, never by list position.

    The same pass reads ``<workbookPr date1904="...">`` so date coercion can
    use the workbook's epoch.
    """
    sheets: list[SheetDescriptor] = []
    date1904 = False
    ordinal = 0

    while cursor.read():
        if not cursor.is_start:
            continue

        if cursor.local_name == _WORKBOOK_PROPERTIES:
            flag = cursor.get_attribute("date1904") or ""
            date1904 = flag.strip().lower() in _TRUE_VALUES
            continue

        if cursor.local_name != _SHEET:
            continue

        index = ordinal
        ordinal += 1

        name = cursor.get_attribute("name")
        sheet_id = cursor.get_attribute("sheetId")
        relationship_id = cursor.get_attribute("id")
        if not (name and sheet_id and relationship_id):
            logger.warning(
                "ingestkit_xlsx | sheet declaration skipped | code=%s | index=%d | "
                "name=%r | sheetId=%r | rId=%r",
                ErrorCode.W_SHEET_DECLARATION_SKIPPED.value,
                index,
                name,
                sheet_id,
                relationship_id,
            )
            continue

        sheets.append(
            SheetDescriptor(
                index=index,
                name=name,
                sheet_id=sheet_id,
                relationship_id=relationship_id,
                state=_parse_state(cursor.get_attribute("state")),
            )
        )

    return WorkbookCatalog(
        sheets=tuple(sheets),
        date1904=date1904,
        declared_sheet_count=ordinal,
    )


def _parse_state(raw: str | None) -> SheetState:
    if not raw:
        return SheetState.VISIBLE
    try:
        return SheetState(raw)
    except ValueError:
        logger.debug("ingestkit_xlsx | unknown sheet state %r treated as visible", raw)
        return SheetState.VISIBLE
