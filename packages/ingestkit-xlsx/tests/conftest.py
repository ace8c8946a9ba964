"""Shared test fixtures for ingestkit-xlsx tests.

Workbooks are assembled from raw XML strings with ``zipfile`` so each test
controls exactly which elements and attributes the reader sees.
"""

from __future__ import annotations

import io
import zipfile
from pathlib import Path
from xml.sax.saxutils import escape, quoteattr

import pytest

from ingestkit_xlsx.config import XlsxReaderConfig
from ingestkit_xlsx.cursor import ElementCursor

NS_MAIN = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
NS_REL = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
NS_PKG_REL = "http://schemas.openxmlformats.org/package/2006/relationships"

REL_OFFICE_DOCUMENT = f"{NS_REL}/officeDocument"
REL_WORKSHEET = f"{NS_REL}/worksheet"
REL_SHARED_STRINGS = f"{NS_REL}/sharedStrings"

CONTENT_TYPES = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    '<Default Extension="xml" ContentType="application/xml"/>'
    "</Types>"
)

ROOT_RELS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    f'<Relationships xmlns="{NS_PKG_REL}">'
    f'<Relationship Id="rId1" Type="{REL_OFFICE_DOCUMENT}" Target="xl/workbook.xml"/>'
    "</Relationships>"
)

PEOPLE_SHEET_DATA = (
    '<row r="1">'
    '<c r="A1" t="s"><v>0</v></c>'
    '<c r="B1" t="s"><v>1</v></c>'
    "</row>"
    '<row r="2">'
    '<c r="A2" t="inlineStr"><is><t>Alice</t></is></c>'
    '<c r="B2"><v>30</v></c>'
    "</row>"
)


def shared_strings_xml(strings: list[str]) -> str:
    items = "".join(f"<si><t>{escape(s)}</t></si>" for s in strings)
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<sst xmlns="{NS_MAIN}" count="{len(strings)}" uniqueCount="{len(strings)}">'
        f"{items}</sst>"
    )


def worksheet_xml(sheet_data: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<worksheet xmlns="{NS_MAIN}" xmlns:r="{NS_REL}">'
        '<dimension ref="A1"/>'
        f"<sheetData>{sheet_data}</sheetData>"
        '<pageMargins left="0.7" right="0.7" top="0.75" bottom="0.75" header="0.3" footer="0.3"/>'
        "</worksheet>"
    )


def build_xlsx(
    sheets: list[tuple[str, str]],
    shared_strings: list[str] | None = None,
    *,
    raw_shared_strings: str | None = None,
    sheet_declarations: str | None = None,
    date1904: bool = False,
) -> bytes:
    """Assemble an .xlsx container in memory.

    *sheets* is a list of ``(name, sheet_data_xml)`` pairs; sheet ``i``
    (1-based) is stored at ``xl/worksheets/sheet{i}.xml`` behind
    relationship ``rId{i}``.  *sheet_declarations* replaces the generated
    ``<sheet>`` elements of the workbook part verbatim.
    """
    buffer = io.BytesIO()
    relationships: list[str] = []
    declarations: list[str] = []

    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("[Content_Types].xml", CONTENT_TYPES)
        zf.writestr("_rels/.rels", ROOT_RELS)

        for i, (name, sheet_data) in enumerate(sheets, start=1):
            relationships.append(
                f'<Relationship Id="rId{i}" Type="{REL_WORKSHEET}" '
                f'Target="worksheets/sheet{i}.xml"/>'
            )
            declarations.append(
                f'<sheet name={quoteattr(name)} sheetId="{i}" r:id="rId{i}"/>'
            )
            zf.writestr(f"xl/worksheets/sheet{i}.xml", worksheet_xml(sheet_data))

        if shared_strings is not None or raw_shared_strings is not None:
            relationships.append(
                f'<Relationship Id="rIdSst" Type="{REL_SHARED_STRINGS}" '
                'Target="sharedStrings.xml"/>'
            )
            zf.writestr(
                "xl/sharedStrings.xml",
                raw_shared_strings or shared_strings_xml(shared_strings or []),
            )

        zf.writestr(
            "xl/_rels/workbook.xml.rels",
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            f'<Relationships xmlns="{NS_PKG_REL}">{"".join(relationships)}</Relationships>',
        )
        workbook_pr = '<workbookPr date1904="1"/>' if date1904 else "<workbookPr/>"
        zf.writestr(
            "xl/workbook.xml",
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            f'<workbook xmlns="{NS_MAIN}" xmlns:r="{NS_REL}">'
            f"{workbook_pr}"
            f"<sheets>{sheet_declarations if sheet_declarations is not None else ''.join(declarations)}</sheets>"
            "</workbook>",
        )

    return buffer.getvalue()


def cursor_over(xml: str, part_name: str = "test.xml") -> ElementCursor:
    """Open an ``ElementCursor`` over an in-memory XML string."""
    return ElementCursor(io.BytesIO(xml.encode("utf-8")), part_name=part_name)


@pytest.fixture
def make_xlsx():
    """Return the in-memory workbook builder (see ``build_xlsx``)."""
    return build_xlsx


@pytest.fixture
def make_cursor():
    """Return a factory opening an ``ElementCursor`` over an XML string."""
    return cursor_over


@pytest.fixture
def wrap_worksheet():
    """Return a factory wrapping ``<sheetData>`` content in a worksheet part."""
    return worksheet_xml


@pytest.fixture
def default_config() -> XlsxReaderConfig:
    """Return a default XlsxReaderConfig."""
    return XlsxReaderConfig()


@pytest.fixture
def people_xlsx() -> bytes:
    """Workbook with shared strings ["Name", "Age"] and one sheet "People"."""
    return build_xlsx([("People", PEOPLE_SHEET_DATA)], ["Name", "Age"])


@pytest.fixture
def tmp_xlsx_file(tmp_path: Path):
    """Factory fixture writing workbook bytes to a temp .xlsx file and returning the path."""

    def _write(content: bytes, filename: str = "test.xlsx") -> str:
        file_path = tmp_path / filename
        file_path.write_bytes(content)
        return str(file_path)

    return _write
