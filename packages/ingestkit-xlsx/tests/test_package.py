"""Unit tests for ingestkit_xlsx.package -- container and relationship lookup."""

from __future__ import annotations

import io
import zipfile

import pytest

from ingestkit_xlsx.errors import ErrorCode, PackageError
from ingestkit_xlsx.package import XlsxPackage, _rels_part_for, _resolve_target


def _rewrite(content: bytes, replace: dict[str, str | None]) -> bytes:
    """Copy a zip, replacing (or dropping, for ``None``) the named members."""
    source = zipfile.ZipFile(io.BytesIO(content))
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as target:
        for name in source.namelist():
            if name in replace:
                if replace[name] is not None:
                    target.writestr(name, replace[name])
                continue
            target.writestr(name, source.read(name))
    return buffer.getvalue()


class TestTargetResolution:
    def test_relative_target(self):
        assert _resolve_target("xl/workbook.xml", "worksheets/sheet1.xml") == "xl/worksheets/sheet1.xml"

    def test_absolute_target(self):
        assert _resolve_target("xl/workbook.xml", "/xl/worksheets/sheet1.xml") == "xl/worksheets/sheet1.xml"

    def test_parent_directory_target(self):
        assert _resolve_target("xl/workbook.xml", "../customXml/item1.xml") == "customXml/item1.xml"

    def test_package_root_source(self):
        assert _resolve_target("", "xl/workbook.xml") == "xl/workbook.xml"

    def test_rels_part_name(self):
        assert _rels_part_for("xl/workbook.xml") == "xl/_rels/workbook.xml.rels"


class TestOpen:
    def test_workbook_part_found(self, people_xlsx):
        with XlsxPackage(io.BytesIO(people_xlsx)) as package:
            assert package.workbook_part == "xl/workbook.xml"

    def test_from_path(self, people_xlsx, tmp_xlsx_file):
        path = tmp_xlsx_file(people_xlsx)
        with XlsxPackage(path) as package:
            assert package.has_part("xl/worksheets/sheet1.xml")

    def test_not_a_zip(self):
        with pytest.raises(PackageError) as info:
            XlsxPackage(io.BytesIO(b"plain text, not a zip"))
        assert info.value.code == ErrorCode.E_PARSE_CORRUPT

    def test_relationships_with_entity_declaration(self, people_xlsx):
        rels = (
            '<?xml version="1.0"?><!DOCTYPE r [<!ENTITY t "xl/workbook.xml">]>'
            '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships"/>'
        )
        content = _rewrite(people_xlsx, {"_rels/.rels": rels})
        with pytest.raises(PackageError) as info:
            XlsxPackage(io.BytesIO(content))
        assert info.value.code == ErrorCode.E_SECURITY_ENTITY_DECLARATION
        assert info.value.stage == "security"

    def test_missing_root_relationships(self, people_xlsx):
        content = _rewrite(people_xlsx, {"_rels/.rels": None})
        with pytest.raises(PackageError) as info:
            XlsxPackage(io.BytesIO(content))
        assert info.value.code == ErrorCode.E_PACKAGE_PART_MISSING

    def test_missing_workbook_part(self, people_xlsx):
        content = _rewrite(people_xlsx, {"xl/workbook.xml": None})
        with pytest.raises(PackageError) as info:
            XlsxPackage(io.BytesIO(content))
        assert info.value.code == ErrorCode.E_PACKAGE_PART_MISSING

    def test_corrupt_relationships_part(self, people_xlsx):
        content = _rewrite(people_xlsx, {"xl/_rels/workbook.xml.rels": "<Relationships"})
        with pytest.raises(PackageError) as info:
            XlsxPackage(io.BytesIO(content))
        assert info.value.code == ErrorCode.E_PARSE_CORRUPT


class TestRelationships:
    def test_resolve_sheet_relationship(self, people_xlsx):
        with XlsxPackage(io.BytesIO(people_xlsx)) as package:
            assert package.resolve_relationship("rId1") == "xl/worksheets/sheet1.xml"

    def test_unknown_relationship(self, people_xlsx):
        with XlsxPackage(io.BytesIO(people_xlsx)) as package:
            with pytest.raises(PackageError) as info:
                package.resolve_relationship("rId99")
        assert info.value.code == ErrorCode.E_PACKAGE_PART_MISSING

    def test_shared_strings_part(self, people_xlsx):
        with XlsxPackage(io.BytesIO(people_xlsx)) as package:
            assert package.shared_strings_part == "xl/sharedStrings.xml"

    def test_no_shared_strings_part(self, make_xlsx):
        content = make_xlsx([("S", "")])
        with XlsxPackage(io.BytesIO(content)) as package:
            assert package.shared_strings_part is None

    def test_external_targets_ignored(self, people_xlsx):
        rels = (
            '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
            '<Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/worksheet" Target="worksheets/sheet1.xml"/>'
            '<Relationship Id="rIdX" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/hyperlink" Target="https://example.com" TargetMode="External"/>'
            "</Relationships>"
        )
        content = _rewrite(people_xlsx, {"xl/_rels/workbook.xml.rels": rels})
        with XlsxPackage(io.BytesIO(content)) as package:
            with pytest.raises(PackageError):
                package.resolve_relationship("rIdX")


class TestOpenCursor:
    def test_cursor_over_part(self, people_xlsx):
        with XlsxPackage(io.BytesIO(people_xlsx)) as package:
            with package.open_cursor("xl/workbook.xml") as cursor:
                assert cursor.read()
                assert cursor.local_name == "workbook"
                assert cursor.part_name == "xl/workbook.xml"

    def test_missing_part(self, people_xlsx):
        with XlsxPackage(io.BytesIO(people_xlsx)) as package:
            with pytest.raises(PackageError) as info:
                package.open_cursor("xl/worksheets/sheet9.xml")
        assert info.value.code == ErrorCode.E_PACKAGE_PART_MISSING

    def test_part_with_doctype_rejected_when_read(self, people_xlsx):
        workbook = (
            '<?xml version="1.0"?><!DOCTYPE workbook [<!ENTITY x SYSTEM "file:///etc/passwd">]>'
            '<workbook xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main">&x;</workbook>'
        )
        content = _rewrite(people_xlsx, {"xl/workbook.xml": workbook})
        with XlsxPackage(io.BytesIO(content)) as package:
            with package.open_cursor("xl/workbook.xml") as cursor:
                with pytest.raises(PackageError) as info:
                    cursor.read()
        assert info.value.code == ErrorCode.E_SECURITY_ENTITY_DECLARATION
