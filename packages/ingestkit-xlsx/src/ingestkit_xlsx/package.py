"""Read-only access to the parts of an .xlsx (OPC zip) package.

``XlsxPackage`` opens the container, follows the package relationships to
the workbook part, and resolves workbook relationship ids (``rId3``) to part
names.  Parts are handed out as :class:`~ingestkit_xlsx.cursor.ElementCursor`
instances over streaming zip members; nothing is extracted to disk.
"""

from __future__ import annotations

import logging
import os
import posixpath
import xml.etree.ElementTree as ET
import zipfile
from typing import IO

from ingestkit_xlsx.cursor import ElementCursor, check_declarations, local_name
from ingestkit_xlsx.errors import ErrorCode, PackageError

logger = logging.getLogger("ingestkit_xlsx")

_PACKAGE_RELS = "_rels/.rels"
_REL_OFFICE_DOCUMENT = "/officeDocument"
_REL_SHARED_STRINGS = "/sharedStrings"


class Relationship:
    """One ``<Relationship>`` entry of a ``.rels`` part."""

    __slots__ = ("id", "type", "target")

    def __init__(self, id: str, type: str, target: str) -> None:
        self.id = id
        self.type = type
        self.target = target


class XlsxPackage:
    """Open .xlsx container with relationship-aware part lookup.

    Parameters
    ----------
    source:
        Filesystem path, or a seekable binary stream.  Streams are borrowed:
        :meth:`close` closes the zip reader but leaves the caller's stream
        open.

    Raises
    ------
    PackageError
        If the source is not a zip archive or has no workbook part.
    """

    def __init__(self, source: str | os.PathLike[str] | IO[bytes]) -> None:
        try:
            self._zip = zipfile.ZipFile(source)
        except zipfile.BadZipFile as exc:
            raise PackageError(
                f"Not a valid .xlsx container: {exc}",
                code=ErrorCode.E_PARSE_CORRUPT,
            ) from exc
        self._names = set(self._zip.namelist())

        try:
            self.workbook_part = self._find_workbook_part()
            self._workbook_rels = {
                rel.id: rel for rel in self._read_relationships(self.workbook_part)
            }
        except Exception:
            self._zip.close()
            raise

    # ------------------------------------------------------------------
    # Part lookup
    # ------------------------------------------------------------------

    @property
    def shared_strings_part(self) -> str | None:
        """Name of the shared-string part, or ``None`` if the workbook has none."""
        for rel in self._workbook_rels.values():
            if rel.type.endswith(_REL_SHARED_STRINGS):
                name = _resolve_target(self.workbook_part, rel.target)
                if name in self._names:
                    return name
        return None

    def resolve_relationship(self, relationship_id: str) -> str:
        """Return the part name a workbook relationship id points at."""
        rel = self._workbook_rels.get(relationship_id)
        if rel is None:
            raise PackageError(
                f"Workbook has no relationship '{relationship_id}'",
                code=ErrorCode.E_PACKAGE_PART_MISSING,
            )
        return _resolve_target(self.workbook_part, rel.target)

    def has_part(self, name: str) -> bool:
        return name in self._names

    def open_cursor(self, name: str) -> ElementCursor:
        """Open a forward-only cursor over the part called *name*."""
        if name not in self._names:
            raise PackageError(
                f"Package part '{name}' not found",
                code=ErrorCode.E_PACKAGE_PART_MISSING,
            )
        return ElementCursor(self._zip.open(name), part_name=name)

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> XlsxPackage:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    def _find_workbook_part(self) -> str:
        if _PACKAGE_RELS not in self._names:
            raise PackageError(
                "Package has no root relationships part (_rels/.rels)",
                code=ErrorCode.E_PACKAGE_PART_MISSING,
            )
        for rel in self._parse_rels(_PACKAGE_RELS):
            if rel.type.endswith(_REL_OFFICE_DOCUMENT):
                name = _resolve_target("", rel.target)
                if name in self._names:
                    return name
        raise PackageError(
            "Package does not declare a workbook part",
            code=ErrorCode.E_PACKAGE_PART_MISSING,
        )

    def _read_relationships(self, part_name: str) -> list[Relationship]:
        rels_name = _rels_part_for(part_name)
        if rels_name not in self._names:
            logger.debug("ingestkit_xlsx | no relationships part for %s", part_name)
            return []
        return self._parse_rels(rels_name)

    def _parse_rels(self, rels_name: str) -> list[Relationship]:
        data = self._zip.read(rels_name)
        check_declarations(data, rels_name)
        try:
            root = ET.fromstring(data)  # noqa: S314
        except ET.ParseError as exc:
            raise PackageError(
                f"Relationships part '{rels_name}' is not valid XML: {exc}",
                code=ErrorCode.E_PARSE_CORRUPT,
            ) from exc

        relationships: list[Relationship] = []
        for element in root:
            if local_name(element.tag) != "Relationship":
                continue
            if element.get("TargetMode") == "External":
                continue
            rel_id = element.get("Id")
            target = element.get("Target")
            if not rel_id or not target:
                continue
            relationships.append(
                Relationship(id=rel_id, type=element.get("Type", ""), target=target)
            )
        return relationships


def _rels_part_for(part_name: str) -> str:
    """``xl/workbook.xml`` -> ``xl/_rels/workbook.xml.rels``."""
    directory, filename = posixpath.split(part_name)
    return posixpath.join(directory, "_rels", f"{filename}.rels")


def _resolve_target(source_part: str, target: str) -> str:
    """Resolve a relationship target against the part that declares it.

    Absolute targets (``/xl/worksheets/sheet1.xml``) are package-rooted;
    relative ones are resolved against the source part's directory.
    """
    if target.startswith("/"):
        return posixpath.normpath(target.lstrip("/"))
    base = posixpath.dirname(source_part)
    return posixpath.normpath(posixpath.join(base, target))
