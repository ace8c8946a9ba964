"""Forward-only element cursor over one XML part.

Wraps ``xml.etree.ElementTree.iterparse`` so callers see a flat stream of
start/end events with the current element's local name, attributes and
text.  Elements are pruned from the partial tree as soon as the cursor moves
past their end event, so memory stays bounded by the nesting depth rather
than the part size.  Parts that declare a DOCTYPE or entity are rejected
as they are read.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Iterable
from typing import IO

from ingestkit_xlsx.errors import ErrorCode, PackageError

_START = "start"
_END = "end"

# Markers are matched upper-cased; the tail keeps one marker length minus
# one byte so a declaration split across two reads is still seen.
_DECLARATION_MARKERS = (b"<!DOCTYPE", b"<!ENTITY")
_MARKER_TAIL = max(len(m) for m in _DECLARATION_MARKERS) - 1


def check_declarations(data: bytes, part_name: str = "") -> None:
    """Reject a package part that carries a DOCTYPE or ENTITY declaration.

    Workbook parts never declare a DTD, so any declaration is treated as
    a billion-laughs or XXE attempt.

    Raises:
        PackageError: With ``E_SECURITY_ENTITY_DECLARATION`` if *data*
            contains either declaration.
    """
    upper = data.upper()
    for marker in _DECLARATION_MARKERS:
        if marker in upper:
            raise PackageError(
                f"Package part '{part_name}' contains a {marker[2:].decode()} declaration "
                "(potential billion laughs / XXE attack)",
                code=ErrorCode.E_SECURITY_ENTITY_DECLARATION,
                stage="security",
            )


class _DeclarationGuard:
    """Read-through wrapper that scans each chunk with :func:`check_declarations`."""

    def __init__(self, source: IO[bytes], part_name: str) -> None:
        self._source = source
        self._part_name = part_name
        self._tail = b""

    def read(self, size: int = -1) -> bytes:
        data = self._source.read(size)
        window = self._tail + data
        check_declarations(window, self._part_name)
        self._tail = window[-_MARKER_TAIL:]
        return data

    def close(self) -> None:
        self._source.close()


def local_name(tag: str) -> str:
    """Remove the namespace URI prefix from a tag or attribute name.

    If the tag is ``{http://example.com}localname``, returns ``localname``.
    """
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


class ElementCursor:
    """Read-once cursor exposing start/end events of an XML stream.

    Parameters
    ----------
    source:
        Binary stream positioned at the start of the XML document.  The
        cursor owns the stream and closes it in :meth:`close`.
    part_name:
        Name of the package part being read, used for diagnostics.
    """

    def __init__(self, source: IO[bytes], part_name: str = "") -> None:
        self.part_name = part_name
        self.read_count = 0
        self._source = source
        guarded = _DeclarationGuard(source, part_name)
        self._events = ET.iterparse(guarded, events=(_START, _END))
        self._event: str | None = None
        self._element: ET.Element | None = None
        self._local_name: str | None = None
        self._stack: list[ET.Element] = []
        self._pending_prune: tuple[ET.Element, ET.Element | None] | None = None
        self._collecting = False
        self._eof = False
        self._closed = False

    # ------------------------------------------------------------------
    # Position
    # ------------------------------------------------------------------

    @property
    def eof(self) -> bool:
        return self._eof

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_start(self) -> bool:
        return self._event == _START

    @property
    def is_end(self) -> bool:
        return self._event == _END

    @property
    def local_name(self) -> str | None:
        """Local name of the element at the current event, if any."""
        return self._local_name

    @property
    def depth(self) -> int:
        """Number of currently open elements (the root counts as 1)."""
        return len(self._stack)

    @property
    def attributes(self) -> dict[str, str]:
        """Attributes of the current element keyed by local name."""
        if self._element is None:
            return {}
        return {local_name(k): v for k, v in self._element.attrib.items()}

    def get_attribute(self, name: str) -> str | None:
        """Return the attribute with local name *name*, or ``None``."""
        if self._element is None:
            return None
        for key, value in self._element.attrib.items():
            if local_name(key) == name:
                return value
        return None

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------

    def read(self) -> bool:
        """Advance to the next start or end event.

        Returns ``False`` once the document is exhausted.

        Raises:
            xml.etree.ElementTree.ParseError: If the part is not
                well-formed XML.
            PackageError: If the part declares a DOCTYPE or entity.
            ValueError: If the cursor has been closed.
        """
        if self._closed:
            raise ValueError(f"Cursor over '{self.part_name}' is closed")
        if self._eof:
            return False

        self._prune()

        try:
            event, element = next(self._events)
        except StopIteration:
            self._eof = True
            self._event = None
            self._element = None
            self._local_name = None
            return False

        self.read_count += 1
        self._event = event
        self._element = element
        self._local_name = local_name(element.tag)

        if event == _START:
            self._stack.append(element)
        else:
            self._stack.pop()
            if not self._collecting:
                parent = self._stack[-1] if self._stack else None
                self._pending_prune = (element, parent)
        return True

    def advance_until(self, target: str | Iterable[str], boundary: str) -> bool:
        """Read forward to the next start of *target*, bounded by *boundary*.

        Stops on a start event whose local name is *target* (or one of the
        names in *target*) and returns ``True``.  Stops on an end event of
        *boundary*, or at the end of the document, and returns ``False``.
        """
        targets = (target,) if isinstance(target, str) else tuple(target)
        while self.read():
            if self.is_start and self._local_name in targets:
                return True
            if self.is_end and self._local_name == boundary:
                return False
        return False

    def get_text(self) -> str:
        """Return the text content of the current element.

        At a start event the cursor reads forward to the element's end
        event, so the element is fully consumed; the concatenated text of the
        element and its descendants is returned.  At an end event the text is
        already available and the cursor does not move.  Returns ``""`` when
        there is no current element.
        """
        element = self._element
        if element is None:
            return ""

        if self.is_start:
            self._collecting = True
            try:
                while self.read():
                    if self.is_end and self._element is element:
                        break
            finally:
                self._collecting = False
            if self._element is element:
                parent = self._stack[-1] if self._stack else None
                self._pending_prune = (element, parent)

        return "".join(element.itertext())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the underlying stream.  Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._pending_prune = None
        self._stack.clear()
        self._element = None
        self._event = None
        self._local_name = None
        close_events = getattr(self._events, "close", None)
        if close_events is not None:
            close_events()
        self._source.close()

    def __enter__(self) -> ElementCursor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _prune(self) -> None:
        if self._pending_prune is None:
            return
        element, parent = self._pending_prune
        self._pending_prune = None
        element.clear()
        if parent is not None:
            parent.remove(element)
