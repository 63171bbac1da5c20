"""Final Draft XML (.fdx) parser.

Streams the document through ``defusedxml``'s SAX parser and maps each
``<Paragraph>`` onto a ``ScreenplayElement``.  Section tracking (script body
vs. title page) is derived from the stack of open element names.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from uuid import uuid4
from xml.sax.handler import ContentHandler
from xml.sax.xmlreader import AttributesImpl

from core.exceptions import ParsingException
from core.models import (
    ElementKind,
    ParsedDocument,
    ScreenplayElement,
    ScriptFormat,
    TitlePageEntry,
)
from parsers.base import ParserBase
from parsers.secure_xml import MAX_XML_SIZE, parse_xml_events

logger = logging.getLogger(__name__)

_ROOT = "FinalDraft"
_CONTENT = "Content"
_PARAGRAPH = "Paragraph"
_TEXT = "Text"
_TITLE_PAGE = "TitlePage"
_SCENE_PROPERTIES = "SceneProperties"
_DUAL_DIALOGUE = "DualDialogue"

# Key under which the flat list of title-page lines is exposed
TITLE_PAGE_KEY = "title page"

# FDX Paragraph types -> element kinds; anything else is Action
_PARAGRAPH_KINDS: dict[str, ElementKind] = {
    "Scene Heading": ElementKind.SCENE_HEADING,
    "Action": ElementKind.ACTION,
    "Character": ElementKind.CHARACTER,
    "Dialogue": ElementKind.DIALOGUE,
    "Parenthetical": ElementKind.PARENTHETICAL,
    "Transition": ElementKind.TRANSITION,
    "Synopsis": ElementKind.SYNOPSIS,
    "Comment": ElementKind.COMMENT,
    "Boneyard": ElementKind.BONEYARD,
    "Lyrics": ElementKind.LYRIC,
    "Page Break": ElementKind.PAGE_BREAK,
    "Section Heading": ElementKind.SECTION_HEADING,
    "New Act": ElementKind.SECTION_HEADING,
    "Centered": ElementKind.ACTION,
}


class _Section(Enum):
    NONE = "none"
    SCRIPT = "script"
    TITLE_PAGE = "title_page"


def _section_level(raw: str | None) -> int:
    """Clamp a ``Level`` attribute into the 1-6 outline range."""
    try:
        level = int(raw or "1")
    except ValueError:
        level = 1
    return min(max(level, 1), 6)


@dataclass
class _OpenParagraph:
    """A script paragraph whose closing tag has not been seen yet."""

    type_name: str
    level: str | None = None
    is_dual_dialogue: bool = False
    scene_number: str | None = None
    parts: list[str] = field(default_factory=list)

    def to_element(self) -> ScreenplayElement | None:
        text = "".join(self.parts).replace("\r", "").strip()
        kind = _PARAGRAPH_KINDS.get(self.type_name, ElementKind.ACTION)
        if not text and kind != ElementKind.PAGE_BREAK:
            return None

        is_heading = kind == ElementKind.SCENE_HEADING
        return ScreenplayElement(
            kind=kind,
            text=text,
            section_level=_section_level(self.level) if kind == ElementKind.SECTION_HEADING else 0,
            is_centered=self.type_name == "Centered",
            is_dual_dialogue=self.is_dual_dialogue,
            scene_number=self.scene_number if is_heading else None,
            scene_id=str(uuid4()) if is_heading else None,
        )


class _FDXHandler(ContentHandler):
    """SAX handler that collects elements and title-page lines."""

    def __init__(self) -> None:
        super().__init__()
        self.root: str | None = None
        self.saw_script_content = False
        self.elements: list[ScreenplayElement] = []
        self.title_lines: list[str] = []

        self._stack: list[str] = []
        self._section = _Section.NONE
        self._paragraphs: list[_OpenParagraph] = []
        self._title_parts: list[str] | None = None
        self._text: list[str] | None = None

    # -- ancestry lookups ------------------------------------------------

    def _parent(self) -> str | None:
        """Name of the element enclosing the innermost open element."""
        return self._stack[-2] if len(self._stack) >= 2 else None

    def _has_ancestor(self, name: str) -> bool:
        return name in self._stack[:-1]

    # -- SAX callbacks -----------------------------------------------------

    def startElement(self, name: str, attrs: AttributesImpl) -> None:
        self._stack.append(name)
        if self.root is None:
            self.root = name

        if name == _CONTENT:
            if self._parent() == _ROOT:
                self._section = _Section.SCRIPT
                self.saw_script_content = True
            elif self._has_ancestor(_TITLE_PAGE):
                self._section = _Section.TITLE_PAGE
        elif name == _PARAGRAPH:
            self._open_paragraph(attrs)
        elif name == _SCENE_PROPERTIES and self._paragraphs:
            self._paragraphs[-1].scene_number = attrs.get("Number")
        elif name == _TEXT and (self._paragraphs or self._title_parts is not None):
            self._text = []

    def characters(self, content: str) -> None:
        if self._text is not None:
            self._text.append(content)

    def endElement(self, name: str) -> None:
        if name == _TEXT and self._text is not None:
            run = "".join(self._text)
            if self._paragraphs:
                self._paragraphs[-1].parts.append(run)
            elif self._title_parts is not None:
                self._title_parts.append(run)
            self._text = None
        elif name == _PARAGRAPH:
            self._close_paragraph()
        elif name == _CONTENT:
            self._section = _Section.NONE

        self._stack.pop()

    # -- paragraph bookkeeping ----------------------------------------------

    def _open_paragraph(self, attrs: AttributesImpl) -> None:
        parent = self._parent()
        if self._section == _Section.SCRIPT and parent in (_CONTENT, _DUAL_DIALOGUE):
            self._paragraphs.append(
                _OpenParagraph(
                    type_name=attrs.get("Type", "Action"),
                    level=attrs.get("Level"),
                    is_dual_dialogue=(
                        attrs.get("DualDialogue", "").lower() == "yes" or parent == _DUAL_DIALOGUE
                    ),
                )
            )
        elif self._section == _Section.TITLE_PAGE and parent == _CONTENT:
            self._title_parts = []

    def _close_paragraph(self) -> None:
        parent = self._parent()
        if self._paragraphs and parent in (_CONTENT, _DUAL_DIALOGUE):
            element = self._paragraphs.pop().to_element()
            if element is not None:
                self.elements.append(element)
        elif self._title_parts is not None and parent == _CONTENT:
            line = "".join(self._title_parts).replace("\r", "").strip()
            if line:
                self.title_lines.append(line)
            self._title_parts = None


class FDXParser(ParserBase):
    """Parser for Final Draft XML (.fdx) screenplay files.

    ``max_size`` caps the raw XML payload in bytes before any parsing starts.
    """

    def __init__(self, max_size: int = MAX_XML_SIZE) -> None:
        self.max_size = max_size

    @property
    def supported_format(self) -> ScriptFormat:
        return ScriptFormat.FDX

    def parse(self, content: bytes | str, filename: str | None = None) -> ParsedDocument:
        """Parse raw FDX bytes into a ``ParsedDocument``.

        Raises ``ParsingException`` if the XML is not well-formed or is not a
        Final Draft document; no partial result is returned.
        """
        t0 = time.monotonic()
        if isinstance(content, str):
            content = content.encode("utf-8")

        handler = _FDXHandler()
        try:
            parse_xml_events(content, handler, max_size=self.max_size)
        except ParsingException as exc:
            logger.warning("FDX parse failed for %s: %s", filename or "<memory>", exc.message)
            raise ParsingException(
                f"Unable to parse FDX document: {exc.message}",
                details={**exc.details, "filename": filename},
            ) from exc

        self._validate_fdx_structure(handler)

        title_page: tuple[TitlePageEntry, ...] = ()
        if handler.title_lines:
            title_page = (TitlePageEntry(key=TITLE_PAGE_KEY, values=tuple(handler.title_lines)),)

        elapsed = time.monotonic() - t0
        logger.info(
            "FDX parsed: %d elements, %d title page lines in %.3fs",
            len(handler.elements),
            len(handler.title_lines),
            elapsed,
        )

        return ParsedDocument(
            elements=tuple(handler.elements),
            title_page=title_page,
            filename=filename,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_fdx_structure(handler: _FDXHandler) -> None:
        """Ensure the document looks like a valid FDX document."""
        if handler.root != _ROOT:
            raise ParsingException(
                "Unable to parse FDX document: not a valid FDX file, "
                f"expected root <{_ROOT}>, got <{handler.root}>",
                details={"root_tag": handler.root},
            )
        if not handler.saw_script_content:
            raise ParsingException(
                "Unable to parse FDX document: no <Content> element",
                details={"root_tag": handler.root},
            )
