"""Abstract base class for script parsers and parser factory."""

from abc import ABC, abstractmethod
from pathlib import PurePath

from core.exceptions import ParsingException
from core.models import ParsedDocument, ScriptFormat

# File extensions handled by each format
_EXTENSIONS: dict[str, ScriptFormat] = {
    ".fountain": ScriptFormat.FOUNTAIN,
    ".spmd": ScriptFormat.FOUNTAIN,
    ".txt": ScriptFormat.FOUNTAIN,
    ".fdx": ScriptFormat.FDX,
}


class ParserBase(ABC):
    """Interface that every script parser must implement.

    Parsing is a synchronous, single-pass transformation: all working state
    lives for one ``parse`` call and the returned document is immutable, so a
    parser instance may be shared between threads.
    """

    @abstractmethod
    def parse(self, content: bytes | str, filename: str | None = None) -> ParsedDocument:
        """Parse a complete document and return a ``ParsedDocument``.

        Implementations MUST NOT write anything to disk.
        """

    @property
    @abstractmethod
    def supported_format(self) -> ScriptFormat:
        """The ``ScriptFormat`` this parser handles."""


def get_parser(fmt: str, *, max_xml_size: int | None = None) -> ParserBase:
    """Return the appropriate parser for *fmt* (e.g. ``"fountain"``, ``"fdx"``).

    ``max_xml_size`` overrides the payload limit of the XML-based parser.
    Raises ``ParsingException`` for unsupported formats.
    """
    from parsers.fdx import FDXParser
    from parsers.fountain import FountainParser

    _registry: dict[str, type[ParserBase]] = {
        ScriptFormat.FOUNTAIN.value: FountainParser,
        ScriptFormat.FDX.value: FDXParser,
    }

    parser_cls = _registry.get(fmt.lower())
    if parser_cls is None:
        raise ParsingException(
            f"Unsupported script format: {fmt}",
            details={"format": fmt, "supported": list(_registry.keys())},
        )
    if parser_cls is FDXParser and max_xml_size is not None:
        return FDXParser(max_size=max_xml_size)
    return parser_cls()


def format_for_path(path: str | PurePath) -> ScriptFormat:
    """Infer the ``ScriptFormat`` from a file name's extension."""
    suffix = PurePath(path).suffix.lower()
    fmt = _EXTENSIONS.get(suffix)
    if fmt is None:
        raise ParsingException(
            f"Unsupported file type: {suffix or '(none)'}",
            details={"path": str(path), "supported": sorted(_EXTENSIONS)},
        )
    return fmt


def parser_for_path(path: str | PurePath) -> ParserBase:
    """Return the parser matching a file name's extension."""
    return get_parser(format_for_path(path).value)
