"""Load screenplay documents from disk."""

import logging
from pathlib import Path

from core.exceptions import NotFoundException
from core.models import ParsedDocument
from parsers.base import ParserBase, parser_for_path
from parsers.fountain import normalize_source, split_title_page

logger = logging.getLogger(__name__)


def load_document(path: str | Path, *, parser: ParserBase | None = None) -> ParsedDocument:
    """Read *path* and parse it with the parser matching its extension.

    Pass *parser* to override the extension lookup.  The returned document's
    ``filename`` is the file's name without its directory.
    """
    path = Path(path)
    if parser is None:
        parser = parser_for_path(path)

    try:
        content = path.read_bytes()
    except FileNotFoundError:
        raise NotFoundException(
            f"Screenplay file not found: {path}",
            details={"path": str(path)},
        )

    logger.debug("Loaded %d bytes from %s", len(content), path)
    return parser.parse(content, filename=path.name)


def strip_title_page(text: str) -> str:
    """Return the body of a Fountain document without its title-page block."""
    _, body = split_title_page(normalize_source(text))
    return body.strip("\n")
