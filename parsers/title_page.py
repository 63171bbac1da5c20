"""Fountain title-page parser.

The title page is the leading block of a Fountain document, up to the first
blank line, made of ``Key: value`` directives::

    Title: Big Fish
    Credit: written by
    Author: John August
    Draft date:
        March 2003
        Revised

``Key:`` alone opens a multi-line value block; ``Key: value`` is a complete
single-value entry.
"""

import re

from core.models import TitlePageEntry

_DIRECTIVE_RE = re.compile(r"^([^\t\s][^:]+):([\t ]*)$")
_INLINE_RE = re.compile(r"^([^\t\s][^:]+):\s*([^\t\s].*)$")

_KEY_ALIASES = {"author": "authors"}


def _canonical_key(raw: str) -> str:
    key = raw.lower()
    return _KEY_ALIASES.get(key, key)


def parse_title_page(block: str) -> list[TitlePageEntry] | None:
    """Parse the leading block of a document into title-page entries.

    Returns ``None`` when the block holds no directive line, in which case it
    is ordinary body content.  Duplicate keys stay separate entries.
    """
    entries: list[TitlePageEntry] = []
    found = False
    open_key: str | None = None
    open_values: list[str] = []

    for line in block.split("\n"):
        directive = _DIRECTIVE_RE.match(line)
        if directive:
            found = True
            if open_key is not None:
                entries.append(TitlePageEntry(key=open_key, values=tuple(open_values)))
            open_key = _canonical_key(directive.group(1))
            open_values = []
            continue

        inline = _INLINE_RE.match(line)
        if inline:
            found = True
            if open_key is not None:
                entries.append(TitlePageEntry(key=open_key, values=tuple(open_values)))
                open_key = None
                open_values = []
            entries.append(
                TitlePageEntry(
                    key=_canonical_key(inline.group(1)),
                    values=(inline.group(2).rstrip(),),
                )
            )
            continue

        # Continuation lines only count while a multi-line key is open
        if open_key is not None:
            open_values.append(line.strip())

    if not found:
        return None

    if open_key is not None:
        entries.append(TitlePageEntry(key=open_key, values=tuple(open_values)))
    return entries
