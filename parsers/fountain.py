"""Fountain (.fountain) plain-text screenplay parser.

The body is classified line by line against an ordered rule table: the first
rule whose predicate matches a line handles it.  Scanning state (blank-line
count, open dialogue block, open boneyard) lives in a ``_ScanState`` created
per call, so a ``FountainParser`` instance holds nothing between parses.

Malformed input never raises; anything that matches no specific rule ends up
as Action.
"""

import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from uuid import uuid4

from core.models import (
    ElementKind,
    ParsedDocument,
    ScreenplayElement,
    ScriptFormat,
    TitlePageEntry,
)
from parsers.base import ParserBase
from parsers.title_page import parse_title_page

logger = logging.getLogger(__name__)

_LINE_ENDINGS_RE = re.compile(r"\r\n|\r")
_LEADING_BLANK_LINES_RE = re.compile(r"^\s*\n")

_BEAT_RE = re.compile(r"\s{2}")
_WHITESPACE_RE = re.compile(r"\s{2,}")
_BONEYARD_CLOSE_RE = re.compile(r"\*/\s*$")
_PAGE_BREAK_RE = re.compile(r"={3,}\s*")
_SYNOPSIS_RE = re.compile(r"^\s*=")
_COMMENT_RE = re.compile(r"\s*\[{2}\s*([^\]\n])+\s*\]{2}\s*")
_SECTION_RE = re.compile(r"^\s*(#+)(?!#)(.*\S.*)$")
_SCENE_NUMBER_RE = re.compile(r"#([^\n#]*?)#\s*$")
_SCENE_HEADING_RE = re.compile(
    r"^(INT|EXT|EST|(I|INT)\.?/(E|EXT)\.?)[.\-\s][^\n]+$", re.IGNORECASE
)
_OVER_BLACK_RE = re.compile(r"OVER BLACK", re.IGNORECASE)
_TRANSITION_RE = re.compile(r"[^a-z]*TO:")
_CHARACTER_RE = re.compile(r"[^a-z]+(\(cont'd\))?")
_DUAL_MARKER_RE = re.compile(r"\s*\^\s*$")
_PARENTHETICAL_RE = re.compile(r"^\s*\(")

_FIXED_TRANSITIONS = frozenset({"FADE OUT.", "CUT TO BLACK.", "FADE TO BLACK."})


@dataclass
class _ScanState:
    """Mutable scanning state for a single parse."""

    elements: list[ScreenplayElement] = field(default_factory=list)
    blank_lines: int = 0
    in_dialogue: bool = False
    in_boneyard: bool = False
    boneyard_lines: list[str] = field(default_factory=list)

    @property
    def last(self) -> ScreenplayElement | None:
        return self.elements[-1] if self.elements else None

    def emit(self, kind: ElementKind, text: str, **fields) -> None:
        self.elements.append(ScreenplayElement(kind=kind, text=text, **fields))
        self.blank_lines = 0

    def replace_last(self, **update) -> None:
        self.elements[-1] = self.elements[-1].model_copy(update=update)

    def append_dialogue(self, line: str) -> None:
        """Join *line* onto an adjacent Dialogue element, or start one."""
        last = self.last
        if last is not None and last.kind == ElementKind.DIALOGUE:
            self.replace_last(text=f"{last.text}\n{line}")
        else:
            self.elements.append(ScreenplayElement(kind=ElementKind.DIALOGUE, text=line))

    def mark_previous_character_dual(self) -> None:
        for index in range(len(self.elements) - 1, -1, -1):
            if self.elements[index].kind == ElementKind.CHARACTER:
                self.elements[index] = self.elements[index].model_copy(
                    update={"is_dual_dialogue": True}
                )
                return


@dataclass(frozen=True)
class _Line:
    text: str
    next_text: str | None


@dataclass(frozen=True)
class _Rule:
    """One row of the classification table.

    ``keeps_dialogue`` rules leave an open dialogue block open; every other
    rule closes it before its handler runs.
    """

    name: str
    matches: Callable[[_Line, _ScanState], bool]
    apply: Callable[[_Line, _ScanState], None]
    keeps_dialogue: bool = False


# ---------------------------------------------------------------------------
# Rule handlers
# ---------------------------------------------------------------------------


def _scene_heading(text: str) -> ScreenplayElement:
    """Build a heading, moving trailing ``#number#`` markup into scene_number."""
    scene_number = None
    match = _SCENE_NUMBER_RE.search(text)
    if match:
        scene_number = match.group(1)
        text = text[: match.start()]
    return ScreenplayElement(
        kind=ElementKind.SCENE_HEADING,
        text=text.strip(),
        scene_number=scene_number,
        scene_id=str(uuid4()),
    )


def _character(text: str, state: _ScanState) -> None:
    is_dual = bool(_DUAL_MARKER_RE.search(text))
    if is_dual:
        text = _DUAL_MARKER_RE.sub("", text)
        state.mark_previous_character_dual()
    state.emit(ElementKind.CHARACTER, text, is_dual_dialogue=is_dual)
    state.in_dialogue = True


def _apply_lyric(line: _Line, state: _ScanState) -> None:
    last = state.last
    if last is not None and last.kind == ElementKind.LYRIC and state.blank_lines > 0:
        # Keep the stanza break between two lyric groups
        state.elements.append(ScreenplayElement(kind=ElementKind.LYRIC, text=" "))
    state.emit(ElementKind.LYRIC, line.text)


def _apply_beat(line: _Line, state: _ScanState) -> None:
    state.append_dialogue(line.text)
    state.blank_lines = 0


def _apply_blank(line: _Line, state: _ScanState) -> None:
    state.blank_lines += 1


def _apply_boneyard_open(line: _Line, state: _ScanState) -> None:
    if _BONEYARD_CLOSE_RE.search(line.text):
        text = line.text.replace("/*", "").replace("*/", "").strip()
        state.emit(ElementKind.BONEYARD, text)
        return
    state.in_boneyard = True
    rest = line.text[2:].strip()
    if rest:
        state.boneyard_lines.append(rest)


def _apply_boneyard_close(line: _Line, state: _ScanState) -> None:
    rest = _BONEYARD_CLOSE_RE.sub("", line.text).strip()
    if rest:
        state.boneyard_lines.append(rest)
    state.emit(ElementKind.BONEYARD, "\n".join(state.boneyard_lines))
    state.in_boneyard = False
    state.boneyard_lines = []


def _apply_boneyard_line(line: _Line, state: _ScanState) -> None:
    state.boneyard_lines.append(line.text)


def _apply_synopsis(line: _Line, state: _ScanState) -> None:
    state.emit(ElementKind.SYNOPSIS, _SYNOPSIS_RE.sub("", line.text, count=1).strip())


def _apply_comment(line: _Line, state: _ScanState) -> None:
    text = line.text.replace("[[", "").replace("]]", "").strip()
    state.emit(ElementKind.COMMENT, text)


def _apply_section(line: _Line, state: _ScanState) -> None:
    match = _SECTION_RE.match(line.text)
    state.emit(
        ElementKind.SECTION_HEADING,
        match.group(2).strip(),
        section_level=min(len(match.group(1)), 6),
    )


def _apply_forced_scene_heading(line: _Line, state: _ScanState) -> None:
    state.elements.append(_scene_heading(line.text[1:]))
    state.blank_lines = 0


def _apply_scene_heading(line: _Line, state: _ScanState) -> None:
    state.elements.append(_scene_heading(line.text))
    state.blank_lines = 0


def _apply_forced_transition_or_centered(line: _Line, state: _ScanState) -> None:
    text = line.text
    if len(text) > 1 and text.endswith("<"):
        state.emit(ElementKind.ACTION, text[1:-1].strip(), is_centered=True)
    else:
        state.emit(ElementKind.TRANSITION, text[1:].strip())


def _apply_parenthetical(line: _Line, state: _ScanState) -> None:
    state.emit(ElementKind.PARENTHETICAL, line.text)


def _apply_dialogue(line: _Line, state: _ScanState) -> None:
    state.append_dialogue(line.text)
    state.blank_lines = 0


def _apply_merge(line: _Line, state: _ScanState) -> None:
    last = state.last
    update: dict = {"text": f"{last.text}\n{line.text}"}
    if last.kind == ElementKind.SCENE_HEADING:
        # A heading needs blank lines on both sides; without one it is action
        update.update(kind=ElementKind.ACTION, scene_number=None, scene_id=None)
    state.replace_last(**update)


def _is_character_cue(line: _Line, state: _ScanState) -> bool:
    return (
        state.blank_lines > 0
        and _CHARACTER_RE.fullmatch(line.text) is not None
        and bool(line.next_text)
    )


def _is_forced_scene_heading(text: str) -> bool:
    return len(text) > 1 and text[0] == "." and text[1] != "."


# Ordered classification table: first match wins.  Marker rules come before
# the boneyard capture rules, so a marked line inside an open boneyard is
# still classified.
_RULES: tuple[_Rule, ...] = (
    _Rule(
        "lyric",
        lambda ln, st: ln.text.startswith("~"),
        _apply_lyric,
        keeps_dialogue=True,
    ),
    _Rule(
        "forced_action",
        lambda ln, st: ln.text.startswith("!"),
        lambda ln, st: st.emit(ElementKind.ACTION, ln.text),
    ),
    _Rule(
        "forced_character",
        lambda ln, st: ln.text.startswith("@"),
        lambda ln, st: _character(ln.text, st),
    ),
    _Rule(
        "dialogue_beat",
        lambda ln, st: st.in_dialogue and _BEAT_RE.fullmatch(ln.text) is not None,
        _apply_beat,
        keeps_dialogue=True,
    ),
    _Rule(
        "whitespace_action",
        lambda ln, st: _WHITESPACE_RE.fullmatch(ln.text) is not None,
        lambda ln, st: st.emit(ElementKind.ACTION, ln.text),
    ),
    _Rule("blank", lambda ln, st: ln.text == "" and not st.in_boneyard, _apply_blank),
    _Rule("boneyard_open", lambda ln, st: ln.text.startswith("/*"), _apply_boneyard_open),
    _Rule(
        "boneyard_close",
        lambda ln, st: st.in_boneyard and _BONEYARD_CLOSE_RE.search(ln.text) is not None,
        _apply_boneyard_close,
    ),
    _Rule("boneyard_line", lambda ln, st: st.in_boneyard, _apply_boneyard_line),
    _Rule(
        "page_break",
        lambda ln, st: _PAGE_BREAK_RE.fullmatch(ln.text) is not None,
        lambda ln, st: st.emit(ElementKind.PAGE_BREAK, ln.text),
    ),
    _Rule("synopsis", lambda ln, st: ln.text.strip().startswith("="), _apply_synopsis),
    _Rule(
        "comment",
        lambda ln, st: st.blank_lines > 0 and _COMMENT_RE.fullmatch(ln.text) is not None,
        _apply_comment,
    ),
    _Rule("section", lambda ln, st: _SECTION_RE.match(ln.text) is not None, _apply_section),
    _Rule(
        "forced_scene_heading",
        lambda ln, st: _is_forced_scene_heading(ln.text),
        _apply_forced_scene_heading,
    ),
    _Rule(
        "scene_heading",
        lambda ln, st: st.blank_lines > 0
        and (
            _SCENE_HEADING_RE.match(ln.text) is not None
            or _OVER_BLACK_RE.fullmatch(ln.text) is not None
        ),
        _apply_scene_heading,
    ),
    _Rule(
        "transition",
        lambda ln, st: _TRANSITION_RE.fullmatch(ln.text) is not None
        or ln.text.lstrip() in _FIXED_TRANSITIONS,
        lambda ln, st: st.emit(ElementKind.TRANSITION, ln.text),
    ),
    _Rule(
        "forced_transition_or_centered",
        lambda ln, st: ln.text.startswith(">"),
        _apply_forced_transition_or_centered,
    ),
    _Rule("character", _is_character_cue, lambda ln, st: _character(ln.text, st)),
    _Rule(
        "parenthetical",
        lambda ln, st: st.in_dialogue
        and st.blank_lines == 0
        and _PARENTHETICAL_RE.match(ln.text) is not None,
        _apply_parenthetical,
        keeps_dialogue=True,
    ),
    _Rule("dialogue", lambda ln, st: st.in_dialogue, _apply_dialogue, keeps_dialogue=True),
    _Rule(
        "merge",
        lambda ln, st: st.blank_lines == 0 and st.last is not None,
        _apply_merge,
    ),
    _Rule("action", lambda ln, st: True, lambda ln, st: st.emit(ElementKind.ACTION, ln.text)),
)


def normalize_source(text: str) -> str:
    """Unify line endings, drop leading blank lines, and pad the end.

    The two trailing newlines guarantee a blank line after the title page
    and after the last element.
    """
    text = _LINE_ENDINGS_RE.sub("\n", text)
    text = _LEADING_BLANK_LINES_RE.sub("", text, count=1)
    return f"{text}\n\n"


def split_title_page(text: str) -> tuple[list[TitlePageEntry], str]:
    """Separate the title page (if any) from the body text."""
    top, separator, _ = text.partition("\n\n")
    if not separator:
        return [], text
    entries = parse_title_page(top)
    if entries is None:
        return [], text
    return entries, text[len(top) :]


def classify_lines(body: str) -> list[ScreenplayElement]:
    """Run the rule table over *body* and return the resulting elements.

    The body is scanned as if preceded by a blank line, so a scene heading or
    character cue on its first line is recognized.
    """
    lines = f"\n{body}".split("\n")
    state = _ScanState()

    for index, text in enumerate(lines):
        line = _Line(text=text, next_text=lines[index + 1] if index + 1 < len(lines) else None)
        if not state.in_boneyard and text.strip().startswith("#"):
            # Any "#" line ends the blank run, even one too bare to be a section
            state.blank_lines = 0
        for rule in _RULES:
            if not rule.matches(line, state):
                continue
            if not rule.keeps_dialogue:
                state.in_dialogue = False
            rule.apply(line, state)
            break

    if state.in_boneyard:
        # Unterminated boneyard: keep what was captured rather than lose it
        logger.debug("Unterminated boneyard at end of document")
        state.emit(ElementKind.BONEYARD, "\n".join(state.boneyard_lines).rstrip("\n"))
    return state.elements


class FountainParser(ParserBase):
    """Parser for Fountain plain-text screenplays."""

    @property
    def supported_format(self) -> ScriptFormat:
        return ScriptFormat.FOUNTAIN

    def parse(self, content: bytes | str, filename: str | None = None) -> ParsedDocument:
        """Parse a complete Fountain document into a ``ParsedDocument``."""
        t0 = time.monotonic()
        if isinstance(content, bytes):
            content = content.decode("utf-8-sig", errors="replace")

        text = normalize_source(content)
        title_page, body = split_title_page(text)
        elements = classify_lines(body)

        elapsed = time.monotonic() - t0
        logger.info(
            "Fountain parsed: %d elements, %d title page entries in %.3fs",
            len(elements),
            len(title_page),
            elapsed,
        )

        return ParsedDocument(
            elements=tuple(elements),
            title_page=tuple(title_page),
            filename=filename,
        )
