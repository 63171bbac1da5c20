"""Tests for the FDX parser, secure XML parsing, and the parser factory."""

from pathlib import Path
from xml.sax.handler import ContentHandler

import pytest

from core.exceptions import ParsingException
from core.models import ElementKind, ScriptFormat
from parsers.base import ParserBase, format_for_path, get_parser, parser_for_path
from parsers.fdx import TITLE_PAGE_KEY, FDXParser
from parsers.fountain import FountainParser
from parsers.secure_xml import parse_xml_events

FIXTURES = Path(__file__).parent / "fixtures" / "fdx"


def _read_fixture(name: str) -> bytes:
    return (FIXTURES / name).read_bytes()


class _ElementCounter(ContentHandler):
    def __init__(self):
        super().__init__()
        self.names: list[str] = []

    def startElement(self, name, attrs):
        self.names.append(name)


# ===================================================================
# Secure XML
# ===================================================================


class TestSecureXML:
    """Tests for parsers.secure_xml.parse_xml_events."""

    def test_valid_xml(self):
        handler = _ElementCounter()
        parse_xml_events(b"<root><child>text</child></root>", handler)
        assert handler.names == ["root", "child"]

    def test_oversized_xml_rejected(self):
        content = b"<root>" + b"x" * 200 + b"</root>"
        with pytest.raises(ParsingException, match="size limit"):
            parse_xml_events(content, _ElementCounter(), max_size=100)

    def test_xxe_attack_blocked(self):
        content = _read_fixture("xxe_attack.fdx")
        with pytest.raises(ParsingException, match="forbidden"):
            parse_xml_events(content, _ElementCounter())

    def test_entity_bomb_blocked(self):
        content = _read_fixture("entity_bomb.fdx")
        with pytest.raises(ParsingException, match="forbidden"):
            parse_xml_events(content, _ElementCounter())

    def test_malformed_xml_raises(self):
        content = _read_fixture("malformed.fdx")
        with pytest.raises(ParsingException, match="Malformed XML") as exc_info:
            parse_xml_events(content, _ElementCounter())
        assert exc_info.value.details["reason"] == "parse_error"
        assert "line" in exc_info.value.details


# ===================================================================
# FDX Parser
# ===================================================================


class TestFDXParser:
    """Tests for parsers.fdx.FDXParser."""

    def test_simple_script(self):
        doc = FDXParser().parse(_read_fixture("simple.fdx"), filename="simple.fdx")

        assert doc.filename == "simple.fdx"
        assert [el.kind for el in doc.elements] == [
            ElementKind.SCENE_HEADING,
            ElementKind.ACTION,
            ElementKind.CHARACTER,
            ElementKind.PARENTHETICAL,
            ElementKind.DIALOGUE,
            ElementKind.TRANSITION,
            ElementKind.SCENE_HEADING,
            ElementKind.ACTION,
            ElementKind.PAGE_BREAK,
            ElementKind.ACTION,
        ]
        assert doc.title_page == ()

    def test_text_runs_are_concatenated(self):
        doc = FDXParser().parse(_read_fixture("simple.fdx"))
        assert doc.elements[1].text == "Steam rises from a row of battered espresso machines."

    def test_scene_numbers_and_ids(self):
        doc = FDXParser().parse(_read_fixture("simple.fdx"))
        headings = doc.scene_headings()

        assert [h.text for h in headings] == [
            "INT. COFFEE SHOP - KITCHEN - DAY",
            "EXT. PARKING LOT - NIGHT",
        ]
        assert [h.scene_number for h in headings] == ["1", "2A"]
        assert all(h.scene_id for h in headings)
        assert headings[0].scene_id != headings[1].scene_id

    def test_empty_paragraph_dropped_but_page_break_kept(self):
        doc = FDXParser().parse(_read_fixture("simple.fdx"))
        page_breaks = [el for el in doc.elements if el.kind == ElementKind.PAGE_BREAK]

        assert len(page_breaks) == 1
        assert page_breaks[0].text == ""
        assert all(el.text.strip() for el in doc.elements if el.kind != ElementKind.PAGE_BREAK)

    def test_unknown_type_and_centered(self):
        doc = FDXParser().parse(_read_fixture("simple.fdx"))
        shot, centered = doc.elements[7], doc.elements[9]

        assert shot.kind == ElementKind.ACTION
        assert shot.text == "CLOSE ON the neon sign."
        assert centered.kind == ElementKind.ACTION
        assert centered.is_centered
        assert centered.text == "THE END"

    def test_only_headings_carry_scene_fields(self):
        doc = FDXParser().parse(_read_fixture("simple.fdx"))
        for el in doc.elements:
            if el.kind != ElementKind.SCENE_HEADING:
                assert el.scene_number is None
                assert el.scene_id is None

    def test_title_page(self):
        doc = FDXParser().parse(_read_fixture("title_page.fdx"))

        assert len(doc.title_page) == 1
        assert doc.title_page[0].key == TITLE_PAGE_KEY
        assert doc.title_page[0].values == ("The Night Shift", "Written by", "Sam Okafor")
        assert doc.title_values("Title Page") == ["The Night Shift", "Written by", "Sam Okafor"]

    def test_title_page_paragraphs_not_in_elements(self):
        doc = FDXParser().parse(_read_fixture("title_page.fdx"))
        assert all("Okafor" not in el.text for el in doc.elements)

    def test_section_levels(self):
        doc = FDXParser().parse(_read_fixture("title_page.fdx"))
        sections = [el for el in doc.elements if el.kind == ElementKind.SECTION_HEADING]

        assert [(s.text, s.section_level) for s in sections] == [("Act One", 2), ("Act Two", 6)]

    def test_dual_dialogue(self):
        doc = FDXParser().parse(_read_fixture("dual_dialogue.fdx"))
        kinds_and_dual = [(el.kind, el.text, el.is_dual_dialogue) for el in doc.elements]

        assert kinds_and_dual == [
            (ElementKind.SCENE_HEADING, "INT. KITCHEN - MORNING", False),
            (ElementKind.CHARACTER, "BRICK", True),
            (ElementKind.DIALOGUE, "Screw retirement.", True),
            (ElementKind.CHARACTER, "STEEL", True),
            (ElementKind.DIALOGUE, "Screw retirement.", True),
            (ElementKind.CHARACTER, "BRICK", True),
            (ElementKind.ACTION, "They clink mugs.", False),
        ]

    def test_accepts_str_input(self):
        doc = FDXParser().parse(_read_fixture("simple.fdx").decode("utf-8"))
        assert len(doc.elements) == 10

    def test_invalid_root_tag_raises(self):
        with pytest.raises(ParsingException) as exc_info:
            FDXParser().parse(_read_fixture("wrong_root.xml"))
        assert exc_info.value.message.startswith("Unable to parse FDX document")
        assert "not a valid FDX file" in exc_info.value.message

    def test_missing_content_raises(self):
        with pytest.raises(ParsingException) as exc_info:
            FDXParser().parse(_read_fixture("no_content.fdx"))
        assert exc_info.value.message.startswith("Unable to parse FDX document")
        assert "no <Content>" in exc_info.value.message

    def test_malformed_raises_without_partial_result(self):
        with pytest.raises(ParsingException, match="Unable to parse FDX document") as exc_info:
            FDXParser().parse(_read_fixture("malformed.fdx"), filename="malformed.fdx")
        assert exc_info.value.details["filename"] == "malformed.fdx"

    def test_xxe_attack_blocked(self):
        with pytest.raises(ParsingException):
            FDXParser().parse(_read_fixture("xxe_attack.fdx"))

    def test_entity_bomb_blocked(self):
        with pytest.raises(ParsingException):
            FDXParser().parse(_read_fixture("entity_bomb.fdx"))

    def test_parse_is_repeatable(self):
        """A parser instance keeps no state between calls."""
        parser = FDXParser()
        first = parser.parse(_read_fixture("simple.fdx"))
        second = parser.parse(_read_fixture("simple.fdx"))

        assert [(el.kind, el.text, el.scene_number) for el in first.elements] == [
            (el.kind, el.text, el.scene_number) for el in second.elements
        ]


# ===================================================================
# Parser factory
# ===================================================================


class TestParserFactory:
    """Tests for parsers.base.get_parser and extension lookup."""

    def test_fdx_parser(self):
        parser = get_parser("fdx")
        assert isinstance(parser, FDXParser)
        assert isinstance(parser, ParserBase)
        assert parser.supported_format == ScriptFormat.FDX

    def test_fountain_parser(self):
        parser = get_parser("fountain")
        assert isinstance(parser, FountainParser)
        assert parser.supported_format == ScriptFormat.FOUNTAIN

    def test_unsupported_format(self):
        with pytest.raises(ParsingException, match="Unsupported script format"):
            get_parser("pdf")

    def test_case_insensitive(self):
        assert isinstance(get_parser("FDX"), FDXParser)

    def test_max_xml_size_reaches_fdx_parser(self):
        parser = get_parser("fdx", max_xml_size=100)
        assert parser.max_size == 100
        with pytest.raises(ParsingException, match="exceeds size limit") as exc_info:
            parser.parse(_read_fixture("simple.fdx"))
        assert exc_info.value.details["max_size"] == 100

    def test_max_xml_size_ignored_for_fountain(self):
        assert isinstance(get_parser("fountain", max_xml_size=100), FountainParser)

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("draft.fountain", ScriptFormat.FOUNTAIN),
            ("draft.SPMD", ScriptFormat.FOUNTAIN),
            ("notes/draft.txt", ScriptFormat.FOUNTAIN),
            ("draft.fdx", ScriptFormat.FDX),
        ],
    )
    def test_format_for_path(self, name, expected):
        assert format_for_path(name) == expected

    def test_unknown_extension_raises(self):
        with pytest.raises(ParsingException, match="Unsupported file type"):
            format_for_path("draft.pdf")

    def test_parser_for_path(self):
        assert isinstance(parser_for_path("draft.fdx"), FDXParser)
