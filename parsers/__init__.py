"""Screenplay parsers for Fountain and FDX (Final Draft XML) formats."""

from parsers.base import ParserBase, get_parser
from parsers.fdx import FDXParser
from parsers.fountain import FountainParser
from parsers.scene_location import parse_scene_location
from parsers.title_page import parse_title_page

__all__ = [
    "FDXParser",
    "FountainParser",
    "ParserBase",
    "get_parser",
    "parse_scene_location",
    "parse_title_page",
]
