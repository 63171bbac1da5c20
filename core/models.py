"""Pydantic models for parsed screenplays and API request/response schemas."""

import base64
import binascii
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

# 10 MB -- shared by the request validators and the XML size guard
MAX_DOCUMENT_BYTES = 10 * 1024 * 1024


class ScriptFormat(str, Enum):
    """Supported script formats."""

    FOUNTAIN = "fountain"  # Plain-text Fountain markup
    FDX = "fdx"  # Final Draft XML


# ---------------------------------------------------------------------------
# Element model -- produced by every parser, immutable once returned
# ---------------------------------------------------------------------------


class ElementKind(str, Enum):
    """Structural type of a screenplay element.

    Values are the display labels Final Draft uses for paragraph types, so an
    FDX ``Type`` attribute maps onto a member with ``ElementKind(label)``.
    """

    SCENE_HEADING = "Scene Heading"
    ACTION = "Action"
    CHARACTER = "Character"
    DIALOGUE = "Dialogue"
    PARENTHETICAL = "Parenthetical"
    TRANSITION = "Transition"
    SHOT = "Shot"
    SECTION_HEADING = "Section Heading"
    SYNOPSIS = "Synopsis"
    CENTERED = "Centered"
    PAGE_BREAK = "Page Break"
    LYRIC = "Lyrics"
    NOTE = "Note"
    COMMENT = "Comment"
    BONEYARD = "Boneyard"
    TITLE_PAGE_KEY = "Title Page Key"
    TITLE_PAGE_VALUE = "Title Page Value"
    DUAL_DIALOGUE_BEGIN = "Dual Dialogue Begin"
    DUAL_DIALOGUE_END = "Dual Dialogue End"


class ScreenplayElement(BaseModel):
    """One line-group of screenplay content."""

    model_config = ConfigDict(frozen=True)

    kind: ElementKind = Field(..., description="Structural element type")
    text: str = Field(default="", description="Normalized element text")
    section_level: int = Field(
        default=0, ge=0, le=6, description="Outline depth (1-6) for section headings, else 0"
    )
    is_centered: bool = Field(default=False, description="Centered markup (> text <)")
    is_dual_dialogue: bool = Field(default=False, description="Part of a dual-dialogue pair")
    scene_number: str | None = Field(None, description="Scene number label (headings only)")
    scene_id: str | None = Field(None, description="Stable scene identifier (headings only)")

    @model_validator(mode="after")
    def validate_kind_specific_fields(self) -> "ScreenplayElement":
        """Keep variant-specific fields on the variants they belong to."""
        if self.kind != ElementKind.SCENE_HEADING and (
            self.scene_number is not None or self.scene_id is not None
        ):
            raise ValueError("scene_number/scene_id are only valid on scene headings")
        if self.kind == ElementKind.SECTION_HEADING:
            if self.section_level < 1:
                raise ValueError("Section headings need a level between 1 and 6")
        elif self.section_level:
            raise ValueError("section_level is only valid on section headings")
        return self

    @property
    def scene_location(self) -> "SceneLocation | None":
        """Structured location parsed from a scene heading's text."""
        if self.kind != ElementKind.SCENE_HEADING:
            return None
        from parsers.scene_location import parse_scene_location

        return parse_scene_location(self.text)

    def __str__(self) -> str:
        label = self.kind.value
        if self.is_centered:
            label += " (centered)"
        elif self.is_dual_dialogue:
            label += " (dual dialogue)"
        elif self.section_level:
            label += f" ({self.section_level})"
        return f"{label}: {self.text}"


class TitlePageEntry(BaseModel):
    """A single title-page key with its ordered values."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Lower-cased key ('author' becomes 'authors')")
    values: tuple[str, ...] = Field(default=(), description="Values in input order")


class ParsedDocument(BaseModel):
    """Complete parsed screenplay -- created once per parse, never mutated."""

    model_config = ConfigDict(frozen=True)

    elements: tuple[ScreenplayElement, ...] = Field(
        default=(), description="Screenplay elements in document order"
    )
    title_page: tuple[TitlePageEntry, ...] = Field(
        default=(), description="Title page entries in document order"
    )
    filename: str | None = Field(None, description="Display filename of the source")
    suppress_scene_numbers: bool = Field(
        default=False, description="Hint for consumers to hide scene numbers"
    )

    def title_values(self, key: str) -> list[str]:
        """Return every value recorded under *key*, across duplicate entries."""
        wanted = key.lower()
        return [value for entry in self.title_page if entry.key == wanted for value in entry.values]

    def scene_headings(self) -> list[ScreenplayElement]:
        return [el for el in self.elements if el.kind == ElementKind.SCENE_HEADING]


# ---------------------------------------------------------------------------
# Scene location -- derived from heading text, never stored on the element
# ---------------------------------------------------------------------------


class SceneLighting(str, Enum):
    """Interior/exterior designation from scene headings."""

    INTERIOR = "INT"
    EXTERIOR = "EXT"
    INTERIOR_EXTERIOR = "INT/EXT"
    UNKNOWN = "UNKNOWN"

    @property
    def description(self) -> str:
        return {
            SceneLighting.INTERIOR: "Interior",
            SceneLighting.EXTERIOR: "Exterior",
            SceneLighting.INTERIOR_EXTERIOR: "Interior/Exterior",
            SceneLighting.UNKNOWN: "Unknown",
        }[self]

    @property
    def standard_abbreviation(self) -> str:
        return "" if self is SceneLighting.UNKNOWN else self.value


_APOSTROPHE_VARIANTS = ("\u2018", "\u2019")


class SceneLocation(BaseModel):
    """Structured location parsed from a scene heading."""

    model_config = ConfigDict(frozen=True)

    lighting: SceneLighting = Field(default=SceneLighting.UNKNOWN, description="INT/EXT designation")
    scene: str = Field(..., description="Primary place, e.g. 'COFFEE SHOP'")
    setup: str | None = Field(None, description="Sub-place, e.g. 'KITCHEN'")
    time_of_day: str | None = Field(None, description="Time segment, e.g. 'DAY'")
    modifiers: tuple[str, ...] = Field(
        default=(), description="Parenthesized/bracketed annotations, left to right"
    )
    original_text: str = Field(..., description="Heading text exactly as given")

    @property
    def full_location(self) -> str:
        if self.setup:
            return f"{self.scene} - {self.setup}"
        return self.scene

    @property
    def location_key(self) -> str:
        """Grouping key that ignores case and apostrophe glyphs."""
        key = self.full_location.upper().strip()
        for variant in _APOSTROPHE_VARIANTS:
            key = key.replace(variant, "'")
        return key

    def __str__(self) -> str:
        parts: list[str] = []
        if self.lighting != SceneLighting.UNKNOWN:
            parts.append(self.lighting.standard_abbreviation)
        parts.append(self.full_location)
        if self.time_of_day:
            parts.append(f"- {self.time_of_day}")
        if self.modifiers:
            parts.append(f"({', '.join(self.modifiers)})")
        return " ".join(parts)


# ---------------------------------------------------------------------------
# Analysis models -- derived from a ParsedDocument on demand
# ---------------------------------------------------------------------------


class SceneWithLocation(BaseModel):
    """A scene heading paired with its parsed location."""

    model_config = ConfigDict(frozen=True)

    location: SceneLocation = Field(..., description="Parsed location")
    scene_index: int = Field(..., ge=0, description="Index of the heading in the element list")
    scene_heading: ScreenplayElement = Field(..., description="The heading element")
    scene_number: str | None = Field(None, description="Scene number, if any")


class LocationGroup(BaseModel):
    """All scenes that share a location key."""

    location_key: str = Field(..., description="Normalized grouping key")
    representative_location: SceneLocation = Field(
        ..., description="Location of the first scene in the group"
    )
    scenes: list[SceneWithLocation] = Field(default_factory=list, description="Scenes in order")

    @property
    def scene_count(self) -> int:
        return len(self.scenes)

    @property
    def lighting_types(self) -> set[SceneLighting]:
        return {scene.location.lighting for scene in self.scenes}

    @property
    def times_of_day(self) -> set[str]:
        return {scene.location.time_of_day for scene in self.scenes if scene.location.time_of_day}

    @property
    def has_multiple_lighting_types(self) -> bool:
        return len(self.lighting_types) > 1


class CharacterInfo(BaseModel):
    """Aggregated character information across the script."""

    name: str = Field(..., description="Character name")
    line_count: int = Field(default=0, description="Dialogue elements spoken")
    word_count: int = Field(default=0, description="Words across all dialogue")
    scene_ids: list[str] = Field(
        default_factory=list, description="Scene IDs where the character speaks"
    )


# Request Models


class ParseRequest(BaseModel):
    """Request model for the parse endpoints."""

    content: str = Field(
        ...,
        description="Base64-encoded screenplay document",
        min_length=1,
    )
    format: ScriptFormat = Field(..., description="Format of the document")
    filename: str | None = Field(None, description="Optional display filename", max_length=255)

    @model_validator(mode="after")
    def validate_content(self) -> "ParseRequest":
        """Validate base64 encoding and reject binary payloads.

        Size is enforced by the router against the configured limit.
        """
        if not self.content.strip():
            raise ValueError("Document content cannot be empty")

        try:
            decoded = base64.b64decode(self.content, validate=True)
        except binascii.Error:
            raise ValueError("Invalid base64 encoding")

        # Both formats are text -- reject binary payloads early
        if b"\x00" in decoded[:1000]:
            raise ValueError("Document contains invalid null bytes")

        return self

    def decoded_content(self) -> bytes:
        return base64.b64decode(self.content, validate=True)


# Response Models


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy", description="Service health status")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Response timestamp")
    version: str = Field(default="0.1.0", description="API version")


class ParseResponse(BaseModel):
    """Response for a parsed document."""

    document: ParsedDocument = Field(..., description="Parsed screenplay")
    format: ScriptFormat = Field(..., description="Source format")
    element_count: int = Field(..., description="Number of elements")
    scene_count: int = Field(..., description="Number of scene headings")
    parsing_time_seconds: float = Field(..., description="Time taken to parse")


class LocationsResponse(BaseModel):
    """Location breakdown of a parsed document."""

    filename: str | None = Field(None, description="Display filename of the source")
    locations: list[dict[str, Any]] = Field(
        default_factory=list, description="Location groups in order of first appearance"
    )


class CharactersResponse(BaseModel):
    """Character index of a parsed document."""

    filename: str | None = Field(None, description="Display filename of the source")
    characters: list[CharacterInfo] = Field(default_factory=list, description="Character index")


# Error Response Models


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: str | None = Field(None, description="Field that caused the error")
    message: str = Field(..., description="Error message")
    error_code: str | None = Field(None, description="Error code for programmatic handling")


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Human-readable error message")
    details: list[ErrorDetail] = Field(default_factory=list, description="Detailed error info")
    request_id: str | None = Field(None, description="Request tracking ID")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Error timestamp")
