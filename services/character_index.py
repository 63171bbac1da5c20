"""Character index built from character cues and the dialogue that follows them."""

import logging
import re

from core.models import CharacterInfo, ElementKind, ParsedDocument

logger = logging.getLogger(__name__)

# Trailing extensions such as (V.O.), (O.S.), (CONT'D)
_EXTENSION_RE = re.compile(r"\s*\([^)]*\)\s*$")


def normalize_character_name(cue: str) -> str:
    """Reduce a character cue to the bare speaker name.

    ``@McCLANE (V.O.) ^`` becomes ``McCLANE``.
    """
    name = cue.strip().lstrip("@").rstrip("^").strip()
    while True:
        stripped = _EXTENSION_RE.sub("", name)
        if stripped == name:
            break
        name = stripped
    return name.strip()


def build_character_index(document: ParsedDocument) -> list[CharacterInfo]:
    """Aggregate dialogue per speaker, in order of first appearance."""
    characters: dict[str, CharacterInfo] = {}
    speaker: CharacterInfo | None = None
    scene_id: str | None = None

    for element in document.elements:
        if element.kind == ElementKind.SCENE_HEADING:
            scene_id = element.scene_id
            speaker = None
        elif element.kind == ElementKind.CHARACTER:
            name = normalize_character_name(element.text)
            if not name:
                speaker = None
                continue
            speaker = characters.setdefault(name, CharacterInfo(name=name))
            if scene_id is not None and scene_id not in speaker.scene_ids:
                speaker.scene_ids.append(scene_id)
        elif element.kind == ElementKind.DIALOGUE:
            if speaker is not None:
                speaker.line_count += 1
                speaker.word_count += len(element.text.split())
        elif element.kind not in (ElementKind.PARENTHETICAL, ElementKind.LYRIC):
            speaker = None

    logger.debug("Indexed %d characters", len(characters))
    return list(characters.values())
