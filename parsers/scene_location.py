"""Scene heading (slug line) location parser.

Parses strings like:
    INT. COFFEE SHOP - KITCHEN - DAY (1995) -> (INT, "COFFEE SHOP", "KITCHEN", "DAY", ["1995"])
    EXT. PARK - DAY                         -> (EXT, "PARK", None, "DAY", [])
    I/E. WINDOW - DUSK                      -> (INT/EXT, "WINDOW", None, "DUSK", [])
"""

import re

from core.models import SceneLighting, SceneLocation

# ---------------------------------------------------------------------------
# Lighting prefixes (order matters -- compound forms first)
# ---------------------------------------------------------------------------

_BOUNDARY = r"(?:\.|(?=\s|$))"

_LIGHTING_PREFIXES: list[tuple[re.Pattern[str], SceneLighting]] = [
    (re.compile(r"^INT\./EXT" + _BOUNDARY, re.IGNORECASE), SceneLighting.INTERIOR_EXTERIOR),
    (re.compile(r"^INT/EXT" + _BOUNDARY, re.IGNORECASE), SceneLighting.INTERIOR_EXTERIOR),
    (re.compile(r"^I/E" + _BOUNDARY, re.IGNORECASE), SceneLighting.INTERIOR_EXTERIOR),
    (re.compile(r"^INT" + _BOUNDARY, re.IGNORECASE), SceneLighting.INTERIOR),
    (re.compile(r"^EXT" + _BOUNDARY, re.IGNORECASE), SceneLighting.EXTERIOR),
]

_TIME_SEPARATOR = " - "

# Parenthesized or bracketed annotation inside the time segment
_MODIFIER_RE = re.compile(r"[(\[]([^)\]]+)[)\]]")

# ---------------------------------------------------------------------------
# Sub-location keywords (multi-word phrases before the words they contain)
# ---------------------------------------------------------------------------

_SETUP_KEYWORDS: tuple[str, ...] = (
    "MASTER BEDROOM",
    "FRONT HALL",
    "BACK YARD",
    "FRONT YARD",
    "LIVING ROOM",
    "DINING ROOM",
    "KITCHEN",
    "BEDROOM",
    "BATHROOM",
    "HALLWAY",
    "GARAGE",
    "BASEMENT",
    "ATTIC",
    "OFFICE",
    "LOBBY",
    "ROOM",
    "ENTRANCE",
    "EXIT",
)


def _split_lighting(text: str) -> tuple[SceneLighting, str]:
    for pattern, lighting in _LIGHTING_PREFIXES:
        match = pattern.match(text)
        if match:
            return lighting, text[match.end() :].strip()
    return SceneLighting.UNKNOWN, text


def _extract_modifiers(time_part: str) -> tuple[str | None, tuple[str, ...]]:
    """Pull ``(...)``/``[...]`` groups out of the time segment.

    Matches are consumed right to left and prepended, which leaves the
    modifiers in reading order.
    """
    modifiers: list[str] = []
    for match in reversed(list(_MODIFIER_RE.finditer(time_part))):
        modifiers.insert(0, match.group(1))
    remainder = _MODIFIER_RE.sub("", time_part).strip()
    return (remainder or None), tuple(modifiers)


def _split_setup(location: str) -> tuple[str, str | None]:
    """Split a location into the main place and a sub-place keyword."""
    if len(location.split()) < 2:
        return location, None

    upper = location.upper()
    for keyword in _SETUP_KEYWORDS:
        start = upper.find(keyword)
        if start == -1:
            continue
        before = location[:start].strip().rstrip("-").strip()
        if not before:
            # Keyword leads the location ("ROOM 101"): nothing to split off
            return location, None
        return before, location[start:].strip()
    return location, None


def parse_scene_location(heading: str) -> SceneLocation:
    """Parse a scene heading string into a ``SceneLocation``.

    Never fails: text without a recognizable lighting prefix yields
    ``SceneLighting.UNKNOWN`` and the whole text becomes the scene.
    """
    lighting, remainder = _split_lighting(heading.strip())

    parts = remainder.split(_TIME_SEPARATOR)
    if len(parts) >= 2:
        location = _TIME_SEPARATOR.join(parts[:-1])
        time_of_day, modifiers = _extract_modifiers(parts[-1])
    else:
        location = remainder
        time_of_day, modifiers = None, ()

    scene, setup = _split_setup(location.strip())

    return SceneLocation(
        lighting=lighting,
        scene=scene,
        setup=setup,
        time_of_day=time_of_day,
        modifiers=modifiers,
        original_text=heading,
    )
