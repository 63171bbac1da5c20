"""Scene location index.

Groups the scene headings of a ``ParsedDocument`` by normalized location so
that scenes written as ``INT. Will's House - DAY`` and
``INT. WILL'S HOUSE - NIGHT`` land in the same group.
"""

import logging
from typing import Any

from core.models import (
    ElementKind,
    LocationGroup,
    ParsedDocument,
    SceneWithLocation,
)
from parsers.scene_location import parse_scene_location

logger = logging.getLogger(__name__)


def extract_scene_locations(document: ParsedDocument) -> list[SceneWithLocation]:
    """Return every scene heading with its parsed location, in document order."""
    scenes: list[SceneWithLocation] = []
    for index, element in enumerate(document.elements):
        if element.kind != ElementKind.SCENE_HEADING:
            continue
        scenes.append(
            SceneWithLocation(
                location=parse_scene_location(element.text),
                scene_index=index,
                scene_heading=element,
                scene_number=element.scene_number,
            )
        )
    return scenes


def group_scenes_by_location(document: ParsedDocument) -> dict[str, LocationGroup]:
    """Group scenes by ``SceneLocation.location_key``.

    The first scene of each group supplies its representative location.
    Groups are inserted in order of first appearance.
    """
    groups: dict[str, LocationGroup] = {}
    for scene in extract_scene_locations(document):
        key = scene.location.location_key
        group = groups.get(key)
        if group is None:
            groups[key] = LocationGroup(
                location_key=key,
                representative_location=scene.location,
                scenes=[scene],
            )
        else:
            group.scenes.append(scene)

    logger.debug("Grouped scenes into %d locations", len(groups))
    return groups


def locations_by_frequency(document: ParsedDocument) -> list[LocationGroup]:
    """Location groups, most scenes first (ties keep appearance order)."""
    return sorted(
        group_scenes_by_location(document).values(),
        key=lambda group: group.scene_count,
        reverse=True,
    )


def locations_by_appearance(document: ParsedDocument) -> list[LocationGroup]:
    """Location groups ordered by the index of their first scene."""
    return sorted(
        group_scenes_by_location(document).values(),
        key=lambda group: group.scenes[0].scene_index,
    )


def scenes_at(document: ParsedDocument, location_key: str) -> list[SceneWithLocation]:
    group = group_scenes_by_location(document).get(location_key)
    return list(group.scenes) if group else []


def all_locations(document: ParsedDocument) -> list[str]:
    """Sorted list of distinct location keys."""
    return sorted(group_scenes_by_location(document))


def location_breakdown(document: ParsedDocument) -> list[dict[str, Any]]:
    """JSON-ready summary of every location, in order of first appearance."""
    breakdown: list[dict[str, Any]] = []
    for group in locations_by_appearance(document):
        breakdown.append(
            {
                "location": group.representative_location.full_location,
                "location_key": group.location_key,
                "scene_count": group.scene_count,
                "lighting": sorted(lt.standard_abbreviation for lt in group.lighting_types),
                "times_of_day": sorted(group.times_of_day),
                "scenes": [
                    {
                        "scene_index": scene.scene_index,
                        "scene_number": scene.scene_number,
                        "heading": scene.scene_heading.text,
                        "lighting": scene.location.lighting.standard_abbreviation,
                        "time_of_day": scene.location.time_of_day,
                        "modifiers": list(scene.location.modifiers),
                    }
                    for scene in group.scenes
                ],
            }
        )
    return breakdown
