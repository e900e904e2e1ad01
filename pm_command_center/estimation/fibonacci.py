from __future__ import annotations

from typing import Final

STORY_POINTS: Final[tuple[int, ...]] = (1, 2, 3, 5, 8, 13, 21)

POINT_LABELS: Final[dict[int, str]] = {
    1: "Trivial",
    2: "Small",
    3: "Medium",
    5: "Large",
    8: "Very Large",
    13: "Epic",
    21: "Needs Breakdown",
}


def nearest_fibonacci(value: float) -> int:
    """Snap a raw estimate onto the story point scale.

    Ties go to the smaller point value.
    """
    closest = STORY_POINTS[0]
    min_diff = abs(value - closest)
    for point in STORY_POINTS:
        diff = abs(value - point)
        if diff < min_diff:
            min_diff = diff
            closest = point
    return closest


def points_label(points: int) -> str:
    return POINT_LABELS.get(points, "Unknown")
