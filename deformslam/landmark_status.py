"""Status of a tracked landmark observation."""

from __future__ import annotations

import enum

__all__ = ["LandmarkStatus", "is_usable"]


class LandmarkStatus(enum.Enum):
    """Tracking state of a keypoint and its landmark."""

    TRACKED_WITH_3D = 0
    TRACKED = 1
    JUST_TRIANGULATED = 2
    BAD = 3
    OUT_IMAGE_BOUNDARIES = 4
    BAD_FEATURE = 5


_USABLE = frozenset(
    {
        LandmarkStatus.TRACKED_WITH_3D,
        LandmarkStatus.TRACKED,
        LandmarkStatus.JUST_TRIANGULATED,
    }
)


def is_usable(status: LandmarkStatus) -> bool:
    """Return True when an observation with this status can be used."""
    return status in _USABLE