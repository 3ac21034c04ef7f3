"""Compass gravity codes and their names in each backend's vocabulary."""

from types import MappingProxyType
from typing import Tuple, Union

from resizer.options import Gravity

# ImageMagick -gravity names
MAGICK_GRAVITY = MappingProxyType({
    Gravity.NW: "NorthWest",
    Gravity.N: "North",
    Gravity.NE: "NorthEast",
    Gravity.W: "West",
    Gravity.C: "Center",
    Gravity.E: "East",
    Gravity.SW: "SouthWest",
    Gravity.S: "South",
    Gravity.SE: "SouthEast",
})

# Pillow ImageOps.fit centering, (x, y) as fractions of the overflow
PILLOW_CENTERING = MappingProxyType({
    Gravity.NW: (0.0, 0.0),
    Gravity.N: (0.5, 0.0),
    Gravity.NE: (1.0, 0.0),
    Gravity.W: (0.0, 0.5),
    Gravity.C: (0.5, 0.5),
    Gravity.E: (1.0, 0.5),
    Gravity.SW: (0.0, 1.0),
    Gravity.S: (0.5, 1.0),
    Gravity.SE: (1.0, 1.0),
})


def magick_gravity(gravity: Gravity) -> str:
    return MAGICK_GRAVITY[Gravity(gravity)]


def pillow_centering(gravity: Union[Gravity, str]) -> Tuple[float, float]:
    """Unknown codes fall back to center."""
    try:
        return PILLOW_CENTERING[Gravity(gravity)]
    except ValueError:
        return PILLOW_CENTERING[Gravity.C]
