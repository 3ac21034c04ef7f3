import re
from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, model_validator

DEFAULT_QUALITY = 80

# Standard stream sentinel for the external engine ("read stdin" / "write stdout")
STDIO = "-"


class Action(str, Enum):
    CROP = "crop"
    RESIZE = "resize"
    SCALE = "scale"


class Gravity(str, Enum):
    NW = "nw"
    N = "n"
    NE = "ne"
    W = "w"
    C = "c"
    E = "e"
    SW = "sw"
    S = "s"
    SE = "se"


class TransformOptions(BaseModel):
    """Normalized description of one transform request.

    ``width`` and ``height`` are decimal strings, ``""`` meaning absent. Both
    absent means a plain format conversion. ``crop`` and ``scale`` need both.
    """

    model_config = ConfigDict(frozen=True)

    action: Action = Action.RESIZE
    width: str = ""
    height: str = ""
    gravity: Gravity = Gravity.C
    format: str
    quality: str = str(DEFAULT_QUALITY)
    imagefile: str          # source locator
    url: str                # locator + pass-through query, part of the cache key
    suffix: str = ""        # extension of the locator, a hint only

    @model_validator(mode="after")
    def _check_dimensions(self):
        for name in ("width", "height"):
            value = getattr(self, name)
            if value and not value.isdigit():
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
        if self.action in (Action.CROP, Action.SCALE) and not (self.width and self.height):
            raise ValueError(f"{self.action.value} requires both width and height")
        return self


class FileTargets(BaseModel):
    """Where the engine reads from and writes to; ``"-"`` selects the standard stream."""

    model_config = ConfigDict(frozen=True)

    source: str = STDIO
    sink: str = STDIO


def clamp_quality(value: Union[str, int, None]) -> str:
    """Clamp a quality value into 0..100, defaulting to 80 when it is missing or not a number."""
    if isinstance(value, int):
        quality = value
    else:
        match = re.match(r"\s*([+-]?\d+)", value or "")
        quality = int(match.group(1)) if match else DEFAULT_QUALITY
    return str(min(100, max(0, quality)))
