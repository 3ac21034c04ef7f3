# Query-string encoding for the blob endpoints, e.g. ?s=300x300&m=crop&g=n&f=webp&q=90

import posixpath
import re
from typing import Mapping

from resizer.options import Action, Gravity, TransformOptions, clamp_quality

_BOX = re.compile(r"^c?(\d+)x(\d+)$", re.IGNORECASE)
_WIDTH = re.compile(r"^w(\d+)$", re.IGNORECASE)
_HEIGHT = re.compile(r"^h(\d+)$", re.IGNORECASE)
_NUMBER = re.compile(r"^(\d+)$")

_GRAVITIES = {g.value for g in Gravity}


def parse_size(size: str, mode: str = "resize"):
    """Return (action, width, height) for a size token."""
    if not size:
        return Action.RESIZE, "", ""
    box = _BOX.match(size)
    if box:
        if size[0] in "cC" or mode == "crop":
            return Action.CROP, box.group(1), box.group(2)
        return Action.SCALE, box.group(1), box.group(2)
    width = _WIDTH.match(size) or _NUMBER.match(size)
    if width:
        return Action.RESIZE, width.group(1), ""
    height = _HEIGHT.match(size)
    if height:
        return Action.RESIZE, "", height.group(1)
    return Action.RESIZE, "", ""


def parse_query_options(query: Mapping[str, str], full_url: str, image_path: str) -> TransformOptions:
    mode = (query.get("m") or "resize").lower()
    gravity = (query.get("g") or "c").lower()

    action, width, height = parse_size(query.get("s") or "", mode)

    # An explicit mode wins over what the size token implied
    if mode in (Action.CROP.value, Action.SCALE.value):
        action = Action(mode)
    # crop and scale need a full box; degrade to a plain resize otherwise
    if action != Action.RESIZE and not (width and height):
        action = Action.RESIZE

    return TransformOptions(
        action=action,
        width=width,
        height=height,
        gravity=gravity if gravity in _GRAVITIES else Gravity.C,
        format=(query.get("f") or "png").lower(),
        quality=clamp_quality(query.get("q")),
        imagefile=full_url,
        url=full_url,
        suffix=posixpath.splitext(image_path)[1],
    )
