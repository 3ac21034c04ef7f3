# Legacy compact encoding: /{c|w|h}{width}x{height}{gravity}/{png|jpg},{quality}/{source url}

import posixpath
import re
from typing import Mapping, Optional
from urllib.parse import quote

from pydantic import ValidationError

from resizer.errors import InvalidFormat
from resizer.options import Action, TransformOptions, clamp_quality

URL_MATCH = re.compile(
    r"^/?(c|w|h)?([0-9]+)x?([0-9]+)?,?"
    r"(c|e|w|n(?:e|w)?|s(?:e|w)?)?"
    r"/?(png|jpg)?,?([0-9]+)?"
    r"/(.*)$"
)

_PROTOCOL = re.compile(r"^([a-z]+:)/+([^/])")

# Characters encodeURIComponent leaves alone besides the unreserved set
_QUERY_SAFE = "!*'()"


def fix_url_protocol(url: str) -> str:
    """Collapse the slashes after the scheme to exactly two (``http:/x`` -> ``http://x``)."""
    return _PROTOCOL.sub(r"\1//\2", url, count=1)


def build_query_string(query: Mapping[str, str]) -> str:
    pairs = [f"{quote(str(key), safe=_QUERY_SAFE)}={quote(str(value), safe=_QUERY_SAFE)}" for key, value in query.items()]
    return "?" + "&".join(pairs) if pairs else ""


def split_request(path: str, query: Optional[Mapping[str, str]] = None) -> TransformOptions:
    """Decode a legacy request path plus its query mapping into TransformOptions.

    Raises InvalidFormat when the path does not match the grammar or describes
    an impossible transform (e.g. a crop with a single dimension).
    """
    match = URL_MATCH.match(path or "")
    if not match:
        raise InvalidFormat(f"Invalid URL format: {path!r}")

    mode, first, second, gravity, fmt, quality, remainder = match.groups()
    imagefile = fix_url_protocol(remainder)

    if mode == "h":
        width, height = "", first
    elif mode == "w":
        width, height = first, ""
    else:
        width, height = first, second or ""

    try:
        return TransformOptions(
            action=Action.CROP if mode == "c" else Action.RESIZE,
            width=width,
            height=height,
            gravity=gravity or "c",
            format=fmt or "jpg",
            quality=clamp_quality(quality),
            imagefile=imagefile,
            url=imagefile + build_query_string(query or {}),
            suffix=posixpath.splitext(imagefile)[1],
        )
    except ValidationError as e:
        raise InvalidFormat(str(e)) from e
