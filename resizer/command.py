# TransformOptions -> ImageMagick argument list or Pillow parameters. Variants are checked
# in order: CONVERT (no dimensions), CROP, SCALE (both dimensions), RESIZE (one dimension)

from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from resizer.gravity import magick_gravity, pillow_centering
from resizer.options import STDIO, Action, FileTargets, TransformOptions


class CommandVariant(str, Enum):
    CONVERT = "convert"
    CROP = "crop"
    SCALE = "scale"
    RESIZE = "resize"


def select_variant(options: TransformOptions) -> CommandVariant:
    if not options.width and not options.height:
        return CommandVariant.CONVERT
    if options.action == Action.CROP:
        return CommandVariant.CROP
    if options.width and options.height:
        return CommandVariant.SCALE
    return CommandVariant.RESIZE


def build_dimension_string(options: TransformOptions) -> str:
    return f"{options.width}x{options.height}"


def build_action_args(options: TransformOptions) -> List[str]:
    """The geometric operations for the options' variant, empty for a plain conversion."""
    variant = select_variant(options)
    dimensions = build_dimension_string(options)
    if variant == CommandVariant.CROP:
        return [
            "-thumbnail", f"{dimensions}^>",
            "-gravity", magick_gravity(options.gravity),
            "-crop", f"{dimensions}+0+0",
        ]
    if variant == CommandVariant.SCALE:
        return ["-scale", f"{dimensions}!"]
    if variant == CommandVariant.RESIZE:
        return ["-resize", dimensions]
    return []


def build_command(options: TransformOptions, files: FileTargets, convert_cmd: str = "convert") -> List[str]:
    """Full argument list, engine name first.

    A stdout sink is written as ``<format>:-`` so the engine knows the output
    container without a file extension.
    """
    sink = f"{options.format}:{STDIO}" if files.sink == STDIO else files.sink
    return [
        convert_cmd,
        files.source,
        *build_action_args(options),
        "+repage",
        "-quality", options.quality,
        "-background", "white",
        "-flatten",
        sink,
    ]


class Fit(str, Enum):
    INSIDE = "inside"   # keep aspect ratio, stay within the box
    COVER = "cover"     # keep aspect ratio, fill the box and cut the overflow
    FILL = "fill"       # ignore aspect ratio


class ResizeParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: Optional[int] = None
    height: Optional[int] = None
    fit: Optional[Fit] = None
    centering: Tuple[float, float] = (0.5, 0.5)


class EncodeParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    codec: str
    quality: int


def build_resize_params(options: TransformOptions) -> Optional[ResizeParams]:
    """Pillow-side geometry; None for a plain format conversion.

    Unlike the engine path, a ``resize`` with both dimensions fits inside the box.
    """
    width = int(options.width) if options.width else None
    height = int(options.height) if options.height else None
    if width is None and height is None:
        return None
    if width is None or height is None:
        return ResizeParams(width=width, height=height)
    if options.action == Action.CROP:
        return ResizeParams(width=width, height=height, fit=Fit.COVER, centering=pillow_centering(options.gravity))
    if options.action == Action.SCALE:
        return ResizeParams(width=width, height=height, fit=Fit.FILL)
    return ResizeParams(width=width, height=height, fit=Fit.INSIDE)


def build_encode_params(options: TransformOptions) -> EncodeParams:
    return EncodeParams(codec=options.format.lower(), quality=int(options.quality))
