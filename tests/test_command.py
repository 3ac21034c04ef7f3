import pytest
from pydantic import ValidationError

from resizer.command import (
    CommandVariant,
    Fit,
    build_action_args,
    build_command,
    build_encode_params,
    build_resize_params,
    select_variant,
)
from resizer.gravity import magick_gravity, pillow_centering
from resizer.options import FileTargets, Gravity

from conftest import make_options

TAIL = ["+repage", "-quality", "80", "-background", "white", "-flatten"]


@pytest.mark.parametrize(
    "fields, variant",
    [
        ({"width": "", "height": ""}, CommandVariant.CONVERT),
        ({"action": "crop", "width": "10", "height": "20"}, CommandVariant.CROP),
        ({"action": "scale", "width": "10", "height": "20"}, CommandVariant.SCALE),
        ({"action": "resize", "width": "10", "height": "20"}, CommandVariant.SCALE),
        ({"width": "10", "height": ""}, CommandVariant.RESIZE),
        ({"width": "", "height": "20"}, CommandVariant.RESIZE),
    ],
)
def test_select_variant(fields, variant):
    assert select_variant(make_options(**fields)) == variant


def test_convert_only_command():
    options = make_options(width="", height="", format="webp")
    files = FileTargets(source="in.png", sink="out.webp")
    assert build_command(options, files) == ["convert", "in.png", *TAIL, "out.webp"]


def test_crop_command_writes_to_stdout():
    options = make_options(action="crop", width="200", height="100", gravity="nw", format="jpg")
    assert build_command(options, FileTargets(), "magick") == [
        "magick", "-",
        "-thumbnail", "200x100^>",
        "-gravity", "NorthWest",
        "-crop", "200x100+0+0",
        *TAIL,
        "jpg:-",
    ]


def test_scale_forces_both_dimensions():
    options = make_options(width="200", height="100")
    assert build_action_args(options) == ["-scale", "200x100!"]


def test_resize_single_dimension():
    assert build_action_args(make_options(width="200", height="")) == ["-resize", "200x"]
    assert build_action_args(make_options(width="", height="150")) == ["-resize", "x150"]


def test_quality_is_passed_through():
    args = build_command(make_options(quality="35"), FileTargets())
    assert args[args.index("-quality") + 1] == "35"


def test_gravity_tables_cover_every_code():
    for gravity in Gravity:
        assert magick_gravity(gravity)
        assert pillow_centering(gravity)
    assert magick_gravity("c") == "Center"
    assert pillow_centering("se") == (1.0, 1.0)
    assert pillow_centering("bogus") == (0.5, 0.5)


def test_native_params_per_action():
    assert build_resize_params(make_options(width="", height="")) is None

    single = build_resize_params(make_options(width="64", height=""))
    assert (single.width, single.height, single.fit) == (64, None, None)

    crop = build_resize_params(make_options(action="crop", width="64", height="32", gravity="n"))
    assert crop.fit == Fit.COVER
    assert crop.centering == (0.5, 0.0)

    assert build_resize_params(make_options(action="scale", width="64", height="32")).fit == Fit.FILL
    assert build_resize_params(make_options(width="64", height="32")).fit == Fit.INSIDE


def test_encode_params():
    params = build_encode_params(make_options(format="WebP", quality="55"))
    assert (params.codec, params.quality) == ("webp", 55)


def test_native_params_are_immutable():
    params = build_resize_params(make_options(action="crop", width="64", height="32"))
    with pytest.raises(ValidationError):
        params.width = 10
    with pytest.raises(ValidationError):
        build_encode_params(make_options()).quality = 10
