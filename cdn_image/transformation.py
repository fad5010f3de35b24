"""Transformation string generation for cdn-image.

Renders an options mapping into the comma-separated `code_value` path
segments understood by the CDN, and derives the width/height hints an
img tag should carry.
"""

import math
from collections.abc import Mapping
from typing import Any, Callable, NamedTuple, Optional


# Options rendered verbatim under a short code
SIMPLE_PARAMS = {
    "aspect_ratio": "ar",
    "color_space": "cs",
    "default_image": "d",
    "delay": "dl",
    "density": "dn",
    "fetch_format": "f",
    "gravity": "g",
    "opacity": "o",
    "overlay": "l",
    "page": "pg",
    "prefix": "p",
    "quality": "q",
    "radius": "r",
    "underlay": "u",
    "x": "x",
    "y": "y",
    "zoom": "z",
}

# Crop modes whose output size is not known in advance
NO_HTML_SIZE_CROPS = {"fit", "lfill", "limit"}

DEFAULT_BORDER_WIDTH = 2
DEFAULT_BORDER_COLOR = "black"


class Transformation(NamedTuple):
    """A rendered transformation and the html size hints of its primary frame."""
    path: str
    html_width: Any = None
    html_height: Any = None


DprSource = Callable[[], float]


def build_array(value: Any) -> list:
    """Wrap a scalar in a list; None becomes an empty list."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def is_present(value: Any) -> bool:
    """True for anything but None and the empty string (0 counts)."""
    return value is not None and value != ""


def is_auto(value: Any) -> bool:
    return isinstance(value, str) and value.startswith("auto")


def device_pixel_ratio(source: Optional[DprSource] = None, round_dpr: bool = True) -> float:
    """Resolve the device pixel ratio, falling back to 1.0.

    Args:
        source: Callable reporting the current ratio
        round_dpr: Round up to a whole number so each device class shares
            one cached rendition

    Returns:
        Positive pixel ratio as a float
    """
    dpr = None
    if source is not None:
        try:
            dpr = float(source())
        except (TypeError, ValueError):
            dpr = None
    if dpr is None or math.isnan(dpr) or dpr <= 0:
        dpr = 1.0
    if round_dpr:
        dpr = float(math.ceil(dpr))
    return dpr


def format_dpr(value: Any, dpr_source: Optional[DprSource] = None) -> Optional[str]:
    """Render a dpr option with exactly one decimal place."""
    if not is_present(value):
        return None
    if value == "auto":
        value = dpr_source() if dpr_source is not None else 1.0
    try:
        return f"{float(value):.1f}"
    except (TypeError, ValueError):
        return str(value)


def process_color(value: Any) -> Any:
    """Convert #RRGGBB[AA] into rgb:RRGGBB[AA]; names pass through."""
    if isinstance(value, str) and value.startswith("#"):
        return "rgb:" + value[1:]
    return value


def process_border(value: Any) -> Any:
    if isinstance(value, Mapping):
        width = value.get("width")
        if not is_present(width):
            width = DEFAULT_BORDER_WIDTH
        color = process_color(value.get("color") or DEFAULT_BORDER_COLOR)
        return f"{width}px_solid_{color}"
    return value


def process_effect(value: Any) -> str:
    if isinstance(value, Mapping):
        return ",".join(f"{name}:{param}" for name, param in value.items())
    return ":".join(str(v) for v in build_array(value))


def format_value(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def generate_transformation(
    options: Mapping[str, Any],
    dpr_source: Optional[DprSource] = None,
) -> Transformation:
    """Render transformation options into URL path segments.

    Nested `transformation` mappings each become their own segment ahead
    of this frame; a string or list of strings becomes a named
    transformation (`t_a.b`) inside this frame. Empty frames are skipped.

    Args:
        options: Transformation options for the primary frame
        dpr_source: Callable used to resolve dpr="auto"

    Returns:
        Transformation with the joined path and the primary frame's
        html width/height hints
    """
    options = dict(options)

    size = options.pop("size", None)
    if size:
        options["width"], options["height"] = str(size).split("x", 1)

    width = options.pop("width", None)
    height = options.pop("height", None)
    has_layer = is_present(options.get("overlay")) or is_present(options.get("underlay"))
    crop = options.pop("crop", None)
    angle = ".".join(str(v) for v in build_array(options.pop("angle", None)))

    no_html_sizes = has_layer or angle != "" or crop in NO_HTML_SIZE_CROPS
    html_width = width if is_present(width) and not no_html_sizes and not is_auto(width) else None
    html_height = height if is_present(height) and not no_html_sizes else None

    # Without crop the dimensions only size the img tag
    if not crop and not has_layer:
        width = height = None

    segments = []
    named = None
    base_transformations = build_array(options.pop("transformation", None))
    if any(isinstance(base, Mapping) for base in base_transformations):
        for base in base_transformations:
            if isinstance(base, Mapping):
                segments.append(generate_transformation(base, dpr_source).path)
            elif is_present(base):
                segments.append(f"t_{base}")
    elif base_transformations:
        named = ".".join(str(name) for name in base_transformations)

    params = {
        "a": angle,
        "b": process_color(options.pop("background", None)),
        "bo": process_border(options.pop("border", None)),
        "c": crop,
        "co": process_color(options.pop("color", None)),
        "dpr": format_dpr(options.pop("dpr", None), dpr_source),
        "e": process_effect(options.pop("effect", None)),
        "fl": ".".join(str(flag) for flag in build_array(options.pop("flags", None))),
        "h": height,
        "t": named,
        "w": width,
    }
    for key, code in SIMPLE_PARAMS.items():
        params[code] = options.get(key)

    rendered = [
        f"{code}_{format_value(value)}"
        for code, value in sorted(params.items())
        if is_present(value)
    ]
    raw = options.get("raw_transformation")
    if raw:
        rendered.append(str(raw))

    segments.append(",".join(rendered))
    path = "/".join(segment for segment in segments if segment)
    return Transformation(path, html_width, html_height)
