"""HTML handling for cdn-image.

Generates img tags, reads cloudinary_* meta tags, and renders static
documents whose img elements carry data-src public ids (the same markup
the browser plugin consumes).
"""

import html
import json
import re
from pathlib import Path
from typing import Any, Mapping, Optional

from bs4 import BeautifulSoup

from .config import parse_breakpoints
from .models import Config, Environment
from .responsive import ResponsiveController
from .url import build_url


META_PREFIX = "cloudinary_"
RESPONSIVE_CLASS = "cld-responsive"
HIDPI_CLASS = "cld-hidpi"

# Attributes on img elements that are not transformation options
RESERVED_DATA_ATTRIBUTES = {"data-src", "data-breakpoints"}

CSS_WIDTH_PATTERN = re.compile(r'(?:^|;)\s*width\s*:\s*(\d+(?:\.\d+)?)px', re.IGNORECASE)
NUMERIC_PATTERN = re.compile(r'^-?\d+(?:\.\d+)?$')


def html_attrs(attrs: Mapping[str, Any]) -> str:
    """Render attributes sorted by name; None values are dropped."""
    parts = []
    for name in sorted(attrs):
        value = attrs[name]
        if value is None:
            continue
        parts.append(f'{name}="{html.escape(str(value), quote=True)}"')
    return " ".join(parts)


def encode_data_value(value: Any) -> str:
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, separators=(",", ":"))
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def decode_data_value(value: str) -> Any:
    if value[:1] in ("[", "{"):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    if value in ("true", "false"):
        return value == "true"
    if NUMERIC_PATTERN.match(value):
        return float(value) if "." in value else int(value)
    return value


def image_tag(
    public_id: str,
    options: Mapping[str, Any] | None = None,
    config: Config | None = None,
    environment: Environment | None = None,
) -> str:
    """Build an img tag for a public id.

    Responsive and hidpi images are emitted without src: the public id goes
    to data-src and the options to data-* attributes, to be filled in once
    the container width is known.

    Args:
        public_id: Public id of the image
        options: Transformation options plus `responsive`, `hidpi`,
            `attributes` (extra html attributes) and `html_*` keys
        config: Configuration to use
        environment: Page protocol and device pixel ratio source

    Returns:
        HTML img tag
    """
    options = dict(options or {})
    responsive = options.pop("responsive", False)
    hidpi = options.pop("hidpi", False)
    attrs = dict(options.pop("attributes", None) or {})
    for key in [k for k in options if k.startswith("html_")]:
        attrs[key[len("html_"):]] = options.pop(key)

    if responsive or hidpi:
        classes = RESPONSIVE_CLASS if responsive else HIDPI_CLASS
        if attrs.get("class"):
            classes = f"{classes} {attrs['class']}"
        attrs["class"] = classes
        attrs["data-src"] = public_id
        for key, value in options.items():
            if key == "breakpoints":
                value = parse_breakpoints(value)
                if value is None or callable(value):
                    continue
                value = ",".join(str(v) for v in value)
            attrs.setdefault(f"data-{key.replace('_', '-')}", encode_data_value(value))
        return f"<img {html_attrs(attrs)}/>"

    result = build_url(public_id, options, config, environment)
    for key, value in result.html_attributes.items():
        attrs.setdefault(key, value)
    attrs["src"] = result.url
    return f"<img {html_attrs(attrs)}/>"


def config_from_meta(content: str) -> dict[str, Any]:
    """Read settings from <meta name="cloudinary_<key>" content="..."> tags.

    Args:
        content: HTML document

    Returns:
        Settings mapping, e.g. {"cloud_name": "demo", "secure": True}
    """
    soup = BeautifulSoup(content, 'lxml')
    settings = {}
    for meta in soup.find_all('meta'):
        name = meta.get('name') or ''
        if name.startswith(META_PREFIX) and meta.get('content') is not None:
            value = meta['content']
            if value in ("true", "false"):
                value = value == "true"
            settings[name[len(META_PREFIX):]] = value
    return settings


def extract_images(content: str) -> list[str]:
    """Find all data-src public ids in a document (unique, in order)."""
    soup = BeautifulSoup(content, 'lxml')
    images = []
    seen = set()
    for img in soup.find_all('img', attrs={'data-src': True}):
        src = img['data-src']
        if src and src not in seen:
            images.append(src)
            seen.add(src)
    return images


def image_options(img: Any) -> dict[str, Any]:
    """Transformation options stored in an img element's data-* attributes."""
    options = {}
    for name, value in img.attrs.items():
        if name.startswith("data-") and name not in RESERVED_DATA_ATTRIBUTES:
            if isinstance(value, list):
                value = " ".join(value)
            options[name[len("data-"):].replace("-", "_")] = decode_data_value(value)
    return options


class SoupDom:
    """DomAdapter over a BeautifulSoup tree.

    A static document has no layout, so an element's width is taken from an
    inline `style="width: 300px"` or a numeric `width` attribute.
    """

    def parent(self, node: Any) -> Any:
        return node.parent

    def measure(self, node: Any) -> Optional[float]:
        style = node.get('style') or ''
        match = CSS_WIDTH_PATTERN.search(style)
        if match:
            return float(match.group(1))
        width = node.get('width')
        if isinstance(width, str) and NUMERIC_PATTERN.match(width):
            return float(width)
        return None

    def get_attribute(self, node: Any, name: str) -> Optional[str]:
        value = node.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def set_attribute(self, node: Any, name: str, value: Any) -> None:
        node[name] = str(value)


def render_document(content: str, client: Any) -> tuple[str, int]:
    """Fill in src for every img[data-src] in a document.

    Fixed-size images get their URL and width/height hints directly;
    width="auto" images are sized from the nearest ancestor with a
    declared width and left untouched if there is none.

    Args:
        content: HTML document
        client: Cloudinary client providing build() and config()

    Returns:
        Tuple of (rendered document, number of images given a src)
    """
    soup = BeautifulSoup(content, 'lxml')
    controller = ResponsiveController(SoupDom(), client.build, client.config)

    for img in soup.find_all('img', attrs={'data-src': True}):
        controller.bind(img, img['data-src'], image_options(img))
    controller.responsive()

    rendered = sum(1 for img in soup.find_all('img', attrs={'data-src': True}) if img.get('src'))
    return str(soup), rendered


def save_new_document(original_path: Path, content: str) -> Path:
    """Save a rendered document with a _cdn suffix.

    Args:
        original_path: Path to original document
        content: Rendered content

    Returns:
        Path to new document (e.g., page_cdn.html)
    """
    new_path = original_path.parent / f"{original_path.stem}_cdn{original_path.suffix}"
    with open(new_path, 'w') as f:
        f.write(content)
    return new_path
