"""cdn-image - Build CDN image URLs and keep responsive images sized.

Composes delivery URLs for a hosted media service from a public id and
transformation options, and snaps responsive image widths to breakpoints.
"""

__version__ = "0.1.0"
__author__ = "cdn-image"

from .client import Cloudinary
from .config import ConfigError, configure, get_default_config, reset_config
from .models import Config, Environment, ImageState, UrlResult
from .responsive import Debouncer, ResponsiveController
from .url import ValidationError, build_url, fetch_image_url, sprite_css_url

__all__ = [
    "__version__",
    "Cloudinary",
    "Config",
    "ConfigError",
    "Debouncer",
    "Environment",
    "ImageState",
    "ResponsiveController",
    "UrlResult",
    "ValidationError",
    "build_url",
    "configure",
    "fetch_image_url",
    "get_default_config",
    "reset_config",
    "sprite_css_url",
]
