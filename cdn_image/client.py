"""Client facade for cdn-image.

Bundles a configuration, the page environment and an optional DOM
adapter, and exposes URL building, img tag generation and responsive
image handling through one object.
"""

from typing import Any, Mapping

from .config import build_config, get_default_config
from .markup import image_tag
from .models import Binding, Config, Environment, UrlResult
from .responsive import DEFAULT_DEBOUNCE_DELAY, DomAdapter, ResponsiveController, apply_breakpoint_policy
from .transformation import device_pixel_ratio
from .url import build_url, fetch_image_url, sprite_css_url


_MISSING = object()


class Cloudinary:
    """Build delivery URLs and keep responsive images up to date.

    Without an explicit config the client follows the process-wide
    default, re-read on every call. Settings passed as keyword arguments
    (or later through config()) are layered on top of it.

    Args:
        config: Base configuration (None = process-wide default)
        environment: Page protocol and device pixel ratio source
        dom: DomAdapter for responsive images (optional)
        debounce_delay: Window for coalescing resize notifications
        **settings: Config overrides, e.g. cloud_name="demo"
    """

    def __init__(
        self,
        config: Config | None = None,
        environment: Environment | None = None,
        dom: DomAdapter | None = None,
        debounce_delay: float = DEFAULT_DEBOUNCE_DELAY,
        **settings: Any,
    ):
        self._base = config
        self._settings: dict[str, Any] = {}
        self.environment = environment or Environment()
        self.controller = None
        if dom is not None:
            self.controller = ResponsiveController(
                dom, self.build, self.config, debounce_delay=debounce_delay
            )
        if settings:
            self.config(**settings)

    def config(self, key: str | None = None, value: Any = _MISSING, **updates: Any) -> Any:
        """Read or update the effective configuration.

        config() returns the Config, config("cloud_name") one value, and
        config("breakpoints", [50, 150]) or config(cloud_name="demo")
        updates it.
        """
        if key is not None and value is _MISSING and not updates:
            return getattr(self.config(), key)
        if key is not None:
            updates[key] = value
        if updates:
            # Validate the keys now rather than on the next URL
            build_config(updates)
            self._settings.update(updates)
        base = self._base if self._base is not None else get_default_config()
        return build_config(self._settings, base=base)

    def build(self, public_id: str, options: Mapping[str, Any] | None = None) -> UrlResult:
        return build_url(public_id, options, self.config(), self.environment)

    def url(self, public_id: str, **options: Any) -> str:
        return self.build(public_id, options).url

    def image_tag(self, public_id: str, **options: Any) -> str:
        return image_tag(public_id, options, self.config(), self.environment)

    def fetch_image_url(self, remote_url: str, **options: Any) -> str:
        return fetch_image_url(remote_url, options, self.config(), self.environment).url

    def sprite_css(self, public_id: str, **options: Any) -> str:
        return sprite_css_url(public_id, options, self.config(), self.environment)

    def device_pixel_ratio(self) -> float:
        return device_pixel_ratio(self.environment.device_pixel_ratio, self.config().round_dpr)

    def calc_breakpoint(self, element: Any, width: float) -> Any:
        """Snap width using the element's override or the configured policy."""
        if self.controller is not None:
            return self.controller.calc_breakpoint(element, width)
        return apply_breakpoint_policy(self.config().breakpoints, width)

    def bind(self, element: Any, public_id: str, **options: Any) -> Binding:
        return self._require_controller().bind(element, public_id, options)

    def responsive(self, resizing: bool = False) -> int:
        return self._require_controller().responsive(resizing=resizing)

    def on_resize(self) -> None:
        self._require_controller().on_resize()

    def _require_controller(self) -> ResponsiveController:
        if self.controller is None:
            raise RuntimeError("Responsive images need a DomAdapter; pass dom= to Cloudinary()")
        return self.controller
