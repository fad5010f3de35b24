"""Data models for cdn-image.

Contains data classes for the delivery configuration, the calling
environment, URL build results and responsive image bindings.
"""

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Callable, Optional, Sequence, Union


BreakpointPolicy = Union[Sequence[int], Callable[[int], float]]


@dataclass(frozen=True)
class Config:
    """Delivery configuration for building CDN URLs.

    Attributes:
        cloud_name: Account name used in shared-distribution paths
        secure: Force https (None means follow the page protocol)
        private_cdn: Use the account's dedicated hostname
        secure_distribution: Custom https hostname
        cname: Custom domain for plain http delivery
        cdn_subdomain: Spread requests over numbered subdomains
        secure_cdn_subdomain: Override cdn_subdomain for https (None = inherit)
        shorten: Use the short `iu` form for image/upload
        use_root_path: Omit the resource/type segments entirely
        protocol: Explicit scheme for non-secure URLs (e.g. "custom:")
        breakpoints: Responsive breakpoint list or function (None = step of 10)
        round_dpr: Round the device pixel ratio up to a whole number
        responsive_use_breakpoints: True, False or "resize"
    """
    cloud_name: Optional[str] = None
    secure: Optional[bool] = None
    private_cdn: bool = False
    secure_distribution: Optional[str] = None
    cname: Optional[str] = None
    cdn_subdomain: bool = False
    secure_cdn_subdomain: Optional[bool] = None
    shorten: bool = False
    use_root_path: bool = False
    protocol: Optional[str] = None
    breakpoints: Optional[BreakpointPolicy] = None
    round_dpr: bool = True
    responsive_use_breakpoints: Union[bool, str] = "resize"

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls))

    def merged(self, overrides: dict[str, Any]) -> "Config":
        """Return a copy with any Config keys from overrides applied."""
        names = self.field_names()
        updates = {k: v for k, v in overrides.items() if k in names}
        if not updates:
            return self
        return replace(self, **updates)

    def as_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _default_dpr() -> float:
    return 1.0


@dataclass(frozen=True)
class Environment:
    """What the URL builder knows about the page it runs in.

    Attributes:
        page_protocol: Scheme of the calling page ("http:", "https:", "file:")
        device_pixel_ratio: Callable returning the current device pixel ratio
    """
    page_protocol: Optional[str] = None
    device_pixel_ratio: Callable[[], float] = _default_dpr


@dataclass
class UrlResult:
    """Result of building a URL.

    Attributes:
        url: Final delivery URL
        html_width: Width hint for the img tag, if any
        html_height: Height hint for the img tag, if any
    """
    url: str
    html_width: Any = None
    html_height: Any = None

    @property
    def html_attributes(self) -> dict[str, Any]:
        attrs = {}
        if self.html_width is not None:
            attrs["width"] = self.html_width
        if self.html_height is not None:
            attrs["height"] = self.html_height
        return attrs


class ImageState(Enum):
    """Lifecycle of a responsive image element."""
    UNBOUND = "unbound"
    PENDING = "pending"
    BOUND = "bound"


@dataclass
class Binding:
    """A DOM element registered with the responsive controller.

    Attributes:
        element: Opaque DOM node handed to the DomAdapter
        public_id: Public id to render
        options: Original options (width may be "auto")
        state: Current lifecycle state
        width: Largest width rendered so far (0 before the first render)
    """
    element: Any
    public_id: str
    options: dict[str, Any] = field(default_factory=dict)
    state: ImageState = ImageState.PENDING
    width: int = 0

    @property
    def is_auto_width(self) -> bool:
        return str(self.options.get("width", "")).startswith("auto")
