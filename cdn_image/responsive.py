"""Responsive image handling for cdn-image.

Tracks image elements whose width is "auto", measures their containers
through a DomAdapter, snaps the measured width to a breakpoint and
rewrites the element's src when the resulting URL changes.
"""

import logging
import math
import threading
from typing import Any, Callable, Mapping, Optional, Protocol

from .config import parse_breakpoints
from .models import Binding, BreakpointPolicy, Config, ImageState, UrlResult


logger = logging.getLogger(__name__)

DEFAULT_BREAKPOINT_STEP = 10
DEFAULT_DEBOUNCE_DELAY = 0.1  # seconds
BREAKPOINTS_ATTRIBUTE = "data-breakpoints"


class DomAdapter(Protocol):
    """What the controller needs from the document it manages."""

    def parent(self, node: Any) -> Any:
        """Parent node, or None at the document root."""

    def measure(self, node: Any) -> Optional[float]:
        """Content width of a node, or None/0 if it has no layout width."""

    def get_attribute(self, node: Any, name: str) -> Optional[str]:
        ...

    def set_attribute(self, node: Any, name: str, value: Any) -> None:
        ...


def default_breakpoints(width: float) -> int:
    """Round up to the next multiple of 10."""
    return DEFAULT_BREAKPOINT_STEP * math.ceil(width / DEFAULT_BREAKPOINT_STEP)


def parse_breakpoints_attribute(value: Optional[str]) -> Optional[list[int]]:
    """Parse a "70,140" data attribute; None if absent or unusable."""
    if not value:
        return None
    try:
        parsed = [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        logger.debug("Ignoring malformed %s=%r", BREAKPOINTS_ATTRIBUTE, value)
        return None
    return sorted(parsed) or None


def snap_to_breakpoints(width: float, breakpoints: list[int]) -> int:
    """Smallest breakpoint >= width, or the largest one if width exceeds all."""
    ordered = sorted(breakpoints)
    for breakpoint in ordered:
        if breakpoint >= width:
            return breakpoint
    return ordered[-1]


def apply_breakpoint_policy(policy: Optional[BreakpointPolicy], width: float) -> Any:
    """Resolve width through a list, a function or the default step policy.

    Function results are used as-is, except that integral floats are
    returned as ints so they render as w_50 rather than w_50.0.
    """
    if callable(policy):
        result = policy(width)
        if isinstance(result, float) and result.is_integer():
            return int(result)
        return result
    if policy:
        return snap_to_breakpoints(width, list(policy))
    return default_breakpoints(width)


class Debouncer:
    """Coalesce bursts of calls into a single delayed callback.

    Every trigger() restarts the delay; the callback runs once the
    triggers stop for `delay` seconds.
    """

    def __init__(
        self,
        callback: Callable[[], Any],
        delay: float = DEFAULT_DEBOUNCE_DELAY,
        timer_factory: Callable[..., Any] = threading.Timer,
    ):
        self.delay = delay
        self._callback = callback
        self._timer_factory = timer_factory
        self._timer = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def trigger(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = self._timer_factory(self.delay, lambda: self._fire(timer))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _fire(self, timer: Any) -> None:
        with self._lock:
            # Stale timer: a newer trigger replaced it
            if self._timer is not timer:
                return
            self._timer = None
        self._callback()


class ResponsiveController:
    """Keeps responsive img elements in sync with their container width.

    Args:
        dom: DomAdapter for the managed document
        build_url: Callable (public_id, options) -> UrlResult
        get_config: Callable returning the current Config; read on every pass
        debounce_delay: Window for coalescing resize notifications
        timer_factory: threading.Timer compatible factory (for tests)
    """

    def __init__(
        self,
        dom: DomAdapter,
        build_url: Callable[[str, Mapping[str, Any]], UrlResult],
        get_config: Callable[[], Config],
        debounce_delay: float = DEFAULT_DEBOUNCE_DELAY,
        timer_factory: Callable[..., Any] = threading.Timer,
    ):
        self.dom = dom
        self._build_url = build_url
        self._get_config = get_config
        self._bindings: dict[int, Binding] = {}
        self._debouncer = Debouncer(
            lambda: self.responsive(resizing=True),
            delay=debounce_delay,
            timer_factory=timer_factory,
        )

    def bind(self, element: Any, public_id: str, options: Mapping[str, Any] | None = None) -> Binding:
        """Register an element.

        Auto-width images wait for the first responsive() pass; anything
        else is rendered straight away.
        """
        binding = Binding(element, public_id, dict(options or {}))
        self._bindings[id(element)] = binding

        if binding.is_auto_width:
            logger.debug("Deferring %s until its container is measured", public_id)
            return binding

        result = self._build_url(public_id, binding.options)
        self._write(element, "src", result.url)
        for name, value in result.html_attributes.items():
            self._write(element, name, value)
        binding.state = ImageState.BOUND
        return binding

    def detach(self, element: Any) -> bool:
        """Forget an element. Returns False if it was not bound."""
        return self._bindings.pop(id(element), None) is not None

    def state(self, element: Any) -> ImageState:
        binding = self._bindings.get(id(element))
        return binding.state if binding else ImageState.UNBOUND

    @property
    def bindings(self) -> list[Binding]:
        return list(self._bindings.values())

    def calc_breakpoint(
        self,
        element: Any,
        width: float,
        breakpoints: Optional[BreakpointPolicy] = None,
    ) -> Any:
        """Snap a width using the element's, the caller's or the global policy.

        Args:
            element: Element whose data-breakpoints attribute takes priority
            width: Requested width in CSS pixels
            breakpoints: Per-call list or function

        Returns:
            Snapped width
        """
        policy = parse_breakpoints_attribute(
            self.dom.get_attribute(element, BREAKPOINTS_ATTRIBUTE)
        )
        if policy is None:
            policy = parse_breakpoints(breakpoints)
        if policy is None:
            policy = self._get_config().breakpoints
        return apply_breakpoint_policy(policy, width)

    def container_width(self, element: Any) -> Optional[int]:
        """Width of the nearest ancestor with a positive measured width."""
        node = self.dom.parent(element)
        while node is not None:
            width = self.dom.measure(node)
            if width and width > 0:
                return math.ceil(width)
            node = self.dom.parent(node)
        return None

    def responsive(self, resizing: bool = False) -> int:
        """Recompute every auto-width image.

        Args:
            resizing: True when triggered by a window resize

        Returns:
            Number of elements whose src changed
        """
        config = self._get_config()
        updated = 0
        for binding in self.bindings:
            if binding.is_auto_width and self._update(binding, config, resizing):
                updated += 1
        return updated

    def on_resize(self) -> None:
        """Window resize notification; coalesced into one responsive() pass."""
        self._debouncer.trigger()

    def close(self) -> None:
        self._debouncer.cancel()

    def _update(self, binding: Binding, config: Config, resizing: bool) -> bool:
        container_width = self.container_width(binding.element)
        if not container_width:
            logger.debug("No measurable container for %s yet", binding.public_id)
            return False

        use_breakpoints = binding.options.get(
            "responsive_use_breakpoints", config.responsive_use_breakpoints
        )
        exact = not use_breakpoints or (use_breakpoints == "resize" and not resizing)
        if exact:
            requested = container_width
        else:
            requested = self.calc_breakpoint(
                binding.element, container_width, binding.options.get("breakpoints")
            )

        # Never shrink
        if requested > binding.width:
            binding.width = requested

        options = dict(binding.options)
        options["width"] = binding.width
        result = self._build_url(binding.public_id, options)

        binding.state = ImageState.BOUND
        return self._write(binding.element, "src", result.url)

    def _write(self, element: Any, name: str, value: Any) -> bool:
        if self.dom.get_attribute(element, name) == value:
            return False
        self.dom.set_attribute(element, name, value)
        return True
